"""Tests for file and memory key/value storage."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from moodcalendar.storage import (
    FileStorage,
    MemoryStorage,
    StorageCorruptError,
    StorageQuotaError,
    load_json,
    save_json,
)


@pytest.fixture()
def storage(tmp_path: Path) -> FileStorage:
    return FileStorage(tmp_path / "data")


# ---- FileStorage ----


def test_get_missing_returns_none(storage):
    assert storage.get_item("appStore_v1") is None


def test_set_creates_directory_and_file(storage):
    storage.set_item("appStore_v1", '{"a": 1}')
    assert storage.path_for("appStore_v1").exists()


def test_set_then_get(storage):
    storage.set_item("k", "héllo")
    assert storage.get_item("k") == "héllo"


def test_set_is_atomic_no_tmp_left(storage):
    storage.set_item("k", "x")
    path = storage.path_for("k")
    assert not path.with_name(path.name + ".tmp").exists()


def test_set_sets_permissions(storage):
    storage.set_item("k", "x")
    mode = oct(os.stat(storage.path_for("k")).st_mode & 0o777)
    assert mode == "0o600"


def test_empty_file_reads_as_missing(storage):
    storage.set_item("k", "   ")
    assert storage.get_item("k") is None


def test_remove_item(storage):
    storage.set_item("k", "x")
    storage.remove_item("k")
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_backup_item_copies_raw_text(storage):
    storage.set_item("k", "not json {{")
    backup = storage.backup_item("k")
    assert backup is not None and backup.exists()
    assert backup.read_text(encoding="utf-8") == "not json {{"
    assert storage.keys() == ["k"]


def test_undecodable_file_raises_corrupt_and_backs_up_bytes(storage):
    path = storage.path_for("k")
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\xff\xfe")
    with pytest.raises(StorageCorruptError):
        storage.get_item("k")
    assert storage.backup_item("k").read_bytes() == b"\xff\xfe"


def test_backup_missing_returns_none(storage):
    assert storage.backup_item("k") is None


@pytest.mark.parametrize("key", ["", "../x", "a/b", ".hidden"])
def test_bad_keys_rejected(storage, key):
    with pytest.raises(ValueError):
        storage.path_for(key)


# ---- MemoryStorage ----


def test_memory_roundtrip():
    m = MemoryStorage()
    m.set_item("k", "v")
    assert m.get_item("k") == "v"
    m.remove_item("k")
    assert m.get_item("k") is None


def test_memory_quota():
    m = MemoryStorage(quota=5)
    m.set_item("k", "12345")
    m.set_item("k", "54321")  # replacing the same key frees its space
    with pytest.raises(StorageQuotaError):
        m.set_item("other", "x")


# ---- json helpers ----


def test_save_json_writes_valid_json(tmp_path):
    path = tmp_path / "a" / "catalog.json"
    save_json(path, {"tests": [1, 2]})
    assert json.loads(path.read_text()) == {"tests": [1, 2]}


def test_load_json_missing_corrupt_and_non_dict(tmp_path):
    path = tmp_path / "c.json"
    assert load_json(path) == {}
    path.write_text("{{{", encoding="utf-8")
    assert load_json(path) == {}
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_json(path) == {}
