"""Tests for journal, test-result and reminder writes."""

from __future__ import annotations

from datetime import datetime

import pytest

from moodcalendar.journal import (
    add_entry,
    add_reminder,
    delete_entry,
    edit_entry,
    find_entry,
    parse_tags,
    record_test_result,
    remove_reminder,
)
from moodcalendar.storage import MemoryStorage
from moodcalendar.store import Store

WHEN = datetime(2026, 3, 10, 14, 5, 0)


@pytest.fixture()
def store() -> Store:
    return Store(MemoryStorage())


def test_parse_tags():
    assert parse_tags("work, sleep work") == ["work", "sleep"]
    assert parse_tags(["Work", "work", " "]) == ["Work"]
    assert parse_tags(None) == []


def test_add_entry_shape(store):
    e = add_entry(store, 12, note="walk", tags="outside", when=WHEN)
    assert e["dateISO"] == "2026-03-10T14:05:00"
    assert e["hour"] == 14
    assert e["score"] == 12
    assert e["source"] == "quick"
    assert e["note"] == "walk"
    assert e["tags"] == ["outside"]
    assert store.get("journal") == [e]


def test_add_entry_is_one_notification(store):
    calls = []
    store.subscribe(calls.append)
    add_entry(store, 5, when=WHEN)
    assert len(calls) == 1


def test_add_entry_refreshes_profile(store):
    add_entry(store, -10, tags=["work"])
    add_entry(store, 20)
    assert store.get("profile.triggers") == {"work": 1}
    assert store.get("profile.averages.all") == 5.0
    assert store.get("profile.language") == "ru"


@pytest.mark.parametrize("score", [51, -51, 1.5, True, "3"])
def test_add_entry_rejects_bad_score(store, score):
    with pytest.raises(ValueError):
        add_entry(store, score)
    assert store.get("journal") == []


def test_add_entry_rejects_bad_source(store):
    with pytest.raises(ValueError):
        add_entry(store, 1, source="email")


def test_edit_entry(store):
    e = add_entry(store, 5, when=WHEN)
    new = edit_entry(store, e["id"], score=-5, tags="tired")
    assert new["score"] == -5
    assert find_entry(store, e["id"])["tags"] == ["tired"]
    assert store.get("profile.triggers") == {"tired": 1}


def test_edit_unknown_field_or_entry(store):
    e = add_entry(store, 5)
    with pytest.raises(ValueError):
        edit_entry(store, e["id"], id="other")
    with pytest.raises(KeyError):
        edit_entry(store, "missing", score=1)


def test_delete_entry(store):
    a = add_entry(store, 5)
    b = add_entry(store, 6)
    assert delete_entry(store, a["id"]) == a
    assert [e["id"] for e in store.get("journal")] == [b["id"]]
    with pytest.raises(KeyError):
        delete_entry(store, a["id"])


def test_record_test_result_appends(store):
    record_test_result(store, "phq2", 2, [1, 1], when=WHEN)
    record_test_result(store, "phq2", 4, [2, 2], when=WHEN)
    record_test_result(store, "gad2", 1, [0, 1], when=WHEN)
    assert [r["score"] for r in store.get("testsResults.phq2")] == [2, 4]
    assert store.get("testsResults.gad2")[0]["answers"] == [0, 1]


def test_record_test_result_needs_id(store):
    with pytest.raises(ValueError):
        record_test_result(store, "", 1, [])


def test_reminders(store):
    daily = add_reminder(store, "daily", 9, 30)
    weekly = add_reminder(store, "weekly", 20, dow=[4, 0, 4])
    assert weekly["dow"] == [0, 4]
    assert "dow" not in daily
    assert len(store.get("settings.reminders")) == 2

    remove_reminder(store, daily["id"])
    assert store.get("settings.reminders") == [weekly]
    with pytest.raises(KeyError):
        remove_reminder(store, daily["id"])


@pytest.mark.parametrize(
    "kind,hour,minute,dow",
    [("hourly", 9, 0, None), ("daily", 24, 0, None), ("daily", 9, 60, None), ("weekly", 9, 0, None), ("weekly", 9, 0, [7])],
)
def test_bad_reminders(store, kind, hour, minute, dow):
    with pytest.raises(ValueError):
        add_reminder(store, kind, hour, minute, dow)


def test_record_test_result_dotted_id_stays_flat(store):
    record_test_result(store, "phq.2", 3, [1, 2], when=WHEN)
    results = store.get("testsResults")
    assert results["phq.2"][0]["score"] == 3
    assert "phq" not in results
    assert results["phq2"] == []
