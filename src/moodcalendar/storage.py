from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any


class StorageError(Exception):
    """Durable storage could not complete a read or write."""


class StorageQuotaError(StorageError):
    pass


class StorageCorruptError(StorageError):
    """A stored record exists but is not readable text."""


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _atomic_write(path: Path, text: str) -> None:
    """
    Atomic-ish write:
    - write to temp file in same directory
    - flush + fsync
    - os.replace to target
    - chmod 0600 best-effort
    """
    _ensure_parent(path)
    tmp = path.with_name(path.name + ".tmp")

    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())

    os.replace(tmp, path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


def load_json(path: Path) -> dict[str, Any]:
    """
    Read-only load for side files (catalog, exports).
    Missing, empty, corrupt or non-object files all read as {}.
    """
    path = Path(path)
    if not path.exists():
        return {}
    txt = path.read_text(encoding="utf-8").strip()
    if not txt:
        return {}
    try:
        data = json.loads(txt)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def save_json(path: Path, data: Any) -> None:
    payload = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    _atomic_write(Path(path), payload)


class FileStorage:
    """Key/value text storage: one `<key>.json` file per key in `directory`."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Bad storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            txt = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise StorageCorruptError(f"{path} is not valid UTF-8") from e
        except OSError as e:
            raise StorageError(f"Could not read {path}") from e
        return txt if txt.strip() else None

    def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            _atomic_write(path, value)
        except OSError as e:
            raise StorageError(f"Could not write {path}") from e

    def remove_item(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass

    def backup_item(self, key: str) -> Path | None:
        # corruption guard: keep the raw text next to the record
        path = self.path_for(key)
        if not path.exists():
            return None
        backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
        backup.write_bytes(path.read_bytes())
        return backup

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json") if ".corrupt-" not in p.name)


class MemoryStorage:
    """Dict-backed storage. `quota` caps the total stored characters."""

    def __init__(self, items: dict[str, str] | None = None, quota: int | None = None):
        self._items: dict[str, str] = dict(items or {})
        self.quota = quota

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self._items.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageQuotaError(f"Quota of {self.quota} characters exceeded")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def backup_item(self, key: str) -> str | None:
        if key not in self._items:
            return None
        name = f"{key}.corrupt-{int(time.time())}"
        self._items[name] = self._items[key]
        return name

    def keys(self) -> list[str]:
        return sorted(self._items)
