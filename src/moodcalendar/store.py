"""Versioned application state with persistence and change notification."""

from __future__ import annotations

import copy
import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Protocol

from .storage import StorageCorruptError, StorageError

_LOGGER = logging.getLogger(__name__)

STORE_VERSION = 1
STORE_KEY = f"appStore_v{STORE_VERSION}"

THEMES = ("auto", "light", "dark", "brand")

INITIAL_STATE: dict[str, Any] = {
    "version": STORE_VERSION,
    "ui": {
        "page": "chat",
        "theme": "auto",
    },
    "profile": {
        "language": "ru",
        "soundOn": True,
        # derived caches, recomputed from the journal
        "averages": {},
        "triggers": {},
        "helps": [],
    },
    # {id, dateISO, hour, score, note?, tags?, source}
    "journal": [],
    "testsResults": {
        "phq2": [],  # {dateISO, score, answers}
    },
    "catalog": {
        "tests": [],
        "practices": [],
    },
    "settings": {
        "reminders": [],  # {id, type, hour, minute, dow?}
    },
}

REQUIRED_KEYS = tuple(INITIAL_STATE)

Listener = Callable[[dict[str, Any]], None]


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def backup_item(self, key: str) -> Any: ...


class StateShapeError(ValueError):
    """A replacement state is missing required top-level keys."""


def split_path(dot_path: str) -> list[str]:
    parts = str(dot_path).split(".")
    if not dot_path or any(not p for p in parts):
        raise ValueError(f"Bad state path: {dot_path!r}")
    return parts


def _list_index(node: Any, key: str) -> int | None:
    """Position for `key` inside a list node, or None when it is not an index."""
    if not isinstance(node, list) or not key.isdigit():
        return None
    i = int(key)
    if i >= len(node):
        raise ValueError(f"Index {i} out of range for a list of {len(node)}")
    return i


def get_path(tree: Mapping[str, Any], dot_path: str, default: Any = None) -> Any:
    node: Any = tree
    for key in split_path(dot_path):
        if isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node = node[int(key)]
        elif isinstance(node, Mapping) and key in node:
            node = node[key]
        else:
            return default
    return node


def set_path(tree: dict[str, Any], dot_path: str, value: Any) -> None:
    """
    Set in place. Lists are walked by integer index; missing, scalar or
    non-walkable intermediates are replaced with {}.
    """
    parts = split_path(dot_path)
    node: Any = tree
    for key, nxt in zip(parts, parts[1:]):
        i = _list_index(node, key)
        child = node[i] if i is not None else node.get(key)
        if not isinstance(child, dict) and _list_index(child, nxt) is None:
            child = {}
            if i is not None:
                node[i] = child
            else:
                node[key] = child
        node = child
    i = _list_index(node, parts[-1])
    if i is not None:
        node[i] = value
    else:
        node[parts[-1]] = value


def _check_shape(state: Any) -> dict[str, Any]:
    if not isinstance(state, dict):
        raise StateShapeError(f"State must be a dict, got {type(state).__name__}")
    missing = [k for k in REQUIRED_KEYS if k not in state]
    if missing:
        raise StateShapeError(f"State is missing top-level keys: {', '.join(missing)}")
    return state


class Store:
    """
    Holds the single state tree.

    Every mutation replaces the tree, writes it to storage, then (unless
    silent) calls each subscriber with the new tree. Storage failures are
    logged; the in-memory tree stays authoritative for the session.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        initial: Mapping[str, Any] | None = None,
        version: int = STORE_VERSION,
    ):
        self._storage = storage
        self._initial = copy.deepcopy(dict(initial if initial is not None else INITIAL_STATE))
        self.version = version
        self._initial["version"] = version
        self.key = f"appStore_v{version}"
        self._subscribers: set[Listener] = set()
        self._quiet_depth = 0
        self._state = self._rehydrate()

    # -------- Startup --------

    def _defaults(self) -> dict[str, Any]:
        return copy.deepcopy(self._initial)

    def _rehydrate(self) -> dict[str, Any]:
        try:
            raw = self._storage.get_item(self.key)
        except (StorageCorruptError, UnicodeDecodeError):
            _LOGGER.warning("Stored state %s is not readable text, starting from defaults", self.key)
            self._backup()
            return self._defaults()
        except (OSError, StorageError):
            _LOGGER.warning("Could not read %s, starting from defaults", self.key, exc_info=True)
            return self._defaults()

        if raw is None:
            return self._defaults()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Stored state %s is not valid JSON, starting from defaults", self.key)
            self._backup()
            return self._defaults()

        if not isinstance(data, dict):
            _LOGGER.warning("Stored state %s is not an object, starting from defaults", self.key)
            self._backup()
            return self._defaults()

        if data.get("version") != self.version:
            # no migrations: a schema bump is a full reset
            _LOGGER.warning(
                "Stored state version %r does not match %r, starting from defaults",
                data.get("version"),
                self.version,
            )
            return self._defaults()

        try:
            return _check_shape(data)
        except StateShapeError as e:
            _LOGGER.warning("Stored state %s rejected: %s", self.key, e)
            self._backup()
            return self._defaults()

    def _backup(self) -> None:
        try:
            self._storage.backup_item(self.key)
        except (OSError, StorageError):
            _LOGGER.warning("Could not back up %s", self.key, exc_info=True)

    # -------- Reads --------

    def get_state(self) -> dict[str, Any]:
        """Current tree. Treat as read-only; change it via update()/set_state()."""
        return self._state

    def get(self, dot_path: str, default: Any = None) -> Any:
        return get_path(self._state, dot_path, default)

    # -------- Writes --------

    def set_state(
        self,
        patch_or_fn: Mapping[str, Any] | Callable[[dict[str, Any]], dict[str, Any]],
        silent: bool = False,
    ) -> None:
        if callable(patch_or_fn):
            nxt = _check_shape(patch_or_fn(self._state))
        else:
            nxt = {**self._state, **patch_or_fn}
        self._commit(nxt, silent)

    def update(self, dot_path: str, value: Any, silent: bool = False) -> None:
        """update("ui.theme", "dark") on a deep copy of the tree."""
        nxt = copy.deepcopy(self._state)
        set_path(nxt, dot_path, value)
        self._commit(nxt, silent)

    def reset(self) -> None:
        self._commit(self._defaults(), silent=False)

    def subscribe(self, fn: Listener) -> Callable[[], None]:
        self._subscribers.add(fn)
        return lambda: self._subscribers.discard(fn)

    @contextmanager
    def quiet(self) -> Iterator[None]:
        """Writes inside this block are persisted without notifying subscribers."""
        self._quiet_depth += 1
        try:
            yield
        finally:
            self._quiet_depth -= 1

    # -------- Internals --------

    def _commit(self, nxt: dict[str, Any], silent: bool) -> None:
        self._state = nxt
        self._persist()
        if not silent and not self._quiet_depth:
            self._notify()

    def _persist(self) -> None:
        try:
            self._storage.set_item(self.key, json.dumps(self._state, ensure_ascii=False))
        except (OSError, TypeError, ValueError, StorageError):
            _LOGGER.warning("Persist failed for %s", self.key, exc_info=True)

    def _notify(self) -> None:
        state = self._state
        for fn in list(self._subscribers):
            try:
                fn(state)
            except Exception:
                _LOGGER.exception("Store subscriber failed")
