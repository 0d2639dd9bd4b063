"""Journal, test-result and reminder writes.

Each operation is a single Store mutation, so one persist and one
notification per call.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Iterable

from ._util import _now_local
from .palette import MAX_ABS
from .stats import profile_averages, trigger_counts
from .store import Store

SOURCES = ("chat", "quick", "practice")
REMINDER_TYPES = ("daily", "weekly")
EDITABLE_FIELDS = ("score", "note", "tags", "dateISO", "hour", "source")


def parse_tags(raw: str | Iterable[str] | None) -> list[str]:
    if not raw:
        return []
    chunks = raw.replace(",", " ").split() if isinstance(raw, str) else [str(t) for t in raw]
    seen = set()
    out: list[str] = []
    for c in chunks:
        c = c.strip()
        if not c or c.lower() in seen:
            continue
        seen.add(c.lower())
        out.append(c)
    return out


def _check_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValueError(f"score must be an integer, got {score!r}")
    if not -MAX_ABS <= score <= MAX_ABS:
        raise ValueError(f"score must be between {-MAX_ABS} and {MAX_ABS}, got {score}")
    return score


def _with_journal(state: dict[str, Any], journal: list[dict[str, Any]]) -> dict[str, Any]:
    profile = dict(state.get("profile") or {})
    profile["averages"] = profile_averages(journal)
    profile["triggers"] = trigger_counts(journal)
    return {**state, "journal": journal, "profile": profile}


def add_entry(
    store: Store,
    score: int,
    note: str | None = None,
    tags: str | Iterable[str] | None = None,
    source: str = "quick",
    when: datetime | None = None,
) -> dict[str, Any]:
    _check_score(score)
    if source not in SOURCES:
        raise ValueError(f"source must be one of {', '.join(SOURCES)}")

    when = when or _now_local()
    entry: dict[str, Any] = {
        "id": uuid.uuid4().hex,
        "dateISO": when.isoformat(timespec="seconds"),
        "hour": when.hour,
        "score": score,
        "source": source,
    }
    if note:
        entry["note"] = note
    tag_list = parse_tags(tags)
    if tag_list:
        entry["tags"] = tag_list

    store.set_state(lambda s: _with_journal(s, [*s["journal"], entry]))
    return entry


def find_entry(store: Store, entry_id: str) -> dict[str, Any]:
    for e in store.get("journal", []):
        if e.get("id") == entry_id:
            return e
    raise KeyError(entry_id)


def edit_entry(store: Store, entry_id: str, **changes: Any) -> dict[str, Any]:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
    if "score" in changes:
        _check_score(changes["score"])
    if "tags" in changes:
        changes["tags"] = parse_tags(changes["tags"])

    old = find_entry(store, entry_id)
    new = {**old, **changes}
    journal = [new if e.get("id") == entry_id else e for e in store.get("journal", [])]
    store.set_state(lambda s: _with_journal(s, journal))
    return new


def delete_entry(store: Store, entry_id: str) -> dict[str, Any]:
    old = find_entry(store, entry_id)
    journal = [e for e in store.get("journal", []) if e.get("id") != entry_id]
    store.set_state(lambda s: _with_journal(s, journal))
    return old


def record_test_result(
    store: Store,
    test_id: str,
    score: int,
    answers: list[Any],
    when: datetime | None = None,
) -> dict[str, Any]:
    if not test_id:
        raise ValueError("test_id is required")
    result = {
        "dateISO": (when or _now_local()).isoformat(timespec="seconds"),
        "score": score,
        "answers": list(answers),
    }
    # ids may contain dots, so replace the whole mapping instead of a dot path
    all_results = dict(store.get("testsResults") or {})
    all_results[test_id] = [*(all_results.get(test_id) or []), result]
    store.update("testsResults", all_results)
    return result


def add_reminder(
    store: Store,
    kind: str,
    hour: int,
    minute: int = 0,
    dow: Iterable[int] | None = None,
) -> dict[str, Any]:
    if kind not in REMINDER_TYPES:
        raise ValueError(f"reminder type must be one of {', '.join(REMINDER_TYPES)}")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"bad reminder time {hour}:{minute:02d}")

    reminder: dict[str, Any] = {"id": uuid.uuid4().hex[:8], "type": kind, "hour": hour, "minute": minute}
    if kind == "weekly":
        days = sorted(set(dow or []))
        if not days or any(d < 0 or d > 6 for d in days):
            raise ValueError("weekly reminders need days of week in 0..6")
        reminder["dow"] = days

    reminders = [*store.get("settings.reminders", []), reminder]
    store.update("settings.reminders", reminders)
    return reminder


def remove_reminder(store: Store, reminder_id: str) -> None:
    reminders = store.get("settings.reminders", [])
    kept = [r for r in reminders if r.get("id") != reminder_id]
    if len(kept) == len(reminders):
        raise KeyError(reminder_id)
    store.update("settings.reminders", kept)
