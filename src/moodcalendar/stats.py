"""
Mood aggregates for the stats page.

Pure functions over the journal list. Nothing here touches storage; callers
pass the journal (usually store.get("journal")) and the reference time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable

from ._util import _date_from_iso, _dt_from_iso, _now_local
from .palette import NO_DATA_COLOR, mood_color

RANGE_DAYS: dict[str, int | None] = {"3d": 3, "7d": 7, "1m": 30, "all": None}
HOURS = 24


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _share(part: int, whole: int) -> int:
    return _round_half_up(part * 100 / whole) if whole else 0


def _score(entry: dict[str, Any]) -> int | None:
    s = entry.get("score")
    if isinstance(s, bool) or not isinstance(s, (int, float)) or not math.isfinite(s):
        return None
    return int(s)


def date_key(entry: dict[str, Any]) -> str | None:
    d = _date_from_iso(entry.get("dateISO"))
    return d.isoformat() if d else None


def entry_hour(entry: dict[str, Any]) -> int | None:
    h = entry.get("hour")
    if isinstance(h, int) and not isinstance(h, bool) and 0 <= h < HOURS:
        return h
    dt = _dt_from_iso(entry.get("dateISO"))
    return dt.hour if dt else None


def range_date_keys(journal: Iterable[dict[str, Any]], range_key: str, now: datetime | None = None) -> set[str]:
    """Journal date keys inside the window ending today (inclusive)."""
    if range_key not in RANGE_DAYS:
        raise ValueError(f"Unknown range {range_key!r} (expected one of {', '.join(RANGE_DAYS)})")

    keys = {k for k in (date_key(e) for e in journal) if k}
    days = RANGE_DAYS[range_key]
    if days is None:
        return keys

    today = (now or _now_local()).date()
    start = (today - timedelta(days=days - 1)).isoformat()
    end = today.isoformat()
    return {k for k in keys if start <= k <= end}


@dataclass
class RangeSummary:
    range_key: str
    total: int = 0
    zero_count: int = 0
    active_days: int = 0
    per_day: float = 0.0
    positive: int = 0
    negative: int = 0
    positive_share: int = 0
    negative_share: int = 0
    balance_sum: int = 0
    average: float = 0.0
    date_keys: list[str] = field(default_factory=list)


def summarize_range(journal: Iterable[dict[str, Any]], range_key: str, now: datetime | None = None) -> RangeSummary:
    """
    Counts over the entries of a range.
    Shares are percentages of non-zero entries; zero entries only feed zero_count.
    """
    journal = list(journal)
    keys = range_date_keys(journal, range_key, now)

    out = RangeSummary(range_key=range_key, date_keys=sorted(keys))
    for e in journal:
        if date_key(e) not in keys:
            continue
        s = _score(e)
        if s is None:
            continue
        out.total += 1
        out.balance_sum += s
        if s > 0:
            out.positive += 1
        elif s < 0:
            out.negative += 1
        else:
            out.zero_count += 1

    out.active_days = len(keys)
    nonzero = out.positive + out.negative
    out.positive_share = _share(out.positive, nonzero)
    out.negative_share = _share(out.negative, nonzero)
    out.per_day = round(out.total / out.active_days, 1) if out.active_days else 0.0
    out.average = round(out.balance_sum / out.total, 2) if out.total else 0.0
    return out


@dataclass
class HourlyAggregate:
    day: str
    sums: list[int] = field(default_factory=lambda: [0] * HOURS)
    counts: list[int] = field(default_factory=lambda: [0] * HOURS)
    colors: list[str] = field(default_factory=lambda: [NO_DATA_COLOR] * HOURS)
    total_sum: int = 0
    entries: int = 0
    average: float = 0.0
    peak_hour: int | None = None
    peak_value: int = 0

    def by_hour(self) -> dict[int, int]:
        return {h: self.sums[h] for h in range(HOURS) if self.counts[h]}


def hourly_today(journal: Iterable[dict[str, Any]], now: datetime | None = None) -> HourlyAggregate:
    """Per-hour score sums for today's entries, colored through the palette."""
    today = (now or _now_local()).date().isoformat()
    agg = HourlyAggregate(day=today)

    for e in journal:
        if date_key(e) != today:
            continue
        s = _score(e)
        h = entry_hour(e)
        if s is None or h is None:
            continue
        agg.sums[h] += s
        agg.counts[h] += 1
        agg.total_sum += s
        agg.entries += 1

    best = -1
    for h in range(HOURS):
        if not agg.counts[h]:
            continue
        agg.colors[h] = mood_color(agg.sums[h])
        # strict '>' keeps the earliest hour on ties
        if abs(agg.sums[h]) > best:
            best = abs(agg.sums[h])
            agg.peak_hour = h
            agg.peak_value = agg.sums[h]

    agg.average = round(agg.total_sum / agg.entries, 2) if agg.entries else 0.0
    return agg


def daily_totals(journal: Iterable[dict[str, Any]]) -> dict[str, int]:
    """Sum of scores per date key (calendar cell colors)."""
    out: dict[str, int] = {}
    for e in journal:
        k = date_key(e)
        s = _score(e)
        if k is None or s is None:
            continue
        out[k] = out.get(k, 0) + s
    return out


def profile_averages(journal: Iterable[dict[str, Any]], now: datetime | None = None) -> dict[str, float]:
    journal = list(journal)
    return {rk: summarize_range(journal, rk, now).average for rk in RANGE_DAYS}


def trigger_counts(journal: Iterable[dict[str, Any]]) -> dict[str, int]:
    """How often each tag appears on a negative entry."""
    counts: dict[str, int] = {}
    for e in journal:
        s = _score(e)
        if s is None or s >= 0:
            continue
        for t in e.get("tags") or []:
            counts[str(t)] = counts.get(str(t), 0) + 1
    return dict(sorted(counts.items(), key=lambda x: (-x[1], x[0])))
