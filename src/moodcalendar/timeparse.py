from __future__ import annotations

import re
from datetime import datetime, timedelta

from ._util import _now_local

_TIME_FORMATS = ("%I:%M%p", "%I:%M %p", "%I%p", "%H:%M")
_DATE_TIME_FORMATS = (
    "%Y-%m-%d %I:%M%p",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %I%p",
    "%Y-%m-%d %H:%M",
)

_RELATIVE = re.compile(r"(\d+)\s*(day|days|hour|hours|minute|minutes)\s*ago")
_DAYWORD = re.compile(r"(today|yesterday|tomorrow)(?:\s+(.+))?")


def parse_when(value: str | None, now: datetime | None = None) -> datetime:
    """
    Parse a user-supplied moment into a local, timezone-aware datetime.
    Accepts:
      - None / "" / "now" -> now
      - ISO 8601 (naive assumed local)
      - "7:34am", "19:34", "7am" (today)
      - "2026-02-25 7:34am", "2026-02-25 19:34"
      - "3 days ago", "2 hours ago", "15 minutes ago"
      - "today 14:30", "yesterday 9am", "yesterday"
    Raises ValueError when nothing matches.
    """
    now = now or _now_local()
    if value is None or not value.strip() or value.strip().lower() == "now":
        return now.replace(microsecond=0)

    raw = value.strip()
    s = raw.lower()

    try:
        dt = datetime.fromisoformat(raw)
        return dt.replace(tzinfo=now.tzinfo) if dt.tzinfo is None else dt
    except ValueError:
        pass

    m = _RELATIVE.fullmatch(s)
    if m:
        n = int(m.group(1))
        unit = m.group(2).rstrip("s")
        delta = {"day": timedelta(days=n), "hour": timedelta(hours=n), "minute": timedelta(minutes=n)}[unit]
        return (now - delta).replace(microsecond=0)

    m = _DAYWORD.fullmatch(s)
    if m:
        shift = {"today": 0, "yesterday": -1, "tomorrow": 1}[m.group(1)]
        base = now + timedelta(days=shift)
        if not m.group(2):
            return base.replace(microsecond=0)
        return _apply_time(m.group(2), base)

    for fmt in _DATE_TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=now.tzinfo)
        except ValueError:
            continue

    return _apply_time(raw, now)


def _apply_time(time_str: str, base: datetime) -> datetime:
    s = time_str.strip().lower()
    for fmt in _TIME_FORMATS:
        try:
            t = datetime.strptime(s, fmt)
        except ValueError:
            continue
        return base.replace(hour=t.hour, minute=t.minute, second=0, microsecond=0)
    raise ValueError(
        f"Could not parse time {time_str!r}. Try '7:34am', 'yesterday 9am', "
        "'3 hours ago' or ISO like '2026-02-25T07:34:00'."
    )
