"""Shared local-time helpers used by cli.py, gui.py and the stats code."""

from __future__ import annotations

from datetime import date, datetime


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _fmt_time(dt: datetime) -> str:
    # Windows-safe formatting
    try:
        return dt.strftime("%-I:%M %p")
    except ValueError:
        return dt.strftime("%I:%M %p").lstrip("0")


def _fmt_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def _date_from_iso(value: object) -> date | None:
    """First ten characters of an ISO date/datetime, or None."""
    s = str(value or "")[:10]
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def _dt_from_iso(value: object) -> datetime | None:
    # wall-clock as written; no tz conversion so the hour agrees with the date key
    s = str(value or "")
    if len(s) <= 10:
        return None
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None
