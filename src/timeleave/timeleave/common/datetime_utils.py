from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: Optional[str]) -> Optional[time]:
    """Parse an "HH:MM" time-of-day; returns None when empty or malformed."""
    v = (value or "").strip()
    if not v:
        return None
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        return None


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def now_local() -> datetime:
    """Current organizational local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def minutes_of_day(value: datetime | time) -> int:
    return value.hour * 60 + value.minute


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def start_of_week(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())
