from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ..core.constants import DAYS_QUANTUM, HALF_DAY, SHORT_DAY_FALLBACK
from ..core.enums import HalfDayType
from ..core.exceptions import InvalidDateRange, ValidationError


def parse_short_day_window(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse "HH:MM-HH:MM" into (from_minutes, to_minutes); None when unusable."""
    raw = (value or "").strip()
    if "-" not in raw:
        return None
    start_raw, _, end_raw = raw.partition("-")
    try:
        start = datetime.strptime(start_raw.strip(), "%H:%M")
        end = datetime.strptime(end_raw.strip(), "%H:%M")
    except ValueError:
        return None
    return start.hour * 60 + start.minute, end.hour * 60 + end.minute


def short_day_fraction(value: Optional[str]) -> Decimal:
    """Share of a 24h day covered by the window, 0.25 when absent or unusable."""
    window = parse_short_day_window(value)
    if window is None:
        return SHORT_DAY_FALLBACK
    minutes = window[1] - window[0]
    if minutes <= 0:
        return SHORT_DAY_FALLBACK
    return (Decimal(minutes) / Decimal(60 * 24)).quantize(DAYS_QUANTUM, rounding=ROUND_HALF_UP)


def working_days(start: date, end: date, weekly_off_days: Iterable[int] = ()) -> int:
    off = set(weekly_off_days)
    count = 0
    day = start
    while day <= end:
        if day.weekday() not in off:
            count += 1
        day += timedelta(days=1)
    return count


def compute_leave_days(
    start: date,
    end: date,
    *,
    weekly_off_days: Iterable[int] = (),
    half_day_type: Optional[HalfDayType] = None,
    short_day_time: Optional[str] = None,
) -> Decimal:
    """Days a request consumes.

    Half days count 0.5, short days the covered share of 24h; both need a
    single-day range. Otherwise the inclusive range minus weekly offs.
    """
    if end < start:
        raise InvalidDateRange("End date cannot be before start date")

    if half_day_type is not None or short_day_time:
        if start != end:
            raise ValidationError("Half-day and short-day leave must start and end on the same day")
        if half_day_type is not None:
            return HALF_DAY
        return short_day_fraction(short_day_time)

    days = working_days(start, end, weekly_off_days)
    if days == 0:
        raise ValidationError("The selected dates fall entirely on weekly off days")
    return Decimal(days)
