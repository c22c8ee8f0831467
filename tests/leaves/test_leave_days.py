from datetime import date
from decimal import Decimal

import pytest

from src.timeleave.timeleave.core.enums import HalfDayType
from src.timeleave.timeleave.core.exceptions import InvalidDateRange, ValidationError
from src.timeleave.timeleave.leaves.days import compute_leave_days, short_day_fraction


def test_inclusive_range_without_weekly_offs():
    assert compute_leave_days(date(2025, 3, 10), date(2025, 3, 12)) == Decimal(3)


def test_weekly_off_days_are_excluded():
    # Fri 14 .. Mon 17 March 2025 with Sat/Sun off
    assert compute_leave_days(date(2025, 3, 14), date(2025, 3, 17), weekly_off_days=(5, 6)) == Decimal(2)


def test_range_entirely_on_weekly_offs_is_invalid():
    with pytest.raises(ValidationError):
        compute_leave_days(date(2025, 3, 15), date(2025, 3, 16), weekly_off_days=(5, 6))


def test_end_before_start_is_invalid_date_range():
    with pytest.raises(InvalidDateRange):
        compute_leave_days(date(2025, 3, 12), date(2025, 3, 11))


def test_half_day_is_half_and_needs_single_day():
    day = date(2025, 3, 12)
    assert compute_leave_days(day, day, half_day_type=HalfDayType.FIRST_HALF) == Decimal("0.5")

    with pytest.raises(ValidationError):
        compute_leave_days(day, date(2025, 3, 13), half_day_type=HalfDayType.SECOND_HALF)


def test_short_day_is_share_of_a_24h_day():
    day = date(2025, 3, 12)
    # 2h30 of 24h
    assert compute_leave_days(day, day, short_day_time="14:00-16:30") == Decimal("0.1042")


@pytest.mark.parametrize("window", [None, "", "later", "16:00-14:00", "25:00-26:00"])
def test_short_day_falls_back_to_quarter_day(window):
    assert short_day_fraction(window) == Decimal("0.25")
