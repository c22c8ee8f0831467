from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import minutes_of_day
from .policy import ClockInResolution
from .strategies.auto_clock_out_strategy import AutoClockOutStrategy
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, resolution: ClockInResolution) -> AttendanceStrategy:
        if not resolution.has_restriction or resolution.deadline is None:
            return NormalStrategy()

        # Minute granularity: 09:30:59 is still on time for a 09:30 deadline.
        if minutes_of_day(now) > minutes_of_day(resolution.deadline):
            return LateStrategy()
        return NormalStrategy()

    def for_checkout(self, *, auto: bool) -> AttendanceStrategy:
        if auto:
            return AutoClockOutStrategy()
        return NormalStrategy()
