from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import format_hhmm
from ...core.enums import AttendanceStatus
from ..model import AttendanceRecord
from ..policy import ClockInResolution
from .base import AttendanceStrategy, StatusDecision


class AutoClockOutStrategy(AttendanceStrategy):
    """System-initiated clock-out at the daily cutoff."""

    def decide_checkin(self, *, now: datetime, resolution: ClockInResolution) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.UNKNOWN)

    def decide_checkout(self, *, now: datetime, record: AttendanceRecord) -> StatusDecision:
        marker = f"Auto clock-out at {format_hhmm(now.time())}"
        note = f"{record.note}; {marker}" if record.note else marker
        return StatusDecision(status=record.status, note=note)
