from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import format_hhmm
from ...core.enums import AttendanceStatus
from ..model import AttendanceRecord
from ..policy import ClockInResolution
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late clock-in. Advisory only: the session is still opened."""

    def decide_checkin(self, *, now: datetime, resolution: ClockInResolution) -> StatusDecision:
        note = None
        if resolution.deadline is not None:
            note = f"Late: clocked in at {format_hhmm(now.time())} (limit {format_hhmm(resolution.deadline)})"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)

    def decide_checkout(self, *, now: datetime, record: AttendanceRecord) -> StatusDecision:
        return StatusDecision(status=record.status, note=record.note)
