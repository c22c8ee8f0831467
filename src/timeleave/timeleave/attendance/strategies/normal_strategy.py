from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ..model import AttendanceRecord
from ..policy import ClockInResolution
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On-time (or unrestricted) clock-in, manual clock-out."""

    def decide_checkin(self, *, now: datetime, resolution: ClockInResolution) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ON_TIME)

    def decide_checkout(self, *, now: datetime, record: AttendanceRecord) -> StatusDecision:
        return StatusDecision(status=record.status, note=record.note)
