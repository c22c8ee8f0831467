from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance session per employee per day.

    Duration is derived from the timestamps and never stored.
    """

    attendance_id: int
    user_id: int
    work_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    auto_clock_out: bool = False
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def duration_seconds(self) -> Optional[int]:
        if self.check_out_time is None:
            return None
        return max(int((self.check_out_time - self.check_in_time).total_seconds()), 0)
