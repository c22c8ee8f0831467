from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the database."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    UNKNOWN = "UNKNOWN"


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, value: str) -> "LeaveStatus":
        return cls((value or "").strip().upper())


class HalfDayType(str, Enum):
    FIRST_HALF = "first-half"
    SECOND_HALF = "second-half"


class BalanceEventType(str, Enum):
    """Kinds of rows in the leave balance audit trail."""

    ALLOT = "ALLOT"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    PENALTY = "PENALTY"
    ADJUST = "ADJUST"


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"
