from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import BalanceEventType, HalfDayType, LeaveStatus


@dataclass(frozen=True)
class LeaveType:
    """Catalog entry owned by the HR application (read-only here)."""

    leave_type_id: int
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    user_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    days: Decimal
    status: LeaveStatus
    reason: str
    created_at: datetime
    rejection_reason: Optional[str] = None
    half_day_type: Optional[HalfDayType] = None
    short_day_time: Optional[str] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    leave_type_name: Optional[str] = None


@dataclass(frozen=True)
class LeaveBalance:
    user_id: int
    leave_type_id: int
    allotted_days: Decimal
    remaining_days: Decimal
    leave_type_code: Optional[str] = None
    leave_type_name: Optional[str] = None

    @property
    def used_days(self) -> Decimal:
        return self.allotted_days - self.remaining_days


@dataclass(frozen=True)
class BalanceEvent:
    """Audit trail row: one per balance mutation."""

    event_id: int
    user_id: int
    leave_type_id: int
    event_type: BalanceEventType
    change_days: Decimal
    balance_after: Decimal
    created_at: datetime
    actor_id: Optional[int] = None
    request_id: Optional[int] = None
    penalty_id: Optional[int] = None
    note: Optional[str] = None
