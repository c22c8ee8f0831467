from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import BalanceEventType, HalfDayType, LeaveStatus
from .model import BalanceEvent, LeaveBalance, LeaveRequest, LeaveType


class LeaveTypeRepository(Protocol):
    def get_by_id(self, leave_type_id: int) -> Optional[LeaveType]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[LeaveType]:
        raise NotImplementedError

    def list_active(self) -> Sequence[LeaveType]:
        raise NotImplementedError


class LeaveBalanceRepository(Protocol):
    """Per (employee, leave type) counters plus their audit trail.

    `debit` and `credit` are single conditional statements so concurrent
    mutations of the same counter serialize on the row.
    """

    def get(self, user_id: int, leave_type_id: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[LeaveBalance]:
        raise NotImplementedError

    def create(self, *, user_id: int, leave_type_id: int, days: Decimal, allotted_by: Optional[int]) -> bool:
        """False when the employee already has an allotment of this type."""

        raise NotImplementedError

    def debit(self, *, user_id: int, leave_type_id: int, amount: Decimal) -> bool:
        """Subtract only while remaining >= amount."""

        raise NotImplementedError

    def credit(self, *, user_id: int, leave_type_id: int, amount: Decimal) -> bool:
        raise NotImplementedError

    def adjust(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        expected_allotted: Decimal,
        new_allotted: Decimal,
        adjusted_by: Optional[int],
    ) -> bool:
        """Set allotted days and move remaining by the same delta.

        Applies only while allotted still equals `expected_allotted` and the
        new remaining stays non-negative.
        """

        raise NotImplementedError

    def add_event(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        event_type: BalanceEventType,
        change_days: Decimal,
        balance_after: Decimal,
        actor_id: Optional[int] = None,
        request_id: Optional[int] = None,
        penalty_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_events(self, *, user_id: int, leave_type_id: Optional[int] = None, limit: int = 200) -> Sequence[BalanceEvent]:
        raise NotImplementedError


class LeaveRequestRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        days: Decimal,
        reason: str,
        half_day_type: Optional[HalfDayType] = None,
        short_day_time: Optional[str] = None,
    ) -> int:
        """Insert a PENDING request; raises DuplicatePending if one already exists."""

        raise NotImplementedError

    def get(self, request_id: int, *, for_update: bool = False) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def find_pending_for_user(self, user_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def update_status(
        self,
        *,
        request_id: int,
        expected_status: LeaveStatus,
        new_status: LeaveStatus,
        decided_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Compare-and-swap on status; False when the request moved meanwhile."""

        raise NotImplementedError

    def delete(self, request_id: int) -> bool:
        raise NotImplementedError
