from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import HalfDayType, LeaveStatus, Role
from ..core.exceptions import DuplicatePending, InsufficientBalance, InvalidTransition, NotFoundError, ValidationError
from ..core.permissions import Action, require
from ..database.connection import UnitOfWork
from ..employees.repository import EmployeeRepository
from ..notifications.sink import NotificationSink
from .balance import LeaveBalanceLedger, format_days
from .days import compute_leave_days
from .model import LeaveRequest
from .repository import LeaveRequestRepository, LeaveTypeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewLeaveRequest:
    leave_type_id: int
    start_date: date
    end_date: date
    reason: str
    half_day_type: Optional[str] = None
    short_day_time: Optional[str] = None


class LeaveRequestWorkflow:
    """Leave request state machine.

    PENDING -> APPROVED debits the balance, PENDING -> REJECTED has no balance
    effect, APPROVED -> REJECTED credits the days back. Each transition reads
    the request under a row lock, applies the balance change and swaps the
    status conditionally, all in one transaction.
    Deleting a request never touches the balance, even when it was approved.
    """

    def __init__(
        self,
        requests: LeaveRequestRepository,
        balances: LeaveBalanceLedger,
        leave_types: LeaveTypeRepository,
        employees: EmployeeRepository,
        uow: UnitOfWork,
        *,
        notifier: Optional[NotificationSink] = None,
        block_submit_on_insufficient_balance: bool = True,
    ):
        self._requests = requests
        self._balances = balances
        self._leave_types = leave_types
        self._employees = employees
        self._uow = uow
        self._notifier = notifier
        self._block_on_insufficient = bool(block_submit_on_insufficient_balance)

    @staticmethod
    def _parse_half_day(value) -> Optional[HalfDayType]:
        if value is not None and not isinstance(value, str):
            raise ValidationError("halfDayType must be 'first-half' or 'second-half'")
        v = (value or "").strip().lower()
        if not v:
            return None
        try:
            return HalfDayType(v)
        except ValueError:
            raise ValidationError("halfDayType must be 'first-half' or 'second-half'")

    def submit(self, user_id: int, data: NewLeaveRequest, *, current_role: Role, actor_id: int) -> LeaveRequest:
        require(current_role, Action.LEAVE_SUBMIT, actor_id=actor_id, target_user_id=user_id)
        reason = require_non_empty(data.reason, "reason")

        employee = self._employees.get_by_id(int(user_id))
        if not employee:
            raise NotFoundError("Employee not found")

        leave_type = self._leave_types.get_by_id(int(data.leave_type_id))
        if not leave_type or not leave_type.is_active:
            raise NotFoundError("Leave type not found")

        half_day = self._parse_half_day(data.half_day_type)
        short_day = (data.short_day_time or "").strip() or None
        days = compute_leave_days(
            data.start_date,
            data.end_date,
            weekly_off_days=employee.weekly_off_days,
            half_day_type=half_day,
            short_day_time=None if half_day else short_day,
        )

        if self._requests.find_pending_for_user(int(user_id)):
            raise DuplicatePending("You already have a pending leave request")

        if self._block_on_insufficient:
            available = self._balances.get_balance(int(user_id), leave_type.leave_type_id)
            if available < days:
                raise InsufficientBalance(
                    f"Insufficient leave balance. You have {format_days(available)} days remaining, "
                    f"but requested {format_days(days)} days.",
                    available=available,
                    requested=days,
                )

        request_id = self._requests.create(
            user_id=int(user_id),
            leave_type_id=leave_type.leave_type_id,
            start_date=data.start_date,
            end_date=data.end_date,
            days=days,
            reason=reason,
            half_day_type=half_day,
            short_day_time=None if half_day else short_day,
        )
        logger.info("Leave request %s submitted by user=%s (%s days of %s)", request_id, user_id, days, leave_type.code)
        return self._get_or_raise(request_id)

    def decide(
        self,
        request_id: int,
        status: str,
        *,
        current_role: Role,
        actor_id: int,
        rejection_reason: str = "",
    ) -> LeaveRequest:
        try:
            target = LeaveStatus.parse(status)
        except ValueError:
            raise ValidationError("status must be 'approved' or 'rejected'")

        if target == LeaveStatus.APPROVED:
            return self.approve(request_id, current_role=current_role, actor_id=actor_id)
        if target == LeaveStatus.REJECTED:
            return self.reject(request_id, rejection_reason, current_role=current_role, actor_id=actor_id)
        raise ValidationError("status must be 'approved' or 'rejected'")

    def approve(self, request_id: int, *, current_role: Role, actor_id: int) -> LeaveRequest:
        require(current_role, Action.LEAVE_DECIDE)

        with self._uow.transaction():
            req = self._get_or_raise(request_id, for_update=True)
            if req.status != LeaveStatus.PENDING:
                raise InvalidTransition(
                    f"Only pending requests can be approved (current status: {req.status.value.lower()})",
                    current_status=req.status,
                )

            self._balances.debit(
                req.user_id,
                req.leave_type_id,
                req.days,
                actor_id=int(actor_id),
                request_id=req.request_id,
                note="Leave approved",
            )
            self._swap_status(req, LeaveStatus.APPROVED, actor_id=actor_id)

        logger.info("Leave request %s approved by user=%s", req.request_id, actor_id)
        self._notify(req, "Leave approved", f"Your leave request for {format_days(req.days)} day(s) was approved.")
        return self._get_or_raise(request_id)

    def reject(self, request_id: int, reason: str, *, current_role: Role, actor_id: int) -> LeaveRequest:
        require(current_role, Action.LEAVE_DECIDE)
        reason = require_non_empty(reason, "rejectionReason")

        with self._uow.transaction():
            req = self._get_or_raise(request_id, for_update=True)
            if req.status == LeaveStatus.REJECTED:
                raise InvalidTransition("Leave request is already rejected", current_status=req.status)

            if req.status == LeaveStatus.APPROVED:
                self._balances.credit(
                    req.user_id,
                    req.leave_type_id,
                    req.days,
                    actor_id=int(actor_id),
                    request_id=req.request_id,
                    note="Approved leave rejected",
                )
                logger.info("Restored %s days to user=%s for rejected request %s", req.days, req.user_id, req.request_id)

            self._swap_status(req, LeaveStatus.REJECTED, actor_id=actor_id, rejection_reason=reason)

        logger.info("Leave request %s rejected by user=%s (was %s)", req.request_id, actor_id, req.status.value)
        self._notify(req, "Leave rejected", f"Your leave request was rejected: {reason}")
        return self._get_or_raise(request_id)

    def delete(self, request_id: int, *, current_role: Role, actor_id: int) -> None:
        require(current_role, Action.LEAVE_DELETE)

        req = self._get_or_raise(request_id)
        if not self._requests.delete(req.request_id):
            raise NotFoundError("Leave request not found")

        if req.status == LeaveStatus.APPROVED:
            logger.info("Deleted approved leave request %s by user=%s; balance left unchanged", req.request_id, actor_id)
        else:
            logger.info("Deleted leave request %s by user=%s", req.request_id, actor_id)

    def list_requests(
        self,
        *,
        current_role: Role,
        actor_id: int,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[LeaveRequest]:
        """`user_id=None` lists every employee's requests (managers only)."""
        if user_id is None:
            require(current_role, Action.LEAVE_VIEW_ALL)
        else:
            require(current_role, Action.LEAVE_VIEW, actor_id=actor_id, target_user_id=user_id)

        status_filter = None
        if status:
            try:
                status_filter = LeaveStatus.parse(status)
            except ValueError:
                raise ValidationError("Unknown leave status filter")

        return self._requests.list_requests(user_id=user_id, status=status_filter, limit=int(limit))

    def get(self, request_id: int, *, current_role: Role, actor_id: int) -> LeaveRequest:
        req = self._get_or_raise(request_id)
        require(current_role, Action.LEAVE_VIEW, actor_id=actor_id, target_user_id=req.user_id)
        return req

    def _get_or_raise(self, request_id: int, *, for_update: bool = False) -> LeaveRequest:
        req = self._requests.get(int(request_id), for_update=for_update)
        if not req:
            raise NotFoundError("Leave request not found")
        return req

    def _swap_status(
        self,
        req: LeaveRequest,
        new_status: LeaveStatus,
        *,
        actor_id: int,
        rejection_reason: Optional[str] = None,
    ) -> None:
        swapped = self._requests.update_status(
            request_id=req.request_id,
            expected_status=req.status,
            new_status=new_status,
            decided_by=int(actor_id),
            rejection_reason=rejection_reason,
        )
        if not swapped:
            current = self._requests.get(req.request_id)
            raise InvalidTransition(
                "Leave request was changed by someone else, reload and try again",
                current_status=current.status if current else None,
            )

    def _notify(self, req: LeaveRequest, title: str, message: str) -> None:
        if self._notifier is not None:
            self._notifier.notify(req.user_id, title=title, message=message, kind="leave")
