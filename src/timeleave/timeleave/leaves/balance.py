from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..common.validators import require_non_negative_decimal
from ..core.constants import DAYS_QUANTUM, DEFAULT_LIST_LIMIT
from ..core.enums import BalanceEventType, Role
from ..core.exceptions import InsufficientBalance, NotFoundError, ValidationError
from ..core.permissions import Action, require
from ..database.connection import UnitOfWork
from .model import BalanceEvent, LeaveBalance
from .repository import LeaveBalanceRepository, LeaveTypeRepository

logger = logging.getLogger(__name__)


def _quantize(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(DAYS_QUANTUM, rounding=ROUND_HALF_UP)


def format_days(amount: Decimal) -> str:
    """2 -> "2", 0.5 -> "0.5", 0.2083 -> "0.21"."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return str(int(amount))
    if amount * 2 == (amount * 2).to_integral_value():
        return f"{amount.normalize():f}"
    return f"{amount:.2f}"


class LeaveBalanceLedger:
    """Owns per (employee, leave type) balances.

    Every mutation is one conditional statement plus an audit row, executed
    inside a single transaction. A missing balance counts as zero.
    """

    def __init__(self, balances: LeaveBalanceRepository, leave_types: LeaveTypeRepository, uow: UnitOfWork):
        self._balances = balances
        self._leave_types = leave_types
        self._uow = uow

    def get_balance(self, user_id: int, leave_type_id: int) -> Decimal:
        balance = self._balances.get(int(user_id), int(leave_type_id))
        return balance.remaining_days if balance else Decimal("0")

    def debit(
        self,
        user_id: int,
        leave_type_id: int,
        amount: Decimal,
        *,
        actor_id: Optional[int] = None,
        request_id: Optional[int] = None,
        penalty_id: Optional[int] = None,
        event_type: BalanceEventType = BalanceEventType.DEBIT,
        note: Optional[str] = None,
    ) -> Decimal:
        """Subtract `amount`; fails closed with InsufficientBalance. Returns the new balance."""
        amount = _quantize(amount)
        if amount <= 0:
            raise ValidationError("Debit amount must be positive")

        with self._uow.transaction():
            if not self._balances.debit(user_id=int(user_id), leave_type_id=int(leave_type_id), amount=amount):
                available = self.get_balance(user_id, leave_type_id)
                raise InsufficientBalance(
                    f"Insufficient leave balance. You have {format_days(available)} days remaining, "
                    f"but requested {format_days(amount)} days.",
                    available=available,
                    requested=amount,
                )
            after = self.get_balance(user_id, leave_type_id)
            self._balances.add_event(
                user_id=int(user_id),
                leave_type_id=int(leave_type_id),
                event_type=event_type,
                change_days=-amount,
                balance_after=after,
                actor_id=actor_id,
                request_id=request_id,
                penalty_id=penalty_id,
                note=note,
            )

        logger.debug("Debited %s from user=%s type=%s, balance now %s", amount, user_id, leave_type_id, after)
        return after

    def credit(
        self,
        user_id: int,
        leave_type_id: int,
        amount: Decimal,
        *,
        actor_id: Optional[int] = None,
        request_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Decimal:
        """Reverse an earlier debit. Returns the new balance."""
        amount = _quantize(amount)
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")

        with self._uow.transaction():
            if not self._balances.credit(user_id=int(user_id), leave_type_id=int(leave_type_id), amount=amount):
                raise NotFoundError("No leave balance allotted for this leave type")
            after = self.get_balance(user_id, leave_type_id)
            self._balances.add_event(
                user_id=int(user_id),
                leave_type_id=int(leave_type_id),
                event_type=BalanceEventType.CREDIT,
                change_days=amount,
                balance_after=after,
                actor_id=actor_id,
                request_id=request_id,
                note=note,
            )

        logger.debug("Credited %s to user=%s type=%s, balance now %s", amount, user_id, leave_type_id, after)
        return after

    def allot(self, user_id: int, leave_type_id: int, days, *, current_role: Role, actor_id: int) -> LeaveBalance:
        require(current_role, Action.LEAVE_ALLOT)

        amount = _quantize(require_non_negative_decimal(days, "days"))
        leave_type = self._leave_types.get_by_id(int(leave_type_id))
        if not leave_type:
            raise NotFoundError("Leave type not found")

        with self._uow.transaction():
            created = self._balances.create(
                user_id=int(user_id),
                leave_type_id=leave_type.leave_type_id,
                days=amount,
                allotted_by=int(actor_id),
            )
            if not created:
                raise ValidationError(f"{leave_type.name} is already allotted to this employee")
            self._balances.add_event(
                user_id=int(user_id),
                leave_type_id=leave_type.leave_type_id,
                event_type=BalanceEventType.ALLOT,
                change_days=amount,
                balance_after=amount,
                actor_id=int(actor_id),
            )

        logger.info("Allotted %s days of %s to user=%s by user=%s", amount, leave_type.code, user_id, actor_id)
        return LeaveBalance(
            user_id=int(user_id),
            leave_type_id=leave_type.leave_type_id,
            allotted_days=amount,
            remaining_days=amount,
            leave_type_code=leave_type.code,
            leave_type_name=leave_type.name,
        )

    def adjust(self, user_id: int, leave_type_id: int, days, *, current_role: Role, actor_id: int) -> LeaveBalance:
        """Change an existing allotment; remaining moves by the same delta and never drops below zero."""
        require(current_role, Action.LEAVE_ALLOT)

        new_allotted = _quantize(require_non_negative_decimal(days, "days"))
        leave_type = self._leave_types.get_by_id(int(leave_type_id))
        if not leave_type:
            raise NotFoundError("Leave type not found")

        with self._uow.transaction():
            current = self._balances.get(int(user_id), leave_type.leave_type_id)
            if not current:
                raise NotFoundError(f"{leave_type.name} is not allotted to this employee")

            delta = new_allotted - current.allotted_days
            if current.remaining_days + delta < 0:
                raise ValidationError(
                    f"Cannot set {leave_type.name} to {format_days(new_allotted)} days: "
                    f"{format_days(current.used_days)} days are already used"
                )

            adjusted = self._balances.adjust(
                user_id=int(user_id),
                leave_type_id=leave_type.leave_type_id,
                expected_allotted=current.allotted_days,
                new_allotted=new_allotted,
                adjusted_by=int(actor_id),
            )
            if not adjusted:
                raise ValidationError("Leave balance was changed by someone else, reload and try again")

            after = self.get_balance(user_id, leave_type.leave_type_id)
            self._balances.add_event(
                user_id=int(user_id),
                leave_type_id=leave_type.leave_type_id,
                event_type=BalanceEventType.ADJUST,
                change_days=delta,
                balance_after=after,
                actor_id=int(actor_id),
                note=f"Allotment changed from {format_days(current.allotted_days)} to {format_days(new_allotted)} days",
            )

        logger.info(
            "Adjusted %s allotment of user=%s from %s to %s by user=%s",
            leave_type.code,
            user_id,
            current.allotted_days,
            new_allotted,
            actor_id,
        )
        return LeaveBalance(
            user_id=int(user_id),
            leave_type_id=leave_type.leave_type_id,
            allotted_days=new_allotted,
            remaining_days=after,
            leave_type_code=leave_type.code,
            leave_type_name=leave_type.name,
        )

    def list_balances(self, user_id: int, *, current_role: Role, actor_id: int) -> Sequence[LeaveBalance]:
        require(current_role, Action.LEAVE_VIEW, actor_id=actor_id, target_user_id=user_id)
        return self._balances.list_for_user(int(user_id))

    def history(
        self,
        user_id: int,
        *,
        current_role: Role,
        actor_id: int,
        leave_type_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[BalanceEvent]:
        require(current_role, Action.LEAVE_VIEW, actor_id=actor_id, target_user_id=user_id)
        return self._balances.list_events(user_id=int(user_id), leave_type_id=leave_type_id, limit=int(limit))
