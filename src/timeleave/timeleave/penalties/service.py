from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.policy import ClockInResolution
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import format_hhmm, start_of_month
from ..core.constants import DEFAULT_PENALTY_LEAVE_DAYS, DEFAULT_PENALTY_LEAVE_TYPE
from ..core.enums import AttendanceStatus, BalanceEventType, Role
from ..core.exceptions import InsufficientBalance
from ..core.permissions import Action, require
from ..database.connection import UnitOfWork
from ..leaves.balance import LeaveBalanceLedger, format_days
from ..leaves.repository import LeaveTypeRepository
from ..notifications.sink import NotificationSink
from ..settings.service import SettingsService
from .model import LatePenalty
from .repository import PenaltyRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LateArrival:
    work_date: date
    clock_in: str


@dataclass(frozen=True)
class PenaltySummary:
    penalty: Optional[LatePenalty]
    late_arrivals: Sequence[LateArrival]
    max_late_days: int


class LateArrivalPolicy:
    """Turns late arrivals beyond the monthly grace threshold into leave debits.

    Late days are counted per calendar month, today included. Every late day
    whose count exceeds `maxLateDays` costs `penalty_days` of the penalty leave
    type, at most once per employee per day. When the leave type is missing
    or the balance cannot cover it the penalty is still recorded with nothing
    deducted.
    """

    def __init__(
        self,
        penalties: PenaltyRepository,
        attendance: AttendanceRepository,
        balances: LeaveBalanceLedger,
        leave_types: LeaveTypeRepository,
        settings: SettingsService,
        uow: UnitOfWork,
        *,
        notifier: Optional[NotificationSink] = None,
        penalty_days: Decimal = DEFAULT_PENALTY_LEAVE_DAYS,
        penalty_leave_type: str = DEFAULT_PENALTY_LEAVE_TYPE,
    ):
        self._penalties = penalties
        self._attendance = attendance
        self._balances = balances
        self._leave_types = leave_types
        self._settings = settings
        self._uow = uow
        self._notifier = notifier
        self._penalty_days = Decimal(str(penalty_days))
        self._penalty_leave_type = penalty_leave_type

    def late_arrivals(self, user_id: int, day: date) -> list[LateArrival]:
        """Distinct late days from the first of `day`'s month through `day`."""
        rows = self._attendance.list_range(
            start_date=start_of_month(day),
            end_date=day,
            user_id=int(user_id),
            status=AttendanceStatus.LATE,
        )
        seen: dict[date, LateArrival] = {}
        for r in sorted(rows, key=lambda x: x.check_in_time):
            if r.work_date not in seen:
                seen[r.work_date] = LateArrival(work_date=r.work_date, clock_in=format_hhmm(r.check_in_time.time()))
        return list(seen.values())

    def on_late_clock_in(self, *, record: AttendanceRecord, resolution: ClockInResolution) -> Optional[LatePenalty]:
        late_count = len(self.late_arrivals(record.user_id, record.work_date))
        max_late_days = self._settings.get_max_late_days()
        logger.debug("user=%s late days this month=%s (max %s)", record.user_id, late_count, max_late_days)

        if late_count <= max_late_days:
            return None

        time_limit = format_hhmm(resolution.deadline) if resolution.deadline else ""
        reason = f"Late arrival penalty: {late_count} late arrivals this month (max allowed: {max_late_days})"

        with self._uow.transaction():
            penalty_id = self._penalties.create(
                user_id=record.user_id,
                late_date=record.work_date,
                clock_in_time=record.check_in_time,
                time_limit=time_limit,
                max_late_days=max_late_days,
                late_count=late_count,
                penalty_days=self._penalty_days,
                reason=reason,
            )
            if penalty_id is None:
                logger.debug("Penalty for user=%s on %s already recorded", record.user_id, record.work_date)
                return self._penalties.get_for_user_and_date(record.user_id, record.work_date)

            deducted = self._deduct(record.user_id, penalty_id)
            if deducted > 0:
                self._penalties.set_deducted(penalty_id, deducted)

        logger.info(
            "Late penalty %s for user=%s on %s: deducted %s days",
            penalty_id,
            record.user_id,
            record.work_date,
            deducted,
        )
        if self._notifier is not None:
            self._notifier.notify(
                record.user_id,
                title="Late arrival penalty",
                message=f"{reason}. {format_days(deducted)} day(s) deducted from your leave balance.",
                kind="penalty",
            )
        return self._penalties.get_for_user_and_date(record.user_id, record.work_date)

    def _deduct(self, user_id: int, penalty_id: int) -> Decimal:
        leave_type = self._leave_types.get_by_code(self._penalty_leave_type)
        if not leave_type:
            logger.warning("Penalty leave type %r not found; penalty %s recorded without deduction", self._penalty_leave_type, penalty_id)
            return Decimal("0")

        try:
            self._balances.debit(
                user_id,
                leave_type.leave_type_id,
                self._penalty_days,
                penalty_id=penalty_id,
                event_type=BalanceEventType.PENALTY,
                note="Late arrival penalty",
            )
        except InsufficientBalance as exc:
            logger.warning(
                "Penalty %s for user=%s not deducted: %s available, %s required",
                penalty_id,
                user_id,
                exc.available,
                exc.requested,
            )
            return Decimal("0")
        return self._penalty_days

    def get_for_day(self, user_id: int, day: date, *, current_role: Role, actor_id: int) -> PenaltySummary:
        require(current_role, Action.ATTENDANCE_VIEW, actor_id=actor_id, target_user_id=user_id)
        return PenaltySummary(
            penalty=self._penalties.get_for_user_and_date(int(user_id), day),
            late_arrivals=self.late_arrivals(int(user_id), day),
            max_late_days=self._settings.get_max_late_days(),
        )
