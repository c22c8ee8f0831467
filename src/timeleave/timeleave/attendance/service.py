from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional, Protocol, Sequence

from ..common.datetime_utils import now_local, start_of_week
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AlreadyClockedIn, InvalidDateRange, NoOpenSession, NotFoundError, ValidationError
from ..core.permissions import Action, require
from ..employees.repository import EmployeeRepository
from ..penalties.model import LatePenalty
from .factory import AttendanceStrategyFactory
from .hours import WeeklyHours, summarize_week
from .model import AttendanceRecord
from .policy import ClockInPolicy, ClockInResolution
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class LateArrivalListener(Protocol):
    def on_late_clock_in(self, *, record: AttendanceRecord, resolution: ClockInResolution) -> Optional[LatePenalty]:
        raise NotImplementedError


@dataclass(frozen=True)
class ClockInResult:
    record: AttendanceRecord
    late: bool
    deadline: Optional[str] = None
    penalty: Optional[LatePenalty] = None


class AttendanceLedger:
    """Owns attendance sessions: clock-in, clock-out and read queries.

    Clock-out goes through a conditional update, so when a manual and an
    automatic clock-out race on the same session exactly one of them wins
    and the other observes NoOpenSession.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        policy: ClockInPolicy,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        late_listener: LateArrivalListener | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._policy = policy
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._late_listener = late_listener

    def clock_in(self, user_id: int, *, current_role: Role, actor_id: int, now: datetime | None = None) -> ClockInResult:
        require(current_role, Action.ATTENDANCE_WRITE_SELF, actor_id=actor_id, target_user_id=user_id)
        now = now or now_local()
        today = now.date()

        if not self._employees.get_by_id(int(user_id)):
            raise NotFoundError("Employee not found")

        existing = self._attendance.get_for_user_and_date(int(user_id), today)
        if existing:
            if existing.is_open:
                raise AlreadyClockedIn("You are already clocked in")
            raise AlreadyClockedIn("You have already completed attendance for today")

        resolution = self._policy.resolve(int(user_id), today)
        strategy = self._factory.for_checkin(now=now, resolution=resolution)
        decision = strategy.decide_checkin(now=now, resolution=resolution)

        attendance_id = self._attendance.create_checkin(
            user_id=int(user_id),
            work_date=today,
            check_in_time=now,
            status=decision.status,
            note=decision.note,
        )
        record = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=int(user_id),
            work_date=today,
            check_in_time=now,
            check_out_time=None,
            status=decision.status,
            note=decision.note,
        )

        late = decision.status == AttendanceStatus.LATE
        penalty = None
        if late:
            logger.info("Late clock-in user=%s at %s (deadline %s)", user_id, now.time(), resolution.deadline)
            if self._late_listener is not None:
                try:
                    penalty = self._late_listener.on_late_clock_in(record=record, resolution=resolution)
                except Exception:
                    logger.exception("Late-arrival evaluation failed for user=%s", user_id)

        return ClockInResult(
            record=record,
            late=late,
            deadline=resolution.deadline.strftime("%H:%M") if resolution.deadline else None,
            penalty=penalty,
        )

    def clock_out(self, user_id: int, *, current_role: Role, actor_id: int, now: datetime | None = None) -> AttendanceRecord:
        require(current_role, Action.ATTENDANCE_WRITE_SELF, actor_id=actor_id, target_user_id=user_id)
        now = now or now_local()

        record = self._attendance.get_open_for_user(int(user_id))
        if not record:
            raise NoOpenSession("No open attendance session to clock out")
        if now < record.check_in_time:
            raise ValidationError("Clock-out time cannot be earlier than clock-in time")

        return self._close(record, at=now, auto=False)

    def auto_clock_out(self, record: AttendanceRecord, *, at: datetime) -> AttendanceRecord:
        """System clock-out used by the cutoff scheduler; NoOpenSession if already closed."""
        return self._close(record, at=max(at, record.check_in_time), auto=True)

    def _close(self, record: AttendanceRecord, *, at: datetime, auto: bool) -> AttendanceRecord:
        strategy = self._factory.for_checkout(auto=auto)
        decision = strategy.decide_checkout(now=at, record=record)

        ok = self._attendance.close_session(
            attendance_id=record.attendance_id,
            check_out_time=at,
            auto_clock_out=auto,
            note=decision.note,
        )
        if not ok:
            raise NoOpenSession("Attendance session is already closed")

        return replace(record, check_out_time=at, auto_clock_out=auto, status=decision.status, note=decision.note)

    def list_open(self) -> Sequence[AttendanceRecord]:
        return self._attendance.list_open()

    def query(self, user_id: int, day: date, *, current_role: Role, actor_id: int) -> Optional[AttendanceRecord]:
        require(current_role, Action.ATTENDANCE_VIEW, actor_id=actor_id, target_user_id=user_id)
        return self._attendance.get_for_user_and_date(int(user_id), day)

    def query_range(
        self,
        user_id: Optional[int],
        start: date,
        end: date,
        *,
        current_role: Role,
        actor_id: int,
    ) -> Sequence[AttendanceRecord]:
        """Records between `start` and `end` inclusive; `user_id=None` lists everyone."""
        if user_id is None:
            require(current_role, Action.ATTENDANCE_VIEW_ALL)
        else:
            require(current_role, Action.ATTENDANCE_VIEW, actor_id=actor_id, target_user_id=user_id)
        if end < start:
            raise InvalidDateRange("End date cannot be before start date")
        return self._attendance.list_range(start_date=start, end_date=end, user_id=user_id)

    def recent(self, user_id: int, *, current_role: Role, actor_id: int, limit: int = DEFAULT_HISTORY_LIMIT):
        require(current_role, Action.ATTENDANCE_VIEW, actor_id=actor_id, target_user_id=user_id)
        return self._attendance.get_recent_for_user(int(user_id), int(limit))

    def weekly_hours(self, user_id: int, *, current_role: Role, actor_id: int, today: date | None = None) -> WeeklyHours:
        require(current_role, Action.ATTENDANCE_VIEW, actor_id=actor_id, target_user_id=user_id)
        today = today or now_local().date()
        week_start = start_of_week(today)
        rows = self._attendance.list_range(
            start_date=week_start,
            end_date=week_start + timedelta(days=6),
            user_id=int(user_id),
        )
        return summarize_week(rows, week_start=week_start)
