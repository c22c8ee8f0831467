"""In-memory stand-ins for the MySQL adapters, shared by the test modules."""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from apscheduler.jobstores.base import JobLookupError

from src.timeleave.timeleave.attendance.model import AttendanceRecord
from src.timeleave.timeleave.container import wire
from src.timeleave.timeleave.core.enums import AttendanceStatus, BalanceEventType, LeaveStatus, Role
from src.timeleave.timeleave.core.exceptions import AlreadyClockedIn, DuplicatePending
from src.timeleave.timeleave.employees.model import Employee
from src.timeleave.timeleave.leaves.model import BalanceEvent, LeaveBalance, LeaveRequest, LeaveType
from src.timeleave.timeleave.penalties.model import LatePenalty


class _Snapshotting:
    """Fake repos expose their data for FakeUnitOfWork rollback."""

    _state_fields: tuple = ()

    def snapshot(self):
        return {name: copy.deepcopy(getattr(self, name)) for name in self._state_fields}

    def restore(self, state) -> None:
        for name, value in state.items():
            setattr(self, name, value)


class FakeUnitOfWork:
    def __init__(self, *repos):
        self._repos = list(repos)
        self._lock = threading.RLock()
        self._depth = 0
        self.commits = 0
        self.rollbacks = 0

    def track(self, *repos) -> None:
        self._repos.extend(repos)

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            saved = [(r, r.snapshot()) for r in self._repos]
            self._depth = 1
            try:
                yield
                self.commits += 1
            except Exception:
                for repo, state in saved:
                    repo.restore(state)
                self.rollbacks += 1
                raise
            finally:
                self._depth = 0


class FakeEmployeeRepo:
    def __init__(self, *employees: Employee):
        self._by_id = {e.user_id: e for e in employees}

    def add(self, employee: Employee) -> None:
        self._by_id[employee.user_id] = employee

    def get_by_id(self, user_id):
        return self._by_id.get(int(user_id))


class FakeSettingsRepo(_Snapshotting):
    _state_fields = ("values",)

    def __init__(self, **values):
        self.values = dict(values)

    def get_value(self, key):
        return self.values.get(key)

    def set_value(self, key, value, *, updated_by=None):
        self.values[key] = value


class FakeAttendanceRepo(_Snapshotting):
    _state_fields = ("records", "_next_id")

    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_recent_for_user(self, user_id, limit):
        rows = [r for r in self.records.values() if r.user_id == int(user_id)]
        return sorted(rows, key=lambda r: r.work_date, reverse=True)[:limit]

    def get_for_user_and_date(self, user_id, work_date):
        for r in self.records.values():
            if r.user_id == int(user_id) and r.work_date == work_date:
                return r
        return None

    def get_open_for_user(self, user_id):
        rows = [r for r in self.records.values() if r.user_id == int(user_id) and r.is_open]
        return max(rows, key=lambda r: r.work_date) if rows else None

    def list_open(self):
        return sorted((r for r in self.records.values() if r.is_open), key=lambda r: (r.work_date, r.user_id))

    def list_range(self, *, start_date, end_date, user_id=None, status=None):
        rows = [
            r
            for r in self.records.values()
            if start_date <= r.work_date <= end_date
            and (user_id is None or r.user_id == int(user_id))
            and (status is None or r.status == status)
        ]
        return sorted(rows, key=lambda r: (r.work_date, r.user_id), reverse=True)

    def create_checkin(self, *, user_id, work_date, check_in_time, status, note=None):
        with self._lock:
            if self.get_for_user_and_date(user_id, work_date):
                raise AlreadyClockedIn("Attendance for this day is already recorded")
            rid = self._next_id
            self._next_id += 1
            self.records[rid] = AttendanceRecord(
                attendance_id=rid,
                user_id=int(user_id),
                work_date=work_date,
                check_in_time=check_in_time,
                check_out_time=None,
                status=status,
                note=note,
            )
            return rid

    def close_session(self, *, attendance_id, check_out_time, auto_clock_out, note=None):
        with self._lock:
            r = self.records.get(int(attendance_id))
            if not r or not r.is_open:
                return False
            self.records[r.attendance_id] = replace(r, check_out_time=check_out_time, auto_clock_out=auto_clock_out, note=note)
            return True

    # test helper
    def seed(self, *, user_id, check_in, check_out=None, status=AttendanceStatus.ON_TIME):
        rid = self.create_checkin(user_id=user_id, work_date=check_in.date(), check_in_time=check_in, status=status)
        if check_out is not None:
            self.close_session(attendance_id=rid, check_out_time=check_out, auto_clock_out=False)
        return rid


class FakeLeaveTypeRepo:
    def __init__(self, *types: LeaveType):
        self._by_id = {t.leave_type_id: t for t in types}

    def get_by_id(self, leave_type_id):
        return self._by_id.get(int(leave_type_id))

    def get_by_code(self, code):
        for t in self._by_id.values():
            if t.code == code.strip().lower():
                return t
        return None

    def list_active(self):
        return [t for t in self._by_id.values() if t.is_active]


class FakeBalanceRepo(_Snapshotting):
    _state_fields = ("balances", "events")

    def __init__(self, leave_types: FakeLeaveTypeRepo):
        self._types = leave_types
        self.balances: dict[tuple[int, int], list[Decimal]] = {}
        self.events: list[BalanceEvent] = []
        self._lock = threading.Lock()

    def _to_balance(self, user_id, leave_type_id, values):
        t = self._types.get_by_id(leave_type_id)
        return LeaveBalance(
            user_id=user_id,
            leave_type_id=leave_type_id,
            allotted_days=values[0],
            remaining_days=values[1],
            leave_type_code=t.code if t else None,
            leave_type_name=t.name if t else None,
        )

    def get(self, user_id, leave_type_id):
        values = self.balances.get((int(user_id), int(leave_type_id)))
        return self._to_balance(int(user_id), int(leave_type_id), values) if values else None

    def list_for_user(self, user_id):
        return [self._to_balance(u, t, v) for (u, t), v in self.balances.items() if u == int(user_id)]

    def create(self, *, user_id, leave_type_id, days, allotted_by):
        key = (int(user_id), int(leave_type_id))
        with self._lock:
            if key in self.balances:
                return False
            self.balances[key] = [Decimal(days), Decimal(days)]
            return True

    def debit(self, *, user_id, leave_type_id, amount):
        with self._lock:
            values = self.balances.get((int(user_id), int(leave_type_id)))
            if not values or values[1] < amount:
                return False
            values[1] -= amount
            return True

    def credit(self, *, user_id, leave_type_id, amount):
        with self._lock:
            values = self.balances.get((int(user_id), int(leave_type_id)))
            if not values:
                return False
            values[1] += amount
            return True

    def adjust(self, *, user_id, leave_type_id, expected_allotted, new_allotted, adjusted_by):
        with self._lock:
            values = self.balances.get((int(user_id), int(leave_type_id)))
            delta = new_allotted - expected_allotted
            if not values or values[0] != expected_allotted or values[1] + delta < 0:
                return False
            values[0] = new_allotted
            values[1] += delta
            return True

    def add_event(self, *, user_id, leave_type_id, event_type, change_days, balance_after, actor_id=None, request_id=None, penalty_id=None, note=None):
        event = BalanceEvent(
            event_id=len(self.events) + 1,
            user_id=int(user_id),
            leave_type_id=int(leave_type_id),
            event_type=event_type,
            change_days=change_days,
            balance_after=balance_after,
            created_at=datetime(2025, 3, 12, 12, 0, 0),
            actor_id=actor_id,
            request_id=request_id,
            penalty_id=penalty_id,
            note=note,
        )
        self.events.append(event)
        return event.event_id

    def list_events(self, *, user_id, leave_type_id=None, limit=200):
        rows = [
            e
            for e in reversed(self.events)
            if e.user_id == int(user_id) and (leave_type_id is None or e.leave_type_id == int(leave_type_id))
        ]
        return rows[:limit]

    # test helpers
    def remaining(self, user_id, leave_type_id) -> Decimal:
        return self.balances[(user_id, leave_type_id)][1]

    def events_of(self, event_type: BalanceEventType):
        return [e for e in self.events if e.event_type == event_type]


class FakeLeaveRequestRepo(_Snapshotting):
    _state_fields = ("requests", "_next_id")

    def __init__(self, leave_types: FakeLeaveTypeRepo):
        self._types = leave_types
        self.requests: dict[int, LeaveRequest] = {}
        self._next_id = 1
        self.fail_next_swap = False

    def create(self, *, user_id, leave_type_id, start_date, end_date, days, reason, half_day_type=None, short_day_time=None):
        if self.find_pending_for_user(user_id):
            raise DuplicatePending("You already have a pending leave request")
        rid = self._next_id
        self._next_id += 1
        t = self._types.get_by_id(leave_type_id)
        self.requests[rid] = LeaveRequest(
            request_id=rid,
            user_id=int(user_id),
            leave_type_id=int(leave_type_id),
            start_date=start_date,
            end_date=end_date,
            days=days,
            status=LeaveStatus.PENDING,
            reason=reason,
            created_at=datetime(2025, 3, 12, 10, 0, 0),
            half_day_type=half_day_type,
            short_day_time=short_day_time,
            leave_type_name=t.name if t else None,
        )
        return rid

    def get(self, request_id, *, for_update=False):
        return self.requests.get(int(request_id))

    def find_pending_for_user(self, user_id):
        for r in self.requests.values():
            if r.user_id == int(user_id) and r.status == LeaveStatus.PENDING:
                return r
        return None

    def list_requests(self, *, user_id=None, status=None, limit=200):
        rows = [
            r
            for r in self.requests.values()
            if (user_id is None or r.user_id == int(user_id)) and (status is None or r.status == status)
        ]
        return rows[:limit]

    def update_status(self, *, request_id, expected_status, new_status, decided_by, rejection_reason=None):
        if self.fail_next_swap:
            self.fail_next_swap = False
            return False
        r = self.requests.get(int(request_id))
        if not r or r.status != expected_status:
            return False
        self.requests[r.request_id] = replace(
            r,
            status=new_status,
            decided_by=int(decided_by),
            decided_at=datetime(2025, 3, 12, 11, 0, 0),
            rejection_reason=rejection_reason if rejection_reason is not None else r.rejection_reason,
        )
        return True

    def delete(self, request_id):
        return self.requests.pop(int(request_id), None) is not None


class FakePenaltyRepo(_Snapshotting):
    _state_fields = ("penalties", "_next_id")

    def __init__(self):
        self.penalties: dict[tuple[int, date], LatePenalty] = {}
        self._next_id = 1

    def get_for_user_and_date(self, user_id, late_date):
        return self.penalties.get((int(user_id), late_date))

    def create(self, *, user_id, late_date, clock_in_time, time_limit, max_late_days, late_count, penalty_days, reason):
        key = (int(user_id), late_date)
        if key in self.penalties:
            return None
        pid = self._next_id
        self._next_id += 1
        self.penalties[key] = LatePenalty(
            penalty_id=pid,
            user_id=int(user_id),
            late_date=late_date,
            clock_in_time=clock_in_time,
            time_limit=time_limit,
            max_late_days=max_late_days,
            late_count=late_count,
            penalty_days=penalty_days,
            deducted_days=Decimal("0"),
            reason=reason,
        )
        return pid

    def set_deducted(self, penalty_id, deducted_days):
        for key, p in self.penalties.items():
            if p.penalty_id == int(penalty_id):
                self.penalties[key] = replace(p, deducted_days=deducted_days)
                return True
        return False


class FakeJob:
    def __init__(self, func, trigger, kwargs):
        self.func = func
        self.trigger = trigger
        self.kwargs = kwargs


class FakeJobScheduler:
    """Records jobs instead of running threads; tests trigger them by hand."""

    def __init__(self):
        self.jobs: dict[str, FakeJob] = {}
        self.started = False
        self.stopped = False

    def add_job(self, func, trigger=None, *, id=None, replace_existing=False, **kwargs):
        if id in self.jobs and not replace_existing:
            raise ValueError(f"job {id} exists")
        self.jobs[id] = FakeJob(func, trigger, kwargs)
        return self.jobs[id]

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def start(self):
        self.started = True

    def shutdown(self, wait=True):
        self.stopped = True


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []

    def notify(self, user_id, *, title, message, kind="info"):
        self.sent.append({"user_id": user_id, "title": title, "message": message, "kind": kind})


CASUAL = LeaveType(leave_type_id=1, code="casual", name="Casual Leave")
SICK = LeaveType(leave_type_id=2, code="sick", name="Sick Leave")
VACATION = LeaveType(leave_type_id=3, code="vacation", name="Vacation")

ADMIN = Employee(user_id=1, full_name="Admin Demo", role=Role.ADMIN, weekly_off_days=(5, 6))
HR = Employee(user_id=2, full_name="HR Demo", role=Role.HR, weekly_off_days=(5, 6))
ALICE = Employee(user_id=10, full_name="Alice", role=Role.EMPLOYEE, weekly_off_days=(5, 6))
BOB = Employee(user_id=11, full_name="Bob", role=Role.EMPLOYEE, clock_in_time="N/R", weekly_off_days=(6,))


class World:
    """All fakes plus a container wired on top of them."""

    def __init__(self, *, settings: Optional[dict] = None, leave_types=(CASUAL, SICK, VACATION), **options):
        self.employees = FakeEmployeeRepo(ADMIN, HR, ALICE, BOB)
        self.settings = FakeSettingsRepo(**(settings or {}))
        self.attendance = FakeAttendanceRepo()
        self.leave_types = FakeLeaveTypeRepo(*leave_types)
        self.balances = FakeBalanceRepo(self.leave_types)
        self.requests = FakeLeaveRequestRepo(self.leave_types)
        self.penalties = FakePenaltyRepo()
        self.uow = FakeUnitOfWork(self.balances, self.requests, self.penalties)
        self.notifier = RecordingNotifier()
        self.jobs = FakeJobScheduler()

        self.container = wire(
            uow=self.uow,
            employees_repo=self.employees,
            settings_repo=self.settings,
            attendance_repo=self.attendance,
            leave_types_repo=self.leave_types,
            balances_repo=self.balances,
            requests_repo=self.requests,
            penalties_repo=self.penalties,
            notifier=self.notifier,
            scheduler=self.jobs,
            **options,
        )

    def allot(self, user_id, leave_type, days):
        self.balances.create(user_id=user_id, leave_type_id=leave_type.leave_type_id, days=Decimal(str(days)), allotted_by=1)
