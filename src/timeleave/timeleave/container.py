from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from typing import Any, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.policy import ClockInPolicy
from .attendance.repository import AttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.scheduler import AutoClockOutScheduler
from .attendance.service import AttendanceLedger
from .core.constants import (
    DEFAULT_ARM_WINDOW_MINUTES,
    DEFAULT_AUTO_CLOCK_OUT_CUTOFF,
    DEFAULT_CHECK_SECONDS,
    DEFAULT_PENALTY_LEAVE_DAYS,
    DEFAULT_PENALTY_LEAVE_TYPE,
)
from .database.connection import DBConfig, DatabaseConnection, UnitOfWork
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .leaves.balance import LeaveBalanceLedger
from .leaves.mysql_balance_repository import MySQLLeaveBalanceRepository
from .leaves.mysql_leave_repository import MySQLLeaveRequestRepository, MySQLLeaveTypeRepository
from .leaves.repository import LeaveBalanceRepository, LeaveRequestRepository, LeaveTypeRepository
from .leaves.service import LeaveRequestWorkflow
from .notifications.sink import LoggingNotificationSink, NotificationSink
from .penalties.mysql_penalty_repository import MySQLPenaltyRepository
from .penalties.repository import PenaltyRepository
from .penalties.service import LateArrivalPolicy
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.repository import SettingsRepository
from .settings.service import SettingsService


@dataclass(frozen=True)
class Container:
    uow: UnitOfWork

    employees_repo: EmployeeRepository
    settings_repo: SettingsRepository
    attendance_repo: AttendanceRepository
    leave_types_repo: LeaveTypeRepository
    balances_repo: LeaveBalanceRepository
    requests_repo: LeaveRequestRepository
    penalties_repo: PenaltyRepository

    notifier: NotificationSink
    settings_service: SettingsService
    clock_in_policy: ClockInPolicy
    balance_ledger: LeaveBalanceLedger
    late_arrival_policy: LateArrivalPolicy
    attendance_ledger: AttendanceLedger
    leave_workflow: LeaveRequestWorkflow
    auto_clock_out: AutoClockOutScheduler


def wire(
    *,
    uow: UnitOfWork,
    employees_repo: EmployeeRepository,
    settings_repo: SettingsRepository,
    attendance_repo: AttendanceRepository,
    leave_types_repo: LeaveTypeRepository,
    balances_repo: LeaveBalanceRepository,
    requests_repo: LeaveRequestRepository,
    penalties_repo: PenaltyRepository,
    notifier: Optional[NotificationSink] = None,
    scheduler: Any = None,
    cutoff: time = DEFAULT_AUTO_CLOCK_OUT_CUTOFF,
    arm_window_minutes: int = DEFAULT_ARM_WINDOW_MINUTES,
    check_seconds: int = DEFAULT_CHECK_SECONDS,
    block_submit_on_insufficient_balance: bool = True,
    penalty_days: Decimal = DEFAULT_PENALTY_LEAVE_DAYS,
    penalty_leave_type: str = DEFAULT_PENALTY_LEAVE_TYPE,
) -> Container:
    """Build services on top of the given repositories (MySQL adapters or test fakes)."""
    notifier = notifier or LoggingNotificationSink()

    settings_service = SettingsService(settings_repo)
    clock_in_policy = ClockInPolicy(employees_repo, settings_service)
    balance_ledger = LeaveBalanceLedger(balances_repo, leave_types_repo, uow)
    late_arrival_policy = LateArrivalPolicy(
        penalties_repo,
        attendance_repo,
        balance_ledger,
        leave_types_repo,
        settings_service,
        uow,
        notifier=notifier,
        penalty_days=penalty_days,
        penalty_leave_type=penalty_leave_type,
    )
    attendance_ledger = AttendanceLedger(
        attendance_repo,
        employees_repo,
        clock_in_policy,
        strategy_factory=AttendanceStrategyFactory(),
        late_listener=late_arrival_policy,
    )
    leave_workflow = LeaveRequestWorkflow(
        requests_repo,
        balance_ledger,
        leave_types_repo,
        employees_repo,
        uow,
        notifier=notifier,
        block_submit_on_insufficient_balance=block_submit_on_insufficient_balance,
    )
    auto_clock_out = AutoClockOutScheduler(
        attendance_ledger,
        notifier=notifier,
        cutoff=cutoff,
        arm_window_minutes=arm_window_minutes,
        check_seconds=check_seconds,
        scheduler=scheduler,
    )

    return Container(
        uow=uow,
        employees_repo=employees_repo,
        settings_repo=settings_repo,
        attendance_repo=attendance_repo,
        leave_types_repo=leave_types_repo,
        balances_repo=balances_repo,
        requests_repo=requests_repo,
        penalties_repo=penalties_repo,
        notifier=notifier,
        settings_service=settings_service,
        clock_in_policy=clock_in_policy,
        balance_ledger=balance_ledger,
        late_arrival_policy=late_arrival_policy,
        attendance_ledger=attendance_ledger,
        leave_workflow=leave_workflow,
        auto_clock_out=auto_clock_out,
    )


def build_container(*, db_config: dict, **options: Any) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire(
        uow=conn,
        employees_repo=MySQLEmployeeRepository(conn),
        settings_repo=MySQLSettingsRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        leave_types_repo=MySQLLeaveTypeRepository(conn),
        balances_repo=MySQLLeaveBalanceRepository(conn),
        requests_repo=MySQLLeaveRequestRepository(conn),
        penalties_repo=MySQLPenaltyRepository(conn),
        **options,
    )
