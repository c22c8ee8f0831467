from datetime import date, datetime
from decimal import Decimal

import pytest

from src.timeleave.timeleave.attendance.policy import ClockInResolution
from src.timeleave.timeleave.core.enums import AttendanceStatus, BalanceEventType, Role
from src.timeleave.timeleave.core.exceptions import AuthorizationError

from tests.fakes import ALICE, BOB, CASUAL, HR, SICK, VACATION, World

# Mon 3 .. Fri 7 March 2025
WEEK = [date(2025, 3, d) for d in range(3, 8)]


def _late_clock_in(world, day, *, user=ALICE, hh=9, mm=15):
    return world.container.attendance_ledger.clock_in(
        user.user_id,
        current_role=Role.EMPLOYEE,
        actor_id=user.user_id,
        now=datetime(day.year, day.month, day.day, hh, mm),
    )


def test_penalty_starts_once_monthly_threshold_is_exceeded():
    world = World(settings={"defaultClockInTimeLimit": "09:00", "maxLateDays": "2"})
    world.allot(ALICE.user_id, CASUAL, 2)

    results = [_late_clock_in(world, d) for d in WEEK[:4]]

    assert all(r.late for r in results)
    assert [r.penalty is not None for r in results] == [False, False, True, True]
    third = results[2].penalty
    assert third.late_count == 3
    assert third.deducted_days == Decimal("0.5")
    assert third.time_limit == "09:00"
    assert third.reason == "Late arrival penalty: 3 late arrivals this month (max allowed: 2)"
    assert world.balances.remaining(ALICE.user_id, CASUAL.leave_type_id) == Decimal("1.0")

    penalty_events = world.balances.events_of(BalanceEventType.PENALTY)
    assert [e.penalty_id for e in penalty_events] == [third.penalty_id, results[3].penalty.penalty_id]


def test_on_time_days_do_not_count():
    world = World(settings={"defaultClockInTimeLimit": "09:00", "maxLateDays": "1"})
    world.allot(ALICE.user_id, CASUAL, 2)

    _late_clock_in(world, WEEK[0])
    on_time = _late_clock_in(world, WEEK[1], hh=8, mm=59)
    second_late = _late_clock_in(world, WEEK[2])

    assert on_time.late is False
    assert second_late.penalty is not None
    assert second_late.penalty.late_count == 2


def test_late_days_from_previous_month_are_ignored():
    world = World(settings={"defaultClockInTimeLimit": "09:00", "maxLateDays": "1"})
    world.allot(ALICE.user_id, CASUAL, 2)

    _late_clock_in(world, date(2025, 2, 28))
    first_in_march = _late_clock_in(world, date(2025, 3, 3))

    assert first_in_march.penalty is None


def test_at_most_one_penalty_per_day():
    world = World(settings={"defaultClockInTimeLimit": "09:00"})
    world.allot(ALICE.user_id, CASUAL, 2)
    result = _late_clock_in(world, WEEK[0])
    assert result.penalty is not None

    again = world.container.late_arrival_policy.on_late_clock_in(
        record=result.record,
        resolution=ClockInResolution(has_restriction=True, deadline=result.record.check_in_time.time()),
    )

    assert again.penalty_id == result.penalty.penalty_id
    assert len(world.penalties.penalties) == 1
    assert world.balances.remaining(ALICE.user_id, CASUAL.leave_type_id) == Decimal("1.5")


def test_penalty_recorded_without_deduction_when_balance_is_short(caplog):
    world = World(settings={"defaultClockInTimeLimit": "09:00"})
    world.allot(ALICE.user_id, CASUAL, "0.25")

    with caplog.at_level("WARNING"):
        result = _late_clock_in(world, WEEK[0])

    assert result.penalty is not None
    assert result.penalty.deducted is False
    assert result.penalty.deducted_days == Decimal(0)
    assert world.balances.remaining(ALICE.user_id, CASUAL.leave_type_id) == Decimal("0.25")
    assert "not deducted" in caplog.text


def test_penalty_recorded_without_deduction_when_leave_type_missing():
    world = World(settings={"defaultClockInTimeLimit": "09:00"}, leave_types=(SICK, VACATION))

    result = _late_clock_in(world, WEEK[0])

    assert result.penalty is not None
    assert result.penalty.deducted_days == Decimal(0)
    assert world.balances.events == []


def test_penalty_leave_type_and_amount_are_configurable():
    world = World(settings={"defaultClockInTimeLimit": "09:00"}, penalty_leave_type="vacation", penalty_days=Decimal(1))
    world.allot(ALICE.user_id, VACATION, 3)

    result = _late_clock_in(world, WEEK[0])

    assert result.penalty.deducted_days == Decimal(1)
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(2)


def test_no_restriction_means_no_penalty():
    world = World(settings={"defaultClockInTimeLimit": "09:00"})
    world.allot(BOB.user_id, CASUAL, 2)

    result = _late_clock_in(world, WEEK[0], user=BOB, hh=11, mm=0)

    assert result.late is False
    assert result.penalty is None
    assert world.penalties.penalties == {}


def test_penalty_notifies_employee():
    world = World(settings={"defaultClockInTimeLimit": "09:00"})
    world.allot(ALICE.user_id, CASUAL, 2)

    _late_clock_in(world, WEEK[0])

    [note] = world.notifier.sent
    assert note["kind"] == "penalty"
    assert "0.5 day(s) deducted" in note["message"]


def test_get_for_day_summarizes_late_arrivals():
    world = World(settings={"defaultClockInTimeLimit": "09:00", "maxLateDays": "1"})
    world.allot(ALICE.user_id, CASUAL, 2)
    _late_clock_in(world, WEEK[0], mm=5)
    _late_clock_in(world, WEEK[1], mm=20)
    policy = world.container.late_arrival_policy

    summary = policy.get_for_day(ALICE.user_id, WEEK[1], current_role=Role.EMPLOYEE, actor_id=ALICE.user_id)

    assert summary.max_late_days == 1
    assert [(a.work_date, a.clock_in) for a in summary.late_arrivals] == [(WEEK[0], "09:05"), (WEEK[1], "09:20")]
    assert summary.penalty is not None

    quiet = policy.get_for_day(ALICE.user_id, WEEK[0], current_role=Role.HR, actor_id=HR.user_id)
    assert quiet.penalty is None

    with pytest.raises(AuthorizationError):
        policy.get_for_day(ALICE.user_id, WEEK[0], current_role=Role.EMPLOYEE, actor_id=BOB.user_id)


def test_late_count_uses_stored_status():
    world = World(settings={"defaultClockInTimeLimit": "09:00", "maxLateDays": "1"})
    world.allot(ALICE.user_id, CASUAL, 2)
    world.attendance.seed(user_id=ALICE.user_id, check_in=datetime(2025, 3, 3, 9, 40), status=AttendanceStatus.LATE)
    world.attendance.seed(user_id=ALICE.user_id, check_in=datetime(2025, 3, 4, 8, 40))

    arrivals = world.container.late_arrival_policy.late_arrivals(ALICE.user_id, date(2025, 3, 4))

    assert [a.work_date for a in arrivals] == [date(2025, 3, 3)]
