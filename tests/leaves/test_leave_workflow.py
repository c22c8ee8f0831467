from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal

import pytest

from src.timeleave.timeleave.core.enums import BalanceEventType, LeaveStatus, Role
from src.timeleave.timeleave.core.exceptions import (
    AuthorizationError,
    DuplicatePending,
    InsufficientBalance,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from src.timeleave.timeleave.leaves.service import NewLeaveRequest

from tests.fakes import ALICE, CASUAL, HR, VACATION, World

MON = date(2025, 3, 17)
TUE = date(2025, 3, 18)


def _submit(world, leave_type=VACATION, start=MON, end=TUE, **kw):
    return world.container.leave_workflow.submit(
        ALICE.user_id,
        NewLeaveRequest(leave_type_id=leave_type.leave_type_id, start_date=start, end_date=end, reason="Family trip", **kw),
        current_role=Role.EMPLOYEE,
        actor_id=ALICE.user_id,
    )


def _approve(world, request_id):
    return world.container.leave_workflow.approve(request_id, current_role=Role.HR, actor_id=HR.user_id)


def _reject(world, request_id, reason="schedule conflict"):
    return world.container.leave_workflow.reject(request_id, reason, current_role=Role.HR, actor_id=HR.user_id)


def test_approve_then_reject_restores_balance_exactly():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)

    req = _submit(world)
    assert req.status == LeaveStatus.PENDING
    assert req.days == Decimal(2)
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)

    approved = _approve(world, req.request_id)
    assert approved.status == LeaveStatus.APPROVED
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(3)

    rejected = _reject(world, req.request_id)
    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.rejection_reason == "schedule conflict"
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)

    assert [e.event_type for e in world.balances.events] == [BalanceEventType.DEBIT, BalanceEventType.CREDIT]


def test_half_day_round_trip():
    world = World()
    world.allot(ALICE.user_id, CASUAL, "1.5")

    req = _submit(world, leave_type=CASUAL, start=MON, end=MON, half_day_type="first-half")
    assert req.days == Decimal("0.5")

    _approve(world, req.request_id)
    assert world.balances.remaining(ALICE.user_id, CASUAL.leave_type_id) == Decimal("1.0")

    _reject(world, req.request_id)
    assert world.balances.remaining(ALICE.user_id, CASUAL.leave_type_id) == Decimal("1.5")


def test_re_rejecting_does_not_credit_twice():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    _approve(world, req.request_id)
    _reject(world, req.request_id)

    with pytest.raises(InvalidTransition) as exc_info:
        _reject(world, req.request_id)

    assert exc_info.value.current_status == LeaveStatus.REJECTED
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)
    assert len(world.balances.events_of(BalanceEventType.CREDIT)) == 1


def test_reject_pending_has_no_balance_effect():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)

    _reject(world, req.request_id, reason="Team offsite")

    assert world.requests.get(req.request_id).status == LeaveStatus.REJECTED
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)
    assert world.balances.events == []


def test_reject_requires_reason():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    _approve(world, req.request_id)

    with pytest.raises(ValidationError):
        _reject(world, req.request_id, reason="   ")

    assert world.requests.get(req.request_id).status == LeaveStatus.APPROVED
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(3)


def test_second_pending_request_is_a_conflict():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    _submit(world)

    with pytest.raises(DuplicatePending):
        _submit(world, start=date(2025, 3, 24), end=date(2025, 3, 24))


def test_new_request_allowed_once_previous_is_decided():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    first = _submit(world)
    _approve(world, first.request_id)

    second = _submit(world, start=date(2025, 3, 24), end=date(2025, 3, 24))

    assert second.status == LeaveStatus.PENDING


def test_submit_blocked_on_insufficient_balance():
    world = World()
    world.allot(ALICE.user_id, VACATION, 1)

    with pytest.raises(InsufficientBalance) as exc_info:
        _submit(world)

    assert exc_info.value.available == Decimal(1)
    assert exc_info.value.requested == Decimal(2)
    assert world.requests.requests == {}


def test_approve_with_insufficient_balance_keeps_request_pending():
    world = World(block_submit_on_insufficient_balance=False)
    world.allot(ALICE.user_id, VACATION, 1)
    req = _submit(world)

    with pytest.raises(InsufficientBalance):
        _approve(world, req.request_id)

    assert world.requests.get(req.request_id).status == LeaveStatus.PENDING
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(1)


def test_missing_balance_counts_as_zero():
    world = World(block_submit_on_insufficient_balance=False)
    req = _submit(world)

    with pytest.raises(InsufficientBalance):
        _approve(world, req.request_id)


def test_only_pending_requests_can_be_approved():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    _approve(world, req.request_id)

    with pytest.raises(InvalidTransition):
        _approve(world, req.request_id)

    _reject(world, req.request_id)
    with pytest.raises(InvalidTransition):
        _approve(world, req.request_id)

    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)


def test_lost_status_swap_rolls_back_the_debit():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    world.requests.fail_next_swap = True

    with pytest.raises(InvalidTransition):
        _approve(world, req.request_id)

    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(5)
    assert world.balances.events == []
    assert world.uow.rollbacks == 1


def test_concurrent_approvals_debit_once():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    outcomes = []

    def approve():
        try:
            _approve(world, req.request_id)
            outcomes.append("ok")
        except InvalidTransition:
            outcomes.append("stale")

    threads = [threading.Thread(target=approve) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["ok", "stale", "stale", "stale"]
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(3)


def test_delete_approved_request_keeps_balance():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    _approve(world, req.request_id)

    world.container.leave_workflow.delete(req.request_id, current_role=Role.ADMIN, actor_id=1)

    assert world.requests.get(req.request_id) is None
    assert world.balances.remaining(ALICE.user_id, VACATION.leave_type_id) == Decimal(3)
    with pytest.raises(NotFoundError):
        world.container.leave_workflow.delete(req.request_id, current_role=Role.ADMIN, actor_id=1)


def test_employees_cannot_decide_or_delete():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    workflow = world.container.leave_workflow

    with pytest.raises(AuthorizationError):
        workflow.approve(req.request_id, current_role=Role.EMPLOYEE, actor_id=ALICE.user_id)
    with pytest.raises(AuthorizationError):
        workflow.delete(req.request_id, current_role=Role.EMPLOYEE, actor_id=ALICE.user_id)


def test_decide_dispatches_on_status_text():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    workflow = world.container.leave_workflow

    approved = workflow.decide(req.request_id, "approved", current_role=Role.HR, actor_id=HR.user_id)
    assert approved.status == LeaveStatus.APPROVED

    with pytest.raises(ValidationError):
        workflow.decide(req.request_id, "pending", current_role=Role.HR, actor_id=HR.user_id)
    with pytest.raises(ValidationError):
        workflow.decide(req.request_id, "maybe", current_role=Role.HR, actor_id=HR.user_id)


def test_decisions_notify_the_employee():
    world = World()
    world.allot(ALICE.user_id, VACATION, 5)
    req = _submit(world)
    _approve(world, req.request_id)
    _reject(world, req.request_id)

    assert [n["title"] for n in world.notifier.sent] == ["Leave approved", "Leave rejected"]
    assert all(n["user_id"] == ALICE.user_id for n in world.notifier.sent)
