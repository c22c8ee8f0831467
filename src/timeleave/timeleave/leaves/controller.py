from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_identity, date_arg, int_arg, json_body, to_json
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import BalanceEvent, LeaveBalance, LeaveRequest
from .service import NewLeaveRequest


def request_json(r: LeaveRequest) -> dict:
    return to_json(
        {
            "id": r.request_id,
            "userId": r.user_id,
            "leaveTypeId": r.leave_type_id,
            "leaveType": r.leave_type_name,
            "startDate": r.start_date,
            "endDate": r.end_date,
            "days": r.days,
            "status": r.status.value.lower(),
            "reason": r.reason,
            "rejectionReason": r.rejection_reason,
            "halfDayType": r.half_day_type,
            "shortDayTime": r.short_day_time,
            "createdAt": r.created_at,
            "decidedBy": r.decided_by,
            "decidedAt": r.decided_at,
        }
    )


def balance_json(b: LeaveBalance) -> dict:
    return to_json(
        {
            "leaveTypeId": b.leave_type_id,
            "leaveTypeCode": b.leave_type_code,
            "leaveType": b.leave_type_name,
            "allottedDays": b.allotted_days,
            "remainingDays": b.remaining_days,
            "usedDays": b.used_days,
        }
    )


def event_json(e: BalanceEvent) -> dict:
    return to_json(
        {
            "id": e.event_id,
            "leaveTypeId": e.leave_type_id,
            "type": e.event_type,
            "changeDays": e.change_days,
            "balanceAfter": e.balance_after,
            "actorId": e.actor_id,
            "requestId": e.request_id,
            "penaltyId": e.penalty_id,
            "note": e.note,
            "createdAt": e.created_at,
        }
    )


def _short_day_time(data: dict) -> str:
    start = str(data.get("shortDayFromTime") or "").strip()
    end = str(data.get("shortDayToTime") or "").strip()
    if start and end:
        return f"{start}-{end}"
    return str(data.get("shortDayTime") or "").strip()


def register(app: Flask, container: Container) -> None:
    workflow = container.leave_workflow
    balances = container.balance_ledger

    @app.route("/api/leave", methods=["POST"], endpoint="leave_submit")
    def leave_submit():
        me = current_identity()
        data = json_body()

        leave_type_id = int_arg("leaveType", data.get("leaveType"))
        start = date_arg("startDate", data.get("startDate"))
        end = date_arg("endDate", data.get("endDate"))
        if leave_type_id is None or start is None or end is None:
            raise ValidationError("leaveType, startDate and endDate are required")

        created = workflow.submit(
            me.user_id,
            NewLeaveRequest(
                leave_type_id=leave_type_id,
                start_date=start,
                end_date=end,
                reason=str(data.get("reason") or ""),
                half_day_type=data.get("halfDayType"),
                short_day_time=_short_day_time(data),
            ),
            current_role=me.role,
            actor_id=me.user_id,
        )
        return jsonify({"success": True, "leave": request_json(created)}), 201

    @app.route("/api/leave", methods=["GET"], endpoint="leave_list")
    def leave_list():
        me = current_identity()
        status = request.args.get("status") or None
        if status and status.lower() == "all":
            status = None

        target = int_arg("userId", request.args.get("userId"))
        if target is None and me.role == Role.EMPLOYEE:
            target = me.user_id

        rows = workflow.list_requests(current_role=me.role, actor_id=me.user_id, user_id=target, status=status)
        return jsonify({"success": True, "leaves": [request_json(r) for r in rows]})

    @app.route("/api/leave/<int:request_id>", methods=["PUT"], endpoint="leave_decide")
    def leave_decide(request_id: int):
        me = current_identity()
        data = json_body()
        updated = workflow.decide(
            request_id,
            str(data.get("status") or ""),
            current_role=me.role,
            actor_id=me.user_id,
            rejection_reason=str(data.get("rejectionReason") or ""),
        )
        return jsonify({"success": True, "leave": request_json(updated)})

    @app.route("/api/leave/<int:request_id>", methods=["DELETE"], endpoint="leave_delete")
    def leave_delete(request_id: int):
        me = current_identity()
        workflow.delete(request_id, current_role=me.role, actor_id=me.user_id)
        return jsonify({"success": True, "message": "Leave request deleted"})

    @app.route("/api/leave/allot", methods=["POST"], endpoint="leave_allot")
    def leave_allot():
        me = current_identity()
        data = json_body()
        user_id = int_arg("userId", data.get("userId"))
        leave_type_id = int_arg("leaveType", data.get("leaveType"))
        if user_id is None or leave_type_id is None or data.get("days") is None:
            raise ValidationError("userId, leaveType and days are required")

        balance = balances.allot(user_id, leave_type_id, data.get("days"), current_role=me.role, actor_id=me.user_id)
        return jsonify({"success": True, "balance": balance_json(balance)}), 201

    @app.route("/api/leave/allot", methods=["PUT"], endpoint="leave_adjust")
    def leave_adjust():
        me = current_identity()
        data = json_body()
        user_id = int_arg("userId", data.get("userId"))
        leave_type_id = int_arg("leaveType", data.get("leaveType"))
        if user_id is None or leave_type_id is None or data.get("days") is None:
            raise ValidationError("userId, leaveType and days are required")

        balance = balances.adjust(user_id, leave_type_id, data.get("days"), current_role=me.role, actor_id=me.user_id)
        return jsonify({"success": True, "balance": balance_json(balance)})

    @app.route("/api/leave/balances", methods=["GET"], endpoint="leave_balances")
    def leave_balances():
        me = current_identity()
        target = int_arg("userId", request.args.get("userId")) or me.user_id
        rows = balances.list_balances(target, current_role=me.role, actor_id=me.user_id)
        return jsonify({"success": True, "balances": [balance_json(b) for b in rows]})

    @app.route("/api/leave/balances/history", methods=["GET"], endpoint="leave_balance_history")
    def leave_balance_history():
        me = current_identity()
        target = int_arg("userId", request.args.get("userId")) or me.user_id
        leave_type_id = int_arg("leaveType", request.args.get("leaveType"))
        rows = balances.history(target, current_role=me.role, actor_id=me.user_id, leave_type_id=leave_type_id)
        return jsonify({"success": True, "events": [event_json(e) for e in rows]})

    @app.route("/api/leave-types", methods=["GET"], endpoint="leave_types")
    def leave_types():
        current_identity()
        rows = container.leave_types_repo.list_active()
        return jsonify(
            {
                "success": True,
                "leaveTypes": [{"id": t.leave_type_id, "code": t.code, "name": t.name, "description": t.description} for t in rows],
            }
        )
