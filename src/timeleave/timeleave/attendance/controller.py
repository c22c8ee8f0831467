from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import current_identity, date_arg, int_arg, json_body, to_json
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AttendanceRecord


def record_json(r: AttendanceRecord) -> dict:
    duration = r.duration_seconds
    return to_json(
        {
            "id": r.attendance_id,
            "userId": r.user_id,
            "date": r.work_date,
            "clockIn": r.check_in_time,
            "clockOut": r.check_out_time,
            "autoClockOut": r.auto_clock_out,
            "status": r.status,
            "note": r.note,
            "durationSeconds": duration,
            "hoursWorked": round(duration / 3600, 2) if duration is not None else None,
        }
    )


def register(app: Flask, container: Container) -> None:
    ledger = container.attendance_ledger

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_action")
    def attendance_action():
        me = current_identity()
        action = str(json_body().get("action") or "").strip()

        if action == "clockIn":
            result = ledger.clock_in(me.user_id, current_role=me.role, actor_id=me.user_id)
            payload = {
                "success": True,
                "attendance": record_json(result.record),
                "late": result.late,
                "timeLimit": result.deadline,
            }
            if result.penalty is not None:
                payload["penalty"] = {
                    "lateArrivalCount": result.penalty.late_count,
                    "deductedDays": float(result.penalty.deducted_days),
                    "reason": result.penalty.reason,
                }
            return jsonify(payload), 201

        if action == "clockOut":
            record = ledger.clock_out(me.user_id, current_role=me.role, actor_id=me.user_id)
            return jsonify({"success": True, "attendance": record_json(record)})

        raise ValidationError("action must be 'clockIn' or 'clockOut'")

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_query")
    def attendance_query():
        me = current_identity()
        target = int_arg("userId", request.args.get("userId")) or me.user_id
        day = date_arg("date", request.args.get("date"))
        start = date_arg("start", request.args.get("start"))
        end = date_arg("end", request.args.get("end"))

        if day is not None:
            record = ledger.query(target, day, current_role=me.role, actor_id=me.user_id)
            return jsonify({"success": True, "attendance": record_json(record) if record else None})

        if start is not None or end is not None:
            if start is None or end is None:
                raise ValidationError("start and end must be given together")
            everyone = request.args.get("all", "").lower() in {"1", "true", "yes"}
            rows = ledger.query_range(
                None if everyone else target,
                start,
                end,
                current_role=me.role,
                actor_id=me.user_id,
            )
            return jsonify({"success": True, "attendance": [record_json(r) for r in rows]})

        rows = ledger.recent(target, current_role=me.role, actor_id=me.user_id)
        return jsonify({"success": True, "attendance": [record_json(r) for r in rows]})

    @app.route("/api/attendance/weekly-hours", methods=["GET"], endpoint="attendance_weekly_hours")
    def attendance_weekly_hours():
        me = current_identity()
        week = ledger.weekly_hours(me.user_id, current_role=me.role, actor_id=me.user_id)
        return jsonify(
            {
                "success": True,
                "weekStart": week.week_start.isoformat(),
                "weekEnd": week.week_end.isoformat(),
                "weeklyHours": week.total_hours,
                "daysWorked": week.days_worked,
            }
        )

    @app.route("/api/attendance/penalty", methods=["GET"], endpoint="attendance_penalty")
    def attendance_penalty():
        me = current_identity()
        target = int_arg("userId", request.args.get("userId")) or me.user_id
        day = date_arg("date", request.args.get("date")) or now_local().date()

        summary = container.late_arrival_policy.get_for_day(target, day, current_role=me.role, actor_id=me.user_id)
        late = [{"date": a.work_date.isoformat(), "clockInTime": a.clock_in} for a in summary.late_arrivals]
        if summary.penalty is None:
            return jsonify({"success": True, "hasPenalty": False, "lateArrivals": late, "maxLateDays": summary.max_late_days})

        p = summary.penalty
        return jsonify(
            {
                "success": True,
                "hasPenalty": True,
                "penalty": to_json(
                    {
                        "id": p.penalty_id,
                        "date": p.late_date,
                        "clockInTime": p.clock_in_time,
                        "timeLimit": p.time_limit,
                        "lateArrivalCount": p.late_count,
                        "penaltyDays": p.penalty_days,
                        "deductedDays": p.deducted_days,
                        "reason": p.reason,
                    }
                ),
                "lateArrivals": late,
                "maxLateDays": summary.max_late_days,
            }
        )
