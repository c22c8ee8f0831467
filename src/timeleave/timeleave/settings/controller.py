from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import format_hhmm
from ..common.http import current_identity, json_body
from ..core.permissions import Action, require
from ..container import Container


def register(app: Flask, container: Container) -> None:
    settings = container.settings_service

    @app.route("/api/settings/clock-in-time-limit", methods=["GET"], endpoint="get_clock_in_time_limit")
    def get_clock_in_time_limit():
        me = current_identity()
        require(me.role, Action.SETTINGS_READ)
        limit = settings.get_clock_in_time_limit()
        return jsonify({"success": True, "timeLimit": format_hhmm(limit) if limit else ""})

    @app.route("/api/settings/clock-in-time-limit", methods=["POST"], endpoint="set_clock_in_time_limit")
    def set_clock_in_time_limit():
        me = current_identity()
        value = str(json_body().get("timeLimit") or "")
        limit = settings.set_clock_in_time_limit(current_role=me.role, actor_id=me.user_id, value=value)
        return jsonify({"success": True, "timeLimit": format_hhmm(limit) if limit else ""})

    @app.route("/api/settings/max-late-days", methods=["GET"], endpoint="get_max_late_days")
    def get_max_late_days():
        me = current_identity()
        require(me.role, Action.SETTINGS_READ)
        return jsonify({"success": True, "maxLateDays": settings.get_max_late_days()})

    @app.route("/api/settings/max-late-days", methods=["POST"], endpoint="set_max_late_days")
    def set_max_late_days():
        me = current_identity()
        days = settings.set_max_late_days(current_role=me.role, actor_id=me.user_id, value=json_body().get("maxLateDays"))
        return jsonify({"success": True, "maxLateDays": days})
