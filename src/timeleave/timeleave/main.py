from __future__ import annotations

import atexit
import importlib
import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .common.datetime_utils import parse_hhmm
from .core.constants import (
    DEFAULT_ARM_WINDOW_MINUTES,
    DEFAULT_AUTO_CLOCK_OUT_CUTOFF,
    DEFAULT_CHECK_SECONDS,
    DEFAULT_PENALTY_LEAVE_DAYS,
    DEFAULT_PENALTY_LEAVE_TYPE,
)
from .core.exceptions import (
    AlreadyClockedIn,
    AuthenticationError,
    AuthorizationError,
    DomainError,
    DuplicatePending,
    InvalidTransition,
    NotFoundError,
)
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .leaves.controller import register as register_leaves
from .settings.controller import register as register_settings

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (AlreadyClockedIn, 409),
    (DuplicatePending, 409),
    (InvalidTransition, 409),
)


def status_for(exc: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def _container_options(settings) -> dict:
    cutoff_raw = getattr(settings, "AUTO_CLOCK_OUT_CUTOFF", None)
    cutoff = parse_hhmm(cutoff_raw) if cutoff_raw else DEFAULT_AUTO_CLOCK_OUT_CUTOFF
    if cutoff is None:
        raise ValueError(f"AUTO_CLOCK_OUT_CUTOFF must be HH:MM, got {cutoff_raw!r}")

    return {
        "cutoff": cutoff,
        "arm_window_minutes": int(getattr(settings, "AUTO_CLOCK_OUT_ARM_WINDOW_MINUTES", DEFAULT_ARM_WINDOW_MINUTES)),
        "check_seconds": int(getattr(settings, "AUTO_CLOCK_OUT_CHECK_SECONDS", DEFAULT_CHECK_SECONDS)),
        "block_submit_on_insufficient_balance": bool(getattr(settings, "BLOCK_SUBMIT_ON_INSUFFICIENT_BALANCE", True)),
        "penalty_days": Decimal(str(getattr(settings, "PENALTY_LEAVE_DAYS", DEFAULT_PENALTY_LEAVE_DAYS))),
        "penalty_leave_type": str(getattr(settings, "PENALTY_LEAVE_TYPE", DEFAULT_PENALTY_LEAVE_TYPE)),
    }


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = status_for(exc)
        logger.info("%s -> %s %s: %s", type(exc).__name__, status, exc.code, exc)
        body = {"success": False, "code": exc.code, "message": str(exc)}
        current_status = getattr(exc, "current_status", None)
        if current_status is not None:
            body["currentStatus"] = current_status.value.lower()
        return jsonify(body), status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "code": exc.name.upper().replace(" ", "_"), "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error")
        return jsonify({"success": False, "code": "SERVER_ERROR", "message": "Server error"}), 500


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting timeleave (settings=%s)", settings_module)

    if container is None:
        auto_init_db = bool(getattr(settings, "AUTO_INIT_DB", False))
        auto_seed_db = bool(getattr(settings, "AUTO_SEED_DB", False))
        if auto_init_db:
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if auto_seed_db:
            seed_path = Path(__file__).resolve().parents[3] / "database" / "seed.sql"
            apply_seed_sql(db_config, seed_path=seed_path)
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, **_container_options(settings))

        if bool(getattr(settings, "AUTO_CLOCK_OUT_ENABLED", True)):
            container.auto_clock_out.start()
            atexit.register(container.auto_clock_out.shutdown)

    app.extensions["timeleave"] = container

    _register_error_handlers(app)
    register_attendance(app, container)
    register_leaves(app, container)
    register_settings(app, container)

    return app
