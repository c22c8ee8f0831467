from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from flask import request, session

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .datetime_utils import parse_iso_date


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role


def current_identity() -> Identity:
    """Caller identity from the session established by the HR login flow."""
    if "user_id" not in session:
        raise AuthenticationError("Please log in to continue")
    try:
        role = Role(session.get("role", Role.EMPLOYEE.value))
    except ValueError:
        raise AuthenticationError("Session role is not recognized")
    return Identity(user_id=int(session["user_id"]), role=role)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str, value: Optional[str]) -> Optional[date]:
    v = (value or "").strip()
    if not v:
        return None
    try:
        return parse_iso_date(v)
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def int_arg(name: str, value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def to_json(value: Any) -> Any:
    """Recursively convert dataclass-ish values (dates, decimals, enums) to JSON types."""
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value
