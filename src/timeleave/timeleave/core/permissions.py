"""Single capability check consulted by every service.

Rules:
- Employees act on their own records only.
- HR and Admin may decide, delete and allot leave, read everything and edit
  organization settings.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .enums import Role
from .exceptions import AuthorizationError


class Action(str, Enum):
    ATTENDANCE_WRITE_SELF = "attendance.write_self"
    ATTENDANCE_VIEW = "attendance.view"
    ATTENDANCE_VIEW_ALL = "attendance.view_all"
    LEAVE_SUBMIT = "leave.submit"
    LEAVE_VIEW = "leave.view"
    LEAVE_VIEW_ALL = "leave.view_all"
    LEAVE_DECIDE = "leave.decide"
    LEAVE_DELETE = "leave.delete"
    LEAVE_ALLOT = "leave.allot"
    SETTINGS_READ = "settings.read"
    SETTINGS_WRITE = "settings.write"


_MANAGERS = frozenset({Role.ADMIN, Role.HR})

# Actions any authenticated role may perform on its own records.
_SELF_SERVICE = frozenset(
    {
        Action.ATTENDANCE_WRITE_SELF,
        Action.ATTENDANCE_VIEW,
        Action.LEAVE_SUBMIT,
        Action.LEAVE_VIEW,
        Action.SETTINGS_READ,
    }
)

_MANAGER_ONLY = frozenset(
    {
        Action.ATTENDANCE_VIEW_ALL,
        Action.LEAVE_VIEW_ALL,
        Action.LEAVE_DECIDE,
        Action.LEAVE_DELETE,
        Action.LEAVE_ALLOT,
        Action.SETTINGS_WRITE,
    }
)


def can(
    role: Role,
    action: Action,
    *,
    actor_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
) -> bool:
    role = Role(role)

    if action in _MANAGER_ONLY:
        return role in _MANAGERS

    if action in _SELF_SERVICE:
        if action == Action.SETTINGS_READ or target_user_id is None:
            return True
        if action in {Action.ATTENDANCE_VIEW, Action.LEAVE_VIEW} and role in _MANAGERS:
            return True
        return actor_id is not None and int(actor_id) == int(target_user_id)

    return False


def require(
    role: Role,
    action: Action,
    *,
    actor_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
) -> None:
    if not can(role, action, actor_id=actor_id, target_user_id=target_user_id):
        raise AuthorizationError("You do not have permission for this action")
