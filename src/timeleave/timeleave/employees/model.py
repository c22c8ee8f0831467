from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee record owned by the HR directory.

    `clock_in_time` is the raw per-employee override: an "HH:MM" deadline,
    the "N/R" sentinel, or None to use the organization default.
    `weekly_off_days` holds weekday numbers (Monday=0 .. Sunday=6).
    """

    user_id: int
    full_name: str
    role: Role
    clock_in_time: Optional[str] = None
    weekly_off_days: Tuple[int, ...] = ()
    is_active: bool = True
