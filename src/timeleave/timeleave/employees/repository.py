from __future__ import annotations

from typing import Optional, Protocol

from .model import Employee


class EmployeeRepository(Protocol):
    """Read-only port onto the employee directory."""

    def get_by_id(self, user_id: int) -> Optional[Employee]:
        raise NotImplementedError
