from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..common.datetime_utils import parse_hhmm
from ..core.constants import NO_RESTRICTION
from ..employees.repository import EmployeeRepository
from ..settings.service import SettingsService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClockInResolution:
    has_restriction: bool
    deadline: Optional[time] = None


UNRESTRICTED = ClockInResolution(has_restriction=False)


class ClockInPolicy:
    """Resolve the clock-in deadline that applies to an employee on a given day.

    Precedence: the "N/R" override disables the check, an explicit "HH:MM"
    override wins next, and the organization default applies otherwise. No
    configured default means no restriction.
    """

    def __init__(self, employees: EmployeeRepository, settings: SettingsService):
        self._employees = employees
        self._settings = settings

    def resolve(self, user_id: int, day: date) -> ClockInResolution:
        employee = self._employees.get_by_id(int(user_id))
        override = ((employee.clock_in_time if employee else None) or "").strip()

        if override.upper() == NO_RESTRICTION:
            return UNRESTRICTED

        if override:
            deadline = parse_hhmm(override)
            if deadline is not None:
                return ClockInResolution(has_restriction=True, deadline=deadline)
            logger.warning("Ignoring malformed clock-in override %r for user=%s", override, user_id)

        default = self._settings.get_clock_in_time_limit()
        if default is None:
            return UNRESTRICTED
        return ClockInResolution(has_restriction=True, deadline=default)
