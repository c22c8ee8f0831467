from __future__ import annotations

import logging
from datetime import time
from typing import Optional

from ..common.datetime_utils import format_hhmm, parse_hhmm
from ..common.validators import require_non_negative_int
from ..core.constants import DEFAULT_MAX_LATE_DAYS, SETTING_CLOCK_IN_TIME_LIMIT, SETTING_MAX_LATE_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..core.permissions import Action, require
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class SettingsService:
    """Organization default clock-in deadline and late-arrival grace threshold."""

    def __init__(self, settings: SettingsRepository):
        self._settings = settings

    def get_clock_in_time_limit(self) -> Optional[time]:
        return parse_hhmm(self._settings.get_value(SETTING_CLOCK_IN_TIME_LIMIT))

    def set_clock_in_time_limit(self, *, current_role: Role, actor_id: int, value: str) -> Optional[time]:
        """Store a new default deadline ("HH:MM"); an empty value clears it."""
        require(current_role, Action.SETTINGS_WRITE)

        raw = (value or "").strip()
        parsed = parse_hhmm(raw)
        if raw and parsed is None:
            raise ValidationError("Clock-in time limit must use HH:MM format")

        stored = format_hhmm(parsed) if parsed else ""
        self._settings.set_value(SETTING_CLOCK_IN_TIME_LIMIT, stored, updated_by=int(actor_id))
        logger.info("Default clock-in time limit set to %r by user=%s", stored, actor_id)
        return parsed

    def get_max_late_days(self) -> int:
        raw = self._settings.get_value(SETTING_MAX_LATE_DAYS)
        if raw is None or not str(raw).strip():
            return DEFAULT_MAX_LATE_DAYS
        try:
            return max(int(raw), 0)
        except ValueError:
            logger.warning("Ignoring malformed %s setting %r", SETTING_MAX_LATE_DAYS, raw)
            return DEFAULT_MAX_LATE_DAYS

    def set_max_late_days(self, *, current_role: Role, actor_id: int, value) -> int:
        require(current_role, Action.SETTINGS_WRITE)

        days = require_non_negative_int(value, "maxLateDays")
        self._settings.set_value(SETTING_MAX_LATE_DAYS, str(days), updated_by=int(actor_id))
        logger.info("Max late days set to %s by user=%s", days, actor_id)
        return days
