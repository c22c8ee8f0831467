from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol

from .model import LatePenalty


class PenaltyRepository(Protocol):
    def get_for_user_and_date(self, user_id: int, late_date: date) -> Optional[LatePenalty]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        late_date: date,
        clock_in_time: datetime,
        time_limit: str,
        max_late_days: int,
        late_count: int,
        penalty_days: Decimal,
        reason: str,
    ) -> Optional[int]:
        """Insert with nothing deducted yet; None when the day already has a penalty."""

        raise NotImplementedError

    def set_deducted(self, penalty_id: int, deducted_days: Decimal) -> bool:
        raise NotImplementedError
