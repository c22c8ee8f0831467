from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class LatePenalty:
    """A half-day (by default) leave deduction caused by excess late arrivals.

    `deducted_days` is what actually left the balance; it is zero when the
    penalty leave type was missing or the balance could not cover it.
    """

    penalty_id: int
    user_id: int
    late_date: date
    clock_in_time: datetime
    time_limit: str
    max_late_days: int
    late_count: int
    penalty_days: Decimal
    deducted_days: Decimal
    reason: str
    created_at: Optional[datetime] = None

    @property
    def deducted(self) -> bool:
        return self.deducted_days > 0
