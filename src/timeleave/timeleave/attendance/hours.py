from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .model import AttendanceRecord


class WorkedTimeCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked_seconds(self, record: AttendanceRecord) -> int:
        raise NotImplementedError


class SessionDurationCalculator(WorkedTimeCalculator):
    """Standard rule: out - in for closed sessions, 0 while still open."""

    def worked_seconds(self, record: AttendanceRecord) -> int:
        return record.duration_seconds or 0


@dataclass(frozen=True)
class WeeklyHours:
    week_start: date
    week_end: date
    total_hours: float
    days_worked: int


def summarize_week(
    records: Iterable[AttendanceRecord],
    *,
    week_start: date,
    calculator: WorkedTimeCalculator | None = None,
) -> WeeklyHours:
    """Sum closed sessions from Monday `week_start` through Sunday."""
    calculator = calculator or SessionDurationCalculator()
    week_end = week_start + timedelta(days=6)

    total_seconds = 0
    days_worked = 0
    for r in records:
        if r.is_open or not (week_start <= r.work_date <= week_end):
            continue
        total_seconds += calculator.worked_seconds(r)
        days_worked += 1

    return WeeklyHours(
        week_start=week_start,
        week_end=week_end,
        total_hours=round(total_seconds / 3600, 1),
        days_worked=days_worked,
    )
