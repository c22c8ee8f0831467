from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import mysql.connector

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, is_duplicate_key, to_decimal
from .model import LatePenalty
from .repository import PenaltyRepository


class MySQLPenaltyRepository(PenaltyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, late_date: date) -> Optional[LatePenalty]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT penalty_id, user_id, late_date, clock_in_time, time_limit, max_late_days,
                       late_count, penalty_days, deducted_days, reason, created_at
                FROM late_penalties
                WHERE user_id=%s AND late_date=%s
                """,
                (int(user_id), late_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LatePenalty(
                penalty_id=int(r["penalty_id"]),
                user_id=int(r["user_id"]),
                late_date=r["late_date"],
                clock_in_time=r["clock_in_time"],
                time_limit=r["time_limit"],
                max_late_days=int(r["max_late_days"]),
                late_count=int(r["late_count"]),
                penalty_days=to_decimal(r["penalty_days"]),
                deducted_days=to_decimal(r["deducted_days"]),
                reason=r["reason"],
                created_at=r.get("created_at"),
            )

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO late_penalties(
                        user_id, late_date, clock_in_time, time_limit, max_late_days,
                        late_count, penalty_days, deducted_days, reason
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s)
                    """,
                    (
                        int(user_id),
                        late_date,
                        clock_in_time,
                        time_limit,
                        int(max_late_days),
                        int(late_count),
                        penalty_days,
                        reason,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                return None
            raise

    def set_deducted(self, penalty_id: int, deducted_days: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE late_penalties SET deducted_days=%s WHERE penalty_id=%s",
                (deducted_days, int(penalty_id)),
            )
            return cur.rowcount > 0
