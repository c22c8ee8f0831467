from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import BalanceEventType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_decimal
from .model import BalanceEvent, LeaveBalance
from .repository import LeaveBalanceRepository

_BALANCE_SELECT = """
    SELECT lb.user_id, lb.leave_type_id, lb.allotted_days, lb.remaining_days,
           lt.code AS leave_type_code, lt.name AS leave_type_name
    FROM leave_balances lb
    JOIN leave_types lt ON lt.leave_type_id = lb.leave_type_id
"""


def _to_balance(r: dict) -> LeaveBalance:
    return LeaveBalance(
        user_id=int(r["user_id"]),
        leave_type_id=int(r["leave_type_id"]),
        allotted_days=to_decimal(r["allotted_days"]),
        remaining_days=to_decimal(r["remaining_days"]),
        leave_type_code=r.get("leave_type_code"),
        leave_type_name=r.get("leave_type_name"),
    )


class MySQLLeaveBalanceRepository(LeaveBalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, user_id: int, leave_type_id: int) -> Optional[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _BALANCE_SELECT + " WHERE lb.user_id=%s AND lb.leave_type_id=%s",
                (int(user_id), int(leave_type_id)),
            )
            r = fetchone(cur)
            return _to_balance(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_BALANCE_SELECT + " WHERE lb.user_id=%s ORDER BY lt.name", (int(user_id),))
            return [_to_balance(r) for r in fetchall(cur)]

    def create(self, *, user_id: int, leave_type_id: int, days: Decimal, allotted_by: Optional[int]) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO leave_balances(user_id, leave_type_id, allotted_days, remaining_days, allotted_by)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(user_id), int(leave_type_id), days, days, allotted_by),
                )
                return True
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                return False
            raise

    def debit(self, *, user_id: int, leave_type_id: int, amount: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET remaining_days = remaining_days - %s
                WHERE user_id=%s AND leave_type_id=%s AND remaining_days >= %s
                """,
                (amount, int(user_id), int(leave_type_id), amount),
            )
            return cur.rowcount > 0

    def credit(self, *, user_id: int, leave_type_id: int, amount: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET remaining_days = remaining_days + %s
                WHERE user_id=%s AND leave_type_id=%s
                """,
                (amount, int(user_id), int(leave_type_id)),
            )
            return cur.rowcount > 0

    def adjust(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        expected_allotted: Decimal,
        new_allotted: Decimal,
        adjusted_by: Optional[int],
    ) -> bool:
        delta = new_allotted - expected_allotted
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET remaining_days = remaining_days + %s, allotted_days = %s, allotted_by = %s
                WHERE user_id=%s AND leave_type_id=%s AND allotted_days = %s AND remaining_days + %s >= 0
                """,
                (delta, new_allotted, adjusted_by, int(user_id), int(leave_type_id), expected_allotted, delta),
            )
            return cur.rowcount > 0

    def add_event(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        event_type: BalanceEventType,
        change_days: Decimal,
        balance_after: Decimal,
        actor_id: Optional[int] = None,
        request_id: Optional[int] = None,
        penalty_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_balance_events(
                    user_id, leave_type_id, event_type, change_days, balance_after,
                    actor_id, request_id, penalty_id, note
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    int(leave_type_id),
                    event_type.value,
                    change_days,
                    balance_after,
                    actor_id,
                    request_id,
                    penalty_id,
                    note,
                ),
            )
            return int(cur.lastrowid)

    def list_events(self, *, user_id: int, leave_type_id: Optional[int] = None, limit: int = 200) -> Sequence[BalanceEvent]:
        clauses = ["user_id=%s"]
        params: list[object] = [int(user_id)]
        if leave_type_id is not None:
            clauses.append("leave_type_id=%s")
            params.append(int(leave_type_id))
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, user_id, leave_type_id, event_type, change_days, balance_after,
                       actor_id, request_id, penalty_id, note, created_at
                FROM leave_balance_events
                WHERE {' AND '.join(clauses)}
                ORDER BY created_at DESC, event_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                BalanceEvent(
                    event_id=int(r["event_id"]),
                    user_id=int(r["user_id"]),
                    leave_type_id=int(r["leave_type_id"]),
                    event_type=BalanceEventType(r["event_type"]),
                    change_days=to_decimal(r["change_days"]),
                    balance_after=to_decimal(r["balance_after"]),
                    created_at=r["created_at"],
                    actor_id=r.get("actor_id"),
                    request_id=r.get("request_id"),
                    penalty_id=r.get("penalty_id"),
                    note=r.get("note"),
                )
                for r in fetchall(cur)
            ]
