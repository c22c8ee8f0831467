from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import HalfDayType, LeaveStatus
from ..core.exceptions import DuplicatePending
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_decimal
from .model import LeaveRequest, LeaveType
from .repository import LeaveRequestRepository, LeaveTypeRepository

_REQUEST_SELECT = """
    SELECT lr.request_id, lr.user_id, lr.leave_type_id, lr.start_date, lr.end_date, lr.days,
           lr.status, lr.reason, lr.rejection_reason, lr.half_day_type, lr.short_day_time,
           lr.created_at, lr.decided_by, lr.decided_at, lt.name AS leave_type_name
    FROM leave_requests lr
    LEFT JOIN leave_types lt ON lt.leave_type_id = lr.leave_type_id
"""


def _to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        user_id=int(r["user_id"]),
        leave_type_id=int(r["leave_type_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        days=to_decimal(r["days"]),
        status=LeaveStatus(r["status"]),
        reason=r["reason"],
        created_at=r["created_at"],
        rejection_reason=r.get("rejection_reason"),
        half_day_type=HalfDayType(r["half_day_type"]) if r.get("half_day_type") else None,
        short_day_time=r.get("short_day_time"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        leave_type_name=r.get("leave_type_name"),
    )


def _to_leave_type(r: dict) -> LeaveType:
    return LeaveType(
        leave_type_id=int(r["leave_type_id"]),
        code=r["code"],
        name=r["name"],
        description=r.get("description"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLLeaveTypeRepository(LeaveTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_type_id: int) -> Optional[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT leave_type_id, code, name, description, is_active FROM leave_types WHERE leave_type_id=%s",
                (int(leave_type_id),),
            )
            r = fetchone(cur)
            return _to_leave_type(r) if r else None

    def get_by_code(self, code: str) -> Optional[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT leave_type_id, code, name, description, is_active FROM leave_types WHERE code=%s",
                (code.strip().lower(),),
            )
            r = fetchone(cur)
            return _to_leave_type(r) if r else None

    def list_active(self) -> Sequence[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT leave_type_id, code, name, description, is_active FROM leave_types WHERE is_active=1 ORDER BY name"
            )
            return [_to_leave_type(r) for r in fetchall(cur)]


class MySQLLeaveRequestRepository(LeaveRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        leave_type_id: int,
        start_date: date,
        end_date: date,
        days: Decimal,
        reason: str,
        half_day_type: Optional[HalfDayType] = None,
        short_day_time: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO leave_requests(
                        user_id, leave_type_id, start_date, end_date, days, status, reason,
                        half_day_type, short_day_time
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        int(leave_type_id),
                        start_date,
                        end_date,
                        days,
                        LeaveStatus.PENDING.value,
                        reason,
                        half_day_type.value if half_day_type else None,
                        short_day_time,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            # uq_leave_one_pending
            if is_duplicate_key(exc):
                raise DuplicatePending("You already have a pending leave request") from exc
            raise

    def get(self, request_id: int, *, for_update: bool = False) -> Optional[LeaveRequest]:
        sql = _REQUEST_SELECT + " WHERE lr.request_id=%s"
        if for_update:
            sql += " FOR UPDATE"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def find_pending_for_user(self, user_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _REQUEST_SELECT + " WHERE lr.user_id=%s AND lr.status=%s LIMIT 1",
                (int(user_id), LeaveStatus.PENDING.value),
            )
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        clauses = ["1=1"]
        params: list[object] = []
        if user_id is not None:
            clauses.append("lr.user_id=%s")
            params.append(int(user_id))
        if status is not None:
            clauses.append("lr.status=%s")
            params.append(status.value)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _REQUEST_SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY lr.created_at DESC LIMIT %s",
                tuple(params),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def update_status(
        self,
        *,
        request_id: int,
        expected_status: LeaveStatus,
        new_status: LeaveStatus,
        decided_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, decided_by=%s, decided_at=NOW(),
                    rejection_reason=COALESCE(%s, rejection_reason)
                WHERE request_id=%s AND status=%s
                """,
                (new_status.value, int(decided_by), rejection_reason, int(request_id), expected_status.value),
            )
            return cur.rowcount > 0

    def delete(self, request_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM leave_requests WHERE request_id=%s", (int(request_id),))
            return cur.rowcount > 0
