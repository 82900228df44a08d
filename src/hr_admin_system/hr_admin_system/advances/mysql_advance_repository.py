from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from ..core.enums import AdvanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import AdvanceRequest
from .repository import AdvanceRequestRepository


_REQUEST_SELECT = """
    SELECT r.request_id, r.employee_id, r.amount, r.reason, r.status, r.requested_at,
           r.reviewed_by, r.reviewed_at, r.rejection_reason,
           CONCAT(u.first_name, ' ', u.last_name) AS employee_name,
           CONCAT(rv.first_name, ' ', rv.last_name) AS reviewed_by_name
    FROM advance_requests r
    JOIN employees e ON e.employee_id = r.employee_id
    JOIN users u ON u.user_id = e.user_id
    LEFT JOIN users rv ON rv.user_id = r.reviewed_by
"""


def _to_request(r: dict) -> AdvanceRequest:
    return AdvanceRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        amount=Decimal(str(r["amount"])),
        reason=r.get("reason"),
        status=AdvanceStatus(r["status"]),
        requested_at=r["requested_at"],
        employee_name=r.get("employee_name"),
        reviewed_by=int(r["reviewed_by"]) if r.get("reviewed_by") is not None else None,
        reviewed_by_name=r.get("reviewed_by_name"),
        reviewed_at=r.get("reviewed_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLAdvanceRequestRepository(AdvanceRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, employee_id: int, amount: Decimal, reason: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO advance_requests(employee_id, amount, reason, status)
                VALUES(%s,%s,%s,%s)
                """,
                (int(employee_id), amount, reason, AdvanceStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[AdvanceRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_REQUEST_SELECT} WHERE r.request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_for_employee(self, employee_id: int) -> Sequence[AdvanceRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_REQUEST_SELECT} WHERE r.employee_id=%s ORDER BY r.requested_at DESC, r.request_id DESC",
                (int(employee_id),),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_requests(self, *, status: Optional[AdvanceStatus] = None) -> Sequence[AdvanceRequest]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)
        where, args = build_where(clauses, params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_REQUEST_SELECT} WHERE {where} ORDER BY r.requested_at DESC, r.request_id DESC",
                args,
            )
            return [_to_request(r) for r in fetchall(cur)]

    def decide(
        self,
        *,
        request_id: int,
        status: AdvanceStatus,
        reviewed_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE advance_requests
                SET status=%s, reviewed_by=%s, reviewed_at=NOW(), rejection_reason=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(reviewed_by),
                    rejection_reason,
                    int(request_id),
                    AdvanceStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def count_by_status(self) -> dict[AdvanceStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS n FROM advance_requests GROUP BY status")
            return {AdvanceStatus(r["status"]): int(r["n"]) for r in fetchall(cur)}
