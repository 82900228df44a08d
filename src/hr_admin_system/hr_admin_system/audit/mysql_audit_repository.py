from __future__ import annotations

from typing import Any, Sequence

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetch_count, fetchall
from .model import AuditFilter, AuditLogEntry, NewAuditEntry
from .repository import AuditRepository


_COLUMNS = """
    audit_id, entity_type, entity_id, action, user_id, user_email, user_role,
    description, old_value, new_value, ip_address, created_at
"""


def _to_entry(r: dict) -> AuditLogEntry:
    return AuditLogEntry(
        audit_id=int(r["audit_id"]),
        entity_type=r["entity_type"],
        entity_id=int(r["entity_id"]) if r.get("entity_id") is not None else None,
        action=AuditAction(r["action"]),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        user_email=r.get("user_email"),
        user_role=r.get("user_role"),
        description=r.get("description"),
        old_value=r.get("old_value"),
        new_value=r.get("new_value"),
        ip_address=r.get("ip_address"),
        created_at=r["created_at"],
    )


def _filter_sql(flt: AuditFilter) -> tuple[str, tuple[Any, ...]]:
    clauses: list[str] = []
    params: list[Any] = []
    if flt.entity_type:
        clauses.append("entity_type=%s")
        params.append(flt.entity_type)
    if flt.action is not None:
        clauses.append("action=%s")
        params.append(flt.action.value)
    if flt.user_id is not None:
        clauses.append("user_id=%s")
        params.append(int(flt.user_id))
    if flt.start is not None:
        clauses.append("created_at>=%s")
        params.append(flt.start)
    if flt.end is not None:
        clauses.append("created_at<=%s")
        params.append(flt.end)
    return build_where(clauses, params)


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, entry: NewAuditEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(
                    entity_type, entity_id, action, user_id, user_email, user_role,
                    description, old_value, new_value, ip_address
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.entity_type,
                    entry.entity_id,
                    entry.action.value,
                    entry.user_id,
                    entry.user_email,
                    entry.user_role,
                    entry.description,
                    entry.old_value,
                    entry.new_value,
                    entry.ip_address,
                ),
            )
            return int(cur.lastrowid)

    def search(self, flt: AuditFilter, *, offset: int, limit: int) -> Sequence[AuditLogEntry]:
        where, params = _filter_sql(flt)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM audit_logs
                WHERE {where}
                ORDER BY created_at DESC, audit_id DESC
                LIMIT %s OFFSET %s
                """,
                params + (int(limit), int(offset)),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def count(self, flt: AuditFilter) -> int:
        where, params = _filter_sql(flt)
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, f"SELECT COUNT(*) AS n FROM audit_logs WHERE {where}", params)

    def list_for_entity(self, *, entity_type: str, entity_id: int) -> Sequence[AuditLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM audit_logs
                WHERE entity_type=%s AND entity_id=%s
                ORDER BY created_at DESC, audit_id DESC
                """,
                (entity_type, int(entity_id)),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def count_by_action(self) -> dict[AuditAction, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT action, COUNT(*) AS n FROM audit_logs GROUP BY action")
            out: dict[AuditAction, int] = {}
            for r in fetchall(cur):
                try:
                    out[AuditAction(r["action"])] = int(r["n"])
                except ValueError:
                    continue
            return out
