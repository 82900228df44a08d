from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection


# Guarded writes lock the parent row (employee, room) and then read its child
# rows without locks; each plain read must see the latest committed data.
LOCKING_ISOLATION = "READ COMMITTED"


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, isolation_level: Optional[str] = None):
    """One connection, one transaction.

    Everything executed on the yielded cursor commits together when the block
    exits normally and rolls back when it raises. Row locks taken with
    `SELECT ... FOR UPDATE` are held until then. `isolation_level` starts the
    transaction explicitly at that level.
    """

    conn = conn_factory.connect()
    try:
        if isolation_level:
            conn.start_transaction(isolation_level=isolation_level)
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def fetch_count(cur, sql: str, params: Sequence[Any] = ()) -> int:
    cur.execute(sql, tuple(params))
    row = fetchone(cur)
    if not row:
        return 0
    return int(next(iter(row.values())) or 0)


def build_where(clauses: List[str], params: List[Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Join filter clauses with AND; an empty filter matches everything."""
    if not clauses:
        return "1=1", tuple(params)
    return " AND ".join(clauses), tuple(params)
