from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository


_USER_SELECT = """
    SELECT user_id, first_name, last_name, email, password_hash, role, is_active, created_at
    FROM users
"""


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_USER_SELECT} WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_USER_SELECT} WHERE LOWER(email)=LOWER(%s)", (email.strip(),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        clauses: list[str] = []
        params: list[Any] = []
        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        if is_active is not None:
            clauses.append("is_active=%s")
            params.append(1 if is_active else 0)
        if search:
            like = f"%{search.strip().lower()}%"
            clauses.append("(LOWER(first_name) LIKE %s OR LOWER(last_name) LIKE %s OR LOWER(email) LIKE %s)")
            params.extend([like, like, like])
        where, args = build_where(clauses, params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_USER_SELECT} WHERE {where} ORDER BY last_name, first_name, user_id", args)
            return [_to_user(r) for r in fetchall(cur)]

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET is_active=%s WHERE user_id=%s",
                (1 if is_active else 0, int(user_id)),
            )
            return cur.rowcount > 0

    def set_password_hash(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0
