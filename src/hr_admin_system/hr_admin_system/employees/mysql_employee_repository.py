from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetch_count, fetchall, fetchone
from .model import EMPLOYEE_FIELDS, UNIQUE_DOCUMENT_FIELDS, USER_FIELDS, Employee, NewEmployee
from .repository import EmployeeRepository


_EMPLOYEE_SELECT = """
    SELECT e.employee_id, e.user_id, u.first_name, u.last_name, u.email, u.role,
           u.is_active, u.created_at,
           e.tax_id, e.social_security_number, e.id_card_number, e.primary_address,
           e.phone_number, e.nationality, e.birth_date, e.company_name, e.start_date
    FROM employees e
    JOIN users u ON u.user_id = e.user_id
"""


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        user_id=int(r["user_id"]),
        first_name=r["first_name"],
        last_name=r["last_name"],
        email=r["email"],
        role=Role(r["role"]),
        is_active=bool(r["is_active"]),
        tax_id=r.get("tax_id"),
        social_security_number=r.get("social_security_number"),
        id_card_number=r.get("id_card_number"),
        primary_address=r.get("primary_address"),
        phone_number=r.get("phone_number"),
        nationality=r.get("nationality"),
        birth_date=r.get("birth_date"),
        company_name=r.get("company_name"),
        start_date=r.get("start_date"),
        created_at=r.get("created_at"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_EMPLOYEE_SELECT} WHERE e.employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def get_by_user_id(self, user_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_EMPLOYEE_SELECT} WHERE e.user_id=%s", (int(user_id),))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def list_employees(self, *, is_active: Optional[bool] = None, search: Optional[str] = None) -> Sequence[Employee]:
        clauses = ["u.role=%s"]
        params: list[Any] = [Role.EMPLOYEE.value]
        if is_active is not None:
            clauses.append("u.is_active=%s")
            params.append(1 if is_active else 0)
        if search:
            like = f"%{search.strip().lower()}%"
            clauses.append("(LOWER(u.first_name) LIKE %s OR LOWER(u.last_name) LIKE %s OR LOWER(u.email) LIKE %s)")
            params.extend([like, like, like])
        where, args = build_where(clauses, params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_EMPLOYEE_SELECT} WHERE {where} ORDER BY u.last_name, u.first_name, e.employee_id",
                args,
            )
            return [_to_employee(r) for r in fetchall(cur)]

    def document_taken(self, *, field: str, value: str, exclude_employee_id: Optional[int] = None) -> bool:
        if field not in UNIQUE_DOCUMENT_FIELDS:
            raise ValueError(f"Not a unique document field: {field}")
        sql = f"SELECT COUNT(*) FROM employees WHERE {field}=%s"
        params: list[Any] = [value]
        if exclude_employee_id is not None:
            sql += " AND employee_id<>%s"
            params.append(int(exclude_employee_id))
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, sql, params) > 0

    def create(self, new: NewEmployee) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(first_name, last_name, email, password_hash, role, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (new.first_name, new.last_name, new.email, new.password_hash, new.role.value),
            )
            user_id = int(cur.lastrowid)
            cur.execute(
                """
                INSERT INTO employees(
                    user_id, tax_id, social_security_number, id_card_number, primary_address,
                    phone_number, nationality, birth_date, company_name, start_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    new.tax_id,
                    new.social_security_number,
                    new.id_card_number,
                    new.primary_address,
                    new.phone_number,
                    new.nationality,
                    new.birth_date,
                    new.company_name,
                    new.start_date,
                ),
            )
            return int(cur.lastrowid)

    def update(
        self,
        employee_id: int,
        *,
        user_changes: Mapping[str, Any],
        employee_changes: Mapping[str, Any],
    ) -> bool:
        user_cols = [k for k in user_changes if k in USER_FIELDS]
        employee_cols = [k for k in employee_changes if k in EMPLOYEE_FIELDS]

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM employees WHERE employee_id=%s FOR UPDATE", (int(employee_id),))
            row = fetchone(cur)
            if not row:
                return False

            if user_cols:
                assignments = ", ".join(f"{col}=%s" for col in user_cols)
                cur.execute(
                    f"UPDATE users SET {assignments} WHERE user_id=%s",
                    tuple(user_changes[c] for c in user_cols) + (int(row["user_id"]),),
                )
            if employee_cols:
                assignments = ", ".join(f"{col}=%s" for col in employee_cols)
                cur.execute(
                    f"UPDATE employees SET {assignments} WHERE employee_id=%s",
                    tuple(employee_changes[c] for c in employee_cols) + (int(employee_id),),
                )
            return True

    def count_employees(self, *, is_active: Optional[bool] = None) -> int:
        sql = "SELECT COUNT(*) FROM employees e JOIN users u ON u.user_id = e.user_id WHERE u.role=%s"
        params: list[Any] = [Role.EMPLOYEE.value]
        if is_active is not None:
            sql += " AND u.is_active=%s"
            params.append(1 if is_active else 0)
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, sql, params)

    def count_created_since(self, moment: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(
                cur,
                """
                SELECT COUNT(*) FROM employees e
                JOIN users u ON u.user_id = e.user_id
                WHERE u.role=%s AND u.created_at>=%s
                """,
                (Role.EMPLOYEE.value, moment),
            )
