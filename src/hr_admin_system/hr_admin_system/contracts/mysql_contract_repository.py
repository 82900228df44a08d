from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ContractStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetch_count, fetchall, fetchone
from .model import Contract, NewContract
from .repository import ContractRepository


_CONTRACT_SELECT = """
    SELECT c.contract_id, c.employee_id, c.contract_number, c.start_date, c.end_date,
           c.hourly_rate, c.currency, c.working_hours_per_week, c.status, c.created_at,
           CONCAT(u.first_name, ' ', u.last_name) AS employee_name
    FROM contracts c
    JOIN employees e ON e.employee_id = c.employee_id
    JOIN users u ON u.user_id = e.user_id
"""


def _to_contract(r: dict) -> Contract:
    return Contract(
        contract_id=int(r["contract_id"]),
        employee_id=int(r["employee_id"]),
        contract_number=r["contract_number"],
        start_date=r["start_date"],
        end_date=r.get("end_date"),
        hourly_rate=Decimal(str(r["hourly_rate"])),
        currency=r["currency"],
        working_hours_per_week=int(r["working_hours_per_week"]),
        status=ContractStatus(r["status"]),
        created_at=r.get("created_at"),
        employee_name=r.get("employee_name"),
    )


class MySQLContractRepository(ContractRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_CONTRACT_SELECT} WHERE c.contract_id=%s", (int(contract_id),))
            r = fetchone(cur)
            return _to_contract(r) if r else None

    def list_for_employee(self, employee_id: int) -> Sequence[Contract]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_CONTRACT_SELECT} WHERE c.employee_id=%s ORDER BY c.start_date DESC, c.contract_id DESC",
                (int(employee_id),),
            )
            return [_to_contract(r) for r in fetchall(cur)]

    def number_exists(self, contract_number: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, "SELECT COUNT(*) FROM contracts WHERE contract_number=%s", (contract_number,)) > 0

    def create(self, new: NewContract) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO contracts(
                    employee_id, contract_number, start_date, end_date, hourly_rate,
                    currency, working_hours_per_week, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(new.employee_id),
                    new.contract_number,
                    new.start_date,
                    new.end_date,
                    new.hourly_rate,
                    new.currency,
                    int(new.working_hours_per_week),
                    new.status.value,
                ),
            )
            return int(cur.lastrowid)

    def terminate(self, contract_id: int, *, end_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE contracts
                SET status=%s, end_date=COALESCE(end_date, %s)
                WHERE contract_id=%s AND status IN (%s, %s)
                """,
                (
                    ContractStatus.TERMINATED.value,
                    end_date,
                    int(contract_id),
                    ContractStatus.ACTIVE.value,
                    ContractStatus.DRAFT.value,
                ),
            )
            return cur.rowcount > 0
