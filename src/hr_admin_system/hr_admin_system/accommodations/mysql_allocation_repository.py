from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import AllocationStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import LOCKING_ISOLATION, db_cursor, fetch_count, fetchall, fetchone
from .model import AllocationOutcome, AllocationResult, RoomAllocation, RoomOccupant
from .repository import AllocationRepository


_ACTIVE = AllocationStatus.ACTIVE.value

_ALLOCATION_SELECT = """
    SELECT al.allocation_id, al.room_id, al.employee_id, al.check_in_date,
           al.check_out_date, al.status, al.created_at,
           r.room_number, a.name AS accommodation_name,
           CONCAT(u.first_name, ' ', u.last_name) AS employee_name
    FROM room_allocations al
    JOIN rooms r ON r.room_id = al.room_id
    JOIN accommodations a ON a.accommodation_id = r.accommodation_id
    JOIN employees e ON e.employee_id = al.employee_id
    JOIN users u ON u.user_id = e.user_id
"""


def _to_allocation(r: dict) -> RoomAllocation:
    return RoomAllocation(
        allocation_id=int(r["allocation_id"]),
        room_id=int(r["room_id"]),
        employee_id=int(r["employee_id"]),
        check_in_date=r["check_in_date"],
        check_out_date=r.get("check_out_date"),
        status=AllocationStatus(r["status"]),
        created_at=r.get("created_at"),
        room_number=r.get("room_number"),
        accommodation_name=r.get("accommodation_name"),
        employee_name=r.get("employee_name"),
    )


class MySQLAllocationRepository(AllocationRepository):
    """Room allocations.

    The write paths lock the employee row first and the target room row second
    (`SELECT ... FOR UPDATE`), and keep every check and write inside one
    transaction, so capacity and one-active-allocation rules hold at commit.
    Allocation rows themselves are never locked by a read: every insert goes
    through both parent locks, so the parents alone serialize the writers and
    two employees swapping rooms never wait on each other.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, allocation_id: int) -> Optional[RoomAllocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_ALLOCATION_SELECT} WHERE al.allocation_id=%s", (int(allocation_id),))
            r = fetchone(cur)
            return _to_allocation(r) if r else None

    def list_active_for_employee(self, employee_id: int) -> Sequence[RoomAllocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_ALLOCATION_SELECT} WHERE al.employee_id=%s AND al.status=%s ORDER BY al.allocation_id",
                (int(employee_id), _ACTIVE),
            )
            return [_to_allocation(r) for r in fetchall(cur)]

    def list_for_employee(self, employee_id: int) -> Sequence[RoomAllocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_ALLOCATION_SELECT}
                WHERE al.employee_id=%s
                ORDER BY al.check_in_date DESC, al.allocation_id ASC
                """,
                (int(employee_id),),
            )
            return [_to_allocation(r) for r in fetchall(cur)]

    def list_occupants(self, room_id: int) -> Sequence[RoomOccupant]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT al.allocation_id, al.employee_id, al.check_in_date,
                       CONCAT(u.first_name, ' ', u.last_name) AS employee_name,
                       e.company_name, e.phone_number, u.email
                FROM room_allocations al
                JOIN employees e ON e.employee_id = al.employee_id
                JOIN users u ON u.user_id = e.user_id
                WHERE al.room_id=%s AND al.status=%s
                ORDER BY al.check_in_date, al.allocation_id
                """,
                (int(room_id), _ACTIVE),
            )
            return [
                RoomOccupant(
                    allocation_id=int(r["allocation_id"]),
                    employee_id=int(r["employee_id"]),
                    employee_name=r["employee_name"],
                    company_name=r.get("company_name"),
                    check_in_date=r["check_in_date"],
                    phone_number=r.get("phone_number"),
                    email=r.get("email"),
                )
                for r in fetchall(cur)
            ]

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, "SELECT COUNT(*) FROM room_allocations WHERE status=%s", (_ACTIVE,))

    def count_active_by_room(self) -> dict[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT room_id, COUNT(*) AS n FROM room_allocations WHERE status=%s GROUP BY room_id",
                (_ACTIVE,),
            )
            return {int(r["room_id"]): int(r["n"]) for r in fetchall(cur)}

    def count_check_ins_since(self, day: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, "SELECT COUNT(*) FROM room_allocations WHERE check_in_date>=%s", (day,))

    # -------- Atomic writes --------
    @staticmethod
    def _lock_employee(cur, employee_id: int) -> Optional[dict]:
        cur.execute(
            """
            SELECT e.employee_id, u.is_active
            FROM employees e
            JOIN users u ON u.user_id = e.user_id
            WHERE e.employee_id=%s
            FOR UPDATE
            """,
            (int(employee_id),),
        )
        return fetchone(cur)

    @staticmethod
    def _lock_room(cur, room_id: int) -> Optional[dict]:
        cur.execute("SELECT room_id, capacity FROM rooms WHERE room_id=%s FOR UPDATE", (int(room_id),))
        return fetchone(cur)

    @staticmethod
    def _active_for_employee(cur, employee_id: int) -> list[dict]:
        cur.execute(
            """
            SELECT al.allocation_id, al.room_id, r.room_number
            FROM room_allocations al
            JOIN rooms r ON r.room_id = al.room_id
            WHERE al.employee_id=%s AND al.status=%s
            ORDER BY al.allocation_id
            """,
            (int(employee_id), _ACTIVE),
        )
        return fetchall(cur)

    @staticmethod
    def _room_is_full(cur, room: dict) -> bool:
        occupancy = fetch_count(
            cur,
            "SELECT COUNT(*) FROM room_allocations WHERE room_id=%s AND status=%s",
            (int(room["room_id"]), _ACTIVE),
        )
        return occupancy >= int(room["capacity"])

    @staticmethod
    def _insert_active(cur, *, room_id: int, employee_id: int, check_in_date: date) -> int:
        cur.execute(
            """
            INSERT INTO room_allocations(room_id, employee_id, check_in_date, status)
            VALUES(%s,%s,%s,%s)
            """,
            (int(room_id), int(employee_id), check_in_date, _ACTIVE),
        )
        return int(cur.lastrowid)

    def create_active(self, *, room_id: int, employee_id: int, check_in_date: date) -> AllocationResult:
        with db_cursor(self._conn_factory, isolation_level=LOCKING_ISOLATION) as (_, cur):
            employee = self._lock_employee(cur, employee_id)
            if not employee:
                return AllocationResult(AllocationOutcome.EMPLOYEE_NOT_FOUND)
            if not bool(employee["is_active"]):
                return AllocationResult(AllocationOutcome.EMPLOYEE_INACTIVE)

            room = self._lock_room(cur, room_id)
            if not room:
                return AllocationResult(AllocationOutcome.ROOM_NOT_FOUND)

            current = self._active_for_employee(cur, employee_id)
            if current:
                return AllocationResult(
                    AllocationOutcome.EMPLOYEE_ALREADY_ALLOCATED,
                    blocking_room_number=current[0]["room_number"],
                )

            if self._room_is_full(cur, room):
                return AllocationResult(AllocationOutcome.ROOM_FULL)

            allocation_id = self._insert_active(
                cur, room_id=room_id, employee_id=employee_id, check_in_date=check_in_date
            )
            return AllocationResult(AllocationOutcome.CREATED, allocation_id=allocation_id)

    def check_out(self, *, allocation_id: int, check_out_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE room_allocations
                SET status=%s, check_out_date=%s
                WHERE allocation_id=%s AND status=%s
                """,
                (AllocationStatus.CHECKED_OUT.value, check_out_date, int(allocation_id), _ACTIVE),
            )
            return cur.rowcount > 0

    def reassign(self, *, employee_id: int, room_id: Optional[int], on_date: date) -> AllocationResult:
        with db_cursor(self._conn_factory, isolation_level=LOCKING_ISOLATION) as (_, cur):
            employee = self._lock_employee(cur, employee_id)
            if not employee:
                return AllocationResult(AllocationOutcome.EMPLOYEE_NOT_FOUND)

            current = self._active_for_employee(cur, employee_id)
            if room_id is not None and current and int(current[0]["room_id"]) == int(room_id):
                return AllocationResult(AllocationOutcome.UNCHANGED, allocation_id=int(current[0]["allocation_id"]))

            room = None
            if room_id is not None:
                if not bool(employee["is_active"]):
                    return AllocationResult(AllocationOutcome.EMPLOYEE_INACTIVE)
                room = self._lock_room(cur, room_id)
                if not room:
                    return AllocationResult(AllocationOutcome.ROOM_NOT_FOUND)
                if self._room_is_full(cur, room):
                    return AllocationResult(AllocationOutcome.ROOM_FULL)

            if not current and room is None:
                return AllocationResult(AllocationOutcome.UNCHANGED)

            checked_out_id: Optional[int] = None
            if current:
                checked_out_id = int(current[0]["allocation_id"])
                cur.execute(
                    """
                    UPDATE room_allocations
                    SET status=%s, check_out_date=%s
                    WHERE allocation_id=%s AND status=%s
                    """,
                    (AllocationStatus.CHECKED_OUT.value, on_date, checked_out_id, _ACTIVE),
                )

            new_id: Optional[int] = None
            if room is not None:
                new_id = self._insert_active(cur, room_id=int(room_id), employee_id=employee_id, check_in_date=on_date)

            return AllocationResult(
                AllocationOutcome.CREATED if new_id else AllocationOutcome.CHECKED_OUT,
                allocation_id=new_id,
                checked_out_allocation_id=checked_out_id,
            )
