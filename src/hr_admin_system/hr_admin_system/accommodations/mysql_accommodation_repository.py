from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AllocationStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import LOCKING_ISOLATION, db_cursor, fetch_count, fetchall, fetchone
from .model import Accommodation, Room, RoomChangeOutcome, RoomChangeResult
from .repository import AccommodationRepository, RoomRepository


_ACCOMMODATION_SELECT = """
    SELECT a.accommodation_id, a.name, a.address, a.manager_contact,
           COALESCE(SUM(r.capacity), 0) AS total_capacity,
           COUNT(r.room_id) AS room_count
    FROM accommodations a
    LEFT JOIN rooms r ON r.accommodation_id = a.accommodation_id
"""

_ROOM_SELECT = """
    SELECT r.room_id, r.accommodation_id, r.room_number, r.capacity,
           a.name AS accommodation_name
    FROM rooms r
    JOIN accommodations a ON a.accommodation_id = r.accommodation_id
"""


def _to_accommodation(r: dict) -> Accommodation:
    return Accommodation(
        accommodation_id=int(r["accommodation_id"]),
        name=r["name"],
        address=r.get("address"),
        manager_contact=r.get("manager_contact"),
        total_capacity=int(r.get("total_capacity") or 0),
        room_count=int(r.get("room_count") or 0),
    )


def _to_room(r: dict) -> Room:
    return Room(
        room_id=int(r["room_id"]),
        accommodation_id=int(r["accommodation_id"]),
        room_number=r["room_number"],
        capacity=int(r["capacity"]),
        accommodation_name=r.get("accommodation_name"),
    )


class MySQLAccommodationRepository(AccommodationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Accommodation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_ACCOMMODATION_SELECT}
                GROUP BY a.accommodation_id, a.name, a.address, a.manager_contact
                ORDER BY a.name
                """
            )
            return [_to_accommodation(r) for r in fetchall(cur)]

    def get_by_id(self, accommodation_id: int) -> Optional[Accommodation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_ACCOMMODATION_SELECT}
                WHERE a.accommodation_id=%s
                GROUP BY a.accommodation_id, a.name, a.address, a.manager_contact
                """,
                (int(accommodation_id),),
            )
            r = fetchone(cur)
            return _to_accommodation(r) if r else None

    def create(self, *, name: str, address: Optional[str], manager_contact: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO accommodations(name, address, manager_contact) VALUES(%s,%s,%s)",
                (name, address, manager_contact),
            )
            return int(cur.lastrowid)

    def update(
        self,
        accommodation_id: int,
        *,
        name: str,
        address: Optional[str],
        manager_contact: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE accommodations
                SET name=%s, address=%s, manager_contact=%s
                WHERE accommodation_id=%s
                """,
                (name, address, manager_contact, int(accommodation_id)),
            )
            # MySQL reports 0 affected rows when the values did not change.
            return cur.rowcount > 0 or self._exists(cur, accommodation_id)

    @staticmethod
    def _exists(cur, accommodation_id: int) -> bool:
        return fetch_count(cur, "SELECT COUNT(*) FROM accommodations WHERE accommodation_id=%s", (int(accommodation_id),)) > 0


class MySQLRoomRepository(RoomRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, room_id: int) -> Optional[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_ROOM_SELECT} WHERE r.room_id=%s", (int(room_id),))
            r = fetchone(cur)
            return _to_room(r) if r else None

    def list_for_accommodation(self, accommodation_id: int) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_ROOM_SELECT} WHERE r.accommodation_id=%s ORDER BY r.room_number",
                (int(accommodation_id),),
            )
            return [_to_room(r) for r in fetchall(cur)]

    def list_all(self) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_ROOM_SELECT} ORDER BY a.name, r.room_number")
            return [_to_room(r) for r in fetchall(cur)]

    def find_by_number(self, room_number: str) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_ROOM_SELECT} WHERE LOWER(r.room_number)=LOWER(%s) ORDER BY r.room_id",
                (room_number.strip(),),
            )
            return [_to_room(r) for r in fetchall(cur)]

    def number_taken(self, *, accommodation_id: int, room_number: str, exclude_room_id: Optional[int] = None) -> bool:
        sql = "SELECT COUNT(*) FROM rooms WHERE accommodation_id=%s AND LOWER(room_number)=LOWER(%s)"
        params: list[object] = [int(accommodation_id), room_number.strip()]
        if exclude_room_id is not None:
            sql += " AND room_id<>%s"
            params.append(int(exclude_room_id))
        with db_cursor(self._conn_factory) as (_, cur):
            return fetch_count(cur, sql, params) > 0

    def create(self, *, accommodation_id: int, room_number: str, capacity: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    "INSERT INTO rooms(accommodation_id, room_number, capacity) VALUES(%s,%s,%s)",
                    (int(accommodation_id), room_number, int(capacity)),
                )
            except mysql.connector.IntegrityError:
                raise ConflictError(f"Room number {room_number} already exists in this accommodation")
            return int(cur.lastrowid)

    @staticmethod
    def _lock_room(cur, room_id: int) -> Optional[dict]:
        cur.execute(
            "SELECT room_id, accommodation_id, room_number, capacity FROM rooms WHERE room_id=%s FOR UPDATE",
            (int(room_id),),
        )
        return fetchone(cur)

    @staticmethod
    def _active_count(cur, room_id: int) -> int:
        return fetch_count(
            cur,
            "SELECT COUNT(*) FROM room_allocations WHERE room_id=%s AND status=%s",
            (int(room_id), AllocationStatus.ACTIVE.value),
        )

    def update_guarded(
        self,
        room_id: int,
        *,
        room_number: Optional[str],
        capacity: Optional[int],
    ) -> RoomChangeResult:
        with db_cursor(self._conn_factory, isolation_level=LOCKING_ISOLATION) as (_, cur):
            row = self._lock_room(cur, room_id)
            if not row:
                return RoomChangeResult(RoomChangeOutcome.ROOM_NOT_FOUND)

            occupancy = self._active_count(cur, room_id)
            if capacity is not None and int(capacity) < occupancy:
                return RoomChangeResult(RoomChangeOutcome.BELOW_OCCUPANCY, occupancy=occupancy)

            if room_number is not None:
                taken = fetch_count(
                    cur,
                    """
                    SELECT COUNT(*) FROM rooms
                    WHERE accommodation_id=%s AND LOWER(room_number)=LOWER(%s) AND room_id<>%s
                    """,
                    (int(row["accommodation_id"]), room_number, int(room_id)),
                )
                if taken:
                    return RoomChangeResult(RoomChangeOutcome.DUPLICATE_NUMBER, occupancy=occupancy)

            try:
                cur.execute(
                    "UPDATE rooms SET room_number=%s, capacity=%s WHERE room_id=%s",
                    (
                        room_number if room_number is not None else row["room_number"],
                        int(capacity) if capacity is not None else int(row["capacity"]),
                        int(room_id),
                    ),
                )
            except mysql.connector.IntegrityError:
                return RoomChangeResult(RoomChangeOutcome.DUPLICATE_NUMBER, occupancy=occupancy)
            return RoomChangeResult(RoomChangeOutcome.APPLIED, occupancy=occupancy)

    def delete_if_vacant(self, room_id: int) -> RoomChangeResult:
        with db_cursor(self._conn_factory, isolation_level=LOCKING_ISOLATION) as (_, cur):
            if not self._lock_room(cur, room_id):
                return RoomChangeResult(RoomChangeOutcome.ROOM_NOT_FOUND)

            occupancy = self._active_count(cur, room_id)
            if occupancy > 0:
                return RoomChangeResult(RoomChangeOutcome.OCCUPIED, occupancy=occupancy)

            # Checked-out history goes with the room (ON DELETE CASCADE).
            cur.execute("DELETE FROM rooms WHERE room_id=%s", (int(room_id),))
            return RoomChangeResult(RoomChangeOutcome.APPLIED)
