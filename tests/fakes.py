from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from werkzeug.security import generate_password_hash

from src.hr_admin_system.hr_admin_system.accommodations.model import (
    Accommodation,
    AllocationOutcome,
    AllocationResult,
    Room,
    RoomAllocation,
    RoomChangeOutcome,
    RoomChangeResult,
    RoomOccupant,
)
from src.hr_admin_system.hr_admin_system.advances.model import AdvanceRequest
from src.hr_admin_system.hr_admin_system.audit.model import AuditFilter, AuditLogEntry, NewAuditEntry
from src.hr_admin_system.hr_admin_system.container import Container, wire_container
from src.hr_admin_system.hr_admin_system.contracts.model import Contract, NewContract
from src.hr_admin_system.hr_admin_system.core.enums import (
    AdvanceStatus,
    AllocationStatus,
    AuditAction,
    ContractStatus,
    Role,
)
from src.hr_admin_system.hr_admin_system.core.exceptions import ConflictError
from src.hr_admin_system.hr_admin_system.core.identity import CallerIdentity
from src.hr_admin_system.hr_admin_system.employees.model import Employee, NewEmployee
from src.hr_admin_system.hr_admin_system.users.model import User


FIXED_NOW = datetime(2026, 3, 15, 9, 0, 0)


class InMemoryStore:
    """Tables shared by the fake repositories.

    One lock plays the role of the database row locks, so every
    check-then-write in a fake repository is atomic like its MySQL twin.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.now = FIXED_NOW
        self.users: dict[int, User] = {}
        self.employees: dict[int, dict[str, Any]] = {}
        self.accommodations: dict[int, dict[str, Any]] = {}
        self.rooms: dict[int, dict[str, Any]] = {}
        self.allocations: dict[int, dict[str, Any]] = {}
        self.advances: dict[int, dict[str, Any]] = {}
        self.contracts: dict[int, dict[str, Any]] = {}
        self.audit: list[AuditLogEntry] = []
        self._ids: dict[str, int] = {}

    def next_id(self, table: str) -> int:
        with self.lock:
            self._ids[table] = self._ids.get(table, 0) + 1
            return self._ids[table]


# -------- Users / employees --------
class InMemoryUsers:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def add(
        self,
        *,
        email: str,
        password: str = "secret123",
        role: Role = Role.EMPLOYEE,
        first_name: str = "Test",
        last_name: str = "User",
        is_active: bool = True,
        created_at: Optional[datetime] = None,
    ) -> User:
        user = User(
            user_id=self._s.next_id("users"),
            first_name=first_name,
            last_name=last_name,
            email=email.lower(),
            password_hash=generate_password_hash(password, method="pbkdf2:sha256:1000"),
            role=role,
            is_active=is_active,
            created_at=created_at or self._s.now,
        )
        self._s.users[user.user_id] = user
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._s.users.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        for user in self._s.users.values():
            if user.email.lower() == (email or "").strip().lower():
                return user
        return None

    def list_users(self, *, role=None, is_active=None, search=None):
        items = list(self._s.users.values())
        if role is not None:
            items = [u for u in items if u.role == role]
        if is_active is not None:
            items = [u for u in items if u.is_active == is_active]
        if search:
            needle = search.lower()
            items = [
                u
                for u in items
                if needle in u.first_name.lower() or needle in u.last_name.lower() or needle in u.email.lower()
            ]
        return sorted(items, key=lambda u: u.user_id)

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with self._s.lock:
            user = self._s.users.get(int(user_id))
            if not user:
                return False
            self._s.users[user.user_id] = replace(user, is_active=is_active)
            return True

    def set_password_hash(self, user_id: int, *, password_hash: str) -> bool:
        with self._s.lock:
            user = self._s.users.get(int(user_id))
            if not user:
                return False
            self._s.users[user.user_id] = replace(user, password_hash=password_hash)
            return True


class InMemoryEmployees:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_employee(self, row: Mapping[str, Any]) -> Employee:
        user = self._s.users[row["user_id"]]
        return Employee(
            employee_id=row["employee_id"],
            user_id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            tax_id=row.get("tax_id"),
            social_security_number=row.get("social_security_number"),
            id_card_number=row.get("id_card_number"),
            primary_address=row.get("primary_address"),
            phone_number=row.get("phone_number"),
            nationality=row.get("nationality"),
            birth_date=row.get("birth_date"),
            company_name=row.get("company_name"),
            start_date=row.get("start_date"),
            created_at=user.created_at,
        )

    def add(
        self,
        *,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
        password: str = "secret123",
        is_active: bool = True,
        created_at: Optional[datetime] = None,
        **fields: Any,
    ) -> Employee:
        users = InMemoryUsers(self._s)
        user = users.add(
            email=email or f"{first_name}.{last_name}@example.com".lower(),
            password=password,
            role=Role.EMPLOYEE,
            first_name=first_name,
            last_name=last_name,
            is_active=is_active,
            created_at=created_at,
        )
        employee_id = self._s.next_id("employees")
        self._s.employees[employee_id] = {"employee_id": employee_id, "user_id": user.user_id, **fields}
        return self._to_employee(self._s.employees[employee_id])

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        row = self._s.employees.get(int(employee_id))
        return self._to_employee(row) if row else None

    def get_by_user_id(self, user_id: int) -> Optional[Employee]:
        for row in self._s.employees.values():
            if row["user_id"] == int(user_id):
                return self._to_employee(row)
        return None

    def list_employees(self, *, is_active=None, search=None):
        items = [self._to_employee(r) for r in self._s.employees.values()]
        items = [e for e in items if e.role == Role.EMPLOYEE]
        if is_active is not None:
            items = [e for e in items if e.is_active == is_active]
        if search:
            needle = search.lower()
            items = [
                e
                for e in items
                if needle in e.first_name.lower() or needle in e.last_name.lower() or needle in e.email.lower()
            ]
        return sorted(items, key=lambda e: (e.last_name, e.first_name, e.employee_id))

    def document_taken(self, *, field: str, value: str, exclude_employee_id: Optional[int] = None) -> bool:
        for row in self._s.employees.values():
            if exclude_employee_id is not None and row["employee_id"] == int(exclude_employee_id):
                continue
            if row.get(field) == value:
                return True
        return False

    def create(self, new: NewEmployee) -> int:
        with self._s.lock:
            user = User(
                user_id=self._s.next_id("users"),
                first_name=new.first_name,
                last_name=new.last_name,
                email=new.email,
                password_hash=new.password_hash,
                role=new.role,
                is_active=True,
                created_at=self._s.now,
            )
            self._s.users[user.user_id] = user
            employee_id = self._s.next_id("employees")
            self._s.employees[employee_id] = {
                "employee_id": employee_id,
                "user_id": user.user_id,
                "tax_id": new.tax_id,
                "social_security_number": new.social_security_number,
                "id_card_number": new.id_card_number,
                "primary_address": new.primary_address,
                "phone_number": new.phone_number,
                "nationality": new.nationality,
                "birth_date": new.birth_date,
                "company_name": new.company_name,
                "start_date": new.start_date,
            }
            return employee_id

    def update(self, employee_id: int, *, user_changes, employee_changes) -> bool:
        with self._s.lock:
            row = self._s.employees.get(int(employee_id))
            if not row:
                return False
            row.update(dict(employee_changes))
            if user_changes:
                user = self._s.users[row["user_id"]]
                self._s.users[user.user_id] = replace(user, **dict(user_changes))
            return True

    def count_employees(self, *, is_active=None) -> int:
        return len(self.list_employees(is_active=is_active))

    def count_created_since(self, moment: datetime) -> int:
        return sum(1 for e in self.list_employees() if e.created_at and e.created_at >= moment)


# -------- Accommodations / rooms / allocations --------
class InMemoryAccommodations:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_accommodation(self, row: Mapping[str, Any]) -> Accommodation:
        rooms = [r for r in self._s.rooms.values() if r["accommodation_id"] == row["accommodation_id"]]
        return Accommodation(
            accommodation_id=row["accommodation_id"],
            name=row["name"],
            address=row.get("address"),
            manager_contact=row.get("manager_contact"),
            total_capacity=sum(r["capacity"] for r in rooms),
            room_count=len(rooms),
        )

    def list_all(self):
        return [self._to_accommodation(r) for r in sorted(self._s.accommodations.values(), key=lambda r: r["name"])]

    def get_by_id(self, accommodation_id: int) -> Optional[Accommodation]:
        row = self._s.accommodations.get(int(accommodation_id))
        return self._to_accommodation(row) if row else None

    def create(self, *, name: str, address=None, manager_contact=None) -> int:
        accommodation_id = self._s.next_id("accommodations")
        self._s.accommodations[accommodation_id] = {
            "accommodation_id": accommodation_id,
            "name": name,
            "address": address,
            "manager_contact": manager_contact,
        }
        return accommodation_id

    def update(self, accommodation_id: int, *, name, address, manager_contact) -> bool:
        row = self._s.accommodations.get(int(accommodation_id))
        if not row:
            return False
        row.update({"name": name, "address": address, "manager_contact": manager_contact})
        return True


class InMemoryRooms:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_room(self, row: Mapping[str, Any]) -> Room:
        accommodation = self._s.accommodations.get(row["accommodation_id"])
        return Room(
            room_id=row["room_id"],
            accommodation_id=row["accommodation_id"],
            room_number=row["room_number"],
            capacity=row["capacity"],
            accommodation_name=accommodation["name"] if accommodation else None,
        )

    def _active_count(self, room_id: int) -> int:
        return sum(
            1
            for a in self._s.allocations.values()
            if a["room_id"] == room_id and a["status"] == AllocationStatus.ACTIVE
        )

    def get_by_id(self, room_id: int) -> Optional[Room]:
        row = self._s.rooms.get(int(room_id))
        return self._to_room(row) if row else None

    def list_for_accommodation(self, accommodation_id: int):
        rows = [r for r in self._s.rooms.values() if r["accommodation_id"] == int(accommodation_id)]
        return [self._to_room(r) for r in sorted(rows, key=lambda r: r["room_number"])]

    def list_all(self):
        return [self._to_room(r) for r in sorted(self._s.rooms.values(), key=lambda r: r["room_id"])]

    def find_by_number(self, room_number: str):
        needle = (room_number or "").strip().lower()
        return [self._to_room(r) for r in self._s.rooms.values() if r["room_number"].lower() == needle]

    def number_taken(self, *, accommodation_id: int, room_number: str, exclude_room_id=None) -> bool:
        for r in self._s.rooms.values():
            if exclude_room_id is not None and r["room_id"] == int(exclude_room_id):
                continue
            if r["accommodation_id"] == int(accommodation_id) and r["room_number"].lower() == room_number.lower():
                return True
        return False

    def create(self, *, accommodation_id: int, room_number: str, capacity: int) -> int:
        with self._s.lock:
            if self.number_taken(accommodation_id=accommodation_id, room_number=room_number):
                raise ConflictError(f"Room number {room_number} already exists in this accommodation")
            room_id = self._s.next_id("rooms")
            self._s.rooms[room_id] = {
                "room_id": room_id,
                "accommodation_id": int(accommodation_id),
                "room_number": room_number,
                "capacity": int(capacity),
            }
            return room_id

    def update_guarded(self, room_id: int, *, room_number=None, capacity=None) -> RoomChangeResult:
        with self._s.lock:
            row = self._s.rooms.get(int(room_id))
            if not row:
                return RoomChangeResult(RoomChangeOutcome.ROOM_NOT_FOUND)
            occupancy = self._active_count(row["room_id"])
            if capacity is not None and capacity < occupancy:
                return RoomChangeResult(RoomChangeOutcome.BELOW_OCCUPANCY, occupancy=occupancy)
            if room_number is not None and self.number_taken(
                accommodation_id=row["accommodation_id"],
                room_number=room_number,
                exclude_room_id=row["room_id"],
            ):
                return RoomChangeResult(RoomChangeOutcome.DUPLICATE_NUMBER, occupancy=occupancy)
            if room_number is not None:
                row["room_number"] = room_number
            if capacity is not None:
                row["capacity"] = int(capacity)
            return RoomChangeResult(RoomChangeOutcome.APPLIED, occupancy=occupancy)

    def delete_if_vacant(self, room_id: int) -> RoomChangeResult:
        with self._s.lock:
            row = self._s.rooms.get(int(room_id))
            if not row:
                return RoomChangeResult(RoomChangeOutcome.ROOM_NOT_FOUND)
            occupancy = self._active_count(row["room_id"])
            if occupancy > 0:
                return RoomChangeResult(RoomChangeOutcome.OCCUPIED, occupancy=occupancy)
            del self._s.rooms[row["room_id"]]
            for allocation_id in [a for a, r in self._s.allocations.items() if r["room_id"] == row["room_id"]]:
                del self._s.allocations[allocation_id]
            return RoomChangeResult(RoomChangeOutcome.APPLIED)


class InMemoryAllocations:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_allocation(self, row: Mapping[str, Any]) -> RoomAllocation:
        room = self._s.rooms.get(row["room_id"], {})
        accommodation = self._s.accommodations.get(room.get("accommodation_id"), {})
        employee = self._s.employees.get(row["employee_id"])
        user = self._s.users.get(employee["user_id"]) if employee else None
        return RoomAllocation(
            allocation_id=row["allocation_id"],
            room_id=row["room_id"],
            employee_id=row["employee_id"],
            check_in_date=row["check_in_date"],
            check_out_date=row.get("check_out_date"),
            status=row["status"],
            created_at=row.get("created_at"),
            room_number=room.get("room_number"),
            accommodation_name=accommodation.get("name"),
            employee_name=user.full_name if user else None,
        )

    def insert_raw(self, *, room_id: int, employee_id: int, check_in_date: date, status=AllocationStatus.ACTIVE) -> int:
        """Bypass every guard; used to simulate corrupted data."""
        allocation_id = self._s.next_id("allocations")
        self._s.allocations[allocation_id] = {
            "allocation_id": allocation_id,
            "room_id": int(room_id),
            "employee_id": int(employee_id),
            "check_in_date": check_in_date,
            "check_out_date": None,
            "status": status,
            "created_at": self._s.now,
        }
        return allocation_id

    def _active_rows_for_employee(self, employee_id: int) -> list[dict[str, Any]]:
        return [
            r
            for r in self._s.allocations.values()
            if r["employee_id"] == int(employee_id) and r["status"] == AllocationStatus.ACTIVE
        ]

    def _active_in_room(self, room_id: int) -> int:
        return sum(
            1 for r in self._s.allocations.values() if r["room_id"] == int(room_id) and r["status"] == AllocationStatus.ACTIVE
        )

    def _employee_state(self, employee_id: int) -> Optional[bool]:
        row = self._s.employees.get(int(employee_id))
        if not row:
            return None
        return self._s.users[row["user_id"]].is_active

    def get_by_id(self, allocation_id: int) -> Optional[RoomAllocation]:
        row = self._s.allocations.get(int(allocation_id))
        return self._to_allocation(row) if row else None

    def list_active_for_employee(self, employee_id: int):
        return [self._to_allocation(r) for r in self._active_rows_for_employee(employee_id)]

    def list_for_employee(self, employee_id: int):
        rows = [r for r in self._s.allocations.values() if r["employee_id"] == int(employee_id)]
        rows.sort(key=lambda r: r["allocation_id"])
        rows.sort(key=lambda r: r["check_in_date"], reverse=True)
        return [self._to_allocation(r) for r in rows]

    def list_occupants(self, room_id: int):
        rows = [
            r for r in self._s.allocations.values() if r["room_id"] == int(room_id) and r["status"] == AllocationStatus.ACTIVE
        ]
        rows.sort(key=lambda r: (r["check_in_date"], r["allocation_id"]))
        occupants = []
        for r in rows:
            employee = self._s.employees[r["employee_id"]]
            user = self._s.users[employee["user_id"]]
            occupants.append(
                RoomOccupant(
                    allocation_id=r["allocation_id"],
                    employee_id=r["employee_id"],
                    employee_name=user.full_name,
                    company_name=employee.get("company_name"),
                    check_in_date=r["check_in_date"],
                    phone_number=employee.get("phone_number"),
                    email=user.email,
                )
            )
        return occupants

    def count_active(self) -> int:
        return sum(1 for r in self._s.allocations.values() if r["status"] == AllocationStatus.ACTIVE)

    def count_active_by_room(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for r in self._s.allocations.values():
            if r["status"] == AllocationStatus.ACTIVE:
                counts[r["room_id"]] = counts.get(r["room_id"], 0) + 1
        return counts

    def count_check_ins_since(self, day: date) -> int:
        return sum(1 for r in self._s.allocations.values() if r["check_in_date"] >= day)

    def create_active(self, *, room_id: int, employee_id: int, check_in_date: date) -> AllocationResult:
        with self._s.lock:
            state = self._employee_state(employee_id)
            if state is None:
                return AllocationResult(AllocationOutcome.EMPLOYEE_NOT_FOUND)
            if not state:
                return AllocationResult(AllocationOutcome.EMPLOYEE_INACTIVE)
            room = self._s.rooms.get(int(room_id))
            if not room:
                return AllocationResult(AllocationOutcome.ROOM_NOT_FOUND)
            active = self._active_rows_for_employee(employee_id)
            if active:
                blocking = self._s.rooms.get(active[0]["room_id"], {})
                return AllocationResult(
                    AllocationOutcome.EMPLOYEE_ALREADY_ALLOCATED,
                    blocking_room_number=blocking.get("room_number"),
                )
            if self._active_in_room(room_id) >= room["capacity"]:
                return AllocationResult(AllocationOutcome.ROOM_FULL)
            allocation_id = self.insert_raw(room_id=room_id, employee_id=employee_id, check_in_date=check_in_date)
            return AllocationResult(AllocationOutcome.CREATED, allocation_id=allocation_id)

    def check_out(self, *, allocation_id: int, check_out_date: date) -> bool:
        with self._s.lock:
            row = self._s.allocations.get(int(allocation_id))
            if not row or row["status"] != AllocationStatus.ACTIVE:
                return False
            row["status"] = AllocationStatus.CHECKED_OUT
            row["check_out_date"] = check_out_date
            return True

    def reassign(self, *, employee_id: int, room_id: Optional[int], on_date: date) -> AllocationResult:
        with self._s.lock:
            state = self._employee_state(employee_id)
            if state is None:
                return AllocationResult(AllocationOutcome.EMPLOYEE_NOT_FOUND)
            active = self._active_rows_for_employee(employee_id)
            current = active[0] if active else None

            if room_id is not None:
                if current is not None and current["room_id"] == int(room_id):
                    return AllocationResult(AllocationOutcome.UNCHANGED, allocation_id=current["allocation_id"])
                if not state:
                    return AllocationResult(AllocationOutcome.EMPLOYEE_INACTIVE)
                room = self._s.rooms.get(int(room_id))
                if not room:
                    return AllocationResult(AllocationOutcome.ROOM_NOT_FOUND)
                if self._active_in_room(room_id) >= room["capacity"]:
                    return AllocationResult(AllocationOutcome.ROOM_FULL)
            elif current is None:
                return AllocationResult(AllocationOutcome.UNCHANGED)

            checked_out = None
            if current is not None:
                current["status"] = AllocationStatus.CHECKED_OUT
                current["check_out_date"] = on_date
                checked_out = current["allocation_id"]
            if room_id is None:
                return AllocationResult(AllocationOutcome.CHECKED_OUT, checked_out_allocation_id=checked_out)
            allocation_id = self.insert_raw(room_id=room_id, employee_id=employee_id, check_in_date=on_date)
            return AllocationResult(
                AllocationOutcome.CREATED,
                allocation_id=allocation_id,
                checked_out_allocation_id=checked_out,
            )


# -------- Advances / contracts --------
class InMemoryAdvances:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_request(self, row: Mapping[str, Any]) -> AdvanceRequest:
        employee = self._s.employees.get(row["employee_id"])
        user = self._s.users.get(employee["user_id"]) if employee else None
        reviewer = self._s.users.get(row["reviewed_by"]) if row.get("reviewed_by") else None
        return AdvanceRequest(
            request_id=row["request_id"],
            employee_id=row["employee_id"],
            amount=row["amount"],
            reason=row.get("reason"),
            status=row["status"],
            requested_at=row["requested_at"],
            employee_name=user.full_name if user else None,
            reviewed_by=row.get("reviewed_by"),
            reviewed_by_name=reviewer.full_name if reviewer else None,
            reviewed_at=row.get("reviewed_at"),
            rejection_reason=row.get("rejection_reason"),
        )

    def create(self, *, employee_id: int, amount: Decimal, reason: Optional[str]) -> int:
        request_id = self._s.next_id("advances")
        self._s.advances[request_id] = {
            "request_id": request_id,
            "employee_id": int(employee_id),
            "amount": amount,
            "reason": reason,
            "status": AdvanceStatus.PENDING,
            "requested_at": self._s.now,
        }
        return request_id

    def get_by_id(self, request_id: int) -> Optional[AdvanceRequest]:
        row = self._s.advances.get(int(request_id))
        return self._to_request(row) if row else None

    def list_for_employee(self, employee_id: int):
        rows = [r for r in self._s.advances.values() if r["employee_id"] == int(employee_id)]
        return [self._to_request(r) for r in sorted(rows, key=lambda r: r["request_id"], reverse=True)]

    def list_requests(self, *, status=None):
        rows = [r for r in self._s.advances.values() if status is None or r["status"] == status]
        return [self._to_request(r) for r in sorted(rows, key=lambda r: r["request_id"], reverse=True)]

    def decide(self, *, request_id: int, status: AdvanceStatus, reviewed_by: int, rejection_reason=None) -> bool:
        with self._s.lock:
            row = self._s.advances.get(int(request_id))
            if not row or row["status"] != AdvanceStatus.PENDING:
                return False
            row.update(
                {
                    "status": status,
                    "reviewed_by": reviewed_by,
                    "reviewed_at": self._s.now,
                    "rejection_reason": rejection_reason,
                }
            )
            return True

    def count_by_status(self) -> dict[AdvanceStatus, int]:
        counts: dict[AdvanceStatus, int] = {}
        for r in self._s.advances.values():
            counts[r["status"]] = counts.get(r["status"], 0) + 1
        return counts


class InMemoryContracts:
    def __init__(self, store: InMemoryStore):
        self._s = store

    def _to_contract(self, row: Mapping[str, Any]) -> Contract:
        employee = self._s.employees.get(row["employee_id"])
        user = self._s.users.get(employee["user_id"]) if employee else None
        return Contract(employee_name=user.full_name if user else None, **row)

    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        row = self._s.contracts.get(int(contract_id))
        return self._to_contract(row) if row else None

    def list_for_employee(self, employee_id: int):
        rows = [r for r in self._s.contracts.values() if r["employee_id"] == int(employee_id)]
        return [self._to_contract(r) for r in sorted(rows, key=lambda r: r["contract_id"], reverse=True)]

    def number_exists(self, contract_number: str) -> bool:
        return any(r["contract_number"] == contract_number for r in self._s.contracts.values())

    def create(self, new: NewContract) -> int:
        contract_id = self._s.next_id("contracts")
        self._s.contracts[contract_id] = {
            "contract_id": contract_id,
            "employee_id": new.employee_id,
            "contract_number": new.contract_number,
            "start_date": new.start_date,
            "end_date": new.end_date,
            "hourly_rate": new.hourly_rate,
            "currency": new.currency,
            "working_hours_per_week": new.working_hours_per_week,
            "status": new.status,
            "created_at": self._s.now,
        }
        return contract_id

    def terminate(self, contract_id: int, *, end_date: date) -> bool:
        with self._s.lock:
            row = self._s.contracts.get(int(contract_id))
            if not row or row["status"] not in (ContractStatus.ACTIVE, ContractStatus.DRAFT):
                return False
            row["status"] = ContractStatus.TERMINATED
            row["end_date"] = row["end_date"] or end_date
            return True


# -------- Audit --------
class InMemoryAudit:
    def __init__(self, store: InMemoryStore):
        self._s = store
        self.fail_with: Optional[Exception] = None

    @property
    def entries(self) -> list[AuditLogEntry]:
        return list(self._s.audit)

    def append(self, entry: NewAuditEntry) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        with self._s.lock:
            audit_id = self._s.next_id("audit")
            self._s.audit.append(
                AuditLogEntry(
                    audit_id=audit_id,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    action=entry.action,
                    user_id=entry.user_id,
                    user_email=entry.user_email,
                    user_role=entry.user_role,
                    description=entry.description,
                    old_value=entry.old_value,
                    new_value=entry.new_value,
                    ip_address=entry.ip_address,
                    created_at=self._s.now,
                )
            )
            return audit_id

    def _matching(self, flt: AuditFilter) -> list[AuditLogEntry]:
        items = [
            e
            for e in self._s.audit
            if (flt.entity_type is None or e.entity_type == flt.entity_type)
            and (flt.action is None or e.action == flt.action)
            and (flt.user_id is None or e.user_id == flt.user_id)
            and (flt.start is None or e.created_at >= flt.start)
            and (flt.end is None or e.created_at <= flt.end)
        ]
        return sorted(items, key=lambda e: (e.created_at, e.audit_id), reverse=True)

    def search(self, flt: AuditFilter, *, offset: int, limit: int):
        return self._matching(flt)[offset : offset + limit]

    def count(self, flt: AuditFilter) -> int:
        return len(self._matching(flt))

    def list_for_entity(self, *, entity_type: str, entity_id: int):
        return [e for e in self._matching(AuditFilter(entity_type=entity_type)) if e.entity_id == int(entity_id)]

    def count_by_action(self) -> dict[AuditAction, int]:
        counts: dict[AuditAction, int] = {}
        for e in self._s.audit:
            counts[e.action] = counts.get(e.action, 0) + 1
        return counts


# -------- Wiring --------
@dataclass
class World:
    store: InMemoryStore
    users: InMemoryUsers
    employees: InMemoryEmployees
    accommodations: InMemoryAccommodations
    rooms: InMemoryRooms
    allocations: InMemoryAllocations
    advances: InMemoryAdvances
    contracts: InMemoryContracts
    audit: InMemoryAudit
    container: Container = field(init=False)

    def __post_init__(self):
        self.container = wire_container(
            users_repo=self.users,
            employees_repo=self.employees,
            accommodations_repo=self.accommodations,
            rooms_repo=self.rooms,
            allocations_repo=self.allocations,
            advances_repo=self.advances,
            contracts_repo=self.contracts,
            audit_repo=self.audit,
        )

    def add_building(self, name: str = "North House", rooms: Optional[dict[str, int]] = None) -> int:
        accommodation_id = self.accommodations.create(name=name, address="1 Main St", manager_contact=None)
        for number, capacity in (rooms or {}).items():
            self.rooms.create(accommodation_id=accommodation_id, room_number=number, capacity=capacity)
        return accommodation_id

    def room(self, room_number: str) -> Room:
        (room,) = self.rooms.find_by_number(room_number)
        return room


def make_world() -> World:
    store = InMemoryStore()
    return World(
        store=store,
        users=InMemoryUsers(store),
        employees=InMemoryEmployees(store),
        accommodations=InMemoryAccommodations(store),
        rooms=InMemoryRooms(store),
        allocations=InMemoryAllocations(store),
        advances=InMemoryAdvances(store),
        contracts=InMemoryContracts(store),
        audit=InMemoryAudit(store),
    )


def caller_for(user: User, ip_address: str = "10.0.0.1") -> CallerIdentity:
    return CallerIdentity(user_id=user.user_id, email=user.email, role=user.role, ip_address=ip_address)
