from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..core.enums import AllocationStatus


@dataclass(frozen=True)
class Accommodation:
    """A building. `total_capacity` is aggregated from its rooms on every read."""

    accommodation_id: int
    name: str
    address: Optional[str]
    manager_contact: Optional[str]
    total_capacity: int = 0
    room_count: int = 0


@dataclass(frozen=True)
class Room:
    room_id: int
    accommodation_id: int
    room_number: str
    capacity: int
    accommodation_name: Optional[str] = None


@dataclass(frozen=True)
class RoomAllocation:
    """One stay of one employee in one room."""

    allocation_id: int
    room_id: int
    employee_id: int
    check_in_date: date
    check_out_date: Optional[date]
    status: AllocationStatus
    created_at: Optional[datetime] = None
    room_number: Optional[str] = None
    accommodation_name: Optional[str] = None
    employee_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == AllocationStatus.ACTIVE


@dataclass(frozen=True)
class RoomOccupant:
    allocation_id: int
    employee_id: int
    employee_name: str
    company_name: Optional[str]
    check_in_date: date
    phone_number: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class RoomView:
    """Room with its live occupancy."""

    room: Room
    occupants: list[RoomOccupant] = field(default_factory=list)

    @property
    def occupancy(self) -> int:
        return len(self.occupants)

    @property
    def is_available(self) -> bool:
        return self.occupancy < self.room.capacity

    @property
    def free_beds(self) -> int:
        return max(self.room.capacity - self.occupancy, 0)


class AllocationOutcome(str, Enum):
    """Result of an atomic allocation write, decided under row locks."""

    CREATED = "CREATED"
    CHECKED_OUT = "CHECKED_OUT"
    UNCHANGED = "UNCHANGED"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    EMPLOYEE_INACTIVE = "EMPLOYEE_INACTIVE"
    EMPLOYEE_ALREADY_ALLOCATED = "EMPLOYEE_ALREADY_ALLOCATED"
    ROOM_FULL = "ROOM_FULL"


@dataclass(frozen=True)
class AllocationResult:
    outcome: AllocationOutcome
    allocation_id: Optional[int] = None
    checked_out_allocation_id: Optional[int] = None
    blocking_room_number: Optional[str] = None


class RoomChangeOutcome(str, Enum):
    APPLIED = "APPLIED"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    DUPLICATE_NUMBER = "DUPLICATE_NUMBER"
    BELOW_OCCUPANCY = "BELOW_OCCUPANCY"
    OCCUPIED = "OCCUPIED"


@dataclass(frozen=True)
class RoomChangeResult:
    outcome: RoomChangeOutcome
    occupancy: int = 0
