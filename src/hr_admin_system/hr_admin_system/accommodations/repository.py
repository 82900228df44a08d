from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import (
    Accommodation,
    AllocationResult,
    Room,
    RoomAllocation,
    RoomChangeResult,
    RoomOccupant,
)


class AccommodationRepository(Protocol):
    """Accommodations; `total_capacity` must be aggregated at read time."""

    def list_all(self) -> Sequence[Accommodation]:
        raise NotImplementedError

    def get_by_id(self, accommodation_id: int) -> Optional[Accommodation]:
        raise NotImplementedError

    def create(self, *, name: str, address: Optional[str], manager_contact: Optional[str]) -> int:
        raise NotImplementedError

    def update(
        self,
        accommodation_id: int,
        *,
        name: str,
        address: Optional[str],
        manager_contact: Optional[str],
    ) -> bool:
        raise NotImplementedError


class RoomRepository(Protocol):
    def get_by_id(self, room_id: int) -> Optional[Room]:
        raise NotImplementedError

    def list_for_accommodation(self, accommodation_id: int) -> Sequence[Room]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Room]:
        raise NotImplementedError

    def find_by_number(self, room_number: str) -> Sequence[Room]:
        """Case-insensitive match across all accommodations."""

        raise NotImplementedError

    def number_taken(self, *, accommodation_id: int, room_number: str, exclude_room_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, *, accommodation_id: int, room_number: str, capacity: int) -> int:
        raise NotImplementedError

    def update_guarded(
        self,
        room_id: int,
        *,
        room_number: Optional[str],
        capacity: Optional[int],
    ) -> RoomChangeResult:
        """Rename/resize a room under its row lock.

        Must refuse a capacity below the current ACTIVE occupancy and a number
        already used in the same accommodation, atomically with the write.
        """

        raise NotImplementedError

    def delete_if_vacant(self, room_id: int) -> RoomChangeResult:
        """Delete a room only while it has no ACTIVE allocation, atomically."""

        raise NotImplementedError


class AllocationRepository(Protocol):
    def get_by_id(self, allocation_id: int) -> Optional[RoomAllocation]:
        raise NotImplementedError

    def list_active_for_employee(self, employee_id: int) -> Sequence[RoomAllocation]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int) -> Sequence[RoomAllocation]:
        """Full history, newest check-in first, ties by allocation id ascending."""

        raise NotImplementedError

    def list_occupants(self, room_id: int) -> Sequence[RoomOccupant]:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError

    def count_active_by_room(self) -> dict[int, int]:
        raise NotImplementedError

    def count_check_ins_since(self, day: date) -> int:
        raise NotImplementedError

    def create_active(self, *, room_id: int, employee_id: int, check_in_date: date) -> AllocationResult:
        """Insert an ACTIVE allocation if, at commit time, the employee has
        none and the room is below capacity.
        """

        raise NotImplementedError

    def check_out(self, *, allocation_id: int, check_out_date: date) -> bool:
        """ACTIVE -> CHECKED_OUT. Returns False if the allocation was not ACTIVE."""

        raise NotImplementedError

    def reassign(self, *, employee_id: int, room_id: Optional[int], on_date: date) -> AllocationResult:
        """Check out the employee's active allocation and, when `room_id` is
        given, check them into that room, as one all-or-nothing step.
        """

        raise NotImplementedError
