from __future__ import annotations

from typing import Optional

from ..audit.service import AuditService
from ..common.validators import clean_optional, require_non_empty, require_positive_int
from ..core.constants import ENTITY_ACCOMMODATION, ENTITY_ROOM
from ..core.enums import AuditAction
from ..core.exceptions import ConflictError, NotFoundError
from ..core.identity import CallerIdentity
from .model import Accommodation, Room
from .repository import AccommodationRepository, RoomRepository


def _accommodation_snapshot(accommodation: Accommodation) -> dict:
    return {
        "name": accommodation.name,
        "address": accommodation.address,
        "managerContact": accommodation.manager_contact,
        "totalCapacity": accommodation.total_capacity,
    }


class AccommodationService:
    def __init__(self, accommodations: AccommodationRepository, rooms: RoomRepository, audit: AuditService):
        self._accommodations = accommodations
        self._rooms = rooms
        self._audit = audit

    def list_accommodations(self) -> list[Accommodation]:
        return list(self._accommodations.list_all())

    def get_accommodation(self, accommodation_id: int) -> Accommodation:
        accommodation = self._accommodations.get_by_id(int(accommodation_id))
        if not accommodation:
            raise NotFoundError("Accommodation not found")
        return accommodation

    def create_accommodation(
        self,
        caller: Optional[CallerIdentity],
        *,
        name: str,
        address: Optional[str] = None,
        manager_contact: Optional[str] = None,
    ) -> Accommodation:
        name = require_non_empty(name, "Name")
        accommodation_id = self._accommodations.create(
            name=name,
            address=clean_optional(address),
            manager_contact=clean_optional(manager_contact),
        )
        created = self.get_accommodation(accommodation_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_ACCOMMODATION,
            entity_id=created.accommodation_id,
            action=AuditAction.CREATE,
            description=f"Accommodation created: {created.name}",
            new_value=_accommodation_snapshot(created),
        )
        return created

    def update_accommodation(
        self,
        caller: Optional[CallerIdentity],
        accommodation_id: int,
        *,
        name: Optional[str] = None,
        address: Optional[str] = None,
        manager_contact: Optional[str] = None,
    ) -> Accommodation:
        before = self.get_accommodation(accommodation_id)
        ok = self._accommodations.update(
            before.accommodation_id,
            name=require_non_empty(name, "Name") if name is not None else before.name,
            address=clean_optional(address) if address is not None else before.address,
            manager_contact=clean_optional(manager_contact) if manager_contact is not None else before.manager_contact,
        )
        if not ok:
            raise NotFoundError("Accommodation not found")

        after = self.get_accommodation(before.accommodation_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_ACCOMMODATION,
            entity_id=after.accommodation_id,
            action=AuditAction.UPDATE,
            description=f"Accommodation updated: {after.name}",
            old_value=_accommodation_snapshot(before),
            new_value=_accommodation_snapshot(after),
        )
        return after

    def list_rooms(self, accommodation_id: int) -> list[Room]:
        accommodation = self.get_accommodation(accommodation_id)
        return list(self._rooms.list_for_accommodation(accommodation.accommodation_id))

    def create_room(
        self,
        caller: Optional[CallerIdentity],
        *,
        accommodation_id: int,
        room_number: str,
        capacity: int,
    ) -> Room:
        accommodation = self.get_accommodation(accommodation_id)
        room_number = require_non_empty(room_number, "Room number")
        capacity = require_positive_int(capacity, "Capacity")

        if self._rooms.number_taken(accommodation_id=accommodation.accommodation_id, room_number=room_number):
            raise ConflictError(f"Room number {room_number} already exists in this accommodation")

        room_id = self._rooms.create(
            accommodation_id=accommodation.accommodation_id,
            room_number=room_number,
            capacity=capacity,
        )
        room = self._rooms.get_by_id(room_id)
        if not room:
            raise NotFoundError("Room not found")

        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM,
            entity_id=room.room_id,
            action=AuditAction.CREATE,
            description=f"Room created: {room.room_number} in {accommodation.name} (capacity {room.capacity})",
            new_value={
                "roomNumber": room.room_number,
                "capacity": room.capacity,
                "accommodation": accommodation.name,
            },
        )
        return room
