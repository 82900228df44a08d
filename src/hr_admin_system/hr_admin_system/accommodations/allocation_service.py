from __future__ import annotations

from datetime import date
from typing import Optional

from ..audit.service import AuditService
from ..common.datetime_utils import today_local
from ..common.logger import get_logger
from ..common.validators import clean_optional, require_non_empty, require_positive_int
from ..core.constants import ENTITY_ROOM, ENTITY_ROOM_ALLOCATION
from ..core.enums import AuditAction
from ..core.exceptions import ConflictError, InvariantViolationError, NotFoundError, ValidationError
from ..core.identity import CallerIdentity
from ..employees.repository import EmployeeRepository
from .model import (
    AllocationOutcome,
    AllocationResult,
    Room,
    RoomAllocation,
    RoomChangeOutcome,
    RoomOccupant,
    RoomView,
)
from .repository import AllocationRepository, RoomRepository


logger = get_logger(__name__)


def _allocation_snapshot(allocation: RoomAllocation) -> dict:
    return {
        "allocationId": allocation.allocation_id,
        "roomNumber": allocation.room_number,
        "accommodation": allocation.accommodation_name,
        "employee": allocation.employee_name,
        "checkInDate": allocation.check_in_date,
        "checkOutDate": allocation.check_out_date,
        "status": allocation.status.value,
    }


def _room_snapshot(room: Room) -> dict:
    return {
        "roomId": room.room_id,
        "roomNumber": room.room_number,
        "capacity": room.capacity,
        "accommodation": room.accommodation_name,
    }


class AllocationService:
    """Who lives in which room.

    Every check that guards an allocation write (capacity, one active stay per
    employee, occupancy on resize/delete) is decided by the repository inside
    the same transaction as the write; this class maps the outcome to errors
    and records the audit trail.
    """

    def __init__(
        self,
        rooms: RoomRepository,
        allocations: AllocationRepository,
        employees: EmployeeRepository,
        audit: AuditService,
    ):
        self._rooms = rooms
        self._allocations = allocations
        self._employees = employees
        self._audit = audit

    # -------- Lookups --------
    def _require_room(self, room_id: int) -> Room:
        room = self._rooms.get_by_id(int(room_id))
        if not room:
            raise NotFoundError("Room not found")
        return room

    def _require_employee(self, employee_id: int):
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _require_allocation(self, allocation_id: int) -> RoomAllocation:
        allocation = self._allocations.get_by_id(int(allocation_id))
        if not allocation:
            raise NotFoundError("Allocation not found")
        return allocation

    def current_allocation(self, employee_id: int) -> Optional[RoomAllocation]:
        """The employee's single ACTIVE allocation, if any.

        More than one ACTIVE allocation is corrupted data: it is logged and
        reported, never resolved by picking one.
        """

        active = list(self._allocations.list_active_for_employee(int(employee_id)))
        if len(active) > 1:
            logger.error(
                "Employee %s has %s active room allocations (ids: %s)",
                employee_id,
                len(active),
                ", ".join(str(a.allocation_id) for a in active),
            )
            raise InvariantViolationError(f"Employee {employee_id} has more than one active room allocation")
        return active[0] if active else None

    # -------- Allocations --------
    def create_allocation(
        self,
        caller: Optional[CallerIdentity],
        *,
        room_id: int,
        employee_id: int,
        check_in_date: Optional[date] = None,
    ) -> RoomAllocation:
        room = self._require_room(require_positive_int(room_id, "Room id"))
        employee = self._require_employee(require_positive_int(employee_id, "Employee id"))
        if not employee.is_active:
            raise ConflictError("Inactive employees cannot be checked in")

        check_in = check_in_date or today_local()
        result = self._allocations.create_active(
            room_id=room.room_id,
            employee_id=employee.employee_id,
            check_in_date=check_in,
        )
        self._raise_for_outcome(result)

        allocation = self._require_allocation(int(result.allocation_id))
        logger.info(
            "Employee %s checked into room %s (allocation %s)",
            employee.employee_id,
            room.room_number,
            allocation.allocation_id,
        )
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM_ALLOCATION,
            entity_id=allocation.allocation_id,
            action=AuditAction.CREATE,
            description=(
                f"Room allocation created: {employee.full_name} checked into room {room.room_number}"
                f" ({room.accommodation_name}) on {check_in.isoformat()}"
            ),
            new_value=_allocation_snapshot(allocation),
        )
        return allocation

    def check_out(
        self,
        caller: Optional[CallerIdentity],
        *,
        allocation_id: int,
        check_out_date: Optional[date] = None,
    ) -> RoomAllocation:
        before = self._require_allocation(require_positive_int(allocation_id, "Allocation id"))
        if not before.is_active:
            raise ConflictError("Employee already checked out")

        check_out = check_out_date or today_local()
        if check_out < before.check_in_date:
            raise ValidationError("Check-out date cannot be before the check-in date")

        if not self._allocations.check_out(allocation_id=before.allocation_id, check_out_date=check_out):
            # Someone else checked this allocation out in the meantime.
            raise ConflictError("Employee already checked out")

        after = self._require_allocation(before.allocation_id)
        logger.info("Allocation %s checked out on %s", after.allocation_id, check_out)
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM_ALLOCATION,
            entity_id=after.allocation_id,
            action=AuditAction.UPDATE,
            description=(
                f"Employee checked out: {after.employee_name} from room {after.room_number}"
                f" on {check_out.isoformat()}"
            ),
            old_value=_allocation_snapshot(before),
            new_value=_allocation_snapshot(after),
        )
        return after

    def _resolve_room_number(self, room_number: str, accommodation_id: Optional[int]) -> Room:
        candidates = list(self._rooms.find_by_number(room_number))
        if accommodation_id is not None:
            candidates = [r for r in candidates if r.accommodation_id == int(accommodation_id)]
        if not candidates:
            raise NotFoundError(f"Room {room_number} not found")
        if len(candidates) > 1:
            raise ConflictError(
                f"Room number {room_number} exists in more than one accommodation; specify the accommodation"
            )
        return candidates[0]

    def reassign_room(
        self,
        caller: Optional[CallerIdentity],
        *,
        employee_id: int,
        room_number: Optional[str],
        accommodation_id: Optional[int] = None,
    ) -> Optional[RoomAllocation]:
        """Bring the employee to the desired room, or to no room when blank.

        Calling it again with the same target changes nothing.
        """

        employee = self._require_employee(require_positive_int(employee_id, "Employee id"))
        current = self.current_allocation(employee.employee_id)
        if accommodation_id is not None:
            accommodation_id = require_positive_int(accommodation_id, "Accommodation id")
        target = clean_optional(room_number)
        if target is not None and target.lower() == "null":
            target = None

        if target is None:
            if current is None:
                return None
            result = self._allocations.reassign(employee_id=employee.employee_id, room_id=None, on_date=today_local())
            self._raise_for_outcome(result)
            if result.checked_out_allocation_id is not None:
                self._record_reassign_checkout(caller, current, result)
            return None

        if current is not None and (current.room_number or "").lower() == target.lower():
            current_room = self._rooms.get_by_id(current.room_id)
            if accommodation_id is None or (current_room and current_room.accommodation_id == int(accommodation_id)):
                return current

        room = self._resolve_room_number(target, accommodation_id)
        result = self._allocations.reassign(employee_id=employee.employee_id, room_id=room.room_id, on_date=today_local())
        if result.outcome == AllocationOutcome.ROOM_FULL:
            raise ConflictError(f"Room {room.room_number} is at full capacity")
        self._raise_for_outcome(result)
        if result.outcome == AllocationOutcome.UNCHANGED:
            return self._allocations.get_by_id(int(result.allocation_id)) if result.allocation_id else None

        if current is not None and result.checked_out_allocation_id is not None:
            self._record_reassign_checkout(caller, current, result)

        allocation = self._require_allocation(int(result.allocation_id))
        logger.info(
            "Employee %s reassigned to room %s (allocation %s)",
            employee.employee_id,
            room.room_number,
            allocation.allocation_id,
        )
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM_ALLOCATION,
            entity_id=allocation.allocation_id,
            action=AuditAction.CREATE,
            description=(
                f"Room allocation created: {employee.full_name} checked into room {room.room_number}"
                f" ({room.accommodation_name}) on {allocation.check_in_date.isoformat()}"
            ),
            new_value=_allocation_snapshot(allocation),
        )
        return allocation

    def _record_reassign_checkout(
        self,
        caller: Optional[CallerIdentity],
        before: RoomAllocation,
        result: AllocationResult,
    ) -> None:
        after = self._allocations.get_by_id(int(result.checked_out_allocation_id or before.allocation_id))
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM_ALLOCATION,
            entity_id=before.allocation_id,
            action=AuditAction.UPDATE,
            description=f"Employee checked out: {before.employee_name} from room {before.room_number}",
            old_value=_allocation_snapshot(before),
            new_value=_allocation_snapshot(after) if after else None,
        )

    @staticmethod
    def _raise_for_outcome(result: AllocationResult) -> None:
        outcome = result.outcome
        if outcome == AllocationOutcome.ROOM_NOT_FOUND:
            raise NotFoundError("Room not found")
        if outcome == AllocationOutcome.EMPLOYEE_NOT_FOUND:
            raise NotFoundError("Employee not found")
        if outcome == AllocationOutcome.EMPLOYEE_INACTIVE:
            raise ConflictError("Inactive employees cannot be checked in")
        if outcome == AllocationOutcome.EMPLOYEE_ALREADY_ALLOCATED:
            raise ConflictError(f"Employee already has an active allocation in room {result.blocking_room_number}")
        if outcome == AllocationOutcome.ROOM_FULL:
            raise ConflictError("Room is at full capacity")

    # -------- Rooms --------
    def update_room(
        self,
        caller: Optional[CallerIdentity],
        *,
        room_id: int,
        room_number: Optional[str] = None,
        capacity: Optional[int] = None,
    ) -> Room:
        before = self._require_room(require_positive_int(room_id, "Room id"))
        new_number = require_non_empty(room_number, "Room number") if room_number is not None else None
        new_capacity = require_positive_int(capacity, "Capacity") if capacity is not None else None

        result = self._rooms.update_guarded(before.room_id, room_number=new_number, capacity=new_capacity)
        if result.outcome == RoomChangeOutcome.ROOM_NOT_FOUND:
            raise NotFoundError("Room not found")
        if result.outcome == RoomChangeOutcome.BELOW_OCCUPANCY:
            raise ConflictError(f"Cannot reduce capacity below current occupancy ({result.occupancy} occupants)")
        if result.outcome == RoomChangeOutcome.DUPLICATE_NUMBER:
            raise ConflictError(f"Room number {new_number} already exists in this accommodation")

        after = self._require_room(before.room_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM,
            entity_id=after.room_id,
            action=AuditAction.UPDATE,
            description=f"Room updated: {after.room_number} ({after.accommodation_name})",
            old_value=_room_snapshot(before),
            new_value=_room_snapshot(after),
        )
        return after

    def delete_room(self, caller: Optional[CallerIdentity], *, room_id: int) -> None:
        room = self._require_room(require_positive_int(room_id, "Room id"))

        result = self._rooms.delete_if_vacant(room.room_id)
        if result.outcome == RoomChangeOutcome.ROOM_NOT_FOUND:
            raise NotFoundError("Room not found")
        if result.outcome == RoomChangeOutcome.OCCUPIED:
            raise ConflictError(
                "Cannot delete room with active allocations. "
                f"Currently {result.occupancy} employee(s) living here."
            )

        logger.info("Room %s (%s) deleted", room.room_number, room.room_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_ROOM,
            entity_id=room.room_id,
            action=AuditAction.DELETE,
            description=f"Room deleted: {room.room_number} ({room.accommodation_name})",
            old_value=_room_snapshot(room),
        )

    # -------- Reads --------
    def get_room(self, room_id: int) -> Room:
        return self._require_room(room_id)

    def get_occupancy(self, room_id: int) -> list[RoomOccupant]:
        room = self._require_room(room_id)
        return list(self._allocations.list_occupants(room.room_id))

    def get_employee_room_history(self, employee_id: int) -> list[RoomAllocation]:
        employee = self._require_employee(employee_id)
        return list(self._allocations.list_for_employee(employee.employee_id))

    def get_room_overview(self, accommodation_id: Optional[int] = None) -> list[RoomView]:
        if accommodation_id is None:
            rooms = self._rooms.list_all()
        else:
            rooms = self._rooms.list_for_accommodation(int(accommodation_id))
        return [RoomView(room=room, occupants=list(self._allocations.list_occupants(room.room_id))) for room in rooms]

    def get_available_rooms(self, accommodation_id: Optional[int] = None) -> list[RoomView]:
        return [view for view in self.get_room_overview(accommodation_id) if view.is_available]
