from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..accommodations.repository import AllocationRepository, RoomRepository
from ..advances.repository import AdvanceRequestRepository
from ..common.datetime_utils import start_of_month, today_local
from ..common.logger import get_logger
from ..core.enums import AdvanceStatus
from ..employees.repository import EmployeeRepository


logger = get_logger(__name__)


@dataclass(frozen=True)
class DashboardStats:
    total_employees: int
    active_employees: int
    inactive_employees: int
    new_employees_this_month: int
    total_rooms: int
    occupied_rooms: int
    available_rooms: int
    total_capacity: int
    current_occupancy: int
    total_advance_requests: int
    pending_advance_requests: int
    approved_advance_requests: int
    rejected_advance_requests: int
    check_ins_this_month: int


class DashboardService:
    """Read-only headline numbers for the admin dashboard."""

    def __init__(
        self,
        employees: EmployeeRepository,
        rooms: RoomRepository,
        allocations: AllocationRepository,
        advances: AdvanceRequestRepository,
    ):
        self._employees = employees
        self._rooms = rooms
        self._allocations = allocations
        self._advances = advances

    def get_stats(self, today: Optional[date] = None) -> DashboardStats:
        logger.info("Fetching dashboard statistics")
        today = today or today_local()
        month_start = start_of_month(today)

        total_employees = self._employees.count_employees()
        active_employees = self._employees.count_employees(is_active=True)

        rooms = list(self._rooms.list_all())
        active_by_room = self._allocations.count_active_by_room()
        occupied_rooms = sum(1 for room in rooms if active_by_room.get(room.room_id, 0) > 0)

        advance_counts = self._advances.count_by_status()

        return DashboardStats(
            total_employees=total_employees,
            active_employees=active_employees,
            inactive_employees=total_employees - active_employees,
            new_employees_this_month=self._employees.count_created_since(datetime.combine(month_start, time.min)),
            total_rooms=len(rooms),
            occupied_rooms=occupied_rooms,
            available_rooms=len(rooms) - occupied_rooms,
            total_capacity=sum(room.capacity for room in rooms),
            current_occupancy=self._allocations.count_active(),
            total_advance_requests=sum(advance_counts.values()),
            pending_advance_requests=advance_counts.get(AdvanceStatus.PENDING, 0),
            approved_advance_requests=advance_counts.get(AdvanceStatus.APPROVED, 0),
            rejected_advance_requests=advance_counts.get(AdvanceStatus.REJECTED, 0),
            check_ins_this_month=self._allocations.count_check_ins_since(month_start),
        )
