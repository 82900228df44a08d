from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..accommodations.model import RoomOccupant
from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Employee record joined with its (1:1) user account."""

    employee_id: int
    user_id: int
    first_name: str
    last_name: str
    email: str
    role: Role
    is_active: bool
    tax_id: Optional[str] = None
    social_security_number: Optional[str] = None
    id_card_number: Optional[str] = None
    primary_address: Optional[str] = None
    phone_number: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[date] = None
    company_name: Optional[str] = None
    start_date: Optional[date] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class EmployeeView:
    employee: Employee
    current_room_number: Optional[str] = None


@dataclass(frozen=True)
class NewEmployee:
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: Role
    tax_id: Optional[str] = None
    social_security_number: Optional[str] = None
    id_card_number: Optional[str] = None
    primary_address: Optional[str] = None
    phone_number: Optional[str] = None
    nationality: Optional[str] = None
    birth_date: Optional[date] = None
    company_name: Optional[str] = None
    start_date: Optional[date] = None


# Fields an update may touch, split by the table that stores them.
USER_FIELDS = ("first_name", "last_name", "email", "is_active")
EMPLOYEE_FIELDS = (
    "tax_id",
    "social_security_number",
    "id_card_number",
    "primary_address",
    "phone_number",
    "nationality",
    "company_name",
    "start_date",
)

# Identity documents that must be unique across employees.
UNIQUE_DOCUMENT_FIELDS = {
    "tax_id": "Tax ID",
    "social_security_number": "Social security number",
    "id_card_number": "ID card number",
}


@dataclass(frozen=True)
class MyRoomInfo:
    room_id: int
    room_number: str
    capacity: int
    accommodation_id: int
    accommodation_name: Optional[str]
    accommodation_address: Optional[str]
    check_in_date: date
    occupants: list[RoomOccupant] = field(default_factory=list)

    @property
    def occupancy(self) -> int:
        return len(self.occupants)
