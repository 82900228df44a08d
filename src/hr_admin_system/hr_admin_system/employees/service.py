from __future__ import annotations

from typing import Any, Mapping, Optional

from werkzeug.security import generate_password_hash

from ..accommodations.allocation_service import AllocationService
from ..accommodations.model import RoomAllocation
from ..accommodations.repository import AccommodationRepository
from ..audit.service import AuditService
from ..common.datetime_utils import parse_optional_date
from ..common.logger import get_logger
from ..common.validators import clean_optional, require_min_length, require_non_empty
from ..core.constants import ENTITY_EMPLOYEE, MIN_PASSWORD_LENGTH
from ..core.enums import AuditAction, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..core.identity import CallerIdentity
from ..users.repository import UserRepository
from .model import (
    EMPLOYEE_FIELDS,
    UNIQUE_DOCUMENT_FIELDS,
    USER_FIELDS,
    Employee,
    EmployeeView,
    MyRoomInfo,
    NewEmployee,
)
from .repository import EmployeeRepository


logger = get_logger(__name__)

_DATE_FIELDS = ("birth_date", "start_date")


def _employee_snapshot(employee: Employee) -> dict:
    return {
        "firstName": employee.first_name,
        "lastName": employee.last_name,
        "email": employee.email,
        "role": employee.role.value,
        "taxId": employee.tax_id,
        "socialSecurityNumber": employee.social_security_number,
        "idCardNumber": employee.id_card_number,
        "companyName": employee.company_name,
        "phoneNumber": employee.phone_number,
        "nationality": employee.nationality,
        "primaryAddress": employee.primary_address,
        "startDate": employee.start_date,
        "isActive": employee.is_active,
    }


class EmployeeService:
    """Employee records, self-service views and the employee side of room assignment."""

    def __init__(
        self,
        employees: EmployeeRepository,
        users: UserRepository,
        accommodations: AccommodationRepository,
        allocation_service: AllocationService,
        audit: AuditService,
    ):
        self._employees = employees
        self._users = users
        self._accommodations = accommodations
        self._allocation_service = allocation_service
        self._audit = audit

    # -------- Room bridge --------
    def get_current_room_number(self, employee_id: int) -> Optional[str]:
        allocation = self._allocation_service.current_allocation(int(employee_id))
        return allocation.room_number if allocation else None

    def _view(self, employee: Employee) -> EmployeeView:
        return EmployeeView(employee=employee, current_room_number=self.get_current_room_number(employee.employee_id))

    # -------- Reads --------
    def list_employees(self, *, is_active: Optional[bool] = None, search: Optional[str] = None) -> list[EmployeeView]:
        employees = self._employees.list_employees(is_active=is_active, search=clean_optional(search))
        return [self._view(e) for e in employees]

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def get_employee(self, employee_id: int) -> EmployeeView:
        return self._view(self._require_employee(employee_id))

    def _my_employee(self, caller: Optional[CallerIdentity]) -> Employee:
        if caller is None:
            raise AuthenticationError("Authentication required")
        employee = self._employees.get_by_user_id(caller.user_id)
        if not employee:
            raise NotFoundError("Employee profile not found")
        return employee

    def get_my_profile(self, caller: Optional[CallerIdentity]) -> EmployeeView:
        return self._view(self._my_employee(caller))

    def get_my_room(self, caller: Optional[CallerIdentity]) -> MyRoomInfo:
        employee = self._my_employee(caller)
        allocation = self._allocation_service.current_allocation(employee.employee_id)
        if allocation is None:
            raise NotFoundError("You are not currently assigned to a room")

        room = self._allocation_service.get_room(allocation.room_id)
        accommodation = self._accommodations.get_by_id(room.accommodation_id)
        return MyRoomInfo(
            room_id=room.room_id,
            room_number=room.room_number,
            capacity=room.capacity,
            accommodation_id=room.accommodation_id,
            accommodation_name=accommodation.name if accommodation else room.accommodation_name,
            accommodation_address=accommodation.address if accommodation else None,
            check_in_date=allocation.check_in_date,
            occupants=self._allocation_service.get_occupancy(room.room_id),
        )

    def get_my_room_history(self, caller: Optional[CallerIdentity]) -> list[RoomAllocation]:
        employee = self._my_employee(caller)
        return self._allocation_service.get_employee_room_history(employee.employee_id)

    # -------- Writes --------
    @staticmethod
    def _require_staff(caller: Optional[CallerIdentity]) -> CallerIdentity:
        if caller is None:
            raise AuthenticationError("Authentication required")
        if not caller.has_role(Role.ADMIN, Role.HR):
            raise AuthorizationError("Only ADMIN and HR users can manage employees")
        return caller

    def _check_documents(self, values: Mapping[str, Optional[str]], *, exclude_employee_id: Optional[int] = None) -> None:
        for field, label in UNIQUE_DOCUMENT_FIELDS.items():
            value = values.get(field)
            if value and self._employees.document_taken(
                field=field,
                value=value,
                exclude_employee_id=exclude_employee_id,
            ):
                suffix = " for another employee" if exclude_employee_id is not None else ""
                raise ConflictError(f"{label} already exists{suffix}")

    def create_employee(self, caller: Optional[CallerIdentity], payload: Mapping[str, Any]) -> EmployeeView:
        caller = self._require_staff(caller)

        raw_role = (payload.get("role") or Role.EMPLOYEE.value)
        try:
            role = Role(str(raw_role).strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown role: {raw_role}")
        if role in (Role.ADMIN, Role.HR) and caller.role != Role.ADMIN:
            raise AuthorizationError("Only ADMIN users can create ADMIN or HR accounts")

        first_name = require_non_empty(payload.get("first_name") or "", "First name")
        last_name = require_non_empty(payload.get("last_name") or "", "Last name")
        email = require_non_empty(payload.get("email") or "", "Email").lower()
        password = require_min_length(payload.get("password") or "", "Password", MIN_PASSWORD_LENGTH)

        if self._users.get_by_email(email):
            raise ConflictError("Email already exists")
        documents = {field: clean_optional(payload.get(field)) for field in UNIQUE_DOCUMENT_FIELDS}
        self._check_documents(documents)

        employee_id = self._employees.create(
            NewEmployee(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password_hash=generate_password_hash(password),
                role=role,
                tax_id=documents["tax_id"],
                social_security_number=documents["social_security_number"],
                id_card_number=documents["id_card_number"],
                primary_address=clean_optional(payload.get("primary_address")),
                phone_number=clean_optional(payload.get("phone_number")),
                nationality=clean_optional(payload.get("nationality")),
                birth_date=parse_optional_date(payload.get("birth_date")),
                company_name=clean_optional(payload.get("company_name")),
                start_date=parse_optional_date(payload.get("start_date")),
            )
        )
        created = self._require_employee(employee_id)
        logger.info("User %s (role: %s) created %s account %s", caller.email, caller.role.value, role.value, email)
        self._audit.record(
            caller,
            entity_type=ENTITY_EMPLOYEE,
            entity_id=created.employee_id,
            action=AuditAction.CREATE,
            description=f"Created employee: {created.full_name} ({created.email}) with role {role.value}",
            new_value=_employee_snapshot(created),
        )
        return self._view(created)

    def update_employee(self, caller: Optional[CallerIdentity], employee_id: int, payload: Mapping[str, Any]) -> EmployeeView:
        caller = self._require_staff(caller)
        before = self._require_employee(employee_id)

        user_changes: dict[str, Any] = {}
        for field in USER_FIELDS:
            if payload.get(field) is None:
                continue
            if field == "is_active":
                user_changes[field] = bool(payload[field])
            else:
                user_changes[field] = require_non_empty(str(payload[field]), field.replace("_", " ").capitalize())
        if "email" in user_changes:
            user_changes["email"] = user_changes["email"].lower()
            other = self._users.get_by_email(user_changes["email"])
            if other and other.user_id != before.user_id:
                raise ConflictError("Email already exists")

        employee_changes: dict[str, Any] = {}
        for field in EMPLOYEE_FIELDS:
            if payload.get(field) is None:
                continue
            if field in _DATE_FIELDS:
                employee_changes[field] = parse_optional_date(payload[field])
            else:
                employee_changes[field] = clean_optional(payload[field])
        self._check_documents(employee_changes, exclude_employee_id=before.employee_id)

        # The room move can still be refused, so it runs before any field is
        # written. Only inactive employees cannot move, hence the early reactivation.
        if "room_number" in payload:
            reactivating = user_changes.get("is_active") is True and not before.is_active
            if reactivating:
                self._users.set_active(before.user_id, is_active=True)
            try:
                self._allocation_service.reassign_room(
                    caller,
                    employee_id=before.employee_id,
                    room_number=payload.get("room_number"),
                    accommodation_id=payload.get("accommodation_id"),
                )
            except DomainError:
                if reactivating:
                    self._users.set_active(before.user_id, is_active=False)
                raise

        if user_changes or employee_changes:
            if not self._employees.update(
                before.employee_id,
                user_changes=user_changes,
                employee_changes=employee_changes,
            ):
                raise NotFoundError("Employee not found")

        after = self._require_employee(before.employee_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_EMPLOYEE,
            entity_id=after.employee_id,
            action=AuditAction.UPDATE,
            description=f"Updated employee: {after.full_name} ({after.email})",
            old_value=_employee_snapshot(before),
            new_value=_employee_snapshot(after),
        )
        return self._view(after)

    def deactivate_employee(self, caller: Optional[CallerIdentity], employee_id: int) -> None:
        """Soft delete: the account is disabled, every record stays."""

        employee = self._require_employee(employee_id)
        if employee.is_active and not self._users.set_active(employee.user_id, is_active=False):
            raise NotFoundError("Employee not found")

        logger.info("Employee %s deactivated", employee.employee_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_EMPLOYEE,
            entity_id=employee.employee_id,
            action=AuditAction.DELETE,
            description=f"Deactivated employee: {employee.full_name} ({employee.email})",
            old_value={"isActive": employee.is_active},
            new_value={"isActive": False},
        )
