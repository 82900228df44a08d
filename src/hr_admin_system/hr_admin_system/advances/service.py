from __future__ import annotations

from typing import Any, Optional

from ..audit.service import AuditService
from ..common.logger import get_logger
from ..common.validators import clean_optional, require_positive_amount
from ..core.constants import ENTITY_ADVANCE_REQUEST
from ..core.enums import AdvanceStatus, AuditAction, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..core.identity import CallerIdentity
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .model import AdvanceRequest
from .repository import AdvanceRequestRepository


logger = get_logger(__name__)


class AdvanceService:
    """Salary-advance requests: employees ask, HR/admin decide once."""

    def __init__(self, requests: AdvanceRequestRepository, employees: EmployeeRepository, audit: AuditService):
        self._requests = requests
        self._employees = employees
        self._audit = audit

    def _my_employee(self, caller: Optional[CallerIdentity]) -> Employee:
        if caller is None:
            raise AuthenticationError("Authentication required")
        employee = self._employees.get_by_user_id(caller.user_id)
        if not employee:
            raise NotFoundError("Employee profile not found")
        return employee

    def _require_request(self, request_id: int) -> AdvanceRequest:
        req = self._requests.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("Advance request not found")
        return req

    def create_request(self, caller: Optional[CallerIdentity], *, amount: Any, reason: Optional[str] = None) -> AdvanceRequest:
        if caller is not None and caller.role != Role.EMPLOYEE:
            raise AuthorizationError("Only employees can request a salary advance")
        employee = self._my_employee(caller)
        value = require_positive_amount(amount, "Amount")
        reason = clean_optional(reason)

        request_id = self._requests.create(employee_id=employee.employee_id, amount=value, reason=reason)
        created = self._require_request(request_id)

        logger.info("Employee %s created advance request for amount %s", employee.email, value)
        self._audit.record(
            caller,
            entity_type=ENTITY_ADVANCE_REQUEST,
            entity_id=created.request_id,
            action=AuditAction.CREATE,
            description=(
                f"Employee {employee.full_name} created advance request for {value}"
                f" (reason: {reason or 'No reason provided'})"
            ),
            new_value={
                "id": created.request_id,
                "employeeId": employee.employee_id,
                "amount": created.amount,
                "reason": created.reason,
                "status": created.status.value,
                "requestDate": created.requested_at,
            },
        )
        return created

    def my_history(self, caller: Optional[CallerIdentity]) -> list[AdvanceRequest]:
        employee = self._my_employee(caller)
        return list(self._requests.list_for_employee(employee.employee_id))

    def list_requests(self, status: Optional[str] = None) -> list[AdvanceRequest]:
        status_filter: Optional[AdvanceStatus] = None
        if status and status.strip():
            try:
                status_filter = AdvanceStatus(status.strip().upper())
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        return list(self._requests.list_requests(status=status_filter))

    def review(
        self,
        caller: Optional[CallerIdentity],
        request_id: int,
        *,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> AdvanceRequest:
        if caller is None:
            raise AuthenticationError("Authentication required")
        if not caller.has_role(Role.ADMIN, Role.HR):
            raise AuthorizationError("Only ADMIN and HR users can review advance requests")

        req = self._require_request(request_id)
        if req.status != AdvanceStatus.PENDING:
            raise ConflictError("Advance request has already been reviewed")

        try:
            new_status = AdvanceStatus((status or "").strip().upper())
        except ValueError:
            raise ValidationError("Invalid status. Use APPROVED or REJECTED")
        if new_status not in (AdvanceStatus.APPROVED, AdvanceStatus.REJECTED):
            raise ValidationError("Status must be APPROVED or REJECTED")

        reason = clean_optional(rejection_reason)
        if new_status == AdvanceStatus.REJECTED and not reason:
            raise ValidationError("Rejection reason is required when rejecting")

        decided = self._requests.decide(
            request_id=req.request_id,
            status=new_status,
            reviewed_by=caller.user_id,
            rejection_reason=reason if new_status == AdvanceStatus.REJECTED else None,
        )
        if not decided:
            raise ConflictError("Advance request has already been reviewed")

        updated = self._require_request(req.request_id)
        logger.info("User %s reviewed advance request %s with status %s", caller.email, req.request_id, new_status.value)

        new_value: dict = {
            "status": updated.status.value,
            "reviewedBy": caller.user_id,
            "reviewedByName": updated.reviewed_by_name,
            "reviewedAt": updated.reviewed_at,
        }
        if new_status == AdvanceStatus.REJECTED:
            new_value["rejectionReason"] = updated.rejection_reason
        verb = "approved" if new_status == AdvanceStatus.APPROVED else "rejected"
        suffix = f" (reason: {reason})" if new_status == AdvanceStatus.REJECTED else ""
        self._audit.record(
            caller,
            entity_type=ENTITY_ADVANCE_REQUEST,
            entity_id=updated.request_id,
            action=AuditAction.UPDATE,
            description=f"{caller.email} {verb} advance request from {req.employee_name} for amount {req.amount}{suffix}",
            old_value={"status": AdvanceStatus.PENDING.value, "reviewedBy": None, "reviewedAt": None},
            new_value=new_value,
        )
        return updated
