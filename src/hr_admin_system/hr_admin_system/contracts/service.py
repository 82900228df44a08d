from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import today_local
from ..common.logger import get_logger
from ..common.validators import require_positive_amount, require_positive_int
from ..core.constants import DEFAULT_CONTRACT_CURRENCY, DEFAULT_WORKING_HOURS_PER_WEEK, ENTITY_CONTRACT
from ..core.enums import AuditAction, ContractStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identity import CallerIdentity
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .model import Contract, NewContract
from .repository import ContractRepository


logger = get_logger(__name__)

_MAX_NUMBER_ATTEMPTS = 5


def generate_contract_number(employee_id: int, *, on: date) -> str:
    """CONTRACT-YYYYMMDD-<employee id>-XXXX"""
    return f"CONTRACT-{on.strftime('%Y%m%d')}-{int(employee_id)}-{uuid.uuid4().hex[:4].upper()}"


class ContractService:
    def __init__(self, contracts: ContractRepository, employees: EmployeeRepository, audit: AuditService):
        self._contracts = contracts
        self._employees = employees
        self._audit = audit

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _require_contract(self, contract_id: int) -> Contract:
        contract = self._contracts.get_by_id(int(contract_id))
        if not contract:
            raise NotFoundError("Contract not found")
        return contract

    def list_for_employee(self, employee_id: int) -> list[Contract]:
        employee = self._require_employee(employee_id)
        return list(self._contracts.list_for_employee(employee.employee_id))

    def _unique_number(self, employee_id: int) -> str:
        for _ in range(_MAX_NUMBER_ATTEMPTS):
            number = generate_contract_number(employee_id, on=today_local())
            if not self._contracts.number_exists(number):
                return number
        raise ConflictError("Could not generate a unique contract number, please retry")

    def create_contract(
        self,
        caller: Optional[CallerIdentity],
        employee_id: int,
        *,
        start_date: Optional[date],
        end_date: Optional[date] = None,
        hourly_rate: Any,
        currency: Optional[str] = None,
        working_hours_per_week: Optional[int] = None,
    ) -> Contract:
        employee = self._require_employee(employee_id)

        if start_date is None:
            raise ValidationError("Start date is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")
        rate = require_positive_amount(hourly_rate, "Hourly rate")
        currency = (currency or DEFAULT_CONTRACT_CURRENCY).strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("Currency must be a three-letter code")
        hours = (
            require_positive_int(working_hours_per_week, "Working hours per week")
            if working_hours_per_week is not None
            else DEFAULT_WORKING_HOURS_PER_WEEK
        )

        number = self._unique_number(employee.employee_id)
        contract_id = self._contracts.create(
            NewContract(
                employee_id=employee.employee_id,
                contract_number=number,
                start_date=start_date,
                end_date=end_date,
                hourly_rate=rate,
                currency=currency,
                working_hours_per_week=hours,
                status=ContractStatus.ACTIVE,
            )
        )
        created = self._require_contract(contract_id)

        logger.info("Contract %s created for employee %s", number, employee.employee_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_CONTRACT,
            entity_id=created.contract_id,
            action=AuditAction.CREATE,
            description=f"Created contract {number} for employee {employee.full_name} (ID: {employee.employee_id})",
            new_value={
                "id": created.contract_id,
                "contractNumber": created.contract_number,
                "employeeId": employee.employee_id,
                "startDate": created.start_date,
                "endDate": created.end_date,
                "hourlyRate": created.hourly_rate,
                "currency": created.currency,
                "workingHoursPerWeek": created.working_hours_per_week,
                "status": created.status.value,
            },
        )
        return created

    def invalidate_contract(self, caller: Optional[CallerIdentity], contract_id: int) -> Contract:
        before = self._require_contract(contract_id)
        if before.status == ContractStatus.TERMINATED:
            raise ConflictError("Contract is already terminated")
        if before.status == ContractStatus.EXPIRED:
            raise ConflictError("Cannot terminate an expired contract")

        if not self._contracts.terminate(before.contract_id, end_date=today_local()):
            raise ConflictError("Contract is already terminated")

        after = self._require_contract(before.contract_id)
        logger.info("Contract %s has been terminated", after.contract_number)
        self._audit.record(
            caller,
            entity_type=ENTITY_CONTRACT,
            entity_id=after.contract_id,
            action=AuditAction.UPDATE,
            description=f"Terminated contract {after.contract_number} for employee {after.employee_name}",
            old_value={"status": before.status.value, "endDate": before.end_date},
            new_value={"status": after.status.value, "endDate": after.end_date},
        )
        return after
