from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

import pytest

from src.hr_admin_system.hr_admin_system.contracts import service as contract_module
from src.hr_admin_system.hr_admin_system.contracts.service import generate_contract_number
from src.hr_admin_system.hr_admin_system.core.enums import AuditAction, ContractStatus, Role
from src.hr_admin_system.hr_admin_system.core.exceptions import ConflictError, NotFoundError, ValidationError
from tests.fakes import caller_for, make_world


TODAY = date(2026, 3, 15)


@pytest.fixture
def world(monkeypatch):
    monkeypatch.setattr(contract_module, "today_local", lambda: TODAY)
    return make_world()


@pytest.fixture
def hr(world):
    return caller_for(world.users.add(email="hr@example.com", role=Role.HR))


@pytest.fixture
def anna(world):
    return world.employees.add(first_name="Anna", last_name="Kovacs")


def test_contract_number_format():
    number = generate_contract_number(42, on=date(2026, 3, 15))

    assert re.fullmatch(r"CONTRACT-20260315-42-[0-9A-F]{4}", number)


def test_create_contract_defaults(world, hr, anna):
    contract = world.container.contract_service.create_contract(
        hr, anna.employee_id, start_date=date(2026, 4, 1), hourly_rate="2500"
    )

    assert contract.status == ContractStatus.ACTIVE
    assert contract.currency == "HUF"
    assert contract.working_hours_per_week == 40
    assert contract.hourly_rate == Decimal("2500")
    assert contract.contract_number.startswith(f"CONTRACT-20260315-{anna.employee_id}-")
    assert world.audit.entries[-1].action == AuditAction.CREATE


def test_create_contract_validation(world, hr, anna):
    svc = world.container.contract_service

    with pytest.raises(ValidationError, match="Start date is required"):
        svc.create_contract(hr, anna.employee_id, start_date=None, hourly_rate=10)
    with pytest.raises(ValidationError, match="End date cannot be before start date"):
        svc.create_contract(hr, anna.employee_id, start_date=date(2026, 4, 1), end_date=date(2026, 3, 1), hourly_rate=10)
    with pytest.raises(ValidationError, match="Hourly rate"):
        svc.create_contract(hr, anna.employee_id, start_date=date(2026, 4, 1), hourly_rate=0)
    with pytest.raises(ValidationError, match="Currency"):
        svc.create_contract(hr, anna.employee_id, start_date=date(2026, 4, 1), hourly_rate=10, currency="EURO")
    with pytest.raises(NotFoundError):
        svc.create_contract(hr, 999, start_date=date(2026, 4, 1), hourly_rate=10)


def test_contract_number_collision_is_retried(world, hr, anna, monkeypatch):
    numbers = iter(["CONTRACT-A", "CONTRACT-A", "CONTRACT-B"])
    monkeypatch.setattr(contract_module, "generate_contract_number", lambda employee_id, on: next(numbers))
    svc = world.container.contract_service

    first = svc.create_contract(hr, anna.employee_id, start_date=date(2026, 4, 1), hourly_rate=10)
    second = svc.create_contract(hr, anna.employee_id, start_date=date(2026, 4, 1), hourly_rate=10)

    assert (first.contract_number, second.contract_number) == ("CONTRACT-A", "CONTRACT-B")


def test_invalidate_contract(world, hr, anna):
    svc = world.container.contract_service
    contract = svc.create_contract(hr, anna.employee_id, start_date=date(2026, 1, 1), hourly_rate=10)

    terminated = svc.invalidate_contract(hr, contract.contract_id)

    assert terminated.status == ContractStatus.TERMINATED
    assert terminated.end_date == TODAY
    with pytest.raises(ConflictError, match="already terminated"):
        svc.invalidate_contract(hr, contract.contract_id)


def test_invalidate_keeps_existing_end_date(world, hr, anna):
    svc = world.container.contract_service
    contract = svc.create_contract(
        hr, anna.employee_id, start_date=date(2026, 1, 1), end_date=date(2026, 12, 31), hourly_rate=10
    )

    assert svc.invalidate_contract(hr, contract.contract_id).end_date == date(2026, 12, 31)


def test_expired_contract_cannot_be_terminated(world, hr, anna):
    svc = world.container.contract_service
    contract = svc.create_contract(hr, anna.employee_id, start_date=date(2025, 1, 1), hourly_rate=10)
    world.store.contracts[contract.contract_id]["status"] = ContractStatus.EXPIRED

    with pytest.raises(ConflictError, match="expired"):
        svc.invalidate_contract(hr, contract.contract_id)


def test_list_for_employee(world, hr, anna):
    svc = world.container.contract_service
    svc.create_contract(hr, anna.employee_id, start_date=date(2026, 1, 1), hourly_rate=10)

    assert len(svc.list_for_employee(anna.employee_id)) == 1
    with pytest.raises(NotFoundError):
        svc.list_for_employee(999)
