from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .accommodations.allocation_service import AllocationService
from .accommodations.mysql_accommodation_repository import MySQLAccommodationRepository, MySQLRoomRepository
from .accommodations.mysql_allocation_repository import MySQLAllocationRepository
from .accommodations.repository import AccommodationRepository, AllocationRepository, RoomRepository
from .accommodations.service import AccommodationService
from .advances.mysql_advance_repository import MySQLAdvanceRequestRepository
from .advances.repository import AdvanceRequestRepository
from .advances.service import AdvanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.repository import AuditRepository
from .audit.service import AuditService
from .contracts.mysql_contract_repository import MySQLContractRepository
from .contracts.repository import ContractRepository
from .contracts.service import ContractService
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .employees.service import EmployeeService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    employees_repo: EmployeeRepository
    accommodations_repo: AccommodationRepository
    rooms_repo: RoomRepository
    allocations_repo: AllocationRepository
    advances_repo: AdvanceRequestRepository
    contracts_repo: ContractRepository
    audit_repo: AuditRepository

    audit_service: AuditService
    auth_service: AuthService
    user_service: UserService
    accommodation_service: AccommodationService
    allocation_service: AllocationService
    employee_service: EmployeeService
    advance_service: AdvanceService
    contract_service: ContractService
    dashboard_service: DashboardService


def wire_container(
    *,
    users_repo: UserRepository,
    employees_repo: EmployeeRepository,
    accommodations_repo: AccommodationRepository,
    rooms_repo: RoomRepository,
    allocations_repo: AllocationRepository,
    advances_repo: AdvanceRequestRepository,
    contracts_repo: ContractRepository,
    audit_repo: AuditRepository,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    audit_service = AuditService(audit_repo)
    auth_service = AuthService(users_repo, audit_service)
    user_service = UserService(users_repo, audit_service)
    accommodation_service = AccommodationService(accommodations_repo, rooms_repo, audit_service)
    allocation_service = AllocationService(rooms_repo, allocations_repo, employees_repo, audit_service)
    employee_service = EmployeeService(
        employees_repo,
        users_repo,
        accommodations_repo,
        allocation_service,
        audit_service,
    )
    advance_service = AdvanceService(advances_repo, employees_repo, audit_service)
    contract_service = ContractService(contracts_repo, employees_repo, audit_service)
    dashboard_service = DashboardService(employees_repo, rooms_repo, allocations_repo, advances_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        employees_repo=employees_repo,
        accommodations_repo=accommodations_repo,
        rooms_repo=rooms_repo,
        allocations_repo=allocations_repo,
        advances_repo=advances_repo,
        contracts_repo=contracts_repo,
        audit_repo=audit_repo,
        audit_service=audit_service,
        auth_service=auth_service,
        user_service=user_service,
        accommodation_service=accommodation_service,
        allocation_service=allocation_service,
        employee_service=employee_service,
        advance_service=advance_service,
        contract_service=contract_service,
        dashboard_service=dashboard_service,
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return wire_container(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        accommodations_repo=MySQLAccommodationRepository(conn),
        rooms_repo=MySQLRoomRepository(conn),
        allocations_repo=MySQLAllocationRepository(conn),
        advances_repo=MySQLAdvanceRequestRepository(conn),
        contracts_repo=MySQLContractRepository(conn),
        audit_repo=MySQLAuditRepository(conn),
    )
