from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ContractStatus


@dataclass(frozen=True)
class Contract:
    contract_id: int
    employee_id: int
    contract_number: str
    start_date: date
    end_date: Optional[date]
    hourly_rate: Decimal
    currency: str
    working_hours_per_week: int
    status: ContractStatus
    created_at: Optional[datetime] = None
    employee_name: Optional[str] = None


@dataclass(frozen=True)
class NewContract:
    employee_id: int
    contract_number: str
    start_date: date
    end_date: Optional[date]
    hourly_rate: Decimal
    currency: str
    working_hours_per_week: int
    status: ContractStatus = ContractStatus.ACTIVE
