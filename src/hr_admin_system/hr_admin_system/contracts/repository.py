from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Contract, NewContract


class ContractRepository(Protocol):
    def get_by_id(self, contract_id: int) -> Optional[Contract]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int) -> Sequence[Contract]:
        raise NotImplementedError

    def number_exists(self, contract_number: str) -> bool:
        raise NotImplementedError

    def create(self, new: NewContract) -> int:
        raise NotImplementedError

    def terminate(self, contract_id: int, *, end_date: date) -> bool:
        """Only ACTIVE or DRAFT contracts can be terminated; returns False otherwise."""

        raise NotImplementedError
