from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import Employee, NewEmployee


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def list_employees(self, *, is_active: Optional[bool] = None, search: Optional[str] = None) -> Sequence[Employee]:
        """EMPLOYEE-role accounts only, ordered by last name then first name."""

        raise NotImplementedError

    def document_taken(self, *, field: str, value: str, exclude_employee_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, new: NewEmployee) -> int:
        """Insert the user account and the employee record together; returns employee id."""

        raise NotImplementedError

    def update(
        self,
        employee_id: int,
        *,
        user_changes: Mapping[str, Any],
        employee_changes: Mapping[str, Any],
    ) -> bool:
        raise NotImplementedError

    def count_employees(self, *, is_active: Optional[bool] = None) -> int:
        raise NotImplementedError

    def count_created_since(self, moment: datetime) -> int:
        raise NotImplementedError
