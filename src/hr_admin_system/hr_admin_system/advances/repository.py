from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import AdvanceStatus
from .model import AdvanceRequest


class AdvanceRequestRepository(Protocol):
    def create(self, *, employee_id: int, amount: Decimal, reason: Optional[str]) -> int:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[AdvanceRequest]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int) -> Sequence[AdvanceRequest]:
        """Newest first."""

        raise NotImplementedError

    def list_requests(self, *, status: Optional[AdvanceStatus] = None) -> Sequence[AdvanceRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: AdvanceStatus,
        reviewed_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """PENDING -> status. Returns False if the request is no longer PENDING."""

        raise NotImplementedError

    def count_by_status(self) -> dict[AdvanceStatus, int]:
        raise NotImplementedError
