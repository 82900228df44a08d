from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import AdvanceStatus


@dataclass(frozen=True)
class AdvanceRequest:
    request_id: int
    employee_id: int
    amount: Decimal
    reason: Optional[str]
    status: AdvanceStatus
    requested_at: datetime
    employee_name: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_by_name: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
