from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditLogEntry:
    """One append-only audit record. Never updated after insert."""

    audit_id: int
    entity_type: str
    entity_id: Optional[int]
    action: AuditAction
    user_id: Optional[int]
    user_email: Optional[str]
    user_role: Optional[str]
    description: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]
    ip_address: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class NewAuditEntry:
    entity_type: str
    entity_id: Optional[int]
    action: AuditAction
    user_id: Optional[int]
    user_email: str
    user_role: str
    description: str
    old_value: Optional[str]
    new_value: Optional[str]
    ip_address: str


@dataclass(frozen=True)
class AuditFilter:
    entity_type: Optional[str] = None
    action: Optional[AuditAction] = None
    user_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class AuditPage:
    items: list[AuditLogEntry]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size


@dataclass(frozen=True)
class AuditStatistics:
    total_logs: int
    counts: dict[AuditAction, int] = field(default_factory=dict)

    def count(self, action: AuditAction) -> int:
        return int(self.counts.get(action, 0))
