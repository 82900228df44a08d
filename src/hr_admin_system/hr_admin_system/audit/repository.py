from __future__ import annotations

from typing import Protocol, Sequence

from ..core.enums import AuditAction
from .model import AuditFilter, AuditLogEntry, NewAuditEntry


class AuditRepository(Protocol):
    """Append-only store of audit entries.

    Entries are never updated or deleted.
    """

    def append(self, entry: NewAuditEntry) -> int:
        raise NotImplementedError

    def search(self, flt: AuditFilter, *, offset: int, limit: int) -> Sequence[AuditLogEntry]:
        """Newest first."""

        raise NotImplementedError

    def count(self, flt: AuditFilter) -> int:
        raise NotImplementedError

    def list_for_entity(self, *, entity_type: str, entity_id: int) -> Sequence[AuditLogEntry]:
        raise NotImplementedError

    def count_by_action(self) -> dict[AuditAction, int]:
        raise NotImplementedError
