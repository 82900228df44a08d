from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.logger import get_logger
from ..common.snapshots import to_json_snapshot
from ..core.constants import (
    DEFAULT_AUDIT_PAGE_SIZE,
    DEFAULT_RECENT_AUDIT_LIMIT,
    MAX_AUDIT_PAGE_SIZE,
    SYSTEM_USER_EMAIL,
    SYSTEM_USER_ROLE,
    UNKNOWN_IP_ADDRESS,
)
from ..core.enums import AuditAction
from ..core.exceptions import ValidationError
from ..core.identity import CallerIdentity
from .model import AuditFilter, AuditLogEntry, AuditPage, AuditStatistics, NewAuditEntry
from .repository import AuditRepository


logger = get_logger(__name__)


class AuditService:
    """Audit trail: best-effort recording plus read-only queries."""

    def __init__(self, audit: AuditRepository):
        self._audit = audit

    def record(
        self,
        caller: Optional[CallerIdentity],
        *,
        entity_type: str,
        entity_id: Optional[int],
        action: AuditAction,
        description: str,
        old_value: Optional[Mapping[str, Any]] = None,
        new_value: Optional[Mapping[str, Any]] = None,
    ) -> Optional[int]:
        """Append an audit entry.

        Never raises: a failing audit write is logged and swallowed so the
        business operation that triggered it keeps its result. Returns the new
        entry id, or None when nothing was stored.
        """

        try:
            entry = NewAuditEntry(
                entity_type=entity_type,
                entity_id=int(entity_id) if entity_id is not None else None,
                action=action,
                user_id=caller.user_id if caller else None,
                user_email=caller.email if caller else SYSTEM_USER_EMAIL,
                user_role=caller.role.value if caller else SYSTEM_USER_ROLE,
                description=description,
                old_value=to_json_snapshot(old_value),
                new_value=to_json_snapshot(new_value),
                ip_address=(caller.ip_address if caller and caller.ip_address else UNKNOWN_IP_ADDRESS),
            )
            audit_id = self._audit.append(entry)
        except Exception as exc:
            logger.error("Failed to create audit log for %s %s (ID: %s): %s", action, entity_type, entity_id, exc)
            return None

        logger.info(
            "Audit log created: %s %s on %s (ID: %s) by %s",
            action.value,
            entity_type,
            entity_id,
            audit_id,
            entry.user_email,
        )
        return audit_id

    def search(
        self,
        *,
        entity_type: Optional[str] = None,
        action: Optional[AuditAction] = None,
        user_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 0,
        size: int = DEFAULT_AUDIT_PAGE_SIZE,
    ) -> AuditPage:
        if page < 0:
            raise ValidationError("Page must not be negative")
        if size <= 0:
            raise ValidationError("Page size must be greater than zero")
        if start and end and end < start:
            raise ValidationError("End of the time range must not be before its start")
        size = min(int(size), MAX_AUDIT_PAGE_SIZE)

        flt = AuditFilter(
            entity_type=(entity_type or "").strip() or None,
            action=action,
            user_id=user_id,
            start=start,
            end=end,
        )
        items = list(self._audit.search(flt, offset=page * size, limit=size))
        total = self._audit.count(flt)
        return AuditPage(items=items, total=total, page=page, size=size)

    def entity_history(self, entity_type: str, entity_id: int) -> list[AuditLogEntry]:
        return list(self._audit.list_for_entity(entity_type=entity_type, entity_id=int(entity_id)))

    def recent(self, limit: int = DEFAULT_RECENT_AUDIT_LIMIT) -> list[AuditLogEntry]:
        if limit <= 0:
            raise ValidationError("Limit must be greater than zero")
        limit = min(int(limit), MAX_AUDIT_PAGE_SIZE)
        return list(self._audit.search(AuditFilter(), offset=0, limit=limit))

    def statistics(self) -> AuditStatistics:
        counts = self._audit.count_by_action()
        return AuditStatistics(
            total_logs=sum(counts.values()),
            counts={action: int(counts.get(action, 0)) for action in AuditAction},
        )
