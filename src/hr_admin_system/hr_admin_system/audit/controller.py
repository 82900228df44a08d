from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_optional_datetime
from ..common.web import query_int, roles_required, to_jsonable
from ..container import Container
from ..core.constants import DEFAULT_AUDIT_PAGE_SIZE, DEFAULT_RECENT_AUDIT_LIMIT
from ..core.enums import AuditAction, Role
from ..core.exceptions import ValidationError
from .model import AuditPage, AuditStatistics


def _page_to_dict(page: AuditPage) -> dict:
    return {
        "items": to_jsonable(page.items),
        "total": page.total,
        "page": page.page,
        "size": page.size,
        "total_pages": page.total_pages,
    }


def _stats_to_dict(stats: AuditStatistics) -> dict:
    data = {"total_logs": stats.total_logs}
    for action in AuditAction:
        data[f"{action.value.lower()}_count"] = stats.count(action)
    return data


def _parse_action(raw: Optional[str]) -> Optional[AuditAction]:
    if raw is None or not raw.strip():
        return None
    try:
        return AuditAction(raw.strip().upper())
    except ValueError:
        raise ValidationError(f"Invalid action: {raw}")


def register(app: Flask, container: Container) -> None:
    audit = container.audit_service

    @app.route("/audit-logs", methods=["GET"], endpoint="audit_logs")
    @roles_required(Role.ADMIN)
    def audit_logs():
        page = audit.search(
            entity_type=request.args.get("entity_type"),
            action=_parse_action(request.args.get("action")),
            user_id=query_int("user_id"),
            start=parse_optional_datetime(request.args.get("start_date")),
            end=parse_optional_datetime(request.args.get("end_date")),
            page=query_int("page", 0),
            size=query_int("size", DEFAULT_AUDIT_PAGE_SIZE),
        )
        return jsonify(_page_to_dict(page))

    @app.route("/audit-logs/entity/<entity_type>/<int:entity_id>", methods=["GET"], endpoint="audit_entity_history")
    @roles_required(Role.ADMIN)
    def audit_entity_history(entity_type: str, entity_id: int):
        return jsonify(to_jsonable(audit.entity_history(entity_type, entity_id)))

    @app.route("/audit-logs/recent", methods=["GET"], endpoint="audit_recent")
    @roles_required(Role.ADMIN)
    def audit_recent():
        return jsonify(to_jsonable(audit.recent(query_int("limit", DEFAULT_RECENT_AUDIT_LIMIT))))

    @app.route("/audit-logs/statistics", methods=["GET"], endpoint="audit_statistics")
    @roles_required(Role.ADMIN)
    def audit_statistics():
        return jsonify(_stats_to_dict(audit.statistics()))
