from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import roles_required, to_jsonable
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/stats", methods=["GET"], endpoint="dashboard_stats")
    @roles_required(Role.ADMIN, Role.HR)
    def dashboard_stats():
        return jsonify(to_jsonable(container.dashboard_service.get_stats()))
