from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_caller, json_body, roles_required, to_jsonable
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    advances = container.advance_service

    @app.route("/advances", methods=["POST"], endpoint="create_advance_request")
    @roles_required(Role.EMPLOYEE)
    def create_advance_request():
        body = json_body()
        created = advances.create_request(current_caller(), amount=body.get("amount"), reason=body.get("reason"))
        return jsonify(to_jsonable(created)), 201

    @app.route("/advances/my-history", methods=["GET"], endpoint="my_advance_history")
    @roles_required(Role.EMPLOYEE)
    def my_advance_history():
        return jsonify(to_jsonable(advances.my_history(current_caller())))

    @app.route("/advances", methods=["GET"], endpoint="list_advance_requests")
    @roles_required(Role.ADMIN, Role.HR)
    def list_advance_requests():
        return jsonify(to_jsonable(advances.list_requests(request.args.get("status"))))

    @app.route("/advances/<int:request_id>/review", methods=["PUT"], endpoint="review_advance_request")
    @roles_required(Role.ADMIN, Role.HR)
    def review_advance_request(request_id: int):
        body = json_body()
        reviewed = advances.review(
            current_caller(),
            request_id,
            status=body.get("status", ""),
            rejection_reason=body.get("rejection_reason"),
        )
        return jsonify(to_jsonable(reviewed))
