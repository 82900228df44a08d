from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_optional_date
from ..common.web import current_caller, json_body, roles_required, to_jsonable
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    contracts = container.contract_service

    @app.route("/employees/<int:employee_id>/contracts", methods=["GET"], endpoint="employee_contracts")
    @roles_required(Role.ADMIN, Role.HR)
    def employee_contracts(employee_id: int):
        return jsonify(to_jsonable(contracts.list_for_employee(employee_id)))

    @app.route("/employees/<int:employee_id>/contracts", methods=["POST"], endpoint="create_contract")
    @roles_required(Role.ADMIN, Role.HR)
    def create_contract(employee_id: int):
        body = json_body()
        created = contracts.create_contract(
            current_caller(),
            employee_id,
            start_date=parse_optional_date(body.get("start_date")),
            end_date=parse_optional_date(body.get("end_date")),
            hourly_rate=body.get("hourly_rate"),
            currency=body.get("currency"),
            working_hours_per_week=body.get("working_hours_per_week"),
        )
        return jsonify(to_jsonable(created)), 201

    @app.route("/contracts/<int:contract_id>/invalidate", methods=["PUT"], endpoint="invalidate_contract")
    @roles_required(Role.ADMIN, Role.HR)
    def invalidate_contract(contract_id: int):
        return jsonify(to_jsonable(contracts.invalidate_contract(current_caller(), contract_id)))
