from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_caller, json_body, query_bool, roles_required, to_jsonable
from ..container import Container
from ..core.enums import Role
from .model import EmployeeView, MyRoomInfo


def _employee_to_dict(view: EmployeeView) -> dict:
    data = to_jsonable(view.employee)
    data["full_name"] = view.employee.full_name
    data["room_number"] = view.current_room_number
    return data


def _my_room_to_dict(info: MyRoomInfo) -> dict:
    data = to_jsonable(info)
    data["occupancy"] = info.occupancy
    return data


def register(app: Flask, container: Container) -> None:
    employees = container.employee_service

    @app.route("/employees", methods=["GET"], endpoint="list_employees")
    @roles_required(Role.ADMIN, Role.HR)
    def list_employees():
        views = employees.list_employees(is_active=query_bool("status"), search=request.args.get("search"))
        return jsonify([_employee_to_dict(v) for v in views])

    @app.route("/employees", methods=["POST"], endpoint="create_employee")
    @roles_required(Role.ADMIN, Role.HR)
    def create_employee():
        return jsonify(_employee_to_dict(employees.create_employee(current_caller(), json_body()))), 201

    @app.route("/employees/me", methods=["GET"], endpoint="my_profile")
    @roles_required(Role.EMPLOYEE)
    def my_profile():
        return jsonify(_employee_to_dict(employees.get_my_profile(current_caller())))

    @app.route("/employees/me/room", methods=["GET"], endpoint="my_room")
    @roles_required(Role.EMPLOYEE)
    def my_room():
        return jsonify(_my_room_to_dict(employees.get_my_room(current_caller())))

    @app.route("/employees/me/room-history", methods=["GET"], endpoint="my_room_history")
    @roles_required(Role.EMPLOYEE)
    def my_room_history():
        return jsonify(to_jsonable(employees.get_my_room_history(current_caller())))

    @app.route("/employees/<int:employee_id>", methods=["GET"], endpoint="get_employee")
    @roles_required(Role.ADMIN, Role.HR)
    def get_employee(employee_id: int):
        return jsonify(_employee_to_dict(employees.get_employee(employee_id)))

    @app.route("/employees/<int:employee_id>", methods=["PUT"], endpoint="update_employee")
    @roles_required(Role.ADMIN, Role.HR)
    def update_employee(employee_id: int):
        view = employees.update_employee(current_caller(), employee_id, json_body())
        return jsonify(_employee_to_dict(view))

    @app.route("/employees/<int:employee_id>", methods=["DELETE"], endpoint="deactivate_employee")
    @roles_required(Role.ADMIN)
    def deactivate_employee(employee_id: int):
        employees.deactivate_employee(current_caller(), employee_id)
        return "", 204
