from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_optional_date
from ..common.web import current_caller, json_body, query_int, roles_required, to_jsonable
from ..container import Container
from ..core.enums import Role
from .model import Room, RoomView


def _room_view_to_dict(view: RoomView) -> dict:
    data = to_jsonable(view.room)
    data.update(
        {
            "occupancy": view.occupancy,
            "free_beds": view.free_beds,
            "is_available": view.is_available,
            "occupants": to_jsonable(view.occupants),
        }
    )
    return data


def register(app: Flask, container: Container) -> None:
    accommodations = container.accommodation_service
    allocations = container.allocation_service

    @app.route("/accommodations", methods=["GET"], endpoint="list_accommodations")
    @roles_required(Role.ADMIN, Role.HR)
    def list_accommodations():
        return jsonify(to_jsonable(accommodations.list_accommodations()))

    @app.route("/accommodations", methods=["POST"], endpoint="create_accommodation")
    @roles_required(Role.ADMIN)
    def create_accommodation():
        body = json_body()
        created = accommodations.create_accommodation(
            current_caller(),
            name=body.get("name", ""),
            address=body.get("address"),
            manager_contact=body.get("manager_contact"),
        )
        return jsonify(to_jsonable(created)), 201

    @app.route("/accommodations/<int:accommodation_id>", methods=["GET"], endpoint="get_accommodation")
    @roles_required(Role.ADMIN, Role.HR)
    def get_accommodation(accommodation_id: int):
        return jsonify(to_jsonable(accommodations.get_accommodation(accommodation_id)))

    @app.route("/accommodations/<int:accommodation_id>", methods=["PUT"], endpoint="update_accommodation")
    @roles_required(Role.ADMIN)
    def update_accommodation(accommodation_id: int):
        body = json_body()
        updated = accommodations.update_accommodation(
            current_caller(),
            accommodation_id,
            name=body.get("name"),
            address=body.get("address"),
            manager_contact=body.get("manager_contact"),
        )
        return jsonify(to_jsonable(updated))

    @app.route("/accommodations/<int:accommodation_id>/rooms", methods=["GET"], endpoint="list_rooms")
    @roles_required(Role.ADMIN, Role.HR)
    def list_rooms(accommodation_id: int):
        accommodations.get_accommodation(accommodation_id)
        return jsonify([_room_view_to_dict(v) for v in allocations.get_room_overview(accommodation_id)])

    @app.route("/accommodations/<int:accommodation_id>/rooms", methods=["POST"], endpoint="create_room")
    @roles_required(Role.ADMIN)
    def create_room(accommodation_id: int):
        body = json_body()
        room: Room = accommodations.create_room(
            current_caller(),
            accommodation_id=accommodation_id,
            room_number=body.get("room_number", ""),
            capacity=body.get("capacity"),
        )
        return jsonify(to_jsonable(room)), 201

    @app.route("/accommodations/rooms/available", methods=["GET"], endpoint="available_rooms")
    @roles_required(Role.ADMIN, Role.HR)
    def available_rooms():
        views = allocations.get_available_rooms(query_int("accommodation_id"))
        return jsonify([_room_view_to_dict(v) for v in views])

    @app.route("/accommodations/rooms/<int:room_id>", methods=["PUT"], endpoint="update_room")
    @roles_required(Role.ADMIN)
    def update_room(room_id: int):
        body = json_body()
        room = allocations.update_room(
            current_caller(),
            room_id=room_id,
            room_number=body.get("room_number"),
            capacity=body.get("capacity"),
        )
        return jsonify(to_jsonable(room))

    @app.route("/accommodations/rooms/<int:room_id>", methods=["DELETE"], endpoint="delete_room")
    @roles_required(Role.ADMIN)
    def delete_room(room_id: int):
        allocations.delete_room(current_caller(), room_id=room_id)
        return "", 204

    @app.route("/accommodations/rooms/<int:room_id>/occupants", methods=["GET"], endpoint="room_occupants")
    @roles_required(Role.ADMIN, Role.HR)
    def room_occupants(room_id: int):
        return jsonify(to_jsonable(allocations.get_occupancy(room_id)))

    @app.route("/accommodations/allocations", methods=["POST"], endpoint="create_allocation")
    @roles_required(Role.ADMIN, Role.HR)
    def create_allocation():
        body = json_body()
        allocation = allocations.create_allocation(
            current_caller(),
            room_id=body.get("room_id"),
            employee_id=body.get("employee_id"),
            check_in_date=parse_optional_date(body.get("check_in_date")),
        )
        return jsonify(to_jsonable(allocation)), 201

    @app.route("/accommodations/allocations/<int:allocation_id>/checkout", methods=["PUT"], endpoint="check_out")
    @roles_required(Role.ADMIN, Role.HR)
    def check_out(allocation_id: int):
        allocation = allocations.check_out(
            current_caller(),
            allocation_id=allocation_id,
            check_out_date=parse_optional_date(request.args.get("check_out_date")),
        )
        return jsonify(to_jsonable(allocation))

    @app.route(
        "/accommodations/employees/<int:employee_id>/room-history",
        methods=["GET"],
        endpoint="employee_room_history",
    )
    @roles_required(Role.ADMIN, Role.HR)
    def employee_room_history(employee_id: int):
        return jsonify(to_jsonable(allocations.get_employee_room_history(employee_id)))
