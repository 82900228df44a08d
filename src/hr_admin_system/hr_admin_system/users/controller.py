from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.web import client_ip, current_caller, json_body, login_required, query_bool, require_caller, roles_required
from ..container import Container
from ..core.enums import Role
from .model import User


def _user_to_dict(user: User) -> dict:
    # Never expose the password hash.
    return {
        "user_id": user.user_id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        body = json_body()
        s_user = container.auth_service.login(
            body.get("email", ""),
            body.get("password", ""),
            ip_address=client_ip(),
        )

        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["email"] = s_user.email
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value

        return jsonify(
            {
                "user_id": s_user.user_id,
                "email": s_user.email,
                "full_name": s_user.full_name,
                "role": s_user.role.value,
            }
        )

    @app.route("/auth/logout", methods=["POST"], endpoint="logout")
    @login_required
    def logout():
        container.auth_service.logout(require_caller())
        session.clear()
        return "", 204

    @app.route("/auth/change-password", methods=["PUT"], endpoint="change_password")
    @login_required
    def change_password():
        body = json_body()
        container.auth_service.change_password(
            current_caller(),
            old_password=body.get("old_password", ""),
            new_password=body.get("new_password", ""),
        )
        return jsonify({"message": "Password changed successfully"})

    @app.route("/users", methods=["GET"], endpoint="list_users")
    @roles_required(Role.ADMIN)
    def list_users():
        users = container.user_service.list_users(
            role=request.args.get("role"),
            is_active=query_bool("is_active"),
            search=request.args.get("search"),
        )
        return jsonify([_user_to_dict(u) for u in users])

    @app.route("/users/<int:user_id>", methods=["GET"], endpoint="get_user")
    @roles_required(Role.ADMIN)
    def get_user(user_id: int):
        return jsonify(_user_to_dict(container.user_service.get_user(user_id)))

    @app.route("/users/<int:user_id>/toggle-active", methods=["PUT"], endpoint="toggle_user_active")
    @roles_required(Role.ADMIN)
    def toggle_user_active(user_id: int):
        return jsonify(_user_to_dict(container.user_service.toggle_active(current_caller(), user_id)))
