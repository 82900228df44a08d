from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.service import AuditService
from ..common.logger import get_logger
from ..common.validators import require_non_empty
from ..core.constants import ENTITY_USER, MIN_PASSWORD_LENGTH
from ..core.enums import AuditAction, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..core.identity import CallerIdentity
from .model import User
from .repository import UserRepository


logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    email: str
    full_name: str
    role: Role


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password or "")
    except ValueError:
        # e.g. placeholder or corrupted hashes
        return False


class AuthService:
    """Use case: login, logout, password change."""

    def __init__(self, users: UserRepository, audit: AuditService):
        self._users = users
        self._audit = audit

    def login(self, email: str, password: str, *, ip_address: Optional[str] = None) -> SessionUser:
        email = require_non_empty(email, "Email")
        user = self._users.get_by_email(email)
        if not user:
            raise NotFoundError("Unknown user")

        as_caller = CallerIdentity(user_id=user.user_id, email=user.email, role=user.role, ip_address=ip_address)
        if not user.is_active:
            self._audit.record(
                as_caller,
                entity_type=ENTITY_USER,
                entity_id=user.user_id,
                action=AuditAction.LOGIN,
                description=f"Login denied for inactive user {user.email} ({user.role.value})",
            )
            raise AuthorizationError("Account is inactive. Please contact an administrator.")

        if not _password_matches(user.password_hash, password):
            raise ValidationError("Invalid password")

        self._audit.record(
            as_caller,
            entity_type=ENTITY_USER,
            entity_id=user.user_id,
            action=AuditAction.LOGIN,
            description=f"User {user.email} ({user.role.value}) logged in successfully",
        )
        logger.info("User %s logged in", user.user_id)
        return SessionUser(user_id=user.user_id, email=user.email, full_name=user.full_name, role=user.role)

    def logout(self, caller: CallerIdentity) -> None:
        self._audit.record(
            caller,
            entity_type=ENTITY_USER,
            entity_id=caller.user_id,
            action=AuditAction.LOGOUT,
            description=f"User {caller.email} ({caller.role.value}) logged out",
        )

    def change_password(self, caller: Optional[CallerIdentity], *, old_password: str, new_password: str) -> None:
        if caller is None:
            raise AuthenticationError("Authentication required")

        user = self._users.get_by_id(caller.user_id)
        if not user:
            raise NotFoundError("User not found")
        if not _password_matches(user.password_hash, old_password):
            raise ValidationError("Old password is incorrect")
        if new_password is None or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long")

        self._users.set_password_hash(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("User %s changed their password", user.user_id)


class UserService:
    """Use case: manage accounts (admin)."""

    def __init__(self, users: UserRepository, audit: AuditService):
        self._users = users
        self._audit = audit

    def list_users(
        self,
        *,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[User]:
        role_filter: Optional[Role] = None
        if role and role.strip():
            try:
                role_filter = Role(role.strip().upper())
            except ValueError:
                # Unknown role names do not filter.
                role_filter = None
        return list(
            self._users.list_users(
                role=role_filter,
                is_active=is_active,
                search=(search or "").strip() or None,
            )
        )

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def toggle_active(self, caller: Optional[CallerIdentity], user_id: int) -> User:
        if caller is None:
            raise AuthenticationError("Authentication required")

        user = self.get_user(user_id)
        if caller.user_id == user.user_id and user.is_active:
            raise ValidationError("You cannot deactivate your own account")

        if not self._users.set_active(user.user_id, is_active=not user.is_active):
            raise NotFoundError("User not found")

        updated = self.get_user(user.user_id)
        self._audit.record(
            caller,
            entity_type=ENTITY_USER,
            entity_id=updated.user_id,
            action=AuditAction.UPDATE,
            description=(
                f"User {updated.email} status changed from "
                f"{'active' if user.is_active else 'inactive'} to "
                f"{'active' if updated.is_active else 'inactive'}"
            ),
            old_value={"isActive": user.is_active},
            new_value={"isActive": updated.is_active},
        )
        return updated
