from __future__ import annotations

import pytest

from src.hr_admin_system.hr_admin_system.core.enums import AuditAction, Role
from src.hr_admin_system.hr_admin_system.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from tests.fakes import caller_for, make_world


@pytest.fixture
def world():
    return make_world()


def test_login_success_returns_session_user_and_audits(world):
    world.users.add(email="admin@example.com", password="admin123", role=Role.ADMIN, first_name="Ada", last_name="Min")

    s_user = world.container.auth_service.login("ADMIN@example.com", "admin123", ip_address="10.1.1.1")

    assert s_user.email == "admin@example.com"
    assert s_user.full_name == "Ada Min"
    assert s_user.role == Role.ADMIN
    entry = world.audit.entries[-1]
    assert entry.action == AuditAction.LOGIN
    assert entry.ip_address == "10.1.1.1"
    assert entry.user_email == "admin@example.com"


def test_login_unknown_user_and_wrong_password(world):
    world.users.add(email="hr@example.com", password="hrpass1", role=Role.HR)
    auth = world.container.auth_service

    with pytest.raises(NotFoundError):
        auth.login("nobody@example.com", "whatever")
    with pytest.raises(ValidationError, match="Invalid password"):
        auth.login("hr@example.com", "wrong-pass")
    assert world.audit.entries == []


def test_inactive_user_is_denied_and_attempt_is_audited(world):
    world.users.add(email="gone@example.com", password="secret123", is_active=False)

    with pytest.raises(AuthorizationError, match="inactive"):
        world.container.auth_service.login("gone@example.com", "secret123")

    assert "Login denied" in world.audit.entries[-1].description


def test_logout_is_audited(world):
    user = world.users.add(email="hr@example.com", role=Role.HR)

    world.container.auth_service.logout(caller_for(user))

    assert world.audit.entries[-1].action == AuditAction.LOGOUT


def test_change_password(world):
    user = world.users.add(email="hr@example.com", password="oldpass1", role=Role.HR)
    auth = world.container.auth_service
    caller = caller_for(user)

    with pytest.raises(ValidationError, match="Old password is incorrect"):
        auth.change_password(caller, old_password="nope", new_password="newpass1")
    with pytest.raises(ValidationError, match="at least 6"):
        auth.change_password(caller, old_password="oldpass1", new_password="123")
    with pytest.raises(AuthenticationError):
        auth.change_password(None, old_password="oldpass1", new_password="newpass1")

    auth.change_password(caller, old_password="oldpass1", new_password="newpass1")
    assert auth.login("hr@example.com", "newpass1").user_id == user.user_id


def test_corrupted_hash_never_matches(world):
    user = world.users.add(email="odd@example.com")
    world.users.set_password_hash(user.user_id, password_hash="not-a-real-hash")

    with pytest.raises(ValidationError):
        world.container.auth_service.login("odd@example.com", "secret123")


# -------- User administration --------
def test_list_users_filters(world):
    world.users.add(email="admin@example.com", role=Role.ADMIN)
    world.users.add(email="hr@example.com", role=Role.HR)
    world.users.add(email="off@example.com", role=Role.HR, is_active=False)
    users = world.container.user_service

    assert [u.email for u in users.list_users(role="hr")] == ["hr@example.com", "off@example.com"]
    assert [u.email for u in users.list_users(role="HR", is_active=True)] == ["hr@example.com"]
    assert len(users.list_users(role="PILOT")) == 3
    assert [u.email for u in users.list_users(search="adm")] == ["admin@example.com"]


def test_toggle_active_flips_and_audits(world):
    admin = world.users.add(email="admin@example.com", role=Role.ADMIN)
    target = world.users.add(email="hr@example.com", role=Role.HR)
    users = world.container.user_service

    off = users.toggle_active(caller_for(admin), target.user_id)
    on = users.toggle_active(caller_for(admin), target.user_id)

    assert off.is_active is False
    assert on.is_active is True
    assert [e.action for e in world.audit.entries] == [AuditAction.UPDATE, AuditAction.UPDATE]


def test_admin_cannot_deactivate_self(world):
    admin = world.users.add(email="admin@example.com", role=Role.ADMIN)

    with pytest.raises(ValidationError, match="your own account"):
        world.container.user_service.toggle_active(caller_for(admin), admin.user_id)


def test_get_unknown_user(world):
    with pytest.raises(NotFoundError, match="User not found"):
        world.container.user_service.get_user(42)
