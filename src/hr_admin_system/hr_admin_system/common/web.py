from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Mapping, Optional

from flask import request, session

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from ..core.identity import CallerIdentity


def client_ip() -> Optional[str]:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    return request.remote_addr


def current_caller() -> Optional[CallerIdentity]:
    if "user_id" not in session:
        return None
    return CallerIdentity(
        user_id=int(session["user_id"]),
        email=str(session.get("email") or ""),
        role=Role(session.get("role")),
        ip_address=client_ip(),
    )


def require_caller() -> CallerIdentity:
    caller = current_caller()
    if caller is None:
        raise AuthenticationError("Authentication required")
    return caller


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        require_caller()
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            caller = require_caller()
            if not caller.has_role(*roles):
                raise AuthorizationError("You do not have permission to perform this action")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a whole number")


def query_bool(name: str) -> Optional[bool]:
    raw = (request.args.get(name) or "").strip().lower()
    if not raw:
        return None
    if raw in {"1", "true", "yes"}:
        return True
    if raw in {"0", "false", "no"}:
        return False
    raise ValidationError(f"Query parameter '{name}' must be true or false")


def to_jsonable(value: Any) -> Any:
    """Dataclasses, enums, dates and decimals to plain JSON values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Mapping):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value
