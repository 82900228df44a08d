from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Role


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated principal behind a service call.

    Built by the HTTP layer for every request and passed explicitly into the
    services; `None` stands for an unauthenticated or system-triggered call.
    """

    user_id: int
    email: str
    role: Role
    ip_address: Optional[str] = None

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
