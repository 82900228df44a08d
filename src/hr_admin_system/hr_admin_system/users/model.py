from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Login account. Every employee record points at exactly one of these."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: Role
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
