"""
models/profile.py — User profiles (profiles table).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel

from locator_shared.constants import Role


class UserProfile(BaseModel):
    """Matches the profiles table row."""

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    role: Role = "user"

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "UserProfile":
        return cls(**row)

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or str(self.id)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
