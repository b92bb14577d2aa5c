"""User-facing Pydantic schemas."""

from __future__ import annotations

from ..models import UserRole
from .common import CamelModel


class UserSummary(CamelModel):
    """Display information embedded in task payloads."""

    id: int
    first_name: str
    last_name: str
    email: str


class UserPublic(UserSummary):
    """Public representation of a user account."""

    role: UserRole


class UserWithTaskCount(UserPublic):
    """User listing entry for the admin dashboard."""

    created_tasks: int = 0
    assigned_tasks: int = 0


__all__ = ["UserPublic", "UserSummary", "UserWithTaskCount"]
