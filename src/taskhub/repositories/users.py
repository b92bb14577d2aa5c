"""Queries over the ``users`` table."""

from __future__ import annotations

from collections.abc import Sequence

from sqlmodel import select

from ..models import Task, User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        return await self._first(select(User).where(User.email == email))

    async def list_all(self) -> list[User]:
        """Return every user, newest registrations first."""
        return await self._all(select(User).order_by(User.created_at.desc(), User.id.desc()))

    async def list_by_ids(self, ids: Sequence[int]) -> list[User]:
        if not ids:
            return []
        return await self._all(select(User).where(User.id.in_(ids)))

    async def count_created_tasks(self) -> dict[int, int]:
        """Map user ids to the number of tasks they created."""
        return await self._count_grouped(Task.creator_id)

    async def count_assigned_tasks(self) -> dict[int, int]:
        """Map user ids to the number of tasks currently assigned to them."""
        return await self._count_grouped(Task.assignee_id)
