"""Queries over the ``tasks`` table."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import ColumnElement
from sqlmodel import select

from ..core.status_codes import InternalStatus
from ..models import Task, TaskPriority
from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    model = Task

    async def list_matching(
        self,
        predicate: ColumnElement[bool],
        *,
        order_by: Sequence[ColumnElement] = (),
    ) -> list[Task]:
        """Return every task satisfying ``predicate`` in the requested order."""
        return await self._all(select(Task).where(predicate).order_by(*order_by))

    async def get_detailed(self, task_id: int) -> Task | None:
        """Fetch a task with freshly loaded creator and assignee relationships."""
        return await self._first(
            select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
        )

    async def count_by_status(self) -> dict[InternalStatus, int]:
        return {InternalStatus(key): total for key, total in (await self._count_grouped(Task.status)).items()}

    async def count_by_priority(self) -> dict[TaskPriority, int]:
        return {TaskPriority(key): total for key, total in (await self._count_grouped(Task.priority)).items()}

    async def count_open_due_between(self, start: datetime, end: datetime) -> int:
        """Count tasks not yet completed whose due date falls in ``[start, end]``."""
        return await self._count(
            Task.status != InternalStatus.COMPLETED,
            Task.due_date >= start,
            Task.due_date <= end,
        )
