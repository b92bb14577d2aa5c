"""Service layer encapsulating task-related operations."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.permissions import (
    Actor,
    can_change_status,
    can_read,
    can_reassign,
    can_write,
    ensure_can_reassign,
    ensure_can_write,
)
from ..core.status_codes import ClientStatus, InternalStatus, to_client, to_internal
from ..errors import DatabaseIntegrityError, ForbiddenError, NotFoundError, ServerError, ValidationError
from ..models import Task, TaskPriority, default_due_date, utcnow
from ..repositories import TaskRepository, UserRepository
from ..schemas.task import TaskCreate, TaskFilters, TaskStatistics, TaskUpdate
from .query import TASK_ORDERING, build_task_query

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(days=7)

_PLAIN_FIELDS = ("title", "description", "priority", "due_date", "reminder_date")


class TaskService:
    """High-level business orchestration for ``Task`` entities.

    Every mutation re-fetches the task, checks the actor's permissions and
    then writes. Concurrent edits of the same task are last-write-wins.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = TaskRepository(session)
        self._user_repository = UserRepository(session)

    @asynccontextmanager
    async def _persisting(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning("Task %s violated a constraint", operation)
            raise DatabaseIntegrityError() from exc
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.exception("Task %s failed", operation)
            raise ServerError("Could not persist task changes.") from exc

    async def _ensure_users_exist(self, user_ids: Iterable[int]) -> None:
        wanted = set(user_ids)
        found = {user.id for user in await self._user_repository.list_by_ids(sorted(wanted))}
        missing = sorted(wanted - found)
        if missing:
            raise ValidationError(
                "Referenced user does not exist.",
                details={"user_ids": missing},
            )

    async def _get_readable(self, task_id: int, actor: Actor) -> Task:
        task = await self._repository.get_detailed(task_id)
        # Non-participants get the same answer as for a missing id.
        if task is None or not can_read(actor, task):
            raise NotFoundError("Task not found.")
        return task

    async def _reload(self, task_id: int | None) -> Task:
        task = await self._repository.get_detailed(task_id) if task_id is not None else None
        if task is None:  # pragma: no cover - the row was just written
            raise ServerError("Task vanished after being saved.")
        return task

    async def create_task(self, payload: TaskCreate, actor: Actor) -> Task:
        """Create a task authored by ``actor`` unless an admin names a creator."""

        creator_id = actor.id
        if payload.created_by is not None and payload.created_by != actor.id:
            ensure_can_reassign(actor)
            creator_id = payload.created_by

        assignee_id = payload.assigned_to if payload.assigned_to is not None else creator_id
        if assignee_id != actor.id:
            ensure_can_reassign(actor)

        if payload.reminder_date is None:
            raise ValidationError(
                "Reminder date is required.",
                details={"field": "reminderDate"},
            )

        await self._ensure_users_exist({creator_id, assignee_id})

        task = Task(
            title=payload.title,
            description=payload.description,
            status=to_internal(payload.status),
            priority=payload.priority,
            due_date=payload.due_date or default_due_date(),
            reminder_date=payload.reminder_date,
            creator_id=creator_id,
            assignee_id=assignee_id,
        )
        async with self._persisting("creation"):
            await self._repository.add(task)
        logger.info(
            "Task created",
            extra={"task_id": task.id, "creator_id": creator_id, "assignee_id": assignee_id},
        )
        return await self._reload(task.id)

    async def get_task(self, task_id: int, actor: Actor) -> Task:
        return await self._get_readable(task_id, actor)

    async def list_tasks(self, actor: Actor, filters: TaskFilters | None = None) -> list[Task]:
        """Return the tasks ``actor`` may see that match ``filters``, newest first."""
        predicate = build_task_query(actor, filters)
        return await self._repository.list_matching(predicate, order_by=TASK_ORDERING)

    async def update_task(self, task_id: int, patch: TaskUpdate, actor: Actor) -> Task:
        """Apply a partial update.

        The creator never changes. A reassignment from a non-admin is dropped
        while the rest of the patch still applies. An assignee who is not the
        creator may only change the status.
        """

        task = await self._get_readable(task_id, actor)
        changes: dict[str, Any] = {
            field: getattr(patch, field)
            for field in patch.model_fields_set
            if getattr(patch, field) is not None
        }

        if changes.pop("created_by", None) is not None:
            logger.debug("Ignoring creator change", extra={"task_id": task_id})

        new_assignee = changes.pop("assigned_to", None)
        if new_assignee is not None and new_assignee != task.assignee_id:
            if can_reassign(actor):
                await self._ensure_users_exist([new_assignee])
            else:
                logger.info(
                    "Ignoring reassignment requested by non-admin",
                    extra={"task_id": task_id, "actor_id": actor.id},
                )
                new_assignee = None
        else:
            new_assignee = None

        if not can_write(actor, task):
            if not can_change_status(actor, task) or set(changes) - {"status"}:
                raise ForbiddenError("Assignees may only change the status of a task.")

        for field in _PLAIN_FIELDS:
            if field in changes:
                setattr(task, field, changes[field])
        if "status" in changes:
            task.status = to_internal(changes["status"])
        if new_assignee is not None:
            task.assignee_id = new_assignee
        task.updated_at = utcnow()

        async with self._persisting("update"):
            self._session.add(task)
        logger.info(
            "Task updated",
            extra={"task_id": task_id, "fields": sorted(changes), "reassigned": new_assignee is not None},
        )
        return await self._reload(task_id)

    async def delete_task(self, task_id: int, actor: Actor) -> None:
        """Delete a task; a missing id is an error, not a no-op."""
        task = await self._get_readable(task_id, actor)
        ensure_can_write(actor, task)
        async with self._persisting("deletion"):
            await self._repository.delete(task)
        logger.info("Task deleted", extra={"task_id": task_id, "actor_id": actor.id})

    async def get_statistics(self) -> TaskStatistics:
        """Aggregate counts across every task for the admin dashboard."""

        by_internal = await self._repository.count_by_status()
        by_status = {status.value: 0 for status in ClientStatus}
        for status, total in by_internal.items():
            by_status[to_client(status).value] += total

        by_priority = {priority.value: 0 for priority in TaskPriority}
        for priority, total in (await self._repository.count_by_priority()).items():
            by_priority[priority.value] = total

        now = utcnow()
        upcoming = await self._repository.count_open_due_between(now, now + UPCOMING_WINDOW)
        return TaskStatistics(
            total=sum(by_status.values()),
            completed=by_status[to_client(InternalStatus.COMPLETED).value],
            pending=by_status[to_client(InternalStatus.PENDING).value],
            upcoming=upcoming,
            by_status=by_status,
            by_priority=by_priority,
        )


__all__ = ["TaskService", "UPCOMING_WINDOW"]
