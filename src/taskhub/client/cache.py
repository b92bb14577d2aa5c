"""In-memory working copy of the current user's tasks.

The cache is never authoritative. Creates and updates are applied only once
the server answers; deletes are applied optimistically and rolled back when
the server reports anything other than success or "already gone".
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..core.config import get_settings
from ..errors import ApplicationError, NotFoundError, UnauthorizedError
from ..schemas import TaskCreate, TaskFilters, TaskRead, TaskUpdate, UserPublic
from . import notifications
from .http import TokenStore, token_store
from .notifications import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

Listener = Callable[[list[TaskRead]], None]


class TaskApi(Protocol):
    """Subset of the HTTP client the cache depends on."""

    async def list_tasks(self, filters: TaskFilters | None = None) -> list[TaskRead]: ...

    async def create_task(self, payload: TaskCreate) -> TaskRead: ...

    async def update_task(self, task_id: int, patch: TaskUpdate) -> TaskRead: ...

    async def delete_task(self, task_id: int) -> None: ...

    async def me(self) -> UserPublic: ...


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True)
class Mutation:
    """Lifecycle record of one cache mutation."""

    kind: MutationKind
    task_id: int | None = None
    state: MutationState = MutationState.PENDING
    error: Exception | None = field(default=None, repr=False)

    def commit(self, task_id: int | None = None) -> None:
        if task_id is not None:
            self.task_id = task_id
        self.state = MutationState.COMMITTED

    def roll_back(self, error: Exception) -> None:
        self.error = error
        self.state = MutationState.ROLLED_BACK


class TaskCache:
    """Task collection, derived filtered view and mutation bookkeeping."""

    def __init__(
        self,
        api: TaskApi,
        *,
        notifier: Notifier | None = None,
        tokens: TokenStore | None = None,
        debounce_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self._notifier = notifier or LoggingNotifier()
        self._tokens = tokens if tokens is not None else token_store
        self._debounce = (
            debounce_seconds if debounce_seconds is not None else get_settings().client_debounce_seconds
        )
        self._clock = clock
        self._tasks: list[TaskRead] = []
        self._filters = TaskFilters()
        self._state = LoadState.IDLE
        self._error: Exception | None = None
        self._last_fetch: float | None = None
        self._inflight: asyncio.Task[list[TaskRead]] | None = None
        self._listeners: list[Listener] = []
        self.mutations: list[Mutation] = []
        self.current_user: UserPublic | None = None

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def tasks(self) -> list[TaskRead]:
        return self._tasks

    @property
    def filters(self) -> TaskFilters:
        return self._filters

    @property
    def visible_tasks(self) -> list[TaskRead]:
        """Tasks passing the active filters, in collection order."""
        return [task for task in self._tasks if self._filters.matches(task)]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the visible tasks on every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self) -> None:
        visible = self.visible_tasks
        for listener in list(self._listeners):
            listener(visible)

    def _notify(self, notification: notifications.Notification) -> None:
        self._notifier.notify(notification)

    def _index_of(self, task_id: int) -> int | None:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    def _begin(self, kind: MutationKind, task_id: int | None = None) -> Mutation:
        mutation = Mutation(kind=kind, task_id=task_id)
        self.mutations.append(mutation)
        return mutation

    def is_fresh(self) -> bool:
        """Whether the last completed fetch is still inside the debounce window."""
        if self._last_fetch is None or self._state is not LoadState.READY:
            return False
        return self._clock() - self._last_fetch < self._debounce

    def set_filters(self, filters: TaskFilters) -> None:
        """Replace the active filters; only the derived view changes."""
        self._filters = filters
        self._emit()

    async def refresh(self, *, force: bool = False) -> list[TaskRead]:
        """Reload the collection unless it was fetched within the debounce window.

        ``force`` is for explicit user-initiated refreshes. A failed load
        leaves the previous collection in place and moves to ``ERROR``.
        """

        if not force and self.is_fresh():
            logger.debug("Serving tasks from cache", extra={"count": len(self._tasks)})
            return self._tasks
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._fetch())
        inflight = self._inflight
        try:
            return await asyncio.shield(inflight)
        finally:
            if self._inflight is inflight and inflight.done():
                self._inflight = None

    async def _fetch(self) -> list[TaskRead]:
        self._state = LoadState.LOADING
        try:
            tasks = await self._api.list_tasks()
        except ApplicationError as exc:
            logger.warning("Loading tasks failed", extra={"code": exc.code})
            return self._fail_load(exc)
        except Exception as exc:
            # Malformed bodies surface as decode or validation errors.
            logger.exception("Loading tasks failed unexpectedly")
            return self._fail_load(exc)
        self._tasks = list(tasks)
        self._state = LoadState.READY
        self._error = None
        self._last_fetch = self._clock()
        self._emit()
        return self._tasks

    def _fail_load(self, error: Exception) -> list[TaskRead]:
        """Keep the previous collection, record the error and tell the user."""
        self._state = LoadState.ERROR
        self._error = error
        self._notify(notifications.operation_failed("load tasks", error))
        return self._tasks

    async def create(self, payload: TaskCreate) -> TaskRead:
        """Create a task and prepend the server's representation."""

        mutation = self._begin(MutationKind.CREATE)
        try:
            task = await self._api.create_task(payload)
        except Exception as exc:
            mutation.roll_back(exc)
            self._notify(notifications.operation_failed("create task", exc))
            raise
        self._tasks.insert(0, task)
        mutation.commit(task.id)
        self._notify(notifications.task_created(task))
        self._emit()
        return task

    async def update(self, task_id: int, patch: TaskUpdate) -> TaskRead:
        """Send a partial update; the cache changes only on success."""

        mutation = self._begin(MutationKind.UPDATE, task_id)
        try:
            task = await self._api.update_task(task_id, patch)
        except Exception as exc:
            mutation.roll_back(exc)
            self._notify(notifications.operation_failed("update task", exc))
            raise
        index = self._index_of(task.id)
        if index is None:
            self._tasks.insert(0, task)
        else:
            self._tasks[index] = task
        mutation.commit()
        self._notify(notifications.task_updated(task))
        self._emit()
        return task

    async def delete(self, task_id: int) -> None:
        """Remove a task immediately, then confirm with the server."""

        index = self._index_of(task_id)
        removed = self._tasks.pop(index) if index is not None else None
        if removed is not None:
            self._emit()
        title = removed.title if removed is not None else None

        mutation = self._begin(MutationKind.DELETE, task_id)
        try:
            await self._api.delete_task(task_id)
        except NotFoundError:
            mutation.commit()
            logger.info("Task was already gone on the server", extra={"task_id": task_id})
            self._notify(notifications.task_already_deleted(title, task_id))
            return
        except Exception as exc:
            # A refresh that landed meanwhile may already hold the task again.
            if removed is not None and index is not None and self._index_of(task_id) is None:
                self._tasks.insert(min(index, len(self._tasks)), removed)
                self._emit()
            mutation.roll_back(exc)
            self._notify(notifications.operation_failed("delete task", exc))
            raise
        mutation.commit()
        self._notify(notifications.task_deleted(title, task_id))

    async def load_current_user(self) -> UserPublic | None:
        """Reload the signed-in profile; an expired token just logs out."""

        if not self._tokens.token:
            self.current_user = None
            return None
        try:
            user = await self._api.me()
        except UnauthorizedError:
            logger.info("Stored token rejected; treating session as logged out")
            self._tokens.clear()
            self.current_user = None
            return None
        self.current_user = user
        return user


__all__ = [
    "LoadState",
    "Mutation",
    "MutationKind",
    "MutationState",
    "TaskApi",
    "TaskCache",
]
