"""Routes handling task CRUD operations."""

from __future__ import annotations

import hashlib
import json
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ...deps import ActorDependency, DatabaseSessionDependency
from ...models import Task
from ...schemas import MessageResponse, TaskCreate, TaskFilters, TaskRead, TaskUpdate
from ...services import TaskService
from ._filters import parse_task_filters

router = APIRouter(prefix="/tasks", tags=["tasks"])

FiltersDependency = Annotated[TaskFilters, Depends(parse_task_filters)]


def _map_task(task: Task) -> TaskRead:
    return TaskRead.model_validate(task)


def weak_etag(content: object) -> str:
    """Return a weak validator derived from the serialised body."""

    body = json.dumps(content, sort_keys=True, separators=(",", ":"), default=str)
    return f'W/"{hashlib.sha1(body.encode("utf-8")).hexdigest()}"'


def _etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = {candidate.strip() for candidate in if_none_match.split(",")}
    return "*" in candidates or etag in candidates


@router.get(
    "",
    response_model=list[TaskRead],
    summary="List the tasks visible to the current user",
)
async def list_tasks(
    session: DatabaseSessionDependency,
    actor: ActorDependency,
    filters: FiltersDependency,
    if_none_match: Annotated[str | None, Header()] = None,
) -> Response:
    service = TaskService(session)
    tasks = await service.list_tasks(actor, filters)
    content = jsonable_encoder([_map_task(task).model_dump(by_alias=True) for task in tasks])

    if not filters.is_empty:
        return JSONResponse(content=content)

    etag = weak_etag(content)
    headers = {"ETag": etag, "Cache-Control": "private, no-cache"}
    if _etag_matches(if_none_match, etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    return JSONResponse(content=content, headers=headers)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(
    payload: TaskCreate,
    session: DatabaseSessionDependency,
    actor: ActorDependency,
) -> TaskRead:
    service = TaskService(session)
    task = await service.create_task(payload, actor)
    return _map_task(task)


@router.get("/{task_id}", response_model=TaskRead, summary="Retrieve a single task")
async def get_task(
    task_id: int,
    session: DatabaseSessionDependency,
    actor: ActorDependency,
) -> TaskRead:
    service = TaskService(session)
    return _map_task(await service.get_task(task_id, actor))


@router.put("/{task_id}", response_model=TaskRead, summary="Partially update a task")
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    session: DatabaseSessionDependency,
    actor: ActorDependency,
) -> TaskRead:
    service = TaskService(session)
    task = await service.update_task(task_id, payload, actor)
    return _map_task(task)


@router.delete("/{task_id}", response_model=MessageResponse, summary="Delete a task")
async def delete_task(
    task_id: int,
    session: DatabaseSessionDependency,
    actor: ActorDependency,
) -> MessageResponse:
    service = TaskService(session)
    await service.delete_task(task_id, actor)
    return MessageResponse(message="Task removed")
