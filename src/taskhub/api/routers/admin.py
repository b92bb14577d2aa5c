"""Administrator-only listings and dashboard figures."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ...core.permissions import Actor
from ...deps import AdminUserDependency, DatabaseSessionDependency
from ...schemas import TaskFilters, TaskRead, TaskStatistics, UserPublic, UserWithTaskCount
from ...services import TaskService, UserService
from ._filters import parse_task_filters

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserPublic], summary="List all users")
async def list_users(
    session: DatabaseSessionDependency,
    _: AdminUserDependency,
) -> list[UserPublic]:
    users = await UserService(session).list_users()
    return [UserPublic.model_validate(user) for user in users]


@router.get(
    "/users/with-tasks",
    response_model=list[UserWithTaskCount],
    summary="List users with their created and assigned task counts",
)
async def list_users_with_tasks(
    session: DatabaseSessionDependency,
    _: AdminUserDependency,
) -> list[UserWithTaskCount]:
    return await UserService(session).list_users_with_task_counts()


@router.get("/users/{user_id}", response_model=UserPublic, summary="Retrieve a user")
async def get_user(
    user_id: int,
    session: DatabaseSessionDependency,
    _: AdminUserDependency,
) -> UserPublic:
    return UserPublic.model_validate(await UserService(session).get_user(user_id))


@router.get("/tasks", response_model=list[TaskRead], summary="List every task")
async def list_all_tasks(
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    filters: Annotated[TaskFilters, Depends(parse_task_filters)],
) -> list[TaskRead]:
    tasks = await TaskService(session).list_tasks(Actor.from_user(admin), filters)
    return [TaskRead.model_validate(task) for task in tasks]


@router.get("/statistics", response_model=TaskStatistics, summary="Aggregate task statistics")
async def get_statistics(
    session: DatabaseSessionDependency,
    _: AdminUserDependency,
) -> TaskStatistics:
    return await TaskService(session).get_statistics()
