"""Query-string parsing shared by task listing endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import Query
from pydantic import ValidationError as PydanticValidationError

from ...errors import ValidationError
from ...schemas.task import TaskFilters

StatusQuery = Annotated[
    str | None,
    Query(description="Comma separated client statuses, e.g. ``TODO,IN_PROGRESS``."),
]
PriorityQuery = Annotated[
    str | None,
    Query(description="Comma separated priorities, e.g. ``HIGH,MEDIUM``."),
]
UsersQuery = Annotated[
    str | None,
    Query(description="Comma separated user ids; honoured for administrators only."),
]
SearchQuery = Annotated[
    str | None,
    Query(description="Case-insensitive text matched against title and description."),
]


def parse_task_filters(
    status: StatusQuery = None,
    priority: PriorityQuery = None,
    users: UsersQuery = None,
    search: SearchQuery = None,
) -> TaskFilters:
    try:
        return TaskFilters(status=status, priority=priority, users=users, search=search)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid task filters.",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


__all__ = ["parse_task_filters"]
