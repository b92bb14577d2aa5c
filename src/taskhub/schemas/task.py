"""Task-related Pydantic schemas."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..core.status_codes import ClientStatus, normalise_client_status
from ..models import TaskPriority, ensure_aware
from .common import CamelModel
from .user import UserSummary

TASK_READ_EXAMPLE = {
    "id": 1,
    "title": "Prepare quarterly report",
    "description": "Collect figures from every team.",
    "status": ClientStatus.IN_PROGRESS.value,
    "priority": TaskPriority.HIGH.value,
    "dueDate": "2024-01-08T12:00:00Z",
    "reminderDate": "2024-01-07T09:00:00Z",
    "createdBy": 1,
    "assignedTo": 2,
    "creator": {"id": 1, "firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com"},
    "assignee": {"id": 2, "firstName": "Alan", "lastName": "Turing", "email": "alan@example.com"},
    "createdAt": "2024-01-01T12:00:00Z",
    "updatedAt": "2024-01-02T08:30:00Z",
}


def _split(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Iterable):
        items: list[Any] = []
        for item in value:
            items.extend(_split(item) if isinstance(item, str) else [item])
        return items
    return [value]


def _normalise_priority(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class TaskFilters(BaseModel):
    """Filter criteria shared by the task list endpoint and the client cache."""

    model_config = ConfigDict(frozen=True)

    status: tuple[ClientStatus, ...] = ()
    priority: tuple[TaskPriority, ...] = ()
    users: tuple[int, ...] = ()
    search: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> tuple[ClientStatus, ...]:
        return tuple(dict.fromkeys(normalise_client_status(item) for item in _split(value)))

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, value: Any) -> tuple[Any, ...]:
        return tuple(dict.fromkeys(_normalise_priority(item) for item in _split(value)))

    @field_validator("users", mode="before")
    @classmethod
    def _parse_users(cls, value: Any) -> tuple[Any, ...]:
        return tuple(dict.fromkeys(_split(value)))

    @field_validator("search", mode="before")
    @classmethod
    def _parse_search(cls, value: Any) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @property
    def is_empty(self) -> bool:
        return not (self.status or self.priority or self.users or self.search)

    def matches(self, task: "TaskRead") -> bool:
        """Evaluate the filters against an already visible task."""

        if self.status and task.status not in self.status:
            return False
        if self.priority and task.priority not in self.priority:
            return False
        if self.users and task.created_by not in self.users and task.assigned_to not in self.users:
            return False
        if self.search:
            needle = self.search.casefold()
            haystacks = (task.title.casefold(), task.description.casefold())
            if not any(needle in haystack for haystack in haystacks):
                return False
        return True


class _TaskPayload(CamelModel):
    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def _translate_status(cls, value: Any) -> Any:
        if value is None:
            return None
        return normalise_client_status(value)

    @field_validator("priority", mode="before", check_fields=False)
    @classmethod
    def _upper_priority(cls, value: Any) -> Any:
        return _normalise_priority(value)

    @field_validator("title", check_fields=False)
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        if not stripped:
            raise ValueError("Title must not be blank.")
        return stripped


class TaskCreate(_TaskPayload):
    """Payload for creating a new task.

    ``reminder_date`` is optional at the schema level so the task service can
    report its absence as a domain validation error.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Prepare quarterly report",
                "description": "Collect figures from every team.",
                "priority": TaskPriority.HIGH.value,
                "reminderDate": "2024-01-07T09:00:00Z",
                "assignedTo": 2,
            }
        }
    )

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="")
    status: ClientStatus = Field(default=ClientStatus.TODO)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    due_date: datetime | None = None
    reminder_date: datetime | None = None
    assigned_to: int | None = None
    created_by: int | None = Field(
        default=None,
        validation_alias=AliasChoices("createdBy", "created_by", "creator"),
        serialization_alias="createdBy",
    )


class TaskUpdate(_TaskPayload):
    """Partial update; fields left out of the payload are not touched."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": ClientStatus.COMPLETED.value,
                "priority": TaskPriority.LOW.value,
            }
        }
    )

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: ClientStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    reminder_date: datetime | None = None
    assigned_to: int | None = None
    created_by: int | None = Field(
        default=None,
        validation_alias=AliasChoices("createdBy", "created_by", "creator"),
        serialization_alias="createdBy",
    )


class TaskRead(CamelModel):
    """Public representation of a task with resolved participants."""

    model_config = ConfigDict(json_schema_extra={"example": TASK_READ_EXAMPLE})

    id: int = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="id")
    title: str
    description: str = ""
    status: ClientStatus
    priority: TaskPriority
    due_date: datetime
    reminder_date: datetime
    created_by: int = Field(
        validation_alias=AliasChoices("createdBy", "created_by", "creator_id"),
        serialization_alias="createdBy",
    )
    assigned_to: int = Field(
        validation_alias=AliasChoices("assignedTo", "assigned_to", "assignee_id"),
        serialization_alias="assignedTo",
    )
    creator: UserSummary | None = None
    assignee: UserSummary | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _translate_status(cls, value: Any) -> ClientStatus:
        return normalise_client_status(value)

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("due_date", "reminder_date", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class TaskStatistics(CamelModel):
    """Aggregated figures for the admin dashboard."""

    total: int = Field(ge=0)
    completed: int = Field(ge=0)
    pending: int = Field(ge=0)
    upcoming: int = Field(ge=0)
    by_status: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)


__all__ = [
    "TaskCreate",
    "TaskFilters",
    "TaskRead",
    "TaskStatistics",
    "TaskUpdate",
]
