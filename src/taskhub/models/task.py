"""Task domain models built with SQLModel."""

from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from ..core.status_codes import InternalStatus
from .common import TimestampMixin, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .user import User

DEFAULT_DUE_IN = timedelta(days=7)


class TaskPriority(str, Enum):
    """Priority vocabulary shared by storage and the API."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def default_due_date() -> datetime:
    return utcnow() + DEFAULT_DUE_IN


class TaskBase(SQLModel, table=False):
    """Shared attributes for task models."""

    title: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    description: str = Field(
        default="",
        sa_column=sa.Column(sa.Text(), nullable=False, server_default=""),
    )
    status: InternalStatus = Field(
        default=InternalStatus.TO_DO,
        sa_column=sa.Column(
            sa.Enum(
                InternalStatus,
                name="task_status",
                native_enum=False,
                validate_strings=True,
                values_callable=lambda members: [member.value for member in members],
            ),
            nullable=False,
            server_default=InternalStatus.TO_DO.value,
        ),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(
            sa.Enum(TaskPriority, name="task_priority", native_enum=False, validate_strings=True),
            nullable=False,
            server_default=TaskPriority.MEDIUM.value,
        ),
    )
    due_date: datetime = Field(
        default_factory=default_due_date,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False),
    )
    reminder_date: datetime = Field(
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False),
    )
    creator_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    assignee_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )


class Task(TaskBase, TimestampMixin, table=True):
    """Persistent task model.

    ``creator_id`` is written once at creation; ``assignee_id`` is only ever
    changed through an administrator's reassignment.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.Index("ix_tasks_creator_id", "creator_id"),
        sa.Index("ix_tasks_assignee_id", "assignee_id"),
        sa.Index("ix_tasks_created_at", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    creator: Optional["User"] = Relationship(
        sa_relationship_kwargs={
            "foreign_keys": "[Task.creator_id]",
            "lazy": "selectin",
        },
    )
    assignee: Optional["User"] = Relationship(
        sa_relationship_kwargs={
            "foreign_keys": "[Task.assignee_id]",
            "lazy": "selectin",
        },
    )


__all__ = ["DEFAULT_DUE_IN", "Task", "TaskBase", "TaskPriority", "default_due_date"]
