"""Domain models exposed for TaskHub."""

from __future__ import annotations

from .common import TimestampMixin, ensure_aware, utcnow
from .task import Task, TaskBase, TaskPriority, default_due_date
from .user import User, UserBase, UserRole

__all__ = [
    "Task",
    "TaskBase",
    "TaskPriority",
    "TimestampMixin",
    "User",
    "UserBase",
    "UserRole",
    "default_due_date",
    "ensure_aware",
    "utcnow",
]
