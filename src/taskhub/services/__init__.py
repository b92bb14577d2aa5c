"""Business services coordinating repositories and rules."""

from __future__ import annotations

from .auth import AuthService
from .query import TASK_ORDERING, build_task_query
from .tasks import TaskService
from .users import UserService

__all__ = ["AuthService", "TASK_ORDERING", "TaskService", "UserService", "build_task_query"]
