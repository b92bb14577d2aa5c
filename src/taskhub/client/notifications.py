"""User-facing notifications produced by the client cache and reminders."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..models import TaskPriority
from ..schemas.task import TaskRead

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    REMINDER = "reminder"


@dataclass(slots=True, frozen=True)
class Notification:
    """A human-readable message for whatever surface displays notices."""

    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    color: str = "blue"
    task_id: int | None = None


class Notifier(Protocol):
    """Port through which notifications leave the client core."""

    def notify(self, notification: Notification) -> None: ...


class LoggingNotifier:
    """Default notifier writing every notice to the log."""

    _LEVELS = {
        NotificationLevel.ERROR: logging.ERROR,
        NotificationLevel.WARNING: logging.WARNING,
    }

    def notify(self, notification: Notification) -> None:
        logger.log(
            self._LEVELS.get(notification.level, logging.INFO),
            "%s: %s",
            notification.title,
            notification.message,
            extra={"level_name": notification.level.value, "task_id": notification.task_id},
        )


_PRIORITY_COLORS = {
    TaskPriority.HIGH: "red",
    TaskPriority.MEDIUM: "yellow",
    TaskPriority.LOW: "blue",
}


def task_created(task: TaskRead) -> Notification:
    return Notification(
        "Task Created",
        f'"{task.title}" has been created successfully.',
        NotificationLevel.SUCCESS,
        "green",
        task.id,
    )


def task_updated(task: TaskRead) -> Notification:
    return Notification(
        "Task Updated",
        f'"{task.title}" has been updated successfully.',
        NotificationLevel.SUCCESS,
        "green",
        task.id,
    )


def task_deleted(title: str | None = None, task_id: int | None = None) -> Notification:
    message = f'"{title}" has been deleted successfully.' if title else "Your task has been deleted successfully."
    return Notification("Task Deleted", message, NotificationLevel.SUCCESS, "green", task_id)


def task_already_deleted(title: str | None = None, task_id: int | None = None) -> Notification:
    subject = f'"{title}"' if title else "The task"
    return Notification(
        "Information",
        f"{subject} may have already been deleted.",
        NotificationLevel.INFO,
        "blue",
        task_id,
    )


def operation_failed(action: str, error: Exception) -> Notification:
    """Describe a failed mutation; each action gets its own wording."""
    detail = getattr(error, "message", None) or str(error) or error.__class__.__name__
    return Notification(
        "Error",
        f"Failed to {action}: {detail}",
        NotificationLevel.ERROR,
        "red",
    )


def reminder_message(hours_until: float) -> str:
    """Wording for a reminder ``hours_until`` hours away (always positive)."""
    if hours_until <= 1:
        return "URGENT: Task reminder is in less than an hour!"
    if hours_until <= 24:
        return f"Task reminder is in {math.ceil(hours_until)} hour(s)"
    return f"Upcoming task reminder is in {math.ceil(hours_until / 24)} days"


def task_reminder(task: TaskRead, hours_until: float, *, urgent: bool = False) -> Notification:
    title = f"URGENT: {task.title}" if urgent else task.title
    return Notification(
        title,
        reminder_message(hours_until),
        NotificationLevel.REMINDER,
        _PRIORITY_COLORS.get(task.priority, "blue"),
        task.id,
    )


def task_due_today(task: TaskRead) -> Notification:
    return Notification(
        f"Task Due Today: {task.title}",
        "This task is due today!",
        NotificationLevel.INFO,
        "orange",
        task.id,
    )


__all__ = [
    "LoggingNotifier",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "operation_failed",
    "reminder_message",
    "task_already_deleted",
    "task_created",
    "task_deleted",
    "task_due_today",
    "task_reminder",
    "task_updated",
]
