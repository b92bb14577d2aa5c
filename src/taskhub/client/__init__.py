"""Async client: HTTP access, the task cache and reminders."""

from __future__ import annotations

from .cache import LoadState, Mutation, MutationKind, MutationState, TaskApi, TaskCache
from .http import TaskApiClient, TokenStore, token_store
from .notifications import LoggingNotifier, Notification, NotificationLevel, Notifier
from .reminders import FiredReminder, ReminderScheduler, ReminderTier

__all__ = [
    "FiredReminder",
    "LoadState",
    "LoggingNotifier",
    "Mutation",
    "MutationKind",
    "MutationState",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "ReminderScheduler",
    "ReminderTier",
    "TaskApi",
    "TaskApiClient",
    "TaskCache",
    "TokenStore",
    "token_store",
]
