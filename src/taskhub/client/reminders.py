"""Periodic reminder checks over the cached task collection.

Each check fires at most one reminder per task: the most urgent tier the
reminder date falls into. A tier fires at most once per task per calendar
day; the markers are dropped on the first check of a new day. Completed
tasks and reminders already in the past never fire.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from ..core.config import get_settings
from ..core.status_codes import ClientStatus
from ..models import ensure_aware
from ..schemas.task import TaskRead
from . import notifications
from .notifications import LoggingNotifier, Notification, Notifier

logger = logging.getLogger(__name__)


class ReminderTier(str, Enum):
    URGENT = "urgent"
    SOON = "soon"
    UPCOMING = "upcoming"


# Most urgent first.
TIER_THRESHOLDS: tuple[tuple[ReminderTier, float], ...] = (
    (ReminderTier.URGENT, 1.0),
    (ReminderTier.SOON, 24.0),
    (ReminderTier.UPCOMING, 72.0),
)


def classify(hours_until: float) -> ReminderTier | None:
    """Return the most urgent tier for a reminder ``hours_until`` hours away."""

    if hours_until <= 0:
        return None
    for tier, threshold in TIER_THRESHOLDS:
        if hours_until <= threshold:
            return tier
    return None


def local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(slots=True, frozen=True)
class FiredReminder:
    task_id: int
    tier: ReminderTier | None
    notification: Notification


class ReminderScheduler:
    """Owns the "already shown" markers and the timer loop."""

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        now: Callable[[], datetime] = local_now,
        interval_seconds: float | None = None,
    ) -> None:
        self._notifier = notifier or LoggingNotifier()
        self._now = now
        self._interval = (
            interval_seconds if interval_seconds is not None else get_settings().reminder_interval_seconds
        )
        self._shown: set[tuple[int, ReminderTier]] = set()
        self._due_today_shown: set[int] = set()
        self._cleared_on: date | None = None
        self._loop_task: asyncio.Task[None] | None = None

    @property
    def shown(self) -> frozenset[tuple[int, ReminderTier]]:
        return frozenset(self._shown)

    @property
    def cleared_on(self) -> date | None:
        return self._cleared_on

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def _roll_day(self, today: date) -> None:
        if self._cleared_on != today:
            if self._cleared_on is not None:
                logger.debug("Clearing reminder markers for a new day", extra={"day": today.isoformat()})
            self._shown.clear()
            self._due_today_shown.clear()
            self._cleared_on = today

    def check(self, tasks: Iterable[TaskRead]) -> list[FiredReminder]:
        """Fire every reminder that is due now and return what fired."""

        now = self._now()
        if now.tzinfo is None:
            now = ensure_aware(now)
        self._roll_day(now.date())

        fired: list[FiredReminder] = []
        for task in tasks:
            if task.status == ClientStatus.COMPLETED:
                continue

            reminder_at = ensure_aware(task.reminder_date)
            hours_until = (reminder_at - now).total_seconds() / 3600
            tier = classify(hours_until)
            if tier is not None and (task.id, tier) not in self._shown:
                self._shown.add((task.id, tier))
                notification = notifications.task_reminder(
                    task,
                    hours_until,
                    urgent=tier is ReminderTier.URGENT,
                )
                fired.append(FiredReminder(task.id, tier, notification))

            due_day = ensure_aware(task.due_date).astimezone(now.tzinfo).date()
            if due_day == now.date() and task.id not in self._due_today_shown:
                self._due_today_shown.add(task.id)
                fired.append(FiredReminder(task.id, None, notifications.task_due_today(task)))

        for reminder in fired:
            self._notifier.notify(reminder.notification)
        return fired

    def on_tasks_changed(self, tasks: list[TaskRead]) -> None:
        """Listener hook for ``TaskCache.subscribe``."""
        self.check(tasks)

    def start(self, source: Callable[[], Iterable[TaskRead]]) -> asyncio.Task[None]:
        """Run ``check`` on ``source()`` every interval until ``stop``."""

        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._run(source))
        return self._loop_task

    async def stop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self, source: Callable[[], Iterable[TaskRead]]) -> None:
        while True:
            try:
                self.check(source())
            except Exception:
                logger.exception("Reminder check failed")
            await asyncio.sleep(self._interval)


__all__ = [
    "FiredReminder",
    "ReminderScheduler",
    "ReminderTier",
    "TIER_THRESHOLDS",
    "classify",
    "local_now",
]
