# src/queue_deadline/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Turns a task deadline into up to three reminders (24 hours, 1 hour and
30 minutes before) and publishes them through an injected NotificationCenter.

Scheduling is full-replace: every schedule() first cancels all three keys of
the task, so re-scheduling never duplicates. Cancellation always targets all
three keys, whether or not they were registered.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from ..core.ports import Clock, NotificationCenter
from .task_models import Priority, Task, utcnow

logger = logging.getLogger(__name__)

# (seconds before deadline, human label)
REMINDER_OFFSETS: tuple[tuple[int, str], ...] = (
    (1800, "30 minutes"),
    (3600, "1 hour"),
    (86400, "24 hours"),
)

REMINDER_CATEGORY = "TASK_REMINDER"


class InterruptionLevel(StrEnum):
    ACTIVE = "active"
    TIME_SENSITIVE = "time_sensitive"
    CRITICAL = "critical"


def interruption_level_for(priority: Priority) -> InterruptionLevel:
    if priority == Priority.URGENT:
        return InterruptionLevel.CRITICAL
    if priority == Priority.HIGH:
        return InterruptionLevel.TIME_SENSITIVE
    return InterruptionLevel.ACTIVE


def reminder_key(task_id: str, offset_seconds: int) -> str:
    return f"{task_id}-{int(offset_seconds)}"


def reminder_keys(task_id: str) -> list[str]:
    return [reminder_key(task_id, offset) for offset, _label in REMINDER_OFFSETS]


@dataclass(slots=True, frozen=True)
class ReminderRequest:
    key: str
    task_id: str
    offset_seconds: int
    trigger_at: datetime
    title: str
    body: str
    level: InterruptionLevel
    category: str = REMINDER_CATEGORY


def build_reminders(task: Task, now: datetime) -> list[ReminderRequest]:
    """
    Reminders a task should have at `now`.

    Offsets whose trigger instant is not strictly in the future are skipped,
    so a deadline 45 minutes away yields only the 30-minute reminder.
    """
    if task.deadline is None or task.is_completed:
        return []

    level = interruption_level_for(task.priority)
    out: list[ReminderRequest] = []
    for offset, label in REMINDER_OFFSETS:
        trigger_at = task.deadline - timedelta(seconds=offset)
        if trigger_at <= now:
            continue
        out.append(
            ReminderRequest(
                key=reminder_key(task.id, offset),
                task_id=task.id,
                offset_seconds=offset,
                trigger_at=trigger_at,
                title=f"Deadline approaching: {task.title}",
                body=f"Due in {label}.",
                level=level,
            )
        )
    return out


class ReminderScheduler:
    """
    Idempotent per-task reminder scheduling.

    Authorization is requested lazily on the first schedule() and cached only
    when granted; a denial abandons that call silently and the next call asks
    again.
    """

    def __init__(self, center: NotificationCenter, *, clock: Clock = utcnow) -> None:
        self._center = center
        self._clock = clock
        self._authorized = False

    @property
    def authorized(self) -> bool:
        return self._authorized

    async def ensure_authorized(self) -> bool:
        if self._authorized:
            return True
        try:
            granted = bool(await self._center.request_authorization())
        except Exception:
            logger.exception("Reminder authorization request failed")
            granted = False
        if not granted:
            logger.info("Reminder authorization not granted; skipping scheduling.")
            return False
        self._authorized = True
        return True

    async def schedule(self, task: Task, now: datetime | None = None) -> list[str]:
        """Replace all reminders of `task`. Returns the keys actually registered."""
        if task.deadline is None or task.is_completed:
            return []

        if not await self.ensure_authorized():
            return []

        self.cancel(task.id)

        # Computed after the authorization round trip, which may have taken a while.
        if now is None:
            now = self._clock()

        registered: list[str] = []
        for request in build_reminders(task, now):
            try:
                await self._center.add(request)
            except Exception:
                logger.exception(
                    "Failed to register reminder key=%s trigger_at=%s",
                    request.key,
                    request.trigger_at.isoformat(),
                )
                continue
            registered.append(request.key)

        logger.debug("Scheduled reminders task_id=%s keys=%s", task.id, registered)
        return registered

    def cancel(self, task_id: str) -> None:
        keys = reminder_keys(task_id)
        try:
            self._center.remove_pending(keys)
        except Exception:
            logger.exception("Failed to cancel reminders task_id=%s", task_id)
            return
        logger.debug("Cancelled reminders task_id=%s", task_id)

    def cancel_all(self) -> None:
        try:
            self._center.remove_all_pending()
        except Exception:
            logger.exception("Failed to cancel all reminders")
