# src/queue_deadline/notifications/local_center.py

from __future__ import annotations

"""
In-process notification facility.

LocalNotificationCenter keeps pending reminder requests keyed by their
string identifier. run_reminder_dispatcher() is a small polling loop that:
- pops requests whose trigger instant has passed,
- delivers them through an injected messenger port,
- logs (and drops) deliveries that fail.

Delivery formatting belongs to the connector, not the dispatcher.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime

from ..core.ports import Clock, OutboundMessenger
from ..tasks.reminder_scheduler import ReminderRequest
from ..tasks.task_models import utcnow

logger = logging.getLogger(__name__)


class LocalNotificationCenter:
    def __init__(self, *, grant_authorization: bool = True) -> None:
        self._grant = bool(grant_authorization)
        self._pending: dict[str, ReminderRequest] = {}

    async def request_authorization(self) -> bool:
        logger.debug("Authorization requested -> %s", self._grant)
        return self._grant

    async def add(self, request: ReminderRequest) -> None:
        # Same key replaces, mirroring OS notification centers.
        self._pending[request.key] = request

    def remove_pending(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._pending.pop(key, None)

    def remove_all_pending(self) -> None:
        self._pending.clear()

    def pending_keys(self) -> set[str]:
        return set(self._pending)

    def pending(self) -> list[ReminderRequest]:
        return sorted(self._pending.values(), key=lambda r: r.trigger_at)

    def pop_due(self, now: datetime) -> list[ReminderRequest]:
        due = [r for r in self._pending.values() if r.trigger_at <= now]
        for r in due:
            del self._pending[r.key]
        due.sort(key=lambda r: r.trigger_at)
        return due


async def run_reminder_dispatcher(
        center: LocalNotificationCenter,
        messenger: OutboundMessenger,
        *,
        interval_seconds: float = 15.0,
        clock: Clock = utcnow,
) -> None:
    """
    Deliver due reminders every interval_seconds.

    To stop the dispatcher, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        for request in center.pop_due(clock()):
            try:
                await messenger.send_text(text=request.body, title=request.title)
                logger.info("Reminder delivered key=%s level=%s", request.key, request.level.value)
            except Exception:
                logger.exception("Reminder delivery failed key=%s", request.key)

        await asyncio.sleep(sleep_s)
