# src/queue_deadline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (JSON repository, local notification
  center, reminder scheduler) into the TaskStore and AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..notifications.local_center import LocalNotificationCenter
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_repository import JsonTaskRepository
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)


def create_app(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    repository = JsonTaskRepository(settings.tasks_path)
    center = LocalNotificationCenter(grant_authorization=settings.notifications_authorized)
    scheduler = ReminderScheduler(center)
    store = TaskStore(repository, scheduler, save_delay=settings.save_delay_seconds)

    logger.debug("App wired tasks_path=%s save_delay=%.2fs", settings.tasks_path, settings.save_delay_seconds)
    return AppState(
        settings=settings,
        repository=repository,
        notifications=center,
        scheduler=scheduler,
        store=store,
    )
