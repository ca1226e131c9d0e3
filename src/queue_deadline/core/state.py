# src/queue_deadline/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..notifications.local_center import LocalNotificationCenter
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_models import Task
from ..tasks.task_repository import JsonTaskRepository
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (real Settings or a SimpleNamespace in tests).
    settings: Any

    repository: JsonTaskRepository
    notifications: LocalNotificationCenter
    scheduler: ReminderScheduler
    store: TaskStore

    # Last rendered listing; commands resolve "#3" style references against it.
    last_listing: list[Task] = field(default_factory=list)
