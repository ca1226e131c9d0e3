# src/queue_deadline/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum, StrEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Priority(IntEnum):
    """Ordered priority; persisted as its integer value (0-3)."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    URGENT = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, raw: str) -> Priority:
        raw = (raw or "").strip()
        if raw.isdigit():
            return cls(int(raw))
        return cls[raw.upper()]


class TaskType(StrEnum):
    """
    Task discipline.

    - queue: deadline-bearing work, surfaced earliest deadline first
    - stack: backlog / ideas, surfaced most recently added first
    """

    QUEUE = "queue"
    STACK = "stack"

    @property
    def label(self) -> str:
        return "Queue (deadline)" if self is TaskType.QUEUE else "Stack (idea)"


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass(slots=True, frozen=True)
class Task:
    """
    A single tracked work item.

    Tasks are immutable values: the store swaps whole records on every
    mutation, so derived views never see a half-updated task. Build edited
    copies with dataclasses.replace().
    """

    title: str
    description: str = ""
    deadline: datetime | None = None
    priority: Priority = Priority.MEDIUM
    is_completed: bool = False
    task_type: TaskType = TaskType.QUEUE
    notification_scheduled: bool = False  # advisory, not authoritative

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    @property
    def has_deadline(self) -> bool:
        return self.deadline is not None


def new_task(
    title: str,
    *,
    description: str = "",
    deadline: datetime | None = None,
    priority: Priority = Priority.MEDIUM,
    task_type: TaskType = TaskType.QUEUE,
) -> Task:
    """Creation path: trims input and rejects an empty title."""
    title = (title or "").strip()
    if not title:
        raise ValueError("title is required")
    return Task(
        title=title,
        description=(description or "").strip(),
        deadline=deadline,
        priority=Priority(priority),
        task_type=TaskType(task_type),
    )


# Quick-pick lead times offered when creating a task.
QUICK_DEADLINES: dict[str, float] = {
    "1h": 3600,
    "3h": 10800,
    "today": 86400,
    "tomorrow": 172800,
    "week": 604800,
}


def quick_deadline(name: str, now: datetime | None = None) -> datetime:
    try:
        seconds = QUICK_DEADLINES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown quick deadline: {name!r}") from None
    return (now or utcnow()) + timedelta(seconds=seconds)
