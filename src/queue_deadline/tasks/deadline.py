# src/queue_deadline/tasks/deadline.py

from __future__ import annotations

"""
Deadline urgency.

Pure functions over (task, now). Classification and the human-readable
remaining-time string share one threshold table, so a task labelled
"imminent" always renders in minutes and a "soon" task in hours.
"""

from datetime import datetime
from enum import StrEnum

from .task_models import Task

MINUTE = 60.0
HOUR = 3600.0
DAY = 86400.0


class DeadlineStatus(StrEnum):
    OVERDUE = "overdue"
    IMMINENT = "imminent"
    SOON = "soon"
    NORMAL = "normal"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    DeadlineStatus.OVERDUE: "Overdue",
    DeadlineStatus.IMMINENT: "Due very soon",
    DeadlineStatus.SOON: "Due today",
    DeadlineStatus.NORMAL: "On track",
}

# (exclusive upper bound in seconds, status, display unit below that bound)
# Anything at or beyond the last bound is NORMAL and displays in days.
THRESHOLDS: tuple[tuple[float, DeadlineStatus, float], ...] = (
    (0.0, DeadlineStatus.OVERDUE, MINUTE),
    (HOUR, DeadlineStatus.IMMINENT, MINUTE),
    (DAY, DeadlineStatus.SOON, HOUR),
)

_UNIT_NAMES = {MINUTE: "minute", HOUR: "hour", DAY: "day"}


def time_remaining(task: Task, now: datetime) -> float | None:
    """Seconds until the task's deadline (negative when past), None without one."""
    if task.deadline is None:
        return None
    return (task.deadline - now).total_seconds()


def classify(remaining: float | None) -> DeadlineStatus:
    if remaining is None:
        return DeadlineStatus.NORMAL
    for bound, status, _unit in THRESHOLDS:
        if remaining < bound:
            return status
    return DeadlineStatus.NORMAL


def _unit_for(magnitude: float) -> float:
    # Magnitude is >= 0 here, so the OVERDUE row never matches.
    for bound, _status, unit in THRESHOLDS[1:]:
        if magnitude < bound:
            return unit
    return DAY


def _plural(n: int, unit: float) -> str:
    name = _UNIT_NAMES[unit]
    return f"{n} {name}" if n == 1 else f"{n} {name}s"


def format_remaining(remaining: float | None) -> str:
    if remaining is None:
        return "no deadline"

    magnitude = abs(remaining)
    if magnitude < MINUTE:
        return "under a minute overdue" if remaining < 0 else "under a minute"

    unit = _unit_for(magnitude)

    if remaining < 0:
        return f"{_plural(int(magnitude // unit), unit)} overdue"

    if unit == MINUTE:
        return f"{_plural(int(magnitude // MINUTE), MINUTE)} left"
    if unit == HOUR:
        hours = int(magnitude // HOUR)
        minutes = int((magnitude % HOUR) // MINUTE)
        return f"{_plural(hours, HOUR)} {_plural(minutes, MINUTE)} left"

    days = int(magnitude // DAY)
    hours = int((magnitude % DAY) // HOUR)
    return f"{_plural(days, DAY)} {_plural(hours, HOUR)} left"


def deadline_status(task: Task, now: datetime) -> DeadlineStatus:
    return classify(time_remaining(task, now))


def format_age(created_at: datetime, now: datetime) -> str:
    """Relative creation time for stack rows ("5 minutes ago")."""
    age = (now - created_at).total_seconds()
    if age < MINUTE:
        return "just now"
    unit = _unit_for(age)
    return f"{_plural(int(age // unit), unit)} ago"
