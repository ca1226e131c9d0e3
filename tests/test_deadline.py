# tests/test_deadline.py

from __future__ import annotations

from datetime import timedelta

import pytest

from queue_deadline.tasks.deadline import (
    DAY,
    HOUR,
    DeadlineStatus,
    classify,
    deadline_status,
    format_age,
    format_remaining,
    time_remaining,
)
from queue_deadline.tasks.task_models import Task


@pytest.mark.parametrize(
    ("remaining", "expected"),
    [
        (None, DeadlineStatus.NORMAL),
        (-DAY * 3, DeadlineStatus.OVERDUE),
        (-0.001, DeadlineStatus.OVERDUE),
        (0.0, DeadlineStatus.IMMINENT),
        (HOUR - 0.001, DeadlineStatus.IMMINENT),
        (HOUR, DeadlineStatus.SOON),
        (DAY - 0.001, DeadlineStatus.SOON),
        (DAY, DeadlineStatus.NORMAL),
        (DAY * 30, DeadlineStatus.NORMAL),
    ],
)
def test_classify_partitions_at_exact_thresholds(remaining, expected) -> None:
    assert classify(remaining) is expected


@pytest.mark.parametrize(
    ("remaining", "expected"),
    [
        (None, "no deadline"),
        (0.0, "under a minute"),
        (59.9, "under a minute"),
        (-30.0, "under a minute overdue"),
        (60.0, "1 minute left"),
        (125.0, "2 minutes left"),
        (HOUR - 1, "59 minutes left"),
        (HOUR + 5 * 60 + 59, "1 hour 5 minutes left"),
        (2 * DAY + 3 * HOUR + 59, "2 days 3 hours left"),
        (-59 * 60.0, "59 minutes overdue"),
        (-90 * 60.0, "1 hour overdue"),
        (-(DAY - 1), "23 hours overdue"),
        (-3 * DAY - 5, "3 days overdue"),
    ],
)
def test_format_remaining_truncates_with_shared_units(remaining, expected) -> None:
    assert format_remaining(remaining) == expected


def test_format_unit_follows_classification() -> None:
    # Imminent renders in minutes, soon in hours, normal in days.
    assert "minute" in format_remaining(HOUR - 61) and "hour" not in format_remaining(HOUR - 61)
    assert classify(HOUR - 61) is DeadlineStatus.IMMINENT
    assert format_remaining(HOUR).startswith("1 hour")
    assert classify(HOUR) is DeadlineStatus.SOON
    assert format_remaining(DAY).startswith("1 day")
    assert classify(DAY) is DeadlineStatus.NORMAL


def test_time_remaining_and_status(now) -> None:
    assert time_remaining(Task(title="x"), now) is None
    t = Task(title="x", deadline=now + timedelta(minutes=30))
    assert time_remaining(t, now) == 1800.0
    assert deadline_status(t, now) is DeadlineStatus.IMMINENT
    late = Task(title="y", deadline=now - timedelta(seconds=1))
    assert time_remaining(late, now) == -1.0
    assert deadline_status(late, now) is DeadlineStatus.OVERDUE


def test_format_age(now) -> None:
    assert format_age(now - timedelta(seconds=20), now) == "just now"
    assert format_age(now - timedelta(minutes=5), now) == "5 minutes ago"
    assert format_age(now - timedelta(hours=3, minutes=10), now) == "3 hours ago"
    assert format_age(now - timedelta(days=2), now) == "2 days ago"


def test_status_labels() -> None:
    assert DeadlineStatus.OVERDUE.label == "Overdue"
    assert DeadlineStatus.NORMAL.label == "On track"
