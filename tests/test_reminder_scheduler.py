# tests/test_reminder_scheduler.py

from __future__ import annotations

from datetime import timedelta

import pytest

from queue_deadline.tasks.reminder_scheduler import (
    InterruptionLevel,
    ReminderScheduler,
    build_reminders,
    reminder_key,
    reminder_keys,
)
from queue_deadline.tasks.task_models import Priority, Task

from .fakes import FakeNotificationCenter


def test_reminder_keys_format() -> None:
    assert reminder_key("abc", 1800) == "abc-1800"
    assert reminder_keys("abc") == ["abc-1800", "abc-3600", "abc-86400"]


def test_build_reminders_content_and_levels(now) -> None:
    task = Task(title="Pay rent", deadline=now + timedelta(days=2), priority=Priority.URGENT)
    reqs = build_reminders(task, now)

    assert [r.offset_seconds for r in reqs] == [1800, 3600, 86400]
    assert reqs[0].title == "Deadline approaching: Pay rent"
    assert reqs[0].body == "Due in 30 minutes."
    assert reqs[2].body == "Due in 24 hours."
    assert reqs[1].trigger_at == task.deadline - timedelta(hours=1)
    assert all(r.level is InterruptionLevel.CRITICAL for r in reqs)

    high = build_reminders(Task(title="x", deadline=now + timedelta(days=2), priority=Priority.HIGH), now)
    assert high[0].level is InterruptionLevel.TIME_SENSITIVE
    low = build_reminders(Task(title="x", deadline=now + timedelta(days=2), priority=Priority.LOW), now)
    assert low[0].level is InterruptionLevel.ACTIVE


@pytest.mark.asyncio
async def test_deadline_just_over_30_minutes_registers_only_the_30_minute_reminder(
    scheduler: ReminderScheduler, center: FakeNotificationCenter, now
) -> None:
    task = Task(title="Standup", deadline=now + timedelta(seconds=1801))

    keys = await scheduler.schedule(task, now)

    assert keys == [reminder_key(task.id, 1800)]
    assert center.pending_keys() == {f"{task.id}-1800"}


@pytest.mark.asyncio
async def test_triggers_not_strictly_in_the_future_are_skipped(
    scheduler: ReminderScheduler, center: FakeNotificationCenter, now
) -> None:
    exactly = Task(title="edge", deadline=now + timedelta(seconds=1800))
    close = Task(title="close", deadline=now + timedelta(minutes=10))

    assert await scheduler.schedule(exactly, now) == []
    assert await scheduler.schedule(close, now) == []
    assert center.pending_keys() == set()


@pytest.mark.asyncio
async def test_schedule_is_a_no_op_without_deadline_or_when_completed(
    scheduler: ReminderScheduler, center: FakeNotificationCenter, now
) -> None:
    assert await scheduler.schedule(Task(title="none"), now) == []
    done = Task(title="done", deadline=now + timedelta(days=3), is_completed=True)
    assert await scheduler.schedule(done, now) == []
    assert center.auth_requests == 0
    assert center.pending_keys() == set()


@pytest.mark.asyncio
async def test_rescheduling_replaces_never_duplicates(
    scheduler: ReminderScheduler, center: FakeNotificationCenter, now
) -> None:
    task = Task(title="Report", deadline=now + timedelta(days=2))
    await scheduler.schedule(task, now)
    await scheduler.schedule(task, now)

    assert center.pending_keys() == set(reminder_keys(task.id))
    assert reminder_keys(task.id) in center.removed


@pytest.mark.asyncio
async def test_cancel_is_idempotent(
    scheduler: ReminderScheduler, center: FakeNotificationCenter, now
) -> None:
    task = Task(title="Report", deadline=now + timedelta(hours=2))
    await scheduler.schedule(task, now)

    scheduler.cancel(task.id)
    scheduler.cancel(task.id)

    assert center.keys_for(task.id) == set()
    assert center.removed[-1] == reminder_keys(task.id)
    assert center.removed[-2] == reminder_keys(task.id)


@pytest.mark.asyncio
async def test_denied_authorization_is_silent_and_retried_lazily(now) -> None:
    center = FakeNotificationCenter(grant=False)
    scheduler = ReminderScheduler(center)
    task = Task(title="Report", deadline=now + timedelta(days=2))

    assert await scheduler.schedule(task, now) == []
    assert await scheduler.schedule(task, now) == []
    assert center.auth_requests == 2
    assert center.pending_keys() == set()

    center.grant = True
    assert len(await scheduler.schedule(task, now)) == 3
    assert scheduler.authorized
    await scheduler.schedule(task, now)
    assert center.auth_requests == 3


@pytest.mark.asyncio
async def test_registration_failure_does_not_abort_other_offsets(now) -> None:
    center = FakeNotificationCenter(fail_offsets={3600})
    scheduler = ReminderScheduler(center)
    task = Task(title="Report", deadline=now + timedelta(days=2))

    keys = await scheduler.schedule(task, now)

    assert keys == [f"{task.id}-1800", f"{task.id}-86400"]
    assert center.pending_keys() == set(keys)


@pytest.mark.asyncio
async def test_schedule_uses_injected_clock_when_now_omitted(center, clock, now) -> None:
    scheduler = ReminderScheduler(center, clock=clock)
    task = Task(title="Report", deadline=now + timedelta(minutes=90))

    keys = await scheduler.schedule(task)

    assert keys == [f"{task.id}-1800", f"{task.id}-3600"]


def test_cancel_all(center: FakeNotificationCenter, scheduler: ReminderScheduler) -> None:
    center.pending["x-1800"] = object()  # type: ignore[assignment]
    scheduler.cancel_all()
    assert center.pending_keys() == set()
