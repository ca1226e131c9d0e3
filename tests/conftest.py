# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from queue_deadline.cli.bootstrap import create_app
from queue_deadline.core.state import AppState
from queue_deadline.tasks.reminder_scheduler import ReminderScheduler
from queue_deadline.tasks.task_store import TaskStore

from .fakes import FakeNotificationCenter, FakeTaskRepository, FixedClock

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def center() -> FakeNotificationCenter:
    return FakeNotificationCenter()


@pytest.fixture()
def repo() -> FakeTaskRepository:
    return FakeTaskRepository()


@pytest.fixture()
def scheduler(center: FakeNotificationCenter, clock: FixedClock) -> ReminderScheduler:
    return ReminderScheduler(center, clock=clock)


@pytest_asyncio.fixture()
async def store(repo: FakeTaskRepository, scheduler: ReminderScheduler, clock: FixedClock):
    """
    Started TaskStore wired with in-memory fakes and a pinned clock.

    A short save delay keeps debounce tests fast.
    """
    s = TaskStore(repo, scheduler, clock=clock, save_delay=0.05)
    await s.start()
    yield s
    await s.aclose()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_app().

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="queue-deadline-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        tasks_path=tmp_path / "data" / "tasks.json",
        save_delay_seconds=0.05,
        reminders_enabled=True,
        notifications_authorized=True,
        reminder_poll_seconds=0.5,
    )


@pytest_asyncio.fixture()
async def state(settings: SimpleNamespace):
    """AppState wired by the real composition root (JSON file under tmp_path)."""
    app: AppState = create_app(settings=settings)
    await app.store.start()
    yield app
    await app.store.aclose()
