# src/queue_deadline/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import NamedTuple

from ..core.ports import Clock, TaskRepo
from .deadline import DAY, time_remaining
from .reminder_scheduler import ReminderScheduler
from .task_models import Task, TaskFilter, TaskType, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DELAY = 1.0


class ChangeKind(StrEnum):
    LOADED = "loaded"
    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    CLEARED = "cleared"
    FILTER = "filter"


@dataclass(slots=True, frozen=True)
class StoreChange:
    kind: ChangeKind
    task_id: str | None = None


Subscriber = Callable[[StoreChange], None]


class StatusCounts(NamedTuple):
    active: int
    completed: int
    overdue: int


class AttentionLevel(StrEnum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    CLEAR = "clear"


@dataclass(slots=True, frozen=True)
class _ReminderJob:
    task_id: str
    generation: int


def _deadline_key(task: Task) -> float:
    # Tasks without a deadline sort after every dated task.
    return task.deadline.timestamp() if task.deadline is not None else math.inf


class TaskStore:
    """
    Authoritative in-memory task collection.

    Concurrency:
    - single writer: every read and mutation runs on one asyncio event loop
      (hosts with other threads must marshal via loop.call_soon_threadsafe)
    - mutation methods are synchronous and never await
    - cancellations happen inline; scheduling is pushed onto a job queue
      consumed by one worker task
    - every reminder decision bumps a per-task generation; the worker drops
      jobs that were superseded before or while they ran
    - saves are debounced: each mutation restarts a save_delay timer and the
      whole collection is written when it fires; aclose() flushes

    Failures to save or to register reminders are logged and never roll back
    in-memory state.
    """

    def __init__(
        self,
        repository: TaskRepo,
        scheduler: ReminderScheduler,
        *,
        clock: Clock = utcnow,
        save_delay: float = DEFAULT_SAVE_DELAY,
    ) -> None:
        self._repository = repository
        self._scheduler = scheduler
        self._clock = clock
        self._save_delay = max(0.0, float(save_delay))

        self._tasks: list[Task] = []
        self._search_text = ""
        self._selected_filter = TaskFilter.ALL

        self._subscribers: list[Subscriber] = []

        self._jobs: asyncio.Queue[_ReminderJob] = asyncio.Queue()
        self._generation: dict[str, int] = {}
        self._worker: asyncio.Task[None] | None = None
        self._save_handle: asyncio.TimerHandle | None = None
        self._dirty = False

    # ---- lifecycle ----

    async def start(self) -> None:
        """Load persisted tasks, start the reminder worker, re-arm reminders."""
        self._tasks = list(self._dedupe(self._repository.load()))
        self._notify(StoreChange(ChangeKind.LOADED))
        if self._worker is None:
            self._worker = asyncio.create_task(self._reconcile_loop(), name="task-store-reminders")
        self.refresh_reminders()
        logger.info("TaskStore ready total=%d", len(self._tasks))

    async def drain(self) -> None:
        """Wait until every queued reminder job has been processed."""
        await self._jobs.join()

    async def aclose(self) -> None:
        """Stop the worker, cancel the pending debounce and save synchronously."""
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        self.flush()

    def flush(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        if self._dirty:
            self._save_now()

    # ---- observers ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, change: StoreChange) -> None:
        for cb in list(self._subscribers):
            try:
                cb(change)
            except Exception:
                logger.exception("Store subscriber failed change=%s", change)

    # ---- filter parameters ----

    @property
    def search_text(self) -> str:
        return self._search_text

    @search_text.setter
    def search_text(self, value: str) -> None:
        self._search_text = value or ""
        self._notify(StoreChange(ChangeKind.FILTER))

    @property
    def selected_filter(self) -> TaskFilter:
        return self._selected_filter

    @selected_filter.setter
    def selected_filter(self, value: TaskFilter) -> None:
        self._selected_filter = TaskFilter(value)
        self._notify(StoreChange(ChangeKind.FILTER))

    # ---- reads ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        idx = self._index_of(task_id)
        return None if idx is None else self._tasks[idx]

    @staticmethod
    def _remaining(task: Task, now: datetime) -> float:
        rem = time_remaining(task, now)
        return math.inf if rem is None else rem

    @property
    def queue_tasks(self) -> list[Task]:
        out = [t for t in self._tasks if t.task_type == TaskType.QUEUE and not t.is_completed]
        out.sort(key=_deadline_key)
        return out

    @property
    def stack_tasks(self) -> list[Task]:
        out = [t for t in self._tasks if t.task_type == TaskType.STACK and not t.is_completed]
        out.sort(key=lambda t: t.created_at, reverse=True)
        return out

    @property
    def completed_tasks(self) -> list[Task]:
        out = [t for t in self._tasks if t.is_completed]
        out.sort(key=lambda t: t.created_at, reverse=True)
        return out

    @property
    def due_soon_tasks(self) -> list[Task]:
        now = self._clock()
        return [t for t in self.queue_tasks if 0 < self._remaining(t, now) < DAY]

    @property
    def overdue_tasks(self) -> list[Task]:
        now = self._clock()
        return [t for t in self.queue_tasks if self._remaining(t, now) < 0]

    @property
    def queue_overdue_tasks(self) -> list[Task]:
        now = self._clock()
        return [t for t in self.queue_tasks if self._remaining(t, now) < 0]

    @property
    def queue_upcoming_tasks(self) -> list[Task]:
        now = self._clock()
        return [t for t in self.queue_tasks if self._remaining(t, now) >= 0]

    @property
    def filtered_tasks(self) -> list[Task]:
        now = self._clock()
        flt = self._selected_filter

        if flt == TaskFilter.ACTIVE:
            result = [t for t in self._tasks if not t.is_completed]
        elif flt == TaskFilter.COMPLETED:
            result = [t for t in self._tasks if t.is_completed]
        elif flt == TaskFilter.OVERDUE:
            result = [t for t in self._tasks if not t.is_completed and self._remaining(t, now) < 0]
        else:
            result = list(self._tasks)

        needle = self._search_text.casefold()
        if needle:
            result = [
                t
                for t in result
                if needle in t.title.casefold() or needle in t.description.casefold()
            ]
        return result

    def task_count_by_status(self) -> StatusCounts:
        now = self._clock()
        active = completed = overdue = 0
        for t in self._tasks:
            if t.is_completed:
                completed += 1
            elif self._remaining(t, now) < 0:
                overdue += 1
            else:
                active += 1
        return StatusCounts(active=active, completed=completed, overdue=overdue)

    @property
    def badge_count(self) -> int:
        """Overdue plus due-soon queue tasks; stack tasks never count."""
        return len(self.overdue_tasks) + len(self.due_soon_tasks)

    @property
    def attention(self) -> AttentionLevel:
        if self.overdue_tasks:
            return AttentionLevel.OVERDUE
        if self.due_soon_tasks:
            return AttentionLevel.DUE_SOON
        return AttentionLevel.CLEAR

    # ---- reminder decisions ----

    def _bump(self, task_id: str) -> int:
        gen = self._generation.get(task_id, 0) + 1
        self._generation[task_id] = gen
        return gen

    def _arm(self, task: Task) -> Task:
        """Queue a (cancel-then-)schedule job; returns the task with its flag set."""
        if not task.has_deadline or task.is_completed:
            return self._disarm(task)
        self._jobs.put_nowait(_ReminderJob(task.id, self._bump(task.id)))
        return task if task.notification_scheduled else replace(task, notification_scheduled=True)

    def _disarm(self, task: Task) -> Task:
        """Cancel reminders now; returns the task with its flag cleared."""
        self._bump(task.id)
        self._scheduler.cancel(task.id)
        return replace(task, notification_scheduled=False) if task.notification_scheduled else task

    # ---- mutations ----

    def _index_of(self, task_id: str) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _committed(self, change: StoreChange) -> None:
        self._notify(change)
        self._request_save()

    def add(self, task: Task) -> Task:
        if self._index_of(task.id) is not None:
            raise ValueError(f"duplicate task id: {task.id}")
        if task.has_deadline:
            task = self._arm(task)
        elif task.notification_scheduled:
            task = replace(task, notification_scheduled=False)
        self._tasks.append(task)
        logger.info("Task added id=%s type=%s deadline=%s", task.id, task.task_type, task.deadline)
        self._committed(StoreChange(ChangeKind.ADDED, task.id))
        return task

    def update(self, task: Task) -> Task | None:
        idx = self._index_of(task.id)
        if idx is None:
            logger.warning("update: unknown task id=%s", task.id)
            return None
        old = self._tasks[idx]
        new = replace(task, created_at=old.created_at, notification_scheduled=old.notification_scheduled)
        if old.deadline != new.deadline:
            self._scheduler.cancel(old.id)
            new = self._arm(new) if new.has_deadline else self._disarm(new)
        self._tasks[idx] = new
        logger.debug("Task updated id=%s", new.id)
        self._committed(StoreChange(ChangeKind.UPDATED, new.id))
        return new

    def delete(self, task: Task) -> None:
        self._disarm(task)
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task.id]
        self._generation.pop(task.id, None)
        if len(self._tasks) == before:
            return
        logger.info("Task deleted id=%s", task.id)
        self._committed(StoreChange(ChangeKind.DELETED, task.id))

    def delete_many(self, tasks: Iterable[Task]) -> int:
        ids = {t.id for t in tasks}
        for task_id in ids:
            self._scheduler.cancel(task_id)
            self._generation.pop(task_id, None)
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id not in ids]
        removed = before - len(self._tasks)
        if removed:
            logger.info("Deleted %d tasks", removed)
            self._committed(StoreChange(ChangeKind.DELETED))
        return removed

    def toggle_complete(self, task: Task) -> Task | None:
        idx = self._index_of(task.id)
        if idx is None:
            return None
        cur = self._tasks[idx]
        new = replace(cur, is_completed=not cur.is_completed)
        if new.is_completed:
            new = self._disarm(new)
        elif new.has_deadline:
            new = self._arm(new)
        self._tasks[idx] = new
        logger.info("Task id=%s completed=%s", new.id, new.is_completed)
        self._committed(StoreChange(ChangeKind.UPDATED, new.id))
        return new

    def move_to_queue(self, task: Task, deadline: datetime) -> Task | None:
        if deadline is None:
            raise ValueError("a queue task requires a deadline")
        idx = self._index_of(task.id)
        if idx is None:
            return None
        new = self._arm(replace(self._tasks[idx], task_type=TaskType.QUEUE, deadline=deadline))
        self._tasks[idx] = new
        logger.info("Task id=%s moved to queue deadline=%s", new.id, deadline)
        self._committed(StoreChange(ChangeKind.UPDATED, new.id))
        return new

    def move_to_stack(self, task: Task) -> Task | None:
        idx = self._index_of(task.id)
        if idx is None:
            return None
        # The deadline is kept; it just stops driving reminders.
        new = self._disarm(replace(self._tasks[idx], task_type=TaskType.STACK))
        self._tasks[idx] = new
        logger.info("Task id=%s moved to stack", new.id)
        self._committed(StoreChange(ChangeKind.UPDATED, new.id))
        return new

    def clear(self) -> None:
        self._scheduler.cancel_all()
        self._tasks = []
        self._generation.clear()
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        self._dirty = False
        self._repository.clear()
        logger.info("All tasks cleared")
        self._notify(StoreChange(ChangeKind.CLEARED))

    def refresh_reminders(self) -> None:
        """
        Re-arm reminders for every open dated task in the queue.

        Stack tasks are re-armed only when flagged; move_to_stack() clears
        the flag and keeps the deadline.
        """
        for i, t in enumerate(self._tasks):
            if not t.has_deadline or t.is_completed:
                continue
            if t.task_type == TaskType.QUEUE or t.notification_scheduled:
                self._tasks[i] = self._arm(t)

    # ---- import / export ----

    def export_tasks(self, path: str | Path) -> None:
        self._repository.export_tasks(self._tasks, path)

    def import_tasks(self, path: str | Path) -> list[Task]:
        """
        Merge tasks from an explicit file.

        Raises FileNotFoundError / TaskDecodeError without touching state.
        Records whose id already exists are skipped; the rest are added
        exactly as add() would.
        """
        incoming = self._repository.import_tasks(path)
        added: list[Task] = []
        for task in self._dedupe(incoming):
            if self._index_of(task.id) is not None:
                logger.info("import: skipping existing task id=%s", task.id)
                continue
            if task.has_deadline:
                task = self._arm(task)
            elif task.notification_scheduled:
                task = replace(task, notification_scheduled=False)
            self._tasks.append(task)
            added.append(task)
        if added:
            logger.info("Imported %d new tasks from %s", len(added), path)
            self._committed(StoreChange(ChangeKind.ADDED))
        return added

    @staticmethod
    def _dedupe(tasks: Iterable[Task]) -> Iterator[Task]:
        seen: set[str] = set()
        for t in tasks:
            if t.id in seen:
                logger.warning("Dropping duplicate task id=%s", t.id)
                continue
            seen.add(t.id)
            yield t

    # ---- reminder worker ----

    async def _reconcile_loop(self) -> None:
        while True:
            job = await self._jobs.get()
            try:
                await self._reconcile(job)
            except Exception:
                logger.exception("Reminder reconciliation failed task_id=%s", job.task_id)
            finally:
                self._jobs.task_done()

    def _is_current(self, job: _ReminderJob) -> bool:
        return self._generation.get(job.task_id) == job.generation

    async def _reconcile(self, job: _ReminderJob) -> None:
        if not self._is_current(job):
            return
        task = self.get(job.task_id)
        if task is None:
            return
        await self._scheduler.schedule(task)
        if not self._is_current(job):
            # Superseded mid-flight: drop what we registered; a newer job re-adds if wanted.
            self._scheduler.cancel(job.task_id)

    # ---- persistence ----

    def _request_save(self) -> None:
        self._dirty = True
        if self._save_handle is not None:
            self._save_handle.cancel()
        loop = asyncio.get_running_loop()
        self._save_handle = loop.call_later(self._save_delay, self._debounced_save)

    def _debounced_save(self) -> None:
        self._save_handle = None
        self._save_now()

    def _save_now(self) -> None:
        self._dirty = False
        if not self._repository.save(list(self._tasks)):
            self._dirty = True
            logger.warning("Tasks not saved; will retry on next change or at shutdown.")
