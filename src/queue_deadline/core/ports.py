# src/queue_deadline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete implementations.
This keeps storage and the notification facility swappable and makes
testing with in-memory fakes easy.
"""

from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.reminder_scheduler import ReminderRequest
    from ..tasks.task_models import Task

Clock = Callable[[], datetime]
# Returns a timezone-aware "now"; injected so tests can pin time.


class TaskRepo(Protocol):
    """Persistence for the whole task collection (one document)."""

    def load(self) -> list[Task]: ...
    def save(self, tasks: Iterable[Task]) -> bool: ...
    def export_tasks(self, tasks: Iterable[Task], path: str | Path) -> None: ...
    def import_tasks(self, path: str | Path) -> list[Task]: ...
    def clear(self) -> None: ...


class NotificationCenter(Protocol):
    """
    External reminder facility.

    Requests are addressed by their string key ("<taskId>-<offsetSeconds>").
    Removal of unknown keys must be a silent no-op.
    """

    def request_authorization(self) -> Awaitable[bool]: ...
    def add(self, request: ReminderRequest) -> Awaitable[None]: ...
    def remove_pending(self, keys: Iterable[str]) -> None: ...
    def remove_all_pending(self) -> None: ...
    def pending_keys(self) -> set[str]: ...


class OutboundMessenger(Protocol):
    """Connector-side port: how delivered reminders reach the user."""

    def send_text(self, *, text: str, title: str | None = None) -> Awaitable[None]: ...
