# src/queue_deadline/tasks/task_repository.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .task_models import Priority, Task, TaskType

logger = logging.getLogger(__name__)


class TaskDecodeError(ValueError):
    """A task document exists but could not be decoded."""


# ---- wire format ----


def _iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_iso(raw: Any, field_name: str) -> datetime:
    if not isinstance(raw, str):
        raise TaskDecodeError(f"{field_name}: expected ISO-8601 string, got {type(raw).__name__}")
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as e:
        raise TaskDecodeError(f"{field_name}: invalid ISO-8601 value {raw!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _require(raw: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    if key not in raw:
        raise TaskDecodeError(f"missing field {key!r}")
    val = raw[key]
    # bool is an int subclass; never accept it where a number is expected.
    if isinstance(val, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise TaskDecodeError(f"field {key!r} has wrong type bool")
    if not isinstance(val, kind):
        raise TaskDecodeError(f"field {key!r} has wrong type {type(val).__name__}")
    return val


def encode_task(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "deadline": _iso(task.deadline) if task.deadline is not None else None,
        "priority": int(task.priority),
        "isCompleted": task.is_completed,
        "createdAt": _iso(task.created_at),
        "notificationScheduled": task.notification_scheduled,
        "taskType": task.task_type.value,
    }


def decode_task(raw: Any) -> Task:
    """
    Strict decode of one record.

    Every key is required; only "deadline" may be null (or absent).
    """
    if not isinstance(raw, dict):
        raise TaskDecodeError(f"task record must be an object, got {type(raw).__name__}")

    priority_raw = _require(raw, "priority", int)
    try:
        priority = Priority(priority_raw)
    except ValueError as e:
        raise TaskDecodeError(f"priority out of range: {priority_raw}") from e

    type_raw = _require(raw, "taskType", str)
    try:
        task_type = TaskType(type_raw)
    except ValueError as e:
        raise TaskDecodeError(f"unknown taskType: {type_raw!r}") from e

    deadline_raw = raw.get("deadline")
    deadline = None if deadline_raw is None else _parse_iso(deadline_raw, "deadline")

    return Task(
        id=_require(raw, "id", str),
        title=_require(raw, "title", str),
        description=_require(raw, "description", str),
        deadline=deadline,
        priority=priority,
        is_completed=_require(raw, "isCompleted", bool),
        created_at=_parse_iso(_require(raw, "createdAt", str), "createdAt"),
        notification_scheduled=_require(raw, "notificationScheduled", bool),
        task_type=task_type,
    )


def encode_tasks(tasks: Iterable[Task]) -> str:
    return json.dumps([encode_task(t) for t in tasks], ensure_ascii=False, indent=2)


def decode_tasks(text: str) -> list[Task]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TaskDecodeError(f"invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise TaskDecodeError(f"task document must be an array, got {type(data).__name__}")
    return [decode_task(item) for item in data]


# ---- storage ----


def _read_text(path: Path) -> str:
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TaskDecodeError(f"{path}: not valid UTF-8") from e


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(text, "utf-8")
        os.replace(tmp, path)
    except OSError:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


class JsonTaskRepository:
    """
    Persists the whole task collection as one JSON array.

    The default location is forgiving (missing/corrupt file -> empty list,
    write failures are logged). Explicit import/export addresses another
    path and raises, so the caller can report the problem.
    """

    def __init__(self, path: str | Path = "tasks.json") -> None:
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception("Failed to create data directory %s", self._path.parent)
        logger.info("JsonTaskRepository ready path=%s", self._path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Task]:
        if not self._path.exists():
            logger.info("No task file at %s; starting empty.", self._path)
            return []
        try:
            tasks = decode_tasks(_read_text(self._path))
        except (OSError, TaskDecodeError):
            logger.exception("Failed to load tasks from %s; starting empty.", self._path)
            return []
        logger.info("Loaded %d tasks from %s", len(tasks), self._path)
        return tasks

    def save(self, tasks: Iterable[Task]) -> bool:
        tasks = list(tasks)
        try:
            _write_atomic(self._path, encode_tasks(tasks))
        except OSError:
            logger.exception("Failed to save %d tasks to %s", len(tasks), self._path)
            return False
        logger.debug("Saved %d tasks to %s", len(tasks), self._path)
        return True

    def export_tasks(self, tasks: Iterable[Task], path: str | Path) -> None:
        tasks = list(tasks)
        _write_atomic(Path(path), encode_tasks(tasks))
        logger.info("Exported %d tasks to %s", len(tasks), path)

    def import_tasks(self, path: str | Path) -> list[Task]:
        """Raises FileNotFoundError if absent, TaskDecodeError if malformed."""
        tasks = decode_tasks(_read_text(Path(path)))
        logger.info("Imported %d tasks from %s", len(tasks), path)
        return tasks

    def clear(self) -> None:
        try:
            with contextlib.suppress(FileNotFoundError):
                self._path.unlink()
        except OSError:
            logger.exception("Failed to delete task file %s", self._path)
