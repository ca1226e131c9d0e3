# src/queue_deadline/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from ..core.state import AppState
from ..tasks.deadline import deadline_status, format_age, format_remaining, time_remaining
from ..tasks.task_models import (
    QUICK_DEADLINES,
    Priority,
    Task,
    TaskFilter,
    TaskType,
    new_task,
    quick_deadline,
    utcnow,
)
from ..tasks.task_repository import TaskDecodeError

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

OPTION_KEYS = ("due", "p", "type", "desc", "title")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate free words from key=value options (due=, p=, type=, desc=, title=)."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in OPTION_KEYS:
            opts[key.lower()] = value
        else:
            words.append(a)
    return words, opts


def parse_deadline(raw: str, now: datetime) -> datetime | None:
    """Quick names (1h, today, ...), 'none', or an ISO-8601 timestamp (naive = local time)."""
    raw = raw.strip()
    if raw.lower() in ("none", "-", ""):
        return None
    if raw.lower() in QUICK_DEADLINES:
        return quick_deadline(raw, now)
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc)


def _resolve(state: AppState, ref: str) -> Task | None:
    ref = ref.lstrip("#")
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(state.last_listing):
            return state.store.get(state.last_listing[idx].id)
    matches = [t for t in state.store.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def format_task_row(index: int, task: Task, now: datetime) -> str:
    box = "[x]" if task.is_completed else "[ ]"
    parts = [f"{index:>2}. {box} {task.title}"]
    if task.deadline is not None:
        rem = time_remaining(task, now)
        parts.append(f"{format_remaining(rem)} ({deadline_status(task, now).label})")
    if task.task_type == TaskType.STACK:
        parts.append(f"added {format_age(task.created_at, now)}")
    if task.priority >= Priority.HIGH:
        parts.append(task.priority.label)
    return " | ".join(parts)


def _render(state: AppState, sections: list[tuple[str, list[Task]]], empty: str) -> str:
    now = utcnow()
    listing: list[Task] = []
    lines: list[str] = []
    for title, tasks in sections:
        if not tasks:
            continue
        lines.append(f"{title}:")
        for t in tasks:
            listing.append(t)
            lines.append("  " + format_task_row(len(listing), t, now))
    state.last_listing = listing
    return "\n".join(lines) if lines else empty


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title...>|title=... [due=1h|3h|today|tomorrow|week|ISO] [p=low..urgent] [type=queue|stack] [desc=...]
    """
    words, opts = _split_options(args)
    now = utcnow()
    try:
        deadline = parse_deadline(opts["due"], now) if "due" in opts else None
        priority = Priority.parse(opts["p"]) if "p" in opts else Priority.MEDIUM
        task_type = TaskType(opts.get("type", "queue").lower())
        task = new_task(
            " ".join(words) or opts.get("title", ""),
            description=opts.get("desc", ""),
            deadline=deadline,
            priority=priority,
            task_type=task_type,
        )
    except (ValueError, KeyError) as e:
        return f"Cannot add task: {e}"

    task = state.store.add(task)
    when = format_remaining(time_remaining(task, now))
    return f"Added to {task.task_type.value}: {task.title} ({when})."


def cmd_list(state: AppState, args: list[str]) -> str:
    store = state.store
    title = f"Tasks [{store.selected_filter.value}]"
    if store.search_text:
        title += f" matching {store.search_text!r}"
    return _render(state, [(title, store.filtered_tasks)], "No tasks.")


def cmd_queue(state: AppState, args: list[str]) -> str:
    store = state.store
    return _render(
        state,
        [("Overdue", store.queue_overdue_tasks), ("Upcoming", store.queue_upcoming_tasks)],
        "Queue is empty.",
    )


def cmd_stack(state: AppState, args: list[str]) -> str:
    return _render(state, [("Stack (newest first)", state.store.stack_tasks)], "Stack is empty.")


def cmd_completed(state: AppState, args: list[str]) -> str:
    return _render(state, [("Completed", state.store.completed_tasks)], "Nothing completed yet.")


def cmd_due(state: AppState, args: list[str]) -> str:
    store = state.store
    return _render(
        state,
        [("Overdue", store.overdue_tasks), ("Due within 24 hours", store.due_soon_tasks)],
        "Nothing due soon.",
    )


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <#|id>"
    task = _resolve(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    new = state.store.toggle_complete(task)
    if new is None:
        return f"No task {args[0]!r}."
    return f"{'Completed' if new.is_completed else 'Reopened'}: {new.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <#|id> [title=...] [desc=...] [due=...|none] [p=...]
    """
    if not args:
        return "Usage: /edit <#|id> [title=...] [desc=...] [due=...|none] [p=...]"
    task = _resolve(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    _words, opts = _split_options(args[1:])
    if not opts:
        return "Nothing to change."

    changes: dict[str, object] = {}
    try:
        if "title" in opts:
            title = opts["title"].strip()
            if not title:
                raise ValueError("title is required")
            changes["title"] = title
        if "desc" in opts:
            changes["description"] = opts["desc"].strip()
        if "due" in opts:
            changes["deadline"] = parse_deadline(opts["due"], utcnow())
        if "p" in opts:
            changes["priority"] = Priority.parse(opts["p"])
    except (ValueError, KeyError) as e:
        return f"Cannot edit task: {e}"

    new = state.store.update(replace(task, **changes))
    if new is None:
        return f"No task {args[0]!r}."
    return f"Updated: {new.title}"


def cmd_to_stack(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /tostack <#|id>"
    task = _resolve(state, args[0])
    if task is None or state.store.move_to_stack(task) is None:
        return f"No task {args[0]!r}."
    return f"Moved to stack: {task.title}"


def cmd_to_queue(state: AppState, args: list[str]) -> str:
    """/toqueue <#|id> [due=...]; the task's own deadline is used when due= is omitted."""
    if not args:
        return "Usage: /toqueue <#|id> [due=...]"
    task = _resolve(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    _words, opts = _split_options(args[1:])
    try:
        deadline = parse_deadline(opts["due"], utcnow()) if "due" in opts else task.deadline
    except ValueError as e:
        return f"Cannot move task: {e}"
    if deadline is None:
        return "A queue task needs a deadline: /toqueue <#|id> due=1h"
    state.store.move_to_queue(task, deadline)
    return f"Moved to queue: {task.title}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <#|id> [<#|id> ...]"
    tasks = [t for t in (_resolve(state, a) for a in args) if t is not None]
    if not tasks:
        return "No matching tasks."
    removed = state.store.delete_many(tasks)
    return f"Deleted {removed} task(s)."


def cmd_search(state: AppState, args: list[str]) -> str:
    state.store.search_text = " ".join(args)
    return cmd_list(state, [])


def cmd_filter(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Filter is {state.store.selected_filter.value}. Options: " + ", ".join(f.value for f in TaskFilter)
    try:
        state.store.selected_filter = TaskFilter(args[0].lower())
    except ValueError:
        return "Options: " + ", ".join(f.value for f in TaskFilter)
    return cmd_list(state, [])


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    counts = store.task_count_by_status()
    pending = len(state.notifications.pending_keys())
    return (
        "Status:\n"
        f"  Active: {counts.active}  Completed: {counts.completed}  Overdue: {counts.overdue}\n"
        f"  Queue: {len(store.queue_tasks)}  Stack: {len(store.stack_tasks)}\n"
        f"  Attention: {store.attention.value} (badge {store.badge_count})\n"
        f"  Pending reminders: {pending}"
    )


def cmd_export(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /export <path>"
    try:
        state.store.export_tasks(args[0])
    except OSError as e:
        logger.warning("Export failed path=%s: %s", args[0], e)
        return f"Export failed: {e}"
    return f"Exported {len(state.store)} task(s) to {args[0]}."


def cmd_import(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /import <path>"
    try:
        added = state.store.import_tasks(args[0])
    except FileNotFoundError:
        return f"No such file: {args[0]}"
    except TaskDecodeError as e:
        logger.warning("Import failed path=%s: %s", args[0], e)
        return f"Import failed, file is not a valid task list: {e}"
    except OSError as e:
        return f"Import failed: {e}"
    return f"Imported {len(added)} new task(s)."


def cmd_clear(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task. Confirm with: /clear yes"
    state.store.clear()
    state.last_listing = []
    return "All tasks deleted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <title>|title=... [due=1h|3h|today|tomorrow|week|ISO] [p=low..urgent] [type=queue|stack] [desc=...]",
)
registry.register("list", cmd_list, help_text="List tasks using the current search and filter.", aliases=["ls"])
registry.register("queue", cmd_queue, help_text="Queue: open deadline tasks, earliest first.", aliases=["q"])
registry.register("stack", cmd_stack, help_text="Stack: open backlog tasks, newest first.", aliases=["s"])
registry.register("completed", cmd_completed, help_text="Completed tasks, newest first.")
registry.register("due", cmd_due, help_text="Overdue and due-within-24h queue tasks.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <#|id>.")
registry.register("edit", cmd_edit, help_text="Edit: /edit <#|id> [title=] [desc=] [due=|none] [p=].")
registry.register("tostack", cmd_to_stack, help_text="Move a task to the stack: /tostack <#|id>.")
registry.register("toqueue", cmd_to_queue, help_text="Move a task to the queue: /toqueue <#|id> [due=...].")
registry.register("delete", cmd_delete, help_text="Delete tasks: /delete <#|id> ...", aliases=["rm"])
registry.register("search", cmd_search, help_text="Set search text (empty clears): /search <text>.")
registry.register("filter", cmd_filter, help_text="Set filter: /filter all|active|completed|overdue.")
registry.register("status", cmd_status, help_text="Counts, attention level and pending reminders.")
registry.register("export", cmd_export, help_text="Export tasks as JSON: /export <path>.")
registry.register("import", cmd_import, help_text="Import tasks from JSON: /import <path>.")
registry.register("clear", cmd_clear, help_text="Delete every task: /clear yes.")
