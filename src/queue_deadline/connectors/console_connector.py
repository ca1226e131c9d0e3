# src/queue_deadline/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

PROMPT = ">>> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleMessenger:
    """OutboundMessenger that prints delivered reminders to the terminal."""

    async def send_text(self, *, text: str, title: str | None = None) -> None:
        line = f"[REMINDER] {title}: {text}" if title else f"[REMINDER] {text}"
        _print_ts(line)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]) -> None:
    """
    Read stdin in a daemon thread and hand lines to the loop.

    The store is owned by the loop thread; this thread never touches it.
    """

    def reader() -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except Exception:
                logger.debug("stdin read failed", exc_info=True)
                line = ""
            if not line:
                loop.call_soon_threadsafe(lines.put_nowait, None)
                return
            loop.call_soon_threadsafe(lines.put_nowait, line.rstrip("\n"))

    threading.Thread(target=reader, name="stdin-reader", daemon=True).start()


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)

    while True:
        print(PROMPT, end="", flush=True)
        raw = await lines.get()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            break

        user_input = raw.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Bare text adds a queue task titled with the whole line.
            user_input = f"/add {shlex.quote(user_input)}"

        try:
            response = command_registry.handle(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            print(f"[{_ts_local()}] {response}", flush=True)

    logger.info("Console connector finished.")
