# src/queue_deadline/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then on one asyncio loop:
- loads the task store and re-arms reminders,
- runs the reminder dispatcher in the background (optional),
- runs the console REPL until /exit, EOF or a signal,
- flushes the store with a final synchronous save.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_app
from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..notifications.local_center import run_reminder_dispatcher

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState, background: list[asyncio.Task[None]]) -> None:
    """Best-effort shutdown; the final save always runs."""
    for task in background:
        task.cancel()
    for task in background:
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await task
            except Exception:
                logger.debug("Background task failed during shutdown.", exc_info=True)

    try:
        await state.store.aclose()
    except Exception:
        logger.exception("Failed to close task store.")


async def run_app(state: AppState) -> None:
    settings = state.settings
    loop = asyncio.get_running_loop()
    background: list[asyncio.Task[None]] = []

    await state.store.start()

    if settings.reminders_enabled:
        background.append(
            asyncio.create_task(
                run_reminder_dispatcher(
                    state.notifications,
                    ConsoleMessenger(),
                    interval_seconds=settings.reminder_poll_seconds,
                ),
                name="reminder-dispatcher",
            )
        )

    console = asyncio.create_task(run_console_loop(state), name="console")

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        console.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, _handle_signal, sig)

    try:
        with contextlib.suppress(asyncio.CancelledError):
            await console
    finally:
        await _shutdown(state, background)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s... (log file %s)", settings.app_name, log_file)

    state = create_app(settings=settings)
    asyncio.run(run_app(state))
    logger.info("Bye.")


if __name__ == "__main__":
    main()
