# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from queue_deadline.config import Settings
from queue_deadline.logging_setup import setup_logging

_ENV = (
    "QDL_APP_NAME",
    "QDL_LOG_LEVEL",
    "QDL_DATA_DIR",
    "QDL_TASKS_PATH",
    "QDL_SAVE_DELAY_SECONDS",
    "QDL_REMINDERS_ENABLED",
    "QDL_NOTIFICATIONS_AUTHORIZED",
    "QDL_REMINDER_POLL_SECONDS",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    s = Settings.from_env()
    assert s.app_name == "queue-deadline"
    assert s.data_dir == Path(".local/queue-deadline")
    assert s.tasks_path == s.data_dir / "tasks.json"
    assert s.save_delay_seconds == 1.0
    assert s.reminders_enabled is True
    assert s.reminder_poll_seconds == 15.0


def test_env_overrides(clean_env, tmp_path: Path) -> None:
    clean_env.setenv("QDL_DATA_DIR", str(tmp_path))
    clean_env.setenv("QDL_SAVE_DELAY_SECONDS", "0.25")
    clean_env.setenv("QDL_REMINDERS_ENABLED", "off")
    clean_env.setenv("QDL_NOTIFICATIONS_AUTHORIZED", "no")
    clean_env.setenv("QDL_REMINDER_POLL_SECONDS", "not a number")

    s = Settings.from_env()
    assert s.tasks_path == tmp_path / "tasks.json"
    assert s.save_delay_seconds == 0.25
    assert s.reminders_enabled is False
    assert s.notifications_authorized is False
    assert s.reminder_poll_seconds == 15.0


def test_setup_logging_writes_file_and_filters_console(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        assert log_file == tmp_path / "logs" / "queue-deadline.log"
        logging.getLogger("queue_deadline.notifications.local_center").info("quiet on console")
        logging.getLogger("queue_deadline.tasks.task_store").info("store ready")
        for h in root.handlers:
            h.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "quiet on console" in text
        assert "store ready" in text

        console = next(h for h in root.handlers if not isinstance(h, logging.FileHandler))

        def rec(name: str, level: int) -> logging.LogRecord:
            return logging.LogRecord(name, level, __file__, 1, "x", None, None)

        assert not console.filter(rec("queue_deadline.notifications.local_center", logging.INFO))
        assert console.filter(rec("queue_deadline.notifications.local_center", logging.WARNING))
        assert console.filter(rec("queue_deadline.tasks.task_store", logging.DEBUG))
        assert not console.filter(rec("asyncio", logging.WARNING))
        assert console.filter(rec("asyncio", logging.ERROR))
        assert not console.filter(rec("queue_deadline_other", logging.ERROR - 10))
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
