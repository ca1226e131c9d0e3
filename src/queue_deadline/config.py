# src/queue_deadline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every value has a working local default; nothing is required.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "QDL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_path: Path

    # ---- Store ----
    save_delay_seconds: float

    # ---- Reminders ----
    reminders_enabled: bool
    notifications_authorized: bool
    reminder_poll_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "queue-deadline") or "queue-deadline"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/queue-deadline"))
        tasks_path = _env_path(_k("TASKS_PATH"), data_dir / "tasks.json")

        save_delay_seconds = max(0.0, _env_float(_k("SAVE_DELAY_SECONDS"), 1.0))

        reminders_enabled = _env_bool(_k("REMINDERS_ENABLED"), True)
        notifications_authorized = _env_bool(_k("NOTIFICATIONS_AUTHORIZED"), True)
        reminder_poll_seconds = max(0.5, _env_float(_k("REMINDER_POLL_SECONDS"), 15.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_path=tasks_path,
            save_delay_seconds=save_delay_seconds,
            reminders_enabled=reminders_enabled,
            notifications_authorized=notifications_authorized,
            reminder_poll_seconds=reminder_poll_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
