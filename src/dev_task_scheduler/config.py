# src/dev_task_scheduler/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets in settings: email credentials are stored by setup-notifier.
- Malformed values fall back to defaults instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = "DTS"

DEFAULT_APP_NAME = "dev-task-scheduler"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv() -> None:
    """Load .env from the working directory (or a parent) without overriding set variables."""
    load_dotenv(find_dotenv(usecwd=True), override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


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
    db_path: Path

    # ---- Scheduler ----
    tick_interval_seconds: float
    send_timeout_seconds: float
    max_concurrent_sends: int

    # ---- SMTP defaults for setup-notifier ----
    smtp_host: str
    smtp_port: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), DEFAULT_APP_NAME).strip() or DEFAULT_APP_NAME
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local") / app_name)
        db_path = _env_path(_k("DB_PATH"), data_dir / f"{app_name}.sqlite3")

        tick_interval_seconds = max(1.0, _env_float(_k("TICK_INTERVAL_SECONDS"), 60.0))
        send_timeout_seconds = max(1.0, _env_float(_k("SEND_TIMEOUT_SECONDS"), 30.0))
        max_concurrent_sends = max(1, _env_int(_k("MAX_CONCURRENT_SENDS"), 4))

        smtp_host = _env(_k("SMTP_HOST"), "smtp.gmail.com").strip() or "smtp.gmail.com"
        smtp_port = _env_int(_k("SMTP_PORT"), 465)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            tick_interval_seconds=tick_interval_seconds,
            send_timeout_seconds=send_timeout_seconds,
            max_concurrent_sends=max_concurrent_sends,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_dotenv()
    return Settings.from_env()
