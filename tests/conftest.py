# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from dev_task_scheduler.tasks.task_registry import TaskRegistry

from .fakes import InMemoryTaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_app and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="dev-task-scheduler-test",
        log_level="INFO",
        data_dir=tmp_path,
        db_path=tmp_path / "tasks.sqlite3",
        tick_interval_seconds=60.0,
        send_timeout_seconds=5.0,
        max_concurrent_sends=4,
        smtp_host="smtp.example.com",
        smtp_port=465,
    )


@pytest.fixture()
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture()
def registry(store: InMemoryTaskStore) -> TaskRegistry:
    return TaskRegistry(store)
