# src/dev_task_scheduler/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the concrete SQLite store and the registry into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.state import AppState
from ..tasks.task_registry import TaskRegistry
from ..tasks.task_store import SqliteTaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)


def create_app(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = SqliteTaskStore(settings.db_path)
    return AppState(settings=settings, store=store, registry=TaskRegistry(store))
