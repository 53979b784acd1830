# src/dev_task_scheduler/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_registry import TaskRegistry
from .ports import TaskStore


@dataclass
class AppState:
    # Settings object (config.Settings or a test double with the same attributes).
    settings: Any

    store: TaskStore
    registry: TaskRegistry
