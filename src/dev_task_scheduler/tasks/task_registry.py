# src/dev_task_scheduler/tasks/task_registry.py

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from datetime import UTC, date, datetime, tzinfo
from datetime import time as dt_time

from ..core.errors import ValidationError
from ..core.ports import TaskStore
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_due(raw_date: str, raw_time: str, *, tz: tzinfo | None = None) -> datetime:
    """
    Combine a YYYY-MM-DD date and an HH:mm 24-hour time into a UTC instant.

    The wall-clock value is interpreted in `tz`, or in the local zone when tz is None.
    """
    try:
        day = date.fromisoformat((raw_date or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid date {raw_date!r}, expected YYYY-MM-DD") from None

    m = TIME_RE.match((raw_time or "").strip())
    if m is None:
        raise ValidationError(f"Invalid time {raw_time!r}, expected HH:mm (24-hour)")

    wall = datetime.combine(day, dt_time(int(m.group(1)), int(m.group(2))))
    if tz is None:
        # Naive -> aware in the machine's local zone.
        aware = wall.astimezone()
    else:
        aware = wall.replace(tzinfo=tz)
    return aware.astimezone(UTC)


class TaskRegistry:
    """
    Task collection access on top of a TaskStore.

    Owns validation and id assignment. The collection is always read and written
    as a whole; insertion order is the listing order.
    """

    def __init__(self, store: TaskStore) -> None:
        self.store = store

    def load_all(self) -> list[Task]:
        return self.store.read_all()

    def save_all(self, tasks: list[Task]) -> None:
        self.store.write_all(tasks)

    def list_tasks(self) -> list[Task]:
        return self.load_all()

    @staticmethod
    def _next_id(tasks: list[Task]) -> int:
        # Creation timestamp (ms), bumped past the current maximum so ids stay unique
        # and increasing even when two tasks are created within the same millisecond.
        candidate = int(time.time() * 1000)
        highest = max((t.id for t in tasks), default=0)
        return max(candidate, highest + 1)

    def create_task(
        self,
        description: str,
        date: str,
        time: str,
        *,
        tz: tzinfo | None = None,
    ) -> Task:
        text = (description or "").strip()
        if not text:
            raise ValidationError("Task description must not be empty")

        scheduled = parse_due(date, time, tz=tz)

        tasks = self.load_all()
        task = Task(
            id=self._next_id(tasks),
            description=text,
            scheduled_time=scheduled,
            status=TaskStatus.PENDING,
        )
        tasks.append(task)
        self.save_all(tasks)

        logger.info("Task added id=%s scheduled=%s", task.id, task.scheduled_time.isoformat())
        return task

    def apply_outcomes(self, outcomes: Mapping[int, bool]) -> list[Task]:
        """
        Persist delivery outcomes from one tick in a single write.

        outcomes maps task id -> delivered. The collection is re-read first so a
        task added since the tick started is kept. Delivered tasks become
        completed; failed ones stay pending with failed_attempts incremented.
        A completed task is never moved back.
        """
        tasks = self.load_all()

        for task in tasks:
            delivered = outcomes.get(task.id)
            if delivered is None or task.status == TaskStatus.COMPLETED:
                continue
            if delivered:
                task.status = TaskStatus.COMPLETED
            else:
                task.failed_attempts += 1

        self.save_all(tasks)
        return tasks
