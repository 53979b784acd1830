# src/dev_task_scheduler/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import PersistenceError

ISO_UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

REMINDER_SUBJECT = "Task Reminder"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    pending -> completed is the only transition; completed is terminal.
    """

    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        # Empty means a row written before the column had a value.
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            raise PersistenceError(f"unknown task status in storage: {raw!r}") from None


def format_instant(value: datetime) -> str:
    """Render an aware datetime as an ISO-8601 UTC string with a Z suffix."""
    return value.astimezone(UTC).strftime(ISO_UTC_FORMAT)


def parse_instant(raw: str) -> datetime:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing Z or an explicit offset; naive values are taken as UTC.
    """
    value = datetime.fromisoformat(raw.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(slots=True)
class Task:
    id: int
    description: str
    scheduled_time: datetime
    status: TaskStatus = TaskStatus.PENDING
    failed_attempts: int = 0

    def is_due(self, now: datetime) -> bool:
        return self.status == TaskStatus.PENDING and self.scheduled_time <= now

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "scheduledTime": format_instant(self.scheduled_time),
            "status": self.status.value,
            "failedAttempts": self.failed_attempts,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Task:
        return cls(
            id=int(record["id"]),
            description=str(record["description"]),
            scheduled_time=parse_instant(str(record["scheduledTime"])),
            status=TaskStatus.from_db(record.get("status")),
            failed_attempts=int(record.get("failedAttempts") or 0),
        )


@dataclass(slots=True)
class NotifierConfig:
    """Credentials and target of the email notifier."""

    email: str
    password: str
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465


@dataclass(slots=True, frozen=True)
class ReminderMessage:
    """
    What the scheduler wants delivered for one due task.

    The notifier decides how to actually deliver it (transport, sender, etc.).
    """

    task_id: int
    subject: str
    body: str
    recipient: str | None = None


def build_reminder(task: Task, *, recipient: str | None = None) -> ReminderMessage:
    return ReminderMessage(
        task_id=task.id,
        subject=REMINDER_SUBJECT,
        body=f"Reminder: {task.description}",
        recipient=recipient,
    )
