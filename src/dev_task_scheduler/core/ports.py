# src/dev_task_scheduler/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The registry and the scheduler depend on Protocols instead of concrete
implementations. This keeps the store and the delivery transport swappable and
lets tests run against in-memory fakes.
"""

from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import NotifierConfig, ReminderMessage, Task


class TaskStore(Protocol):
    """
    Durable persistence for the task collection.

    write_all is a whole-collection overwrite: a concurrent reader must never
    observe a partially written collection. Failures raise PersistenceError.
    """

    def read_all(self) -> list[Task]: ...
    def write_all(self, tasks: list[Task]) -> None: ...

    # Notifier credentials live next to the tasks (setup-notifier / start)
    def load_notifier_config(self) -> NotifierConfig | None: ...
    def save_notifier_config(self, config: NotifierConfig) -> None: ...

class Notifier(Protocol):
    """
    Send-one-message capability.

    send may suspend for the duration of a network call and raises
    DeliveryError on failure. There is no retry inside a single call.
    """

    def send(self, message: ReminderMessage) -> Awaitable[None]: ...
    def verify(self) -> Awaitable[None]: ...
