# src/dev_task_scheduler/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

A small polling loop that, once per tick:
- reads the whole task collection,
- captures `now` once,
- sends a reminder for every due task through an injected notifier,
- joins all sends, then writes every outcome back in one consolidated write.

Delivery failures leave the task pending; it is retried on the next tick.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ..core.errors import ConfigurationError, DeliveryError, PersistenceError
from ..core.ports import Notifier, TaskStore
from .task_models import NotifierConfig, Task, build_reminder
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class TickReport:
    """Outcome of one tick, mostly for logs and tests."""

    now: datetime
    due_ids: list[int] = field(default_factory=list)
    completed_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)
    in_flight_ids: list[int] = field(default_factory=list)
    aborted: bool = False


class TaskScheduler:
    """
    Fixed-cadence scheduler over a TaskRegistry.

    Ticks never overlap: run_forever awaits each tick (reads, sends and the
    final write) before sleeping towards the next one. Within a tick, sends
    run concurrently up to max_concurrent_sends, each bounded by
    send_timeout_seconds.

    A send that times out is not abandoned: the notifier may still be working
    (a thread cannot be interrupted) and may still deliver. It is kept in
    _in_flight and a later tick settles it instead of sending again: still
    running -> skipped, succeeded -> completed, failed -> sent again.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        notifier: Notifier,
        *,
        interval_seconds: float = 60.0,
        send_timeout_seconds: float = 30.0,
        max_concurrent_sends: int = 4,
        recipient: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.registry = registry
        self.notifier = notifier
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.send_timeout_seconds = max(0.01, float(send_timeout_seconds))
        self.max_concurrent_sends = max(1, int(max_concurrent_sends))
        self.recipient = recipient
        self.clock = clock or utc_now
        self.ticks = 0
        self._in_flight: dict[int, asyncio.Future[None]] = {}

    async def _deliver(self, task: Task, gate: asyncio.Semaphore) -> bool | None:
        """
        Send one reminder. Returns True/False for the outcome, or None when an
        earlier timed-out send for the same task is still running.
        """
        earlier = self._in_flight.get(task.id)
        if earlier is not None:
            if not earlier.done():
                logger.info("Reminder for task_id=%s still in flight; not sending again", task.id)
                return None
            del self._in_flight[task.id]
            if not earlier.cancelled() and earlier.exception() is None:
                logger.info("Late notification sent for task id=%s: %s", task.id, task.description)
                return True

        message = build_reminder(task, recipient=self.recipient)
        async with gate:
            sending = asyncio.ensure_future(self.notifier.send(message))
            try:
                await asyncio.wait_for(asyncio.shield(sending), timeout=self.send_timeout_seconds)
            except TimeoutError:
                self._in_flight[task.id] = sending
                logger.warning(
                    "Reminder send timed out task_id=%s after %.1fs",
                    task.id,
                    self.send_timeout_seconds,
                )
                return False
            except DeliveryError as exc:
                logger.warning("Reminder delivery failed task_id=%s: %s", task.id, exc)
                return False
            except Exception:
                logger.exception("Unexpected error sending reminder task_id=%s", task.id)
                return False

        logger.info("Notification sent for task id=%s: %s", task.id, task.description)
        return True

    async def run_tick(self, now: datetime | None = None) -> TickReport:
        self.ticks += 1
        if now is None:
            now = self.clock()
        report = TickReport(now=now)

        try:
            tasks = self.registry.load_all()
        except PersistenceError:
            logger.exception("Tick aborted: failed to read tasks")
            report.aborted = True
            return report

        due = [t for t in tasks if t.is_due(now)]
        report.due_ids = [t.id for t in due]
        if not due:
            logger.debug("Tick at %s: nothing due (%d tasks)", now.isoformat(), len(tasks))
            return report

        gate = asyncio.Semaphore(self.max_concurrent_sends)
        results = await asyncio.gather(*(self._deliver(t, gate) for t in due))
        outcomes = {t.id: ok for t, ok in zip(due, results) if ok is not None}
        report.in_flight_ids = [t.id for t, ok in zip(due, results) if ok is None]
        if not outcomes:
            return report

        try:
            self.registry.apply_outcomes(outcomes)
        except PersistenceError:
            logger.exception("Tick aborted: failed to persist %d outcomes", len(outcomes))
            report.aborted = True
            return report

        report.completed_ids = [tid for tid, ok in outcomes.items() if ok]
        report.failed_ids = [tid for tid, ok in outcomes.items() if not ok]
        logger.debug(
            "Tick at %s: due=%d completed=%d failed=%d",
            now.isoformat(),
            len(due),
            len(report.completed_ids),
            len(report.failed_ids),
        )
        return report

    async def run_forever(self) -> None:
        """
        Tick every interval_seconds until cancelled.

        To stop the scheduler, cancel the coroutine/task.
        """
        while True:
            started = time.monotonic()
            await self.run_tick()
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval_seconds - elapsed))


async def start_scheduler(
    store: TaskStore,
    notifier_factory: Callable[[NotifierConfig], Notifier],
    *,
    interval_seconds: float = 60.0,
    send_timeout_seconds: float = 30.0,
    max_concurrent_sends: int = 4,
    clock: Clock | None = None,
) -> None:
    """
    Start the scheduler loop if a notifier is configured.

    Raises ConfigurationError before the first tick when no notifier config is
    stored, or when the notifier factory rejects the stored config (ValueError).
    Otherwise runs until cancelled.
    """
    config = store.load_notifier_config()
    if config is None:
        raise ConfigurationError("Email not configured. Please run setup-notifier first.")
    try:
        notifier = notifier_factory(config)
    except ValueError as exc:
        raise ConfigurationError(f"Stored notifier config is invalid: {exc}") from exc

    scheduler = TaskScheduler(
        TaskRegistry(store),
        notifier,
        interval_seconds=interval_seconds,
        send_timeout_seconds=send_timeout_seconds,
        max_concurrent_sends=max_concurrent_sends,
        recipient=config.email,
        clock=clock,
    )
    logger.info(
        "Task monitoring started (interval=%.0fs, recipient=%s)",
        scheduler.interval_seconds,
        config.email,
    )
    await scheduler.run_forever()
