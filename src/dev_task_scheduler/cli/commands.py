# src/dev_task_scheduler/cli/commands.py

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import logging
import signal
import sys
from collections.abc import Callable
from typing import TextIO

from ..core.errors import ConfigurationError, DeliveryError, PersistenceError, ValidationError
from ..core.ports import Notifier
from ..core.state import AppState
from ..tasks.task_models import NotifierConfig, Task
from ..tasks.task_scheduler import start_scheduler

NotifierFactory = Callable[[NotifierConfig], Notifier]

logger = logging.getLogger(__name__)


def _ask(prompt: str, value: str | None) -> str:
    """Return the flag value, or prompt for it interactively."""
    if value is not None:
        return value
    return input(prompt).strip()


def format_task(task: Task) -> str:
    scheduled = task.scheduled_time.astimezone().strftime("%b %d, %Y, %I:%M %p")
    lines = [
        f"Task: {task.description}",
        f"Scheduled: {scheduled}",
        f"Status: {task.status.value}",
    ]
    if task.failed_attempts:
        lines.append(f"Failed attempts: {task.failed_attempts}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: argparse.Namespace, out: TextIO) -> int:
    description = _ask("Enter task description: ", args.description)
    date = _ask("Enter date (YYYY-MM-DD): ", args.date)
    time = _ask("Enter time (HH:mm): ", args.time)

    try:
        task = state.registry.create_task(description, date, time)
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Task added successfully! (#{task.id})", file=out)
    return 0


def cmd_list(state: AppState, args: argparse.Namespace, out: TextIO) -> int:
    tasks = state.registry.list_tasks()
    if not tasks:
        print("No tasks scheduled", file=out)
        return 0

    for task in tasks:
        print("\n" + format_task(task), file=out)
    return 0


def cmd_setup_notifier(
    state: AppState,
    args: argparse.Namespace,
    out: TextIO,
    *,
    notifier_factory: NotifierFactory,
) -> int:
    email = _ask("Enter your email: ", args.email)
    if "@" not in email:
        print(f"Error: {email!r} is not an email address", file=sys.stderr)
        return 1

    password = args.password if args.password is not None else getpass.getpass("Enter your app password: ")
    config = NotifierConfig(
        email=email,
        password=password,
        smtp_host=args.smtp_host or state.settings.smtp_host,
        smtp_port=int(args.smtp_port or state.settings.smtp_port),
    )

    if args.verify:
        try:
            asyncio.run(notifier_factory(config).verify())
        except DeliveryError as exc:
            logger.warning("Notifier verification failed: %s", exc)
            print(f"Error: {exc}. Configuration discarded.", file=sys.stderr)
            return 1

    state.store.save_notifier_config(config)
    print("Email configuration saved!", file=out)
    return 0


async def _run_until_signal(coro) -> None:
    """Run coro until it finishes or SIGINT/SIGTERM arrives."""
    loop = asyncio.get_running_loop()
    main_task = asyncio.ensure_future(coro)

    for signum in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, main_task.cancel)

    try:
        await main_task
    except asyncio.CancelledError:
        logger.info("Shutdown requested, scheduler stopped.")


def cmd_start(
    state: AppState,
    args: argparse.Namespace,
    out: TextIO,
    *,
    notifier_factory: NotifierFactory,
) -> int:
    settings = state.settings

    # start_scheduler raises ConfigurationError before the first tick when no
    # valid notifier is configured; its "Task monitoring started" log is the banner.
    try:
        asyncio.run(
            _run_until_signal(
                start_scheduler(
                    state.store,
                    notifier_factory,
                    interval_seconds=settings.tick_interval_seconds,
                    send_timeout_seconds=settings.send_timeout_seconds,
                    max_concurrent_sends=settings.max_concurrent_sends,
                )
            )
        )
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        logger.error("Task store unavailable: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0
