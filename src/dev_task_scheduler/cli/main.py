# src/dev_task_scheduler/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then dispatches one command:
- add:            create a task (missing values are prompted for)
- list:           print every task with its scheduled time and status
- setup-notifier: collect, verify and persist email credentials
- start:          run the scheduler loop until Ctrl+C / SIGTERM
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys
from collections.abc import Sequence

from ..config import get_settings
from ..core.errors import PersistenceError
from ..logging_setup import setup_logging
from ..notify.email_notifier import EmailNotifier
from .bootstrap import create_app
from .commands import NotifierFactory, cmd_add, cmd_list, cmd_setup_notifier, cmd_start

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dev-task-scheduler",
        description="Schedule one-shot tasks and get an email reminder when they are due",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("--description", help="Task description")
    add_parser.add_argument("--date", help="Due date (YYYY-MM-DD)")
    add_parser.add_argument("--time", help="Due time (HH:mm, 24-hour, local time)")

    subparsers.add_parser("list", help="List all tasks")

    setup_parser = subparsers.add_parser("setup-notifier", help="Setup email notifications")
    setup_parser.add_argument("--email", help="Address to send reminders from and to")
    setup_parser.add_argument("--password", help="App password (prompted for when omitted)")
    setup_parser.add_argument("--smtp-host", help="SMTP server (default from settings)")
    setup_parser.add_argument("--smtp-port", type=int, help="SMTP SSL port (default from settings)")
    setup_parser.add_argument(
        "--no-verify",
        dest="verify",
        action="store_false",
        help="Save without checking the credentials against the server",
    )

    subparsers.add_parser("start", help="Start task monitoring")

    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    settings=None,
    notifier_factory: NotifierFactory = EmailNotifier,
    configure_logging: bool = True,
) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if settings is None:
        settings = get_settings()

    if configure_logging:
        level_name = str(getattr(settings, "log_level", "INFO")).upper()
        console_level = getattr(logging, level_name, logging.INFO)
        setup_logging(log_dir=settings.data_dir, console_level=console_level)

    try:
        state = create_app(settings=settings)
    except PersistenceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # The real SMTP transport gets the configured send timeout.
    if notifier_factory is EmailNotifier:
        notifier_factory = functools.partial(
            EmailNotifier, timeout_seconds=settings.send_timeout_seconds
        )

    commands = {
        "add": cmd_add,
        "list": cmd_list,
        "setup-notifier": functools.partial(cmd_setup_notifier, notifier_factory=notifier_factory),
        "start": functools.partial(cmd_start, notifier_factory=notifier_factory),
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    logger.debug("Running command %s", args.command)
    try:
        return handler(state, args, sys.stdout)
    except PersistenceError as exc:
        logger.error("Task store error: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
