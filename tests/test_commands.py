# tests/test_commands.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from dev_task_scheduler.cli import commands
from dev_task_scheduler.cli.bootstrap import create_app
from dev_task_scheduler.cli.main import main
from dev_task_scheduler.tasks.task_models import NotifierConfig, TaskStatus

from .fakes import FakeNotifier


def _run(settings: SimpleNamespace, *argv: str, notifier: FakeNotifier | None = None) -> int:
    notifier = notifier or FakeNotifier()
    return main(
        list(argv),
        settings=settings,
        notifier_factory=lambda _config: notifier,
        configure_logging=False,
    )


def test_no_command_prints_help(settings, capsys) -> None:
    assert _run(settings) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_add_then_list(settings, capsys) -> None:
    rc = _run(settings, "add", "--description", "Ship release", "--date", "2025-01-01", "--time", "09:00")
    assert rc == 0
    assert "Task added successfully!" in capsys.readouterr().out

    assert _run(settings, "list") == 0
    out = capsys.readouterr().out
    assert "Task: Ship release" in out
    assert "Status: pending" in out
    assert "2025" in out


def test_add_prompts_for_missing_values(settings, monkeypatch, capsys) -> None:
    answers = iter(["Water plants", "2025-03-04", "18:30"])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))

    assert _run(settings, "add") == 0

    tasks = create_app(settings=settings).registry.list_tasks()
    assert [t.description for t in tasks] == ["Water plants"]


def test_add_rejects_invalid_time(settings, capsys) -> None:
    rc = _run(settings, "add", "--description", "x", "--date", "2025-01-01", "--time", "25:00")

    assert rc == 1
    assert "Invalid time" in capsys.readouterr().err
    assert create_app(settings=settings).registry.list_tasks() == []


def test_list_empty(settings, capsys) -> None:
    assert _run(settings, "list") == 0
    assert "No tasks scheduled" in capsys.readouterr().out


def test_setup_notifier_saves_verified_config(settings, capsys) -> None:
    rc = _run(settings, "setup-notifier", "--email", "me@example.com", "--password", "pw")

    assert rc == 0
    assert "Email configuration saved!" in capsys.readouterr().out
    cfg = create_app(settings=settings).store.load_notifier_config()
    assert cfg == NotifierConfig(
        email="me@example.com", password="pw", smtp_host="smtp.example.com", smtp_port=465
    )


def test_setup_notifier_prompts_for_password(settings, monkeypatch) -> None:
    monkeypatch.setattr(commands.getpass, "getpass", lambda _prompt: "secret")

    assert _run(settings, "setup-notifier", "--email", "me@example.com") == 0

    cfg = create_app(settings=settings).store.load_notifier_config()
    assert cfg is not None
    assert cfg.password == "secret"


def test_setup_notifier_discards_on_failed_verification(settings, capsys) -> None:
    rc = _run(
        settings,
        "setup-notifier",
        "--email",
        "me@example.com",
        "--password",
        "wrong",
        notifier=FakeNotifier(verify_ok=False),
    )

    assert rc == 1
    assert "discarded" in capsys.readouterr().err
    assert create_app(settings=settings).store.load_notifier_config() is None


def test_setup_notifier_rejects_non_email(settings) -> None:
    assert _run(settings, "setup-notifier", "--email", "nope", "--password", "pw") == 1


def test_start_without_notifier_refuses(settings, capsys) -> None:
    notifier = FakeNotifier()
    _run(settings, "add", "--description", "x", "--date", "2000-01-01", "--time", "00:00")

    rc = _run(settings, "start", notifier=notifier)

    assert rc == 1
    assert "Email not configured" in capsys.readouterr().err
    assert notifier.attempts == []
    tasks = create_app(settings=settings).registry.list_tasks()
    assert tasks[0].status == TaskStatus.PENDING


def test_start_with_invalid_stored_email_refuses(settings, capsys) -> None:
    create_app(settings=settings).store.save_notifier_config(NotifierConfig(email="nobody", password="pw"))

    rc = main(["start"], settings=settings, configure_logging=False)

    assert rc == 1
    err = capsys.readouterr().err
    assert "Stored notifier config is invalid" in err
    assert "Traceback" not in err


def test_start_runs_until_cancelled(settings, monkeypatch) -> None:
    _run(settings, "add", "--description", "overdue", "--date", "2000-01-01", "--time", "00:00")
    _run(settings, "setup-notifier", "--email", "me@example.com", "--password", "pw")

    notifier = FakeNotifier()
    real_start = commands.start_scheduler

    async def one_tick(store, factory, **kwargs):
        runner = asyncio.ensure_future(real_start(store, factory, **kwargs))
        await asyncio.sleep(0.05)
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner

    monkeypatch.setattr(commands, "start_scheduler", one_tick)

    assert _run(settings, "start", notifier=notifier) == 0
    assert len(notifier.sent) == 1
    assert create_app(settings=settings).registry.list_tasks()[0].status == TaskStatus.COMPLETED
