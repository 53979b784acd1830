# tests/test_task_registry.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from dev_task_scheduler.core.errors import ValidationError
from dev_task_scheduler.tasks.task_models import TaskStatus
from dev_task_scheduler.tasks.task_registry import TaskRegistry, parse_due

from .fakes import InMemoryTaskStore, make_task


def test_create_task_in_utc_serializes_scheduled_time(registry: TaskRegistry) -> None:
    task = registry.create_task("Ship release", "2025-01-01", "09:00", tz=UTC)

    assert task.status == TaskStatus.PENDING
    assert task.description == "Ship release"
    assert task.to_record()["scheduledTime"] == "2025-01-01T09:00:00Z"


def test_create_task_local_time_is_converted_to_utc(registry: TaskRegistry) -> None:
    task = registry.create_task("Ship release", "2025-01-01", "09:00")

    expected = datetime(2025, 1, 1, 9, 0).astimezone().astimezone(UTC)
    assert task.scheduled_time == expected
    assert task.scheduled_time.tzinfo == UTC


def test_create_task_with_explicit_offset() -> None:
    due = parse_due("2025-01-01", "09:00", tz=timezone(timedelta(hours=2)))
    assert due == datetime(2025, 1, 1, 7, 0, tzinfo=UTC)


def test_create_task_persists_and_appends(store: InMemoryTaskStore, registry: TaskRegistry) -> None:
    first = registry.create_task("one", "2025-01-01", "09:00")
    second = registry.create_task("two", "2024-06-30", "23:59")

    assert [t.id for t in store.snapshot] == [first.id, second.id]
    assert second.id > first.id
    assert store.writes == 2


def test_ids_are_unique_even_when_clock_is_behind() -> None:
    future_id = 10**15
    store = InMemoryTaskStore([make_task(future_id, datetime(2025, 1, 1, tzinfo=UTC))])
    registry = TaskRegistry(store)

    task = registry.create_task("after", "2025-01-02", "10:00")

    assert task.id == future_id + 1


@pytest.mark.parametrize("description", ["", "   ", None])
def test_create_task_rejects_empty_description(
    store: InMemoryTaskStore, registry: TaskRegistry, description
) -> None:
    with pytest.raises(ValidationError):
        registry.create_task(description, "2025-01-01", "09:00")
    assert store.writes == 0


@pytest.mark.parametrize("raw_date", ["", "tomorrow", "2025-13-01", "2025-02-30"])
def test_create_task_rejects_bad_date(
    store: InMemoryTaskStore, registry: TaskRegistry, raw_date: str
) -> None:
    with pytest.raises(ValidationError):
        registry.create_task("x", raw_date, "09:00")
    assert store.writes == 0


@pytest.mark.parametrize("raw_time", ["", "24:00", "9:60", "09:5", "0900", "09:00:00", "ab:cd"])
def test_create_task_rejects_bad_time(
    store: InMemoryTaskStore, registry: TaskRegistry, raw_time: str
) -> None:
    with pytest.raises(ValidationError):
        registry.create_task("x", "2025-01-01", raw_time)
    assert store.writes == 0


@pytest.mark.parametrize("raw_time,hour,minute", [("00:00", 0, 0), ("9:05", 9, 5), ("23:59", 23, 59)])
def test_time_accepts_24_hour_values(raw_time: str, hour: int, minute: int) -> None:
    due = parse_due("2025-01-01", raw_time, tz=UTC)
    assert (due.hour, due.minute) == (hour, minute)


def test_list_tasks_keeps_insertion_order_regardless_of_status() -> None:
    base = datetime(2025, 1, 1, tzinfo=UTC)
    store = InMemoryTaskStore(
        [
            make_task(5, base + timedelta(days=2)),
            make_task(2, base, status=TaskStatus.COMPLETED),
            make_task(9, base - timedelta(days=2)),
        ]
    )
    registry = TaskRegistry(store)

    assert [t.id for t in registry.list_tasks()] == [5, 2, 9]
    assert store.writes == 0


def test_apply_outcomes_never_reopens_completed_task() -> None:
    base = datetime(2025, 1, 1, tzinfo=UTC)
    store = InMemoryTaskStore(
        [
            make_task(1, base, status=TaskStatus.COMPLETED),
            make_task(2, base),
            make_task(3, base),
        ]
    )
    registry = TaskRegistry(store)

    registry.apply_outcomes({1: False, 2: True, 3: False})

    snap = store.snapshot
    assert snap[0].status == TaskStatus.COMPLETED
    assert snap[0].failed_attempts == 0
    assert snap[1].status == TaskStatus.COMPLETED
    assert snap[2].status == TaskStatus.PENDING
    assert snap[2].failed_attempts == 1
