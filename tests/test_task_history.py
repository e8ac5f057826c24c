from __future__ import annotations

from datetime import UTC, datetime

import pytest

from jobwatch.adapters.task_history_inmemory import InMemoryTaskHistory
from jobwatch.domain.models import JobStatus, TrackedTask


def _task(index: int) -> TrackedTask:
    return TrackedTask(
        task_id=f"task-{index}",
        job_type="Dataflow Refresh",
        display_name=f"Refresh {index}",
        status=JobStatus.IN_PROGRESS,
        started_at=datetime(2025, 1, 6, 9, index % 60, tzinfo=UTC),
    )


def test_rejects_non_positive_cap() -> None:
    with pytest.raises(ValueError, match="max_count"):
        InMemoryTaskHistory(max_count=0)


def test_evicts_oldest_inactive_record_past_cap() -> None:
    history = InMemoryTaskHistory(max_count=20)
    active = {"task-3"}

    for index in range(1, 22):
        history.add(_task(index), is_active=active.__contains__)

    retained = [task.task_id for task in history.list_tasks()]
    assert len(retained) == 20
    assert "task-1" not in retained
    assert "task-3" in retained
    assert retained[0] == "task-2"
    assert retained[-1] == "task-21"


def test_active_oldest_records_are_skipped_during_eviction() -> None:
    history = InMemoryTaskHistory(max_count=2)
    active = {"task-1", "task-2"}

    for index in range(1, 4):
        history.add(_task(index), is_active=active.__contains__)

    retained = [task.task_id for task in history.list_tasks()]
    assert retained == ["task-1", "task-2", "task-3"]

    active.clear()
    history.add(_task(4), is_active=active.__contains__)

    assert [task.task_id for task in history.list_tasks()] == ["task-3", "task-4"]


def test_re_adding_a_task_moves_it_to_newest() -> None:
    history = InMemoryTaskHistory(max_count=3)
    for index in range(1, 4):
        history.add(_task(index))

    history.add(_task(1))
    history.add(_task(4))

    assert [task.task_id for task in history.list_tasks()] == [
        "task-3",
        "task-1",
        "task-4",
    ]


def test_update_sets_terminal_fields() -> None:
    history = InMemoryTaskHistory()
    history.add(_task(1))
    completed_at = datetime(2025, 1, 6, 10, 0, tzinfo=UTC)

    updated = history.update(
        "task-1",
        status=JobStatus.FAILED,
        completed_at=completed_at,
        failure_reason="Mashup evaluation failed",
    )

    assert updated is True
    task = history.get_task("task-1")
    assert task is not None
    assert task.status is JobStatus.FAILED
    assert task.completed_at == completed_at
    assert task.failure_reason == "Mashup evaluation failed"


def test_update_of_unknown_task_is_a_no_op() -> None:
    history = InMemoryTaskHistory()

    assert history.update(
        "missing", status=JobStatus.COMPLETED, completed_at=None, failure_reason=None
    ) is False
    assert len(history) == 0


def test_returned_records_are_copies() -> None:
    history = InMemoryTaskHistory()
    original = _task(1)
    history.add(original)

    original.status = JobStatus.CANCELLED
    fetched = history.get_task("task-1")
    assert fetched is not None
    fetched.status = JobStatus.ERROR

    stored = history.get_task("task-1")
    assert stored is not None
    assert stored.status is JobStatus.IN_PROGRESS
    assert history.get_task("missing") is None
