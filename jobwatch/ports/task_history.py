"""Port definition for task history stores."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable

from jobwatch.domain.models import JobStatus, TrackedTask


@runtime_checkable
class TaskHistoryPort(Protocol):
    """Bounded record of recently started and finished jobs."""

    def add(
        self, task: TrackedTask, *, is_active: Callable[[str], bool] | None = None
    ) -> None:
        """Insert a record, evicting old inactive records beyond capacity."""

    def update(
        self,
        task_id: str,
        *,
        status: JobStatus,
        completed_at: datetime | None,
        failure_reason: str | None,
    ) -> bool:
        """Record a terminal outcome; return False if the task is unknown."""

    def get_task(self, task_id: str) -> TrackedTask | None:
        """Return a copy of a record, if retained."""

    def list_tasks(self) -> list[TrackedTask]:
        """Return copies of all retained records, oldest first."""


__all__ = ["TaskHistoryPort"]
