"""Bounded in-memory task history with active-job eviction exemption."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.models import JobStatus, TrackedTask, utc_now
from jobwatch.domain.monitor_constants import DEFAULT_MAX_HISTORY_COUNT
from jobwatch.ports.task_history import TaskHistoryPort

logger = get_logger(__name__)


def _never_active(task_id: str) -> bool:
    return False


class InMemoryTaskHistory(TaskHistoryPort):
    """Insertion-ordered record store capped at ``max_count`` entries.

    The ordered mapping doubles as the eviction index, and every mutation runs
    under one lock, so a record is never visible in one and missing from the
    other.
    """

    def __init__(self, max_count: int = DEFAULT_MAX_HISTORY_COUNT) -> None:
        if max_count <= 0:
            raise ValueError("max_count must be positive")
        self._max_count = max_count
        self._records: OrderedDict[str, TrackedTask] = OrderedDict()
        self._lock = threading.RLock()

    @property
    def max_count(self) -> int:
        return self._max_count

    def add(
        self, task: TrackedTask, *, is_active: Callable[[str], bool] | None = None
    ) -> None:
        active = is_active or _never_active
        with self._lock:
            if task.task_id in self._records:
                self._records.move_to_end(task.task_id)
            self._records[task.task_id] = task.model_copy()
            evicted = self._evict(active, keep=task.task_id)
            retained = len(self._records)

        if evicted:
            logger.debug("task_history_evicted", evicted=evicted, retained=retained)

    def update(
        self,
        task_id: str,
        *,
        status: JobStatus,
        completed_at: datetime | None,
        failure_reason: str | None,
    ) -> bool:
        with self._lock:
            record = self._records.get(task_id)
            if record is None:
                return False
            record.status = status
            record.completed_at = completed_at or utc_now()
            record.failure_reason = failure_reason
            return True

    def get_task(self, task_id: str) -> TrackedTask | None:
        with self._lock:
            record = self._records.get(task_id)
            return record.model_copy() if record is not None else None

    def list_tasks(self) -> list[TrackedTask]:
        with self._lock:
            return [record.model_copy() for record in self._records.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # Internal helpers -------------------------------------------------

    def _evict(
        self, is_active: Callable[[str], bool], *, keep: str
    ) -> list[str]:
        """Drop the oldest inactive records, never ``keep``, until the cap holds."""

        overflow = len(self._records) - self._max_count
        if overflow <= 0:
            return []

        evicted: list[str] = []
        for task_id in list(self._records):
            if len(evicted) >= overflow:
                break
            if task_id == keep or is_active(task_id):
                continue
            del self._records[task_id]
            evicted.append(task_id)
        return evicted


__all__ = ["InMemoryTaskHistory"]
