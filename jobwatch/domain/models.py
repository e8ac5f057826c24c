"""Domain models for background jobs, task history and notifications."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class JobStatus(StrEnum):
    """Lifecycle states reported for a background job."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    DEDUPED = "Deduped"
    TIMEOUT = "Timeout"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: Final[frozenset[JobStatus]] = frozenset(
    {
        JobStatus.COMPLETED,
        JobStatus.FAILED,
        JobStatus.CANCELLED,
        JobStatus.DEDUPED,
        JobStatus.TIMEOUT,
        JobStatus.ERROR,
    }
)


class NotificationLevel(StrEnum):
    """Severity of a user-facing notification."""

    INFO = "Info"
    SUCCESS = "Success"
    WARNING = "Warning"
    ERROR = "Error"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class JobResult(BaseModel):
    """Immutable snapshot of a job's state returned by ``start``/``check_status``.

    ``context`` is opaque, job-specific continuation data (for example the
    remote job instance id) and is carried into the task history unchanged.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    is_complete: bool
    is_success: bool = False
    status: JobStatus
    error_message: str | None = None
    started_at: datetime
    completed_at: datetime | None = None
    context: Any = None

    @field_validator("started_at", "completed_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _ensure_utc(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> JobResult:
        if self.is_success and not self.is_complete:
            msg = "a successful result must be complete"
            raise ValueError(msg)
        if self.is_success and self.status is not JobStatus.COMPLETED:
            msg = f"a successful result must have status Completed, got {self.status}"
            raise ValueError(msg)
        if self.status.is_terminal and not self.is_complete:
            msg = f"status {self.status} is terminal but is_complete is False"
            raise ValueError(msg)
        return self

    @classmethod
    def pending(
        cls,
        *,
        started_at: datetime,
        status: JobStatus = JobStatus.IN_PROGRESS,
        context: Any = None,
    ) -> JobResult:
        """Build a non-terminal result."""

        return cls(
            is_complete=False,
            status=status,
            started_at=started_at,
            context=context,
        )

    @classmethod
    def success(
        cls,
        *,
        started_at: datetime,
        completed_at: datetime | None = None,
        context: Any = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> JobResult:
        """Build a terminal Completed result; ``clock`` stamps a missing completion."""

        return cls(
            is_complete=True,
            is_success=True,
            status=JobStatus.COMPLETED,
            started_at=started_at,
            completed_at=completed_at or clock(),
            context=context,
        )

    @classmethod
    def failure(
        cls,
        status: JobStatus,
        *,
        started_at: datetime,
        error_message: str | None = None,
        completed_at: datetime | None = None,
        context: Any = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> JobResult:
        """Build a terminal non-success result (Failed, Cancelled, Error...)."""

        if not status.is_terminal or status is JobStatus.COMPLETED:
            msg = f"{status} is not a terminal failure status"
            raise ValueError(msg)
        return cls(
            is_complete=True,
            is_success=False,
            status=status,
            error_message=error_message,
            started_at=started_at,
            completed_at=completed_at or clock(),
            context=context,
        )

    def elapsed(self, now: datetime | None = None) -> timedelta:
        """Time between start and completion (or ``now`` while still running)."""

        end = self.completed_at or now or utc_now()
        return max(end - self.started_at, timedelta(0))


class TrackedTask(BaseModel):
    """History record of a started job, mutated when the job terminates."""

    task_id: str
    job_type: str
    display_name: str
    status: JobStatus = JobStatus.NOT_STARTED
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    failure_reason: str | None = None
    context: Any = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("started_at", "completed_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _ensure_utc(value)


class NotificationContext(BaseModel):
    """Caller context a completion notification should be routed back to."""

    model_config = ConfigDict(frozen=True)

    session_id: str | None = None
    client_name: str | None = None


class QueuedNotification(BaseModel):
    """Notification waiting in the delivery queue."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    queued_at: datetime = Field(default_factory=utc_now)
    session_id: str | None = None


__all__ = [
    "JobResult",
    "JobStatus",
    "NotificationContext",
    "NotificationLevel",
    "QueuedNotification",
    "TERMINAL_STATUSES",
    "TrackedTask",
    "utc_now",
]
