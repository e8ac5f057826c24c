"""Shared-clock monitor that starts, polls and reports background jobs.

One clock task per monitor drives all polling. Every tick checks each active
job concurrently, retires jobs that reached a terminal status (or exceeded the
maximum age), records the outcome in the task history and enqueues exactly one
notification per finished job. The clock only runs while jobs are active.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from jobwatch.adapters.task_history_inmemory import InMemoryTaskHistory
from jobwatch.config.logging_config import get_logger, job_context
from jobwatch.domain.models import (
    JobResult,
    JobStatus,
    NotificationContext,
    TrackedTask,
    utc_now,
)
from jobwatch.domain.monitor_constants import (
    DEFAULT_MAX_JOB_AGE,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from jobwatch.observability.metrics import (
    ACTIVE_JOBS,
    JOB_DURATION_SECONDS,
    JOBS_FINISHED_TOTAL,
    JOBS_STARTED_TOTAL,
    MONITOR_TICKS_TOTAL,
)
from jobwatch.ports.background_job import BackgroundJobPort
from jobwatch.ports.notification_queue import NotificationQueuePort
from jobwatch.ports.task_history import TaskHistoryPort
from jobwatch.services.notification_content import build_notification

logger = get_logger(__name__)

TimeoutHook = Callable[[BackgroundJobPort, JobResult], Awaitable[None]]


class MonitorState(StrEnum):
    """Whether the shared polling clock is armed."""

    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class MonitoredJob:
    """Active job plus the moment it was registered with the monitor."""

    job: BackgroundJobPort
    registered_at: datetime
    context: NotificationContext | None = None


@dataclass(frozen=True, slots=True)
class TickSummary:
    """Outcome of a single polling tick."""

    skipped: bool
    checked: int = 0
    finished: int = 0
    still_active: int = 0


def describe_exception(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _caller_cancelled() -> bool:
    """Whether the running task itself is being cancelled.

    A job call may raise ``CancelledError`` on its own (an inner request task
    was cancelled); only a cancellation aimed at the monitor's task is
    propagated.
    """
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


def _expect_result(value: object, operation: str) -> JobResult:
    if not isinstance(value, JobResult):
        msg = f"{operation} returned {type(value).__name__}, expected JobResult"
        raise TypeError(msg)
    return value


class JobMonitor:
    """Start background jobs and watch them until they finish."""

    def __init__(
        self,
        *,
        notification_queue: NotificationQueuePort,
        history: TaskHistoryPort | None = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_job_age: timedelta = DEFAULT_MAX_JOB_AGE,
        on_timeout: TimeoutHook | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if max_job_age <= timedelta(0):
            raise ValueError("max_job_age must be positive")

        self._notification_queue = notification_queue
        self._history = history if history is not None else InMemoryTaskHistory()
        self._poll_interval_seconds = poll_interval_seconds
        self._max_job_age = max_job_age
        self._on_timeout = on_timeout
        self._clock = clock

        self._active_jobs: dict[str, MonitoredJob] = {}
        self._starting: set[str] = set()
        self._active_lock = threading.Lock()
        self._poll_guard = asyncio.Lock()
        self._clock_task: asyncio.Task[None] | None = None
        self._tick_tasks: set[asyncio.Task[TickSummary]] = set()

        logger.debug(
            "job_monitor_initialized",
            poll_interval=poll_interval_seconds,
            max_job_age_seconds=max_job_age.total_seconds(),
        )

    # Introspection ----------------------------------------------------

    @property
    def has_active_jobs(self) -> bool:
        with self._active_lock:
            return bool(self._active_jobs)

    @property
    def active_job_count(self) -> int:
        with self._active_lock:
            return len(self._active_jobs)

    @property
    def state(self) -> MonitorState:
        if self._clock_task is not None and not self._clock_task.done():
            return MonitorState.ACTIVE
        return MonitorState.IDLE

    def is_job_active(self, job_id: str) -> bool:
        with self._active_lock:
            return job_id in self._active_jobs

    def get_task(self, task_id: str) -> TrackedTask | None:
        return self._history.get_task(task_id)

    def list_tasks(self) -> list[TrackedTask]:
        return self._history.list_tasks()

    # Registration -----------------------------------------------------

    async def start_job(
        self,
        job: BackgroundJobPort,
        *,
        context: NotificationContext | None = None,
    ) -> JobResult:
        """Start ``job`` and keep polling it until it reaches a terminal status.

        Args:
            job: Job to start; ``start`` is called exactly once
            context: Caller context attached to the completion notification

        Returns:
            The result of ``job.start()``, or an Error result if it raised.
            A job whose ``job_id`` is already monitored is not started; the
            returned Error result is neither recorded nor notified.
        """
        started_at = self._clock()
        if not self._claim(job.job_id):
            logger.warning("job_already_monitored", job_id=job.job_id)
            return JobResult.failure(
                JobStatus.ERROR,
                error_message=f"Job {job.job_id} is already being monitored",
                started_at=started_at,
                completed_at=started_at,
            )

        try:
            result = await self._start(job, started_at)
            self._record_start(job, result)
            if result.is_complete:
                logger.info(
                    "job_finished_on_start",
                    job_id=job.job_id,
                    status=result.status.value,
                )
                self._publish(job, result, context)
                return result

            self._register(
                MonitoredJob(job=job, registered_at=self._clock(), context=context)
            )
        finally:
            self._release_claim(job.job_id)

        logger.debug(
            "job_registered",
            job_id=job.job_id,
            active_jobs=self.active_job_count,
        )
        self._arm()
        return result

    async def _start(self, job: BackgroundJobPort, started_at: datetime) -> JobResult:
        logger.info(
            "job_starting",
            job_id=job.job_id,
            job_type=job.job_type,
            display_name=job.display_name,
        )
        JOBS_STARTED_TOTAL.labels(job_type=job.job_type).inc()

        fault: BaseException
        try:
            with job_context(job.job_id, job.job_type):
                return _expect_result(await job.start(), "start")
        except asyncio.CancelledError as exc:
            if _caller_cancelled():
                raise
            fault = exc
        except Exception as exc:  # noqa: BLE001
            fault = exc

        logger.error(
            "job_start_failed",
            job_id=job.job_id,
            error=describe_exception(fault),
            exc_info=fault,
        )
        return JobResult.failure(
            JobStatus.ERROR,
            error_message=describe_exception(fault),
            started_at=started_at,
            completed_at=self._clock(),
        )

    def _record_start(self, job: BackgroundJobPort, result: JobResult) -> None:
        task = TrackedTask(
            task_id=job.job_id,
            job_type=job.job_type,
            display_name=job.display_name,
            status=result.status,
            started_at=result.started_at,
            context=result.context,
        )
        if result.is_complete:
            task.completed_at = result.completed_at or self._clock()
            task.failure_reason = result.error_message
        self._history.add(task, is_active=self.is_job_active)

    def _claim(self, job_id: str) -> bool:
        """Reserve ``job_id`` for a start; fails if it is starting or active."""

        with self._active_lock:
            if job_id in self._active_jobs or job_id in self._starting:
                return False
            self._starting.add(job_id)
            return True

    def _release_claim(self, job_id: str) -> None:
        with self._active_lock:
            self._starting.discard(job_id)

    def _register(self, entry: MonitoredJob) -> None:
        with self._active_lock:
            self._active_jobs[entry.job.job_id] = entry
            ACTIVE_JOBS.set(len(self._active_jobs))

    def _unregister(self, job_id: str) -> MonitoredJob | None:
        with self._active_lock:
            entry = self._active_jobs.pop(job_id, None)
            ACTIVE_JOBS.set(len(self._active_jobs))
            return entry

    def _snapshot(self) -> list[MonitoredJob]:
        with self._active_lock:
            return list(self._active_jobs.values())

    # Clock ------------------------------------------------------------

    def _arm(self) -> None:
        if self.state is MonitorState.ACTIVE:
            return
        self._clock_task = asyncio.get_running_loop().create_task(
            self._run_clock(), name="job-monitor-clock"
        )
        logger.debug("poll_clock_armed", interval=self._poll_interval_seconds)

    def _disarm(self) -> None:
        clock_task, self._clock_task = self._clock_task, None
        if clock_task is None or clock_task.done():
            return
        clock_task.cancel()
        logger.debug("poll_clock_disarmed")

    async def _run_clock(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval_seconds)
            tick = asyncio.get_running_loop().create_task(self.tick())
            self._tick_tasks.add(tick)
            tick.add_done_callback(self._on_tick_done)

    def _on_tick_done(self, tick: asyncio.Task[TickSummary]) -> None:
        self._tick_tasks.discard(tick)
        if tick.cancelled():
            return
        exc = tick.exception()
        if exc is not None:
            logger.error(
                "monitor_tick_failed", error=describe_exception(exc), exc_info=exc
            )

    # Polling ----------------------------------------------------------

    async def tick(self) -> TickSummary:
        """Poll every active job once.

        A tick that fires while the previous one is still running does nothing.
        """
        if self._poll_guard.locked():
            logger.debug("monitor_tick_skipped")
            MONITOR_TICKS_TOTAL.labels(outcome="skipped").inc()
            return TickSummary(skipped=True)

        async with self._poll_guard:
            MONITOR_TICKS_TOTAL.labels(outcome="polled").inc()
            return await self._poll_active_jobs()

    async def _poll_active_jobs(self) -> TickSummary:
        entries = self._snapshot()
        if not entries:
            self._disarm()
            return TickSummary(skipped=False)

        logger.debug("polling_jobs", count=len(entries))
        now = self._clock()
        results = await asyncio.gather(
            *(self._evaluate(entry, now) for entry in entries)
        )

        finished = 0
        for entry, result in zip(entries, results, strict=True):
            if not result.is_complete:
                continue
            if await self._retire(entry, result):
                finished += 1

        still_active = self.active_job_count
        if still_active == 0:
            self._disarm()

        return TickSummary(
            skipped=False,
            checked=len(entries),
            finished=finished,
            still_active=still_active,
        )

    async def _evaluate(self, entry: MonitoredJob, now: datetime) -> JobResult:
        job = entry.job
        if now - entry.registered_at > self._max_job_age:
            logger.warning(
                "job_timed_out",
                job_id=job.job_id,
                max_age_seconds=self._max_job_age.total_seconds(),
            )
            hours = self._max_job_age.total_seconds() / 3600
            return JobResult.failure(
                JobStatus.TIMEOUT,
                error_message=f"Job did not complete within {hours:g} hours",
                started_at=entry.registered_at,
                completed_at=now,
            )

        fault: BaseException | None = None
        try:
            with job_context(job.job_id, job.job_type):
                result = _expect_result(await job.check_status(), "check_status")
        except asyncio.CancelledError as exc:
            if _caller_cancelled():
                raise
            fault = exc
        except Exception as exc:  # noqa: BLE001
            fault = exc

        if fault is not None:
            logger.error(
                "job_status_check_failed",
                job_id=job.job_id,
                error=describe_exception(fault),
                exc_info=fault,
            )
            return JobResult.failure(
                JobStatus.ERROR,
                error_message=describe_exception(fault),
                started_at=entry.registered_at,
                completed_at=now,
            )

        if result.is_complete:
            logger.info(
                "job_completed",
                job_id=job.job_id,
                status=result.status.value,
            )
        else:
            logger.debug(
                "job_in_progress",
                job_id=job.job_id,
                status=result.status.value,
            )
        return result

    async def _retire(self, entry: MonitoredJob, result: JobResult) -> bool:
        """Remove a finished job; only the caller that removes it reports it."""

        job = entry.job
        if self._unregister(job.job_id) is None:
            return False

        self._history.update(
            job.job_id,
            status=result.status,
            completed_at=result.completed_at or self._clock(),
            failure_reason=result.error_message,
        )
        self._publish(job, result, entry.context)

        if result.status is JobStatus.TIMEOUT and self._on_timeout is not None:
            try:
                await self._on_timeout(job, result)
            except Exception:  # noqa: BLE001
                logger.exception("timeout_hook_failed", job_id=job.job_id)
        return True

    def _publish(
        self,
        job: BackgroundJobPort,
        result: JobResult,
        context: NotificationContext | None,
    ) -> None:
        now = self._clock()
        JOBS_FINISHED_TOTAL.labels(
            job_type=job.job_type, status=result.status.value
        ).inc()
        JOB_DURATION_SECONDS.labels(job_type=job.job_type).observe(
            result.elapsed(now).total_seconds()
        )
        notification = build_notification(job, result, context=context, now=now)
        self._notification_queue.enqueue(notification)

    # Lifecycle --------------------------------------------------------

    async def close(self) -> None:
        """Disarm the clock and cancel any tick still in flight."""

        self._disarm()
        ticks = list(self._tick_tasks)
        for tick in ticks:
            tick.cancel()
        for tick in ticks:
            with contextlib.suppress(asyncio.CancelledError):
                await tick
        logger.debug("job_monitor_closed", active_jobs=self.active_job_count)


__all__ = ["JobMonitor", "MonitorState", "MonitoredJob", "TickSummary"]
