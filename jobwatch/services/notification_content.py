"""Derive user-facing notifications from terminal job results."""

from __future__ import annotations

from datetime import datetime, timedelta

from jobwatch.domain.models import (
    JobResult,
    JobStatus,
    NotificationContext,
    NotificationLevel,
    QueuedNotification,
    utc_now,
)
from jobwatch.domain.monitor_constants import UNKNOWN_ERROR_MESSAGE
from jobwatch.ports.background_job import BackgroundJobPort


def _unit(value: int, singular: str) -> str:
    return f"1 {singular}" if value == 1 else f"{value} {singular}s"


def format_duration(duration: timedelta) -> str:
    """Format a duration as seconds, minutes+seconds or hours+minutes.

    >>> format_duration(timedelta(seconds=42))
    '42 seconds'
    >>> format_duration(timedelta(minutes=3, seconds=1))
    '3 minutes 1 second'
    >>> format_duration(timedelta(hours=2))
    '2 hours'
    """

    total_seconds = max(int(duration.total_seconds()), 0)

    if total_seconds < 60:
        return _unit(total_seconds, "second")

    if total_seconds < 3600:
        minutes, seconds = divmod(total_seconds, 60)
        minute_part = _unit(minutes, "minute")
        if seconds == 0:
            return minute_part
        return f"{minute_part} {_unit(seconds, 'second')}"

    hours, remainder = divmod(total_seconds, 3600)
    minutes = remainder // 60
    hour_part = _unit(hours, "hour")
    if minutes == 0:
        return hour_part
    return f"{hour_part} {_unit(minutes, 'minute')}"


def notification_level(result: JobResult) -> NotificationLevel:
    if result.is_success:
        return NotificationLevel.SUCCESS
    if result.status is JobStatus.TIMEOUT:
        return NotificationLevel.WARNING
    return NotificationLevel.ERROR


def build_notification(
    job: BackgroundJobPort,
    result: JobResult,
    *,
    context: NotificationContext | None = None,
    now: datetime | None = None,
) -> QueuedNotification:
    """Build the single notification announcing a job's terminal result.

    Args:
        job: Job whose metadata names the notification
        result: Terminal result of the job
        context: Caller context the notification is routed back to
        now: Reference time for still-open results and the queue timestamp

    Returns:
        Notification ready to enqueue
    """
    reference = now or utc_now()
    duration = format_duration(result.elapsed(reference))
    level = notification_level(result)

    if level is NotificationLevel.SUCCESS:
        message = f"'{job.display_name}' completed successfully in {duration}"
    elif level is NotificationLevel.WARNING:
        message = f"'{job.display_name}' timed out after {duration}"
    else:
        reason = result.error_message or UNKNOWN_ERROR_MESSAGE
        message = f"'{job.display_name}' failed after {duration}: {reason}"

    return QueuedNotification(
        title=f"{job.job_type} {result.status.value}",
        message=message,
        level=level,
        queued_at=reference,
        session_id=context.session_id if context else None,
    )


__all__ = ["build_notification", "format_duration", "notification_level"]
