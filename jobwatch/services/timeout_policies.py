"""What happens to the remote operation once the monitor times a job out."""

from __future__ import annotations

from enum import StrEnum

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.models import JobResult
from jobwatch.ports.background_job import BackgroundJobPort, CancellableJobPort
from jobwatch.services.job_monitor import TimeoutHook

logger = get_logger(__name__)


class TimeoutPolicy(StrEnum):
    LEAVE_RUNNING = "leave_running"
    CANCEL = "cancel"


async def cancel_remote_job(job: BackgroundJobPort, result: JobResult) -> None:
    """Ask the remote side to stop a job the monitor has given up on."""

    if not isinstance(job, CancellableJobPort):
        logger.info("timeout_cancel_unsupported", job_id=job.job_id)
        return

    await job.cancel()
    logger.info("timeout_cancel_requested", job_id=job.job_id)


def resolve_timeout_hook(policy: TimeoutPolicy | str) -> TimeoutHook | None:
    """Map a configured policy to the monitor's ``on_timeout`` hook."""

    resolved = TimeoutPolicy(policy)
    if resolved is TimeoutPolicy.CANCEL:
        return cancel_remote_job
    return None


__all__ = ["TimeoutPolicy", "cancel_remote_job", "resolve_timeout_hook"]
