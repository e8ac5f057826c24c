"""Background job that refreshes a dataflow through the item job endpoints."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, Final
from uuid import uuid4

from pydantic import ValidationError

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.dataflow import (
    DataflowRefreshContext,
    ExecuteOption,
    ItemJobInstance,
    ItemJobParameter,
)
from jobwatch.domain.exceptions import JobInstanceIdError, RemoteJobError
from jobwatch.domain.models import JobResult, JobStatus, utc_now
from jobwatch.ports.dataflow_jobs_client import DataflowJobsClientPort

logger = get_logger(__name__)

DATAFLOW_REFRESH_JOB_TYPE: Final[str] = "Dataflow Refresh"

_REMOTE_STATUS_MAP: Final[dict[str, JobStatus]] = {
    "NotStarted": JobStatus.NOT_STARTED,
    "InProgress": JobStatus.IN_PROGRESS,
    "Completed": JobStatus.COMPLETED,
    "Failed": JobStatus.FAILED,
    "Cancelled": JobStatus.CANCELLED,
    "Deduped": JobStatus.DEDUPED,
}


def extract_job_instance_id(location: str | None) -> str:
    """Return the path segment following ``instances`` in a Location URL."""

    if not location:
        raise JobInstanceIdError("No Location header in response")

    segments = location.rstrip("/").split("/")
    try:
        index = segments.index("instances")
    except ValueError:
        index = -1
    if 0 <= index < len(segments) - 1:
        return segments[index + 1]

    raise JobInstanceIdError(
        f"Could not parse job instance ID from Location: {location}"
    )


def default_display_name(dataflow_id: str) -> str:
    return f"Dataflow {dataflow_id[:8]}..."


class DataflowRefreshJob:
    """Start an on-demand dataflow refresh and report its remote status."""

    def __init__(
        self,
        client: DataflowJobsClientPort,
        *,
        workspace_id: str,
        dataflow_id: str,
        display_name: str | None = None,
        execute_option: ExecuteOption | str = ExecuteOption.SKIP_APPLY_CHANGES,
        parameters: list[ItemJobParameter] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not workspace_id:
            raise ValueError("workspace_id must not be empty")
        if not dataflow_id:
            raise ValueError("dataflow_id must not be empty")

        self._client = client
        self._workspace_id = workspace_id
        self._dataflow_id = dataflow_id
        self._execute_option = ExecuteOption(execute_option)
        self._parameters = list(parameters or [])
        self._clock = clock
        self._job_id = str(uuid4())
        self._display_name = display_name or default_display_name(dataflow_id)
        self._job_instance_id: str | None = None
        self._location: str | None = None
        self._started_at: datetime = clock()

    @property
    def job_id(self) -> str:
        return self._job_id

    @property
    def job_type(self) -> str:
        return DATAFLOW_REFRESH_JOB_TYPE

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def job_instance_id(self) -> str | None:
        return self._job_instance_id

    def execution_data(self) -> dict[str, Any]:
        """Payload describing how the refresh should run."""

        payload: dict[str, Any] = {"executeOption": self._execute_option.value}
        if self._parameters:
            payload["parameters"] = [
                parameter.model_dump(by_alias=True) for parameter in self._parameters
            ]
        return payload

    def _context(self) -> DataflowRefreshContext:
        return DataflowRefreshContext(
            workspace_id=self._workspace_id,
            dataflow_id=self._dataflow_id,
            job_instance_id=self._job_instance_id,
            location=self._location,
            display_name=self._display_name,
            started_at=self._started_at,
        )

    async def start(self) -> JobResult:
        self._started_at = self._clock()
        logger.info(
            "dataflow_refresh_submitting",
            workspace_id=self._workspace_id,
            dataflow_id=self._dataflow_id,
            execute_option=self._execute_option.value,
        )

        try:
            location = await self._client.submit_refresh(
                self._workspace_id, self._dataflow_id, self.execution_data()
            )
            self._job_instance_id = extract_job_instance_id(location)
            self._location = location
        except (RemoteJobError, JobInstanceIdError) as exc:
            logger.error(
                "dataflow_refresh_submit_failed",
                dataflow_id=self._dataflow_id,
                error=str(exc),
            )
            return JobResult.failure(
                JobStatus.FAILED,
                error_message=str(exc),
                started_at=self._started_at,
                completed_at=self._clock(),
                context=self._context(),
            )

        logger.info(
            "dataflow_refresh_started",
            dataflow_id=self._dataflow_id,
            job_instance_id=self._job_instance_id,
        )
        return JobResult.pending(started_at=self._started_at, context=self._context())

    async def check_status(self) -> JobResult:
        if not self._job_instance_id:
            return JobResult.failure(
                JobStatus.FAILED,
                error_message="No job instance ID available",
                started_at=self._started_at,
                completed_at=self._clock(),
                context=self._context(),
            )

        raw = await self._client.get_job_instance(
            self._workspace_id, self._dataflow_id, self._job_instance_id
        )
        try:
            instance = ItemJobInstance.model_validate(raw)
        except ValidationError as exc:
            raise RemoteJobError(f"Unexpected job instance payload: {exc}") from exc

        return self._to_result(instance)

    async def cancel(self) -> None:
        if not self._job_instance_id:
            return
        await self._client.cancel_job_instance(
            self._workspace_id, self._dataflow_id, self._job_instance_id
        )
        logger.info(
            "dataflow_refresh_cancel_requested",
            dataflow_id=self._dataflow_id,
            job_instance_id=self._job_instance_id,
        )

    def _to_result(self, instance: ItemJobInstance) -> JobResult:
        remote_status = instance.status or ""
        status = _REMOTE_STATUS_MAP.get(remote_status)
        if status is None:
            logger.warning(
                "dataflow_refresh_unknown_status",
                job_instance_id=self._job_instance_id,
                status=remote_status,
            )
            status = JobStatus.IN_PROGRESS

        context = self._context()
        if not status.is_terminal:
            return JobResult.pending(
                started_at=self._started_at, status=status, context=context
            )

        completed_at = instance.end_time_utc
        if status is JobStatus.COMPLETED:
            return JobResult.success(
                started_at=self._started_at,
                completed_at=completed_at,
                context=context,
                clock=self._clock,
            )

        reason = instance.failure_reason.message if instance.failure_reason else None
        return JobResult.failure(
            status,
            error_message=reason,
            started_at=self._started_at,
            completed_at=completed_at,
            context=context,
            clock=self._clock,
        )


__all__ = [
    "DATAFLOW_REFRESH_JOB_TYPE",
    "DataflowRefreshJob",
    "default_display_name",
    "extract_job_instance_id",
]
