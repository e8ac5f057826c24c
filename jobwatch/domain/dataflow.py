"""Models for on-demand dataflow refresh jobs on the data platform."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobwatch.domain.models import utc_now


class ExecuteOption(StrEnum):
    """How the platform should treat pending dataflow changes on refresh."""

    SKIP_APPLY_CHANGES = "SkipApplyChanges"
    APPLY_CHANGES_IF_NEEDED = "ApplyChangesIfNeeded"


class ItemJobParameter(BaseModel):
    """Typed parameter override passed to a dataflow execution."""

    model_config = ConfigDict(populate_by_name=True)

    parameter_name: str = Field(alias="parameterName")
    type: str = "Automatic"
    value: Any = None


class JobFailureReason(BaseModel):
    """Error details for a failed remote job instance."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error_code: str | None = Field(default=None, alias="errorCode")
    message: str | None = None


class ItemJobInstance(BaseModel):
    """Remote job instance as returned by the item job status endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    item_id: str | None = Field(default=None, alias="itemId")
    job_type: str | None = Field(default=None, alias="jobType")
    invoke_type: str | None = Field(default=None, alias="invokeType")
    status: str | None = None
    root_activity_id: str | None = Field(default=None, alias="rootActivityId")
    start_time_utc: datetime | None = Field(default=None, alias="startTimeUtc")
    end_time_utc: datetime | None = Field(default=None, alias="endTimeUtc")
    failure_reason: JobFailureReason | None = Field(
        default=None, alias="failureReason"
    )

    @field_validator("start_time_utc", "end_time_utc")
    @classmethod
    def _ensure_tz(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class DataflowRefreshContext(BaseModel):
    """Continuation data for a running dataflow refresh."""

    model_config = ConfigDict(frozen=True)

    workspace_id: str
    dataflow_id: str
    job_instance_id: str | None = None
    location: str | None = None
    display_name: str | None = None
    started_at: datetime = Field(default_factory=utc_now)


__all__ = [
    "DataflowRefreshContext",
    "ExecuteOption",
    "ItemJobInstance",
    "ItemJobParameter",
    "JobFailureReason",
]
