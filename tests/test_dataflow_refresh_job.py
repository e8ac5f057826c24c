"""Tests for the dataflow refresh job adapter."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import pytest
from pytest_mock import MockerFixture

from jobwatch.adapters.dataflow_refresh_job import (
    DATAFLOW_REFRESH_JOB_TYPE,
    DataflowRefreshJob,
    default_display_name,
    extract_job_instance_id,
)
from jobwatch.domain.dataflow import (
    DataflowRefreshContext,
    ExecuteOption,
    ItemJobParameter,
)
from jobwatch.domain.exceptions import JobInstanceIdError, RemoteJobError
from jobwatch.domain.models import JobStatus
from tests.conftest import FakeClock

WORKSPACE_ID = "0f6e3a2c-5b1d-4c8e-9a7f-2d3b4c5e6f70"
DATAFLOW_ID = "7c1a9e44-2b6f-4d3a-8e5c-1f0a2b3c4d5e"
LOCATION = (
    f"https://api.example.test/v1/workspaces/{WORKSPACE_ID}/items/{DATAFLOW_ID}"
    "/jobs/instances/5b2d0c8e-aaaa-bbbb-cccc-000000000001"
)


@pytest.fixture
def client(mocker: MockerFixture) -> Any:
    client = mocker.Mock()
    client.submit_refresh = mocker.AsyncMock(return_value=LOCATION)
    client.get_job_instance = mocker.AsyncMock()
    client.cancel_job_instance = mocker.AsyncMock()
    return client


def _job(client: Any, clock: FakeClock, **kwargs: Any) -> DataflowRefreshJob:
    return DataflowRefreshJob(
        client,
        workspace_id=WORKSPACE_ID,
        dataflow_id=DATAFLOW_ID,
        clock=clock,
        **kwargs,
    )


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        (LOCATION, "5b2d0c8e-aaaa-bbbb-cccc-000000000001"),
        ("https://host/jobs/instances/abc/", "abc"),
        ("https://host/jobs/instances/abc?api-version=1", "abc?api-version=1"),
    ],
)
def test_extract_job_instance_id(location: str, expected: str) -> None:
    assert extract_job_instance_id(location) == expected


@pytest.mark.parametrize(
    "location",
    [None, "", "https://host/jobs/instances", "https://host/jobs/operations/abc"],
)
def test_extract_job_instance_id_rejects_unparseable_location(
    location: str | None,
) -> None:
    with pytest.raises(JobInstanceIdError):
        extract_job_instance_id(location)


def test_default_display_name_uses_dataflow_id_prefix() -> None:
    assert default_display_name(DATAFLOW_ID) == "Dataflow 7c1a9e44..."


def test_job_metadata(client: Any, clock: FakeClock) -> None:
    job = _job(client, clock, display_name="Sales model")
    other = _job(client, clock)

    assert job.job_type == DATAFLOW_REFRESH_JOB_TYPE
    assert job.display_name == "Sales model"
    assert other.display_name == "Dataflow 7c1a9e44..."
    assert job.job_id != other.job_id


def test_requires_identifiers(client: Any) -> None:
    with pytest.raises(ValueError, match="workspace_id"):
        DataflowRefreshJob(client, workspace_id="", dataflow_id=DATAFLOW_ID)
    with pytest.raises(ValueError, match="dataflow_id"):
        DataflowRefreshJob(client, workspace_id=WORKSPACE_ID, dataflow_id="")


def test_execution_data_includes_parameters(client: Any, clock: FakeClock) -> None:
    job = _job(
        client,
        clock,
        execute_option="ApplyChangesIfNeeded",
        parameters=[ItemJobParameter(parameter_name="Region", value="EMEA")],
    )

    assert job.execution_data() == {
        "executeOption": "ApplyChangesIfNeeded",
        "parameters": [
            {"parameterName": "Region", "type": "Automatic", "value": "EMEA"}
        ],
    }
    assert _job(client, clock).execution_data() == {
        "executeOption": ExecuteOption.SKIP_APPLY_CHANGES.value
    }


def test_start_returns_pending_result_with_instance_id(
    client: Any, clock: FakeClock
) -> None:
    job = _job(client, clock)

    result = asyncio.run(job.start())

    assert not result.is_complete
    assert result.status is JobStatus.IN_PROGRESS
    assert result.started_at == clock.now
    assert job.job_instance_id == "5b2d0c8e-aaaa-bbbb-cccc-000000000001"
    assert isinstance(result.context, DataflowRefreshContext)
    assert result.context.location == LOCATION
    client.submit_refresh.assert_awaited_once_with(
        WORKSPACE_ID, DATAFLOW_ID, {"executeOption": "SkipApplyChanges"}
    )


def test_start_reports_rejected_submission_as_failed(
    client: Any, clock: FakeClock
) -> None:
    client.submit_refresh.side_effect = RemoteJobError(
        "Failed to start dataflow refresh: 403 Forbidden", status_code=403
    )
    job = _job(client, clock)

    result = asyncio.run(job.start())

    assert result.is_complete
    assert result.status is JobStatus.FAILED
    assert result.error_message == "Failed to start dataflow refresh: 403 Forbidden"
    assert job.job_instance_id is None


def test_start_reports_missing_location_as_failed(
    client: Any, clock: FakeClock
) -> None:
    client.submit_refresh.return_value = None
    job = _job(client, clock)

    result = asyncio.run(job.start())

    assert result.status is JobStatus.FAILED
    assert result.error_message == "No Location header in response"


def test_check_status_without_instance_id_fails(client: Any, clock: FakeClock) -> None:
    job = _job(client, clock)

    result = asyncio.run(job.check_status())

    assert result.status is JobStatus.FAILED
    assert result.error_message == "No job instance ID available"
    client.get_job_instance.assert_not_awaited()


@pytest.mark.parametrize(
    ("remote_status", "expected"),
    [
        ("NotStarted", JobStatus.NOT_STARTED),
        ("InProgress", JobStatus.IN_PROGRESS),
        ("Throttled", JobStatus.IN_PROGRESS),
    ],
)
def test_check_status_maps_running_statuses(
    client: Any, clock: FakeClock, remote_status: str, expected: JobStatus
) -> None:
    client.get_job_instance.return_value = {"status": remote_status}
    job = _job(client, clock)

    async def scenario() -> Any:
        await job.start()
        return await job.check_status()

    result = asyncio.run(scenario())

    assert not result.is_complete
    assert result.status is expected


def test_check_status_completed_uses_remote_end_time(
    client: Any, clock: FakeClock
) -> None:
    client.get_job_instance.return_value = {
        "id": "5b2d0c8e-aaaa-bbbb-cccc-000000000001",
        "status": "Completed",
        "startTimeUtc": "2025-01-06T09:00:02",
        "endTimeUtc": "2025-01-06T09:04:30",
    }
    job = _job(client, clock)

    async def scenario() -> Any:
        await job.start()
        return await job.check_status()

    result = asyncio.run(scenario())

    assert result.is_success
    assert result.completed_at == datetime(2025, 1, 6, 9, 4, 30, tzinfo=UTC)
    client.get_job_instance.assert_awaited_once_with(
        WORKSPACE_ID, DATAFLOW_ID, "5b2d0c8e-aaaa-bbbb-cccc-000000000001"
    )


@pytest.mark.parametrize("remote_status", ["Failed", "Cancelled", "Deduped"])
def test_check_status_terminal_failure_carries_reason(
    client: Any, clock: FakeClock, remote_status: str
) -> None:
    client.get_job_instance.return_value = {
        "status": remote_status,
        "failureReason": {"errorCode": "MashupError", "message": "Query timed out"},
    }
    job = _job(client, clock)

    async def scenario() -> Any:
        await job.start()
        clock.advance(minutes=2)
        return await job.check_status()

    result = asyncio.run(scenario())

    assert result.is_complete
    assert not result.is_success
    assert result.status.value == remote_status
    assert result.error_message == "Query timed out"
    assert result.completed_at == clock.now


def test_check_status_rejects_malformed_payload(client: Any, clock: FakeClock) -> None:
    client.get_job_instance.return_value = {"status": "Completed", "endTimeUtc": "soon"}
    job = _job(client, clock)

    async def scenario() -> Any:
        await job.start()
        return await job.check_status()

    with pytest.raises(RemoteJobError, match="Unexpected job instance payload"):
        asyncio.run(scenario())


def test_cancel_targets_started_instance(client: Any, clock: FakeClock) -> None:
    job = _job(client, clock)

    asyncio.run(job.cancel())
    client.cancel_job_instance.assert_not_awaited()

    async def scenario() -> None:
        await job.start()
        await job.cancel()

    asyncio.run(scenario())

    client.cancel_job_instance.assert_awaited_once_with(
        WORKSPACE_ID, DATAFLOW_ID, "5b2d0c8e-aaaa-bbbb-cccc-000000000001"
    )
