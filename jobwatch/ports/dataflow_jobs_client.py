"""Port definition for the data platform's item job endpoints."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DataflowJobsClientPort(Protocol):
    """Transport used by dataflow refresh jobs.

    Implementations own URL building, authentication and HTTP; they raise
    ``RemoteJobError`` when the platform rejects a call.
    """

    async def submit_refresh(
        self,
        workspace_id: str,
        dataflow_id: str,
        execution_data: dict[str, Any] | None,
    ) -> str:
        """Submit an on-demand refresh and return the Location of the job instance."""

    async def get_job_instance(
        self, workspace_id: str, item_id: str, job_instance_id: str
    ) -> dict[str, Any]:
        """Return the raw JSON body of a job instance."""

    async def cancel_job_instance(
        self, workspace_id: str, item_id: str, job_instance_id: str
    ) -> None:
        """Request cancellation of a running job instance."""


__all__ = ["DataflowJobsClientPort"]
