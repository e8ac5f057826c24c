"""Port definition for remote background jobs driven by the monitor."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jobwatch.domain.models import JobResult


@runtime_checkable
class BackgroundJobPort(Protocol):
    """One asynchronous remote operation with start/poll semantics."""

    @property
    def job_id(self) -> str:
        """Identifier unique to this job instance."""

    @property
    def job_type(self) -> str:
        """Kind of job (e.g. "Dataflow Refresh")."""

    @property
    def display_name(self) -> str:
        """User-friendly name used in notifications."""

    async def start(self) -> JobResult:
        """Start the remote operation.

        Called exactly once per instance. May return a terminal result when the
        operation finished synchronously or was rejected.
        """

    async def check_status(self) -> JobResult:
        """Read the current state of the remote operation without side effects."""


@runtime_checkable
class CancellableJobPort(BackgroundJobPort, Protocol):
    """Job that can also request cancellation of the remote operation."""

    async def cancel(self) -> None:
        """Ask the remote side to stop the operation."""


__all__ = ["BackgroundJobPort", "CancellableJobPort"]
