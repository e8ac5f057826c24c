"""Scripted in-memory job for demos and tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from jobwatch.domain.models import JobResult, JobStatus, utc_now


@dataclass(frozen=True, slots=True)
class SimulatedStep:
    """One scripted answer of a simulated job.

    ``error`` raises instead of returning a result.
    """

    status: JobStatus = JobStatus.IN_PROGRESS
    error_message: str | None = None
    error: Exception | None = None


@dataclass
class SimulatedJob:
    """Job whose start and status answers follow a fixed script.

    The last step repeats once the script is exhausted.
    """

    display_name: str
    steps: Sequence[SimulatedStep] = field(
        default_factory=lambda: [SimulatedStep(JobStatus.COMPLETED)]
    )
    start_step: SimulatedStep = field(default_factory=SimulatedStep)
    job_type: str = "Simulated"
    job_id: str = field(default_factory=lambda: str(uuid4()))
    clock: Callable[[], datetime] = utc_now
    start_calls: int = field(default=0, init=False)
    check_calls: int = field(default=0, init=False)
    _started_at: datetime | None = field(default=None, init=False, repr=False)

    async def start(self) -> JobResult:
        self.start_calls += 1
        self._started_at = self.clock()
        return self._answer(self.start_step)

    async def check_status(self) -> JobResult:
        index = min(self.check_calls, len(self.steps) - 1)
        self.check_calls += 1
        return self._answer(self.steps[index])

    def _answer(self, step: SimulatedStep) -> JobResult:
        if step.error is not None:
            raise step.error

        started_at = self._started_at or self.clock()
        context = {"simulated": True, "job_id": self.job_id}
        if not step.status.is_terminal:
            return JobResult.pending(
                started_at=started_at, status=step.status, context=context
            )
        if step.status is JobStatus.COMPLETED:
            return JobResult.success(
                started_at=started_at, context=context, clock=self.clock
            )
        return JobResult.failure(
            step.status,
            error_message=step.error_message,
            started_at=started_at,
            context=context,
            clock=self.clock,
        )


__all__ = ["SimulatedJob", "SimulatedStep"]
