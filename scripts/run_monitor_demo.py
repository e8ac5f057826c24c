"""Drive simulated jobs through a real monitor and print their history."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from uuid import uuid4

sys.path.insert(0, str(Path(__file__).parent.parent))

from jobwatch.adapters.simulated_job import SimulatedJob, SimulatedStep
from jobwatch.config.logging_config import (
    bind_context,
    get_logger,
    setup_logging,
    unbind_context,
)
from jobwatch.config.settings import get_settings
from jobwatch.domain.models import JobStatus, NotificationContext
from jobwatch.use_cases.monitor_runtime import build_monitor_runtime

logger = get_logger(__name__)

_OUTCOMES = (
    SimulatedStep(JobStatus.COMPLETED),
    SimulatedStep(JobStatus.FAILED, error_message="Mashup evaluation failed"),
    SimulatedStep(JobStatus.CANCELLED),
    SimulatedStep(error=ConnectionRefusedError("ConnectionRefused")),
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run simulated background jobs")
    parser.add_argument(
        "--jobs",
        type=int,
        default=4,
        help="Number of simulated jobs to start",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.5,
        help="Seconds between polling ticks",
    )
    parser.add_argument(
        "--notification-spacing",
        type=float,
        default=0.5,
        help="Seconds between notification deliveries",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs in JSON format",
    )
    args = parser.parse_args(argv)
    if args.jobs <= 0:
        parser.error("--jobs must be greater than 0")
    if args.poll_interval <= 0:
        parser.error("--poll-interval must be greater than 0")
    return args


async def run_demo(args: argparse.Namespace) -> int:
    settings = get_settings().model_copy(
        update={
            "poll_interval_seconds": args.poll_interval,
            "notification_spacing_seconds": args.notification_spacing,
        }
    )
    runtime = build_monitor_runtime(settings)
    runtime.start()

    context = NotificationContext(session_id=str(uuid4()), client_name="demo")
    for index in range(args.jobs):
        pending = [SimulatedStep(JobStatus.IN_PROGRESS)] * (index + 1)
        job = SimulatedJob(
            display_name=f"Demo job {index + 1}",
            steps=[*pending, _OUTCOMES[index % len(_OUTCOMES)]],
        )
        await runtime.monitor.start_job(job, context=context)

    while runtime.monitor.has_active_jobs:
        await asyncio.sleep(args.poll_interval)

    await runtime.shutdown(drain_notifications=True)

    for task in runtime.monitor.list_tasks():
        logger.info(
            "demo_task_summary",
            task_id=task.task_id,
            display_name=task.display_name,
            status=task.status.value,
            failure_reason=task.failure_reason,
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=args.json_logs)

    bind_context(run_id=str(uuid4()))
    try:
        return asyncio.run(run_demo(args))
    finally:
        unbind_context("run_id")


if __name__ == "__main__":
    sys.exit(main())
