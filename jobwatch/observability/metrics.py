"""Prometheus metrics for the job monitor.

The exporter is started explicitly by the runtime when metrics are enabled;
importing this module only registers the collectors.
"""

from __future__ import annotations

import threading
from typing import Final

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from jobwatch.config.logging_config import get_logger

logger = get_logger(__name__)

JOBS_STARTED_TOTAL: Final[Counter] = Counter(
    "jobwatch_jobs_started_total",
    "Total number of background jobs started",
    labelnames=("job_type",),
)

JOBS_FINISHED_TOTAL: Final[Counter] = Counter(
    "jobwatch_jobs_finished_total",
    "Total number of background jobs that reached a terminal status",
    labelnames=("job_type", "status"),
)

JOB_DURATION_SECONDS: Final[Histogram] = Histogram(
    "jobwatch_job_duration_seconds",
    "Duration of background jobs from start to terminal status",
    labelnames=("job_type",),
    buckets=(1, 5, 15, 30, 60, 300, 900, 1800, 3600, 7200, 14400),
)

MONITOR_TICKS_TOTAL: Final[Counter] = Counter(
    "jobwatch_monitor_ticks_total",
    "Polling ticks by outcome",
    labelnames=("outcome",),
)

ACTIVE_JOBS: Final[Gauge] = Gauge(
    "jobwatch_active_jobs",
    "Number of jobs currently being polled",
)

NOTIFICATIONS_DELIVERED_TOTAL: Final[Counter] = Counter(
    "jobwatch_notifications_delivered_total",
    "Notifications handed to the sink",
    labelnames=("level", "outcome"),
)

_EXPORTER_LOCK = threading.Lock()
_EXPORTER_STARTED = False


def ensure_metrics_exporter(port: int) -> None:
    """Start Prometheus HTTP exporter once per process."""

    global _EXPORTER_STARTED
    with _EXPORTER_LOCK:
        if _EXPORTER_STARTED:
            return

        try:
            start_http_server(port)
        except OSError as exc:
            logger.error(
                "metrics_exporter_start_failed",
                port=port,
                error=str(exc),
            )
            raise

        _EXPORTER_STARTED = True
        logger.info("metrics_exporter_started", port=port)


__all__ = [
    "ACTIVE_JOBS",
    "JOBS_FINISHED_TOTAL",
    "JOBS_STARTED_TOTAL",
    "JOB_DURATION_SECONDS",
    "MONITOR_TICKS_TOTAL",
    "NOTIFICATIONS_DELIVERED_TOTAL",
    "ensure_metrics_exporter",
]
