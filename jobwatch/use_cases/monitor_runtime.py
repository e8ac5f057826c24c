"""Wiring of the job monitor, its history and notification delivery."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from jobwatch.adapters.notification_queue_inprocess import InProcessNotificationQueue
from jobwatch.adapters.notification_sink_factory import get_notification_sink
from jobwatch.adapters.task_history_inmemory import InMemoryTaskHistory
from jobwatch.config.logging_config import get_logger
from jobwatch.config.settings import Settings
from jobwatch.domain.models import utc_now
from jobwatch.observability.metrics import ensure_metrics_exporter
from jobwatch.ports.notification_sink import NotificationSinkPort
from jobwatch.services.job_monitor import JobMonitor
from jobwatch.services.timeout_policies import resolve_timeout_hook

logger = get_logger(__name__)


@dataclass(slots=True)
class MonitorRuntime:
    """Monitor plus the collaborators it publishes into."""

    monitor: JobMonitor
    history: InMemoryTaskHistory
    notifications: InProcessNotificationQueue

    def start(self) -> None:
        """Start notification delivery; call from inside the event loop."""

        self.notifications.start()

    async def shutdown(self, *, drain_notifications: bool = True) -> None:
        await self.monitor.close()
        await self.notifications.stop(drain=drain_notifications)
        logger.info("monitor_runtime_stopped")


def build_monitor_runtime(
    settings: Settings,
    *,
    sink: NotificationSinkPort | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> MonitorRuntime:
    """Build a monitor runtime from settings.

    Args:
        settings: Application settings
        sink: Notification renderer; defaults to the configured sink
        clock: Time source shared by the monitor

    Returns:
        Runtime whose notification queue still has to be started
    """
    if settings.metrics_enabled:
        ensure_metrics_exporter(settings.metrics_port)

    notifications = InProcessNotificationQueue(
        sink or get_notification_sink(settings.notification_sink),
        spacing_seconds=settings.notification_spacing_seconds,
    )
    history = InMemoryTaskHistory(max_count=settings.max_history_count)
    monitor = JobMonitor(
        notification_queue=notifications,
        history=history,
        poll_interval_seconds=settings.poll_interval_seconds,
        max_job_age=timedelta(seconds=settings.max_job_age_seconds),
        on_timeout=resolve_timeout_hook(settings.timeout_policy),
        clock=clock,
    )

    logger.info(
        "monitor_runtime_built",
        poll_interval=settings.poll_interval_seconds,
        max_history=settings.max_history_count,
        timeout_policy=settings.timeout_policy,
        sink=settings.notification_sink if sink is None else type(sink).__name__,
    )
    return MonitorRuntime(monitor=monitor, history=history, notifications=notifications)


__all__ = ["MonitorRuntime", "build_monitor_runtime"]
