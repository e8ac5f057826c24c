"""Service package exports."""

from jobwatch.services.job_monitor import (
    JobMonitor,
    MonitorState,
    MonitoredJob,
    TickSummary,
)
from jobwatch.services.notification_content import build_notification, format_duration
from jobwatch.services.timeout_policies import TimeoutPolicy, resolve_timeout_hook

__all__ = [
    "JobMonitor",
    "MonitorState",
    "MonitoredJob",
    "TickSummary",
    "TimeoutPolicy",
    "build_notification",
    "format_duration",
    "resolve_timeout_hook",
]
