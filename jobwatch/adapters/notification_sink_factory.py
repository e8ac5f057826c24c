"""
Notification sink factory.

Picks the renderer configured for the current deployment: desktop toasts for
local stdio use, log lines for remote or headless servers.
"""

from jobwatch.adapters.notification_sinks import (
    DesktopNotificationSink,
    LoggingNotificationSink,
)
from jobwatch.config.logging_config import get_logger
from jobwatch.ports.notification_sink import NotificationSinkPort

logger = get_logger(__name__)


def get_notification_sink(kind: str) -> NotificationSinkPort:
    """Get the notification sink for the configured kind.

    Falls back to log output when desktop notifications are requested but
    ``notify-send`` is not installed.

    Args:
        kind: "log" or "desktop"

    Returns:
        NotificationSinkPort implementation

    Raises:
        ValueError: If kind is not supported
    """
    if kind == "log":
        return LoggingNotificationSink()
    elif kind == "desktop":
        sink = DesktopNotificationSink()
        if not sink.is_supported:
            logger.warning("desktop_notifications_unavailable", fallback="log")
            return LoggingNotificationSink()
        return sink
    else:
        raise ValueError(
            f"Unsupported notification sink: {kind}. Supported sinks: ['log', 'desktop']"
        )
