"""Notification sink adapters: structured log lines and desktop toasts."""

from __future__ import annotations

import asyncio
import shutil
from typing import Final

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.models import NotificationLevel
from jobwatch.ports.notification_sink import NotificationSinkPort

logger = get_logger(__name__)

NOTIFY_SEND_COMMAND: Final[str] = "notify-send"
NOTIFY_SEND_TIMEOUT_SECONDS: Final[float] = 5.0

_URGENCY_BY_LEVEL: Final[dict[NotificationLevel, str]] = {
    NotificationLevel.ERROR: "critical",
    NotificationLevel.WARNING: "normal",
    NotificationLevel.SUCCESS: "low",
    NotificationLevel.INFO: "low",
}


class LoggingNotificationSink(NotificationSinkPort):
    """Render notifications as log events.

    Suitable for remote or headless deployments where no desktop is attached.
    """

    async def show(self, title: str, message: str, level: NotificationLevel) -> None:
        if level is NotificationLevel.ERROR:
            logger.error("user_notification", title=title, message=message)
        elif level is NotificationLevel.WARNING:
            logger.warning("user_notification", title=title, message=message)
        else:
            logger.info(
                "user_notification", title=title, message=message, level=level.value
            )


class DesktopNotificationSink(NotificationSinkPort):
    """Linux desktop toast through ``notify-send`` (libnotify)."""

    def __init__(
        self,
        command: str = NOTIFY_SEND_COMMAND,
        *,
        timeout_seconds: float = NOTIFY_SEND_TIMEOUT_SECONDS,
    ) -> None:
        self._command = command
        self._timeout_seconds = timeout_seconds

    @property
    def is_supported(self) -> bool:
        return shutil.which(self._command) is not None

    async def show(self, title: str, message: str, level: NotificationLevel) -> None:
        urgency = _URGENCY_BY_LEVEL[level]
        try:
            process = await asyncio.create_subprocess_exec(
                self._command,
                "-u",
                urgency,
                title,
                message,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.debug(
                "desktop_notification_failed",
                command=self._command,
                error=str(exc),
            )
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self._timeout_seconds)
        except TimeoutError:
            # Kill and reap the hung notify-send
            process.kill()
            await process.wait()
            logger.warning(
                "desktop_notification_timed_out",
                command=self._command,
                timeout=self._timeout_seconds,
            )


__all__ = ["DesktopNotificationSink", "LoggingNotificationSink"]
