"""Port definition for notification renderers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jobwatch.domain.models import NotificationLevel


@runtime_checkable
class NotificationSinkPort(Protocol):
    """Renders a notification to the user (toast, log line, protocol push)."""

    async def show(self, title: str, message: str, level: NotificationLevel) -> None:
        """Display a single notification."""


__all__ = ["NotificationSinkPort"]
