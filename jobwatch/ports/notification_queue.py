"""Port definition for notification delivery queues."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jobwatch.domain.models import QueuedNotification


@runtime_checkable
class NotificationQueuePort(Protocol):
    """Fire-and-forget channel the monitor publishes completions into."""

    def enqueue(self, notification: QueuedNotification) -> None:
        """Queue a notification without blocking the caller."""

    @property
    def pending_count(self) -> int:
        """Number of notifications queued but not yet delivered."""


__all__ = ["NotificationQueuePort"]
