"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from jobwatch.domain.models import NotificationLevel, QueuedNotification


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 6, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@dataclass
class RecordingQueue:
    """Notification queue double that keeps everything enqueued."""

    notifications: list[QueuedNotification] = field(default_factory=list)

    def enqueue(self, notification: QueuedNotification) -> None:
        self.notifications.append(notification)

    @property
    def pending_count(self) -> int:
        return len(self.notifications)


@dataclass
class RecordingSink:
    """Notification sink double that records every call."""

    shown: list[tuple[str, str, NotificationLevel]] = field(default_factory=list)

    async def show(self, title: str, message: str, level: NotificationLevel) -> None:
        self.shown.append((title, message, level))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
