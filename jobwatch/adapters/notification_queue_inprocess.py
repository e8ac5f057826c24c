"""In-process notification queue that spaces out deliveries to a sink."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.models import QueuedNotification
from jobwatch.domain.monitor_constants import DEFAULT_NOTIFICATION_SPACING_SECONDS
from jobwatch.observability.metrics import NOTIFICATIONS_DELIVERED_TOTAL
from jobwatch.ports.notification_queue import NotificationQueuePort
from jobwatch.ports.notification_sink import NotificationSinkPort

logger = get_logger(__name__)


class InProcessNotificationQueue(NotificationQueuePort):
    """FIFO of notifications drained by a single delivery task.

    Consecutive deliveries are at least ``spacing_seconds`` apart, so several
    jobs finishing in the same tick do not produce a burst of toasts.
    """

    def __init__(
        self,
        sink: NotificationSinkPort,
        *,
        spacing_seconds: float = DEFAULT_NOTIFICATION_SPACING_SECONDS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if spacing_seconds < 0:
            raise ValueError("spacing_seconds must be non-negative")
        self._sink = sink
        self._spacing_seconds = spacing_seconds
        self._sleep = sleep
        self._queue: asyncio.Queue[QueuedNotification] = asyncio.Queue()
        self._pending = 0
        self._worker: asyncio.Task[None] | None = None
        self._last_delivered_at: float | None = None

    def enqueue(self, notification: QueuedNotification) -> None:
        self._pending += 1
        self._queue.put_nowait(notification)
        logger.debug(
            "notification_queued",
            title=notification.title,
            pending=self._pending,
        )

    @property
    def pending_count(self) -> int:
        return self._pending

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the delivery task on the running event loop."""

        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(
            self._deliver_loop(), name="notification-delivery"
        )
        logger.debug("notification_queue_started", spacing=self._spacing_seconds)

    async def join(self) -> None:
        """Wait until every queued notification has been handed to the sink."""

        await self._queue.join()

    async def stop(self, *, drain: bool = False) -> None:
        """Stop the delivery task, optionally delivering what is queued first."""

        if drain and self.is_running:
            await self.join()
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        logger.debug("notification_queue_stopped", pending=self._pending)

    # Internal helpers -------------------------------------------------

    async def _deliver_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            notification = await self._queue.get()
            try:
                if self._last_delivered_at is not None:
                    remaining = self._spacing_seconds - (
                        loop.time() - self._last_delivered_at
                    )
                    if remaining > 0:
                        logger.debug(
                            "notification_spacing_wait",
                            seconds=remaining,
                            pending=self._pending,
                        )
                        await self._sleep(remaining)
                await self._deliver(notification)
            finally:
                self._last_delivered_at = loop.time()
                self._pending -= 1
                self._queue.task_done()

    async def _deliver(self, notification: QueuedNotification) -> None:
        try:
            await self._sink.show(
                notification.title, notification.message, notification.level
            )
        except Exception:  # noqa: BLE001
            logger.warning(
                "notification_delivery_failed",
                title=notification.title,
                exc_info=True,
            )
            NOTIFICATIONS_DELIVERED_TOTAL.labels(
                level=notification.level.value, outcome="failed"
            ).inc()
            return

        NOTIFICATIONS_DELIVERED_TOTAL.labels(
            level=notification.level.value, outcome="delivered"
        ).inc()
        logger.debug(
            "notification_delivered",
            title=notification.title,
            level=notification.level.value,
            session_id=notification.session_id,
        )


__all__ = ["InProcessNotificationQueue"]
