"""Notification service — emit events to subscribers.

Fan-out architecture: one input queue → many output queues.  The state
machine only sees :meth:`NotificationService.notify`; alerting or
webhook delivery subscribes on the other side.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bridge_relayer.notifications.events import RawEvent

logger = logging.getLogger(__name__)

_INPUT_BUFFER = 100
_DRAIN_TIMEOUT = 5.0


class NotificationService:
    """Asyncio-based notification fan-out service.

    Usage::

        svc = NotificationService()
        q = svc.add_subscriber("alerts")
        await svc.start()
        await svc.notify(TransactionEvent(transaction_id="tx-1", status="failed"))
        event = await q.get()
        await svc.stop()
    """

    def __init__(self, *, buffer: int = _INPUT_BUFFER) -> None:
        self._input: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=buffer)
        self._subscribers: dict[str, asyncio.Queue[RawEvent]] = {}
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._dropped = 0

    @property
    def is_running(self) -> bool:
        """Whether the exchange loop is running."""
        return self._running

    @property
    def dropped(self) -> int:
        """Number of events dropped because a queue was full."""
        return self._dropped

    def add_subscriber(self, key: str, *, buffer: int = _INPUT_BUFFER) -> asyncio.Queue[RawEvent]:
        """Register a subscriber and return its output queue."""
        q: asyncio.Queue[RawEvent] = asyncio.Queue(maxsize=buffer)
        self._subscribers[key] = q
        return q

    def remove_subscriber(self, key: str) -> None:
        """Unregister a subscriber."""
        self._subscribers.pop(key, None)

    async def notify(self, event: RawEvent) -> None:
        """Enqueue an event for fan-out.  Never blocks the caller."""
        try:
            self._input.put_nowait(event)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning("Notification input queue full, dropping %s event", event.type)

    async def start(self) -> None:
        """Start the exchange loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._exchange())

    async def stop(self) -> None:
        """Deliver queued events, then stop the exchange loop."""
        if not self._running:
            return
        self._running = False
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._task, timeout=_DRAIN_TIMEOUT)
        except TimeoutError:
            logger.warning("Notification drain timed out, %d events lost", self._input.qsize())
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def _exchange(self) -> None:
        """Fan events out until stopped and the input queue is empty."""
        while self._running or not self._input.empty():
            try:
                event = await asyncio.wait_for(self._input.get(), timeout=0.5)
            except TimeoutError:
                continue
            self._fan_out(event)

    def _fan_out(self, event: RawEvent) -> None:
        for key, q in list(self._subscribers.items()):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                self._dropped += 1
                logger.warning("Subscriber %s queue full, dropping %s event", key, event.type)
