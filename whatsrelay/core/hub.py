"""
core/hub.py - Observer registry and event fan-out.

Each registered observer gets its own outbox queue drained by a dedicated pump
task.  ``broadcast`` only enqueues, so a slow or broken observer can never
stall the producer or any other observer, and every observer sees events in
the order they were broadcast.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from whatsrelay.core import telemetry
from whatsrelay.core.events import NormalizedEvent
from whatsrelay.utils import queue_helpers

logger = logging.getLogger(__name__)

__all__ = ["Observer", "BroadcastHub"]


class Observer(ABC):
    """
    Opaque handle to one connected dashboard client.
    Implementations push a single event to their client in ``send``.
    """

    def __init__(self, observer_id: str | None = None) -> None:
        self.observer_id = observer_id or uuid.uuid4().hex

    @abstractmethod
    async def send(self, event_name: str, payload: dict[str, Any]) -> None:
        """Deliver one event; raise if the connection is unusable."""

    async def close(self) -> None:  # noqa: B027 - optional hook
        """Release the underlying connection.  Default: nothing to do."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.observer_id[:8]}>"


@dataclass
class _Subscription:
    observer: Observer
    outbox: asyncio.Queue[tuple[str, dict[str, Any]]]
    queue_name: str
    pump: asyncio.Task[None] | None = field(default=None)


class BroadcastHub:
    def __init__(self, outbox_size: int = 1000, max_attempts: int = 3) -> None:
        self._outbox_size = outbox_size
        self._max_attempts = max(1, max_attempts)
        self._subs: dict[str, _Subscription] = {}
        self._closing: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------+
    # Registry                                                          |
    # ------------------------------------------------------------------+

    def __len__(self) -> int:
        return len(self._subs)

    def __contains__(self, observer: object) -> bool:
        return isinstance(observer, Observer) and observer.observer_id in self._subs

    @property
    def observers(self) -> list[Observer]:
        return [sub.observer for sub in self._subs.values()]

    def on_observer_joined(self, observer: Observer) -> None:
        """Register *observer*; it receives every event broadcast from now on."""
        if observer.observer_id in self._subs:
            return
        queue_name = f"observer_{observer.observer_id[:8]}"
        sub = _Subscription(
            observer=observer,
            outbox=queue_helpers.new_queue(queue_name, self._outbox_size),
            queue_name=queue_name,
        )
        sub.pump = asyncio.get_running_loop().create_task(
            self._pump(sub), name=f"hub-pump-{observer.observer_id[:8]}"
        )
        self._subs[observer.observer_id] = sub
        telemetry.set_observer_count(len(self._subs))
        logger.info("Observer %r joined (%d connected)", observer, len(self._subs))

    def on_observer_left(self, observer: Observer) -> None:
        """Deregister *observer*.  Pending events for it are discarded."""
        sub = self._subs.pop(observer.observer_id, None)
        if sub is None:
            return
        if sub.pump is not None and sub.pump is not asyncio.current_task():
            sub.pump.cancel()
        # Discard undelivered events so flush() callers are released.
        while not sub.outbox.empty():
            sub.outbox.get_nowait()
            sub.outbox.task_done()
        telemetry.remove_queue_gauge(sub.queue_name)
        telemetry.set_observer_count(len(self._subs))
        logger.info("Observer %r left (%d connected)", observer, len(self._subs))

    # ------------------------------------------------------------------+
    # Fan-out                                                           |
    # ------------------------------------------------------------------+

    def broadcast(self, event: NormalizedEvent) -> None:
        """Queue *event* for every currently registered observer.

        Never raises on behalf of an observer.  An observer whose outbox is
        full is evicted, since it can no longer be served every event.
        """
        name = event.event_name
        payload = event.to_payload()
        telemetry.record_broadcast(name)
        for sub in list(self._subs.values()):
            try:
                queue_helpers.put_nowait(sub.outbox, (name, payload), sub.queue_name)
            except asyncio.QueueFull:
                logger.warning("Outbox full for %r; evicting observer", sub.observer)
                telemetry.record_delivery_failure()
                self._evict(sub.observer)

    async def flush(self) -> None:
        """Wait until every outbox queued so far has been drained."""
        for sub in list(self._subs.values()):
            if sub.pump is not None and not sub.pump.done():
                await sub.outbox.join()

    async def close(self) -> None:
        """Deregister and close all observers."""
        for sub in list(self._subs.values()):
            self.on_observer_left(sub.observer)
            await self._close_observer(sub.observer)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    # ------------------------------------------------------------------+
    # Internals                                                         |
    # ------------------------------------------------------------------+

    async def _pump(self, sub: _Subscription) -> None:
        while True:
            name, payload = await queue_helpers.get(sub.outbox, sub.queue_name)
            try:
                delivered = await self._deliver(sub.observer, name, payload)
            finally:
                queue_helpers.task_done(sub.outbox, sub.queue_name)
            if not delivered:
                self._evict(sub.observer)
                return

    async def _deliver(self, observer: Observer, name: str, payload: dict[str, Any]) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            try:
                await observer.send(name, payload)
                return True
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                telemetry.record_delivery_failure()
                logger.warning(
                    "Delivery of %r to %r failed (attempt %d/%d): %s",
                    name,
                    observer,
                    attempt,
                    self._max_attempts,
                    exc,
                )
        return False

    def _evict(self, observer: Observer) -> None:
        if observer.observer_id not in self._subs:
            return
        self.on_observer_left(observer)
        task = asyncio.get_running_loop().create_task(self._close_observer(observer))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_observer(self, observer: Observer) -> None:
        try:
            await observer.close()
        except Exception:
            logger.debug("Closing %r failed", observer, exc_info=True)
