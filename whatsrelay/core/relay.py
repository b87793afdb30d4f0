"""
core/relay.py - Wires the transport to the relay core.

``SessionRelay`` is the sink a transport reports to.  Callbacks may arrive on
any thread; they only enqueue a ``RawEvent`` on the event channel.  A single
pump task drains the channel in arrival order and, per event:

    normalize -> apply to the state machine -> broadcast -> (commands) dispatch

Command handlers run as separate tasks so the pump never waits on them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from whatsrelay.core import telemetry
from whatsrelay.core.dispatcher import CommandDispatcher
from whatsrelay.core.events import MessageReceived, NormalizedEvent, utcnow
from whatsrelay.core.gateway import SendMessageGateway
from whatsrelay.core.hub import BroadcastHub
from whatsrelay.core.normalizer import EventNormalizer
from whatsrelay.core.state import SessionState, SessionStateMachine
from whatsrelay.core.transport import SessionTransport
from whatsrelay.utils import queue_helpers

logger = logging.getLogger(__name__)

__all__ = ["RawEvent", "SessionRelay"]

EVENTS_QUEUE = "transport_events"


@dataclass(frozen=True)
class RawEvent:
    kind: str
    args: tuple[Any, ...] = ()


class SessionRelay:
    def __init__(
        self,
        transport: SessionTransport,
        state_machine: SessionStateMachine,
        normalizer: EventNormalizer,
        hub: BroadcastHub,
        gateway: SendMessageGateway,
        dispatcher: CommandDispatcher,
        *,
        queue_size: int = 1000,
    ) -> None:
        self.transport = transport
        self.state_machine = state_machine
        self.normalizer = normalizer
        self.hub = hub
        self.gateway = gateway
        self.dispatcher = dispatcher
        self._queue_size = queue_size
        self._events: asyncio.Queue[RawEvent] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pump_task: asyncio.Task[None] | None = None

        all_states = [s.value for s in SessionState]
        telemetry.set_session_state(state_machine.current_state().value, all_states)
        state_machine.on_transition(
            lambda _old, new: telemetry.set_session_state(new.value, all_states)
        )

    # ------------------------------------------------------------------+
    # Lifecycle                                                         |
    # ------------------------------------------------------------------+

    @property
    def running(self) -> bool:
        return self._pump_task is not None and not self._pump_task.done()

    async def start(self) -> None:
        """Start the event pump, then the transport.  Idempotent."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._events = queue_helpers.new_queue(EVENTS_QUEUE, self._queue_size)
        self._pump_task = self._loop.create_task(self._pump(), name="relay-event-pump")
        logger.info("Starting session transport %s", type(self.transport).__name__)
        await self.transport.start(self)

    async def stop(self) -> None:
        try:
            await self.transport.stop()
        except Exception:
            logger.exception("Transport stop failed")
        if self._pump_task is not None:
            self._pump_task.cancel()
            await asyncio.gather(self._pump_task, return_exceptions=True)
            self._pump_task = None
        await self.dispatcher.drain()
        await self.hub.close()
        logger.info("Session relay stopped")

    async def flush(self) -> None:
        """Wait until every event received so far has been fully processed."""
        if self._events is not None and self.running:
            await self._events.join()
        await self.dispatcher.drain()
        await self.hub.flush()

    def status_snapshot(self) -> dict[str, Any]:
        state = self.state_machine.current_state()
        return {
            "ready": state is SessionState.READY,
            "state": state.value,
            "timestamp": utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }

    # ------------------------------------------------------------------+
    # TransportEvents                                                   |
    # ------------------------------------------------------------------+

    def on_qr(self, secret: str) -> None:
        self._enqueue(RawEvent("qr", (secret,)))

    def on_ready(self) -> None:
        self._enqueue(RawEvent("ready"))

    def on_disconnected(self, reason: str) -> None:
        self._enqueue(RawEvent("disconnected", (reason,)))

    def on_message(self, raw_message: Any) -> None:
        self._enqueue(RawEvent("message", (raw_message,)))

    def on_ack_update(self, message: Any, ack_level: Any) -> None:
        self._enqueue(RawEvent("ack", (message, ack_level)))

    # ------------------------------------------------------------------+
    # Internals                                                         |
    # ------------------------------------------------------------------+

    def _enqueue(self, raw: RawEvent) -> None:
        if self._loop is None or self._events is None:
            logger.warning("Transport event %r arrived before start(); dropped", raw.kind)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(raw)
        else:
            self._loop.call_soon_threadsafe(self._put, raw)

    def _put(self, raw: RawEvent) -> None:
        assert self._events is not None
        try:
            queue_helpers.put_nowait(self._events, raw, EVENTS_QUEUE)
        except asyncio.QueueFull:
            logger.error("Transport event channel full; dropping %r event", raw.kind)

    def _normalize(self, raw: RawEvent) -> NormalizedEvent | None:
        handler = {
            "qr": self.normalizer.on_qr,
            "ready": self.normalizer.on_ready,
            "disconnected": self.normalizer.on_disconnected,
            "message": self.normalizer.on_message,
            "ack": self.normalizer.on_ack_update,
        }.get(raw.kind)
        if handler is None:
            logger.warning("Unknown transport event kind %r", raw.kind)
            return None
        return handler(*raw.args)

    def process(self, event: NormalizedEvent) -> None:
        """Apply one normalized event: state, fan-out, then command dispatch."""
        self.state_machine.apply_event(event)
        self.hub.broadcast(event)
        if isinstance(event, MessageReceived):
            self.dispatcher.submit(event)

    async def _pump(self) -> None:
        assert self._events is not None
        while True:
            raw = await queue_helpers.get(self._events, EVENTS_QUEUE)
            try:
                event = self._normalize(raw)
                if event is not None:
                    self.process(event)
            except Exception:
                logger.exception("Failed to process transport event %r", raw.kind)
            finally:
                queue_helpers.task_done(self._events, EVENTS_QUEUE)
