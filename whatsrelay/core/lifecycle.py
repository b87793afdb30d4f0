from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto

from aiohttp import web

from whatsrelay.core import telemetry
from whatsrelay.core.containers import Container
from whatsrelay.core.relay import SessionRelay
from whatsrelay.core.settings import Settings
from whatsrelay.core.state import SessionState
from whatsrelay.utils.async_helpers import with_retries
from whatsrelay.webapi import create_app, start_web

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    IDLE = auto()
    STARTING = auto()
    RUNNING = auto()
    SHUTTING_DOWN = auto()
    STOPPED = auto()


class RelayLifecycle:
    def __init__(self, settings: Settings, container: Container | None = None):
        self._settings: Settings = settings
        self._state: LifecycleState = LifecycleState.IDLE
        self._container = container if container is not None else Container()
        self._container.config.override(settings)
        self._relay: SessionRelay | None = None
        self._runner: web.AppRunner | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._shutdown_event = asyncio.Event()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def relay(self) -> SessionRelay | None:
        return self._relay

    def _set_state(self, new_state: LifecycleState) -> None:
        if self._state == new_state:
            return
        logger.info(
            "Relay lifecycle state changing from %s to %s", self._state.name, new_state.name
        )
        self._state = new_state

    async def start(self, *, serve_http: bool = True) -> None:
        if self._state != LifecycleState.IDLE:
            logger.warning(
                "Relay start() called when not in IDLE state (current: %s). Ignoring.",
                self._state.name,
            )
            return

        self._set_state(LifecycleState.STARTING)
        telemetry.start_exporter(self._settings.metrics_port)

        relay = self._container.relay()
        self._relay = relay
        relay.state_machine.on_transition(self._on_session_transition)
        await relay.start()

        if serve_http:
            app = create_app(relay)
            self._runner = await start_web(app, self._settings.host, self._settings.port)

        self._set_state(LifecycleState.RUNNING)

    async def run(self) -> None:
        """Start everything and block until shutdown completes."""
        try:
            await self.start()
            await self.wait_for_shutdown()
        except asyncio.CancelledError:
            logger.info("Relay run() cancelled.")
        except Exception:
            logger.exception("An unexpected error occurred in the relay's main run cycle:")
        finally:
            await self.shutdown()

    def _on_session_transition(self, old: SessionState, new: SessionState) -> None:
        if new is not SessionState.DISCONNECTED or self._state != LifecycleState.RUNNING:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        logger.warning("Session disconnected (was %s); scheduling reconnect", old.value)
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect(), name="relay-reconnect"
        )

    async def _reconnect(self) -> None:
        assert self._relay is not None
        cfg = self._settings.reconnect
        transport = self._relay.transport
        try:
            await with_retries(
                transport.restart,
                cfg.max_tries,
                cfg.initial_delay,
                backoff=cfg.backoff,
                max_delay=cfg.max_delay,
            )
            logger.info("Transport restarted; waiting for the session to authenticate")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Giving up on reconnecting the session transport")

    async def shutdown(self, signal_name: str | None = None) -> None:
        if self._state in [LifecycleState.SHUTTING_DOWN, LifecycleState.STOPPED]:
            if self._state == LifecycleState.SHUTTING_DOWN:
                logger.info("Shutdown already in progress. Waiting for completion.")
                await self._shutdown_event.wait()
            return

        if signal_name:
            logger.info("Shutdown initiated by signal: %s.", signal_name)
        else:
            logger.info("Shutdown initiated.")

        self._set_state(LifecycleState.SHUTTING_DOWN)

        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            await asyncio.gather(self._reconnect_task, return_exceptions=True)
            self._reconnect_task = None

        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Web interface stopped.")

        if self._relay is not None:
            await self._relay.stop()

        self._set_state(LifecycleState.STOPPED)
        self._shutdown_event.set()
        logger.info("Relay has shut down.")

    async def wait_for_shutdown(self) -> None:
        await self._shutdown_event.wait()
