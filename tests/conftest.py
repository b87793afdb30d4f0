"""
tests/conftest.py - test harness bootstrap.
Shared fixtures: quiet logging, settings, a fully wired relay on a fake transport.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest

from tests.fakes import FakeTransport, RecordingObserver
from whatsrelay.core.dispatcher import CommandDispatcher
from whatsrelay.core.gateway import SendMessageGateway
from whatsrelay.core.hub import BroadcastHub
from whatsrelay.core.logger_setup import setup_logging
from whatsrelay.core.normalizer import EventNormalizer
from whatsrelay.core.relay import SessionRelay
from whatsrelay.core.settings import Settings
from whatsrelay.core.state import SessionState, SessionStateMachine
from whatsrelay.plugins import manager

# ------------------------------------------------------------------+
# Global logging setup                                              +
# ------------------------------------------------------------------+
setup_logging({"root": {"level": "WARNING"}})

# Register the built-in commands once, before any test patches the registry.
manager.load_plugins()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings built from defaults only (no .env, no stray env vars)."""
    for var in ("BOT_PREFIX", "PORT", "HOST", "TRANSPORT", "METRICS_PORT"):
        monkeypatch.delenv(var, raising=False)
    return Settings(_env_file=None)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def state_machine() -> SessionStateMachine:
    return SessionStateMachine()


@pytest.fixture
def ready_state() -> SessionStateMachine:
    return SessionStateMachine(initial_state=SessionState.READY)


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
async def observer(hub: BroadcastHub) -> RecordingObserver:
    obs = RecordingObserver()
    hub.on_observer_joined(obs)
    return obs


@pytest.fixture
def gateway(
    transport: FakeTransport, ready_state: SessionStateMachine, hub: BroadcastHub
) -> SendMessageGateway:
    return SendMessageGateway(transport, ready_state, hub)


@pytest.fixture
def dispatcher(
    gateway: SendMessageGateway, hub: BroadcastHub, transport: FakeTransport, settings: Settings
) -> CommandDispatcher:
    return CommandDispatcher(
        gateway, hub, transport, replies=settings.replies, prefix=settings.bot_prefix
    )


@pytest.fixture
async def relay(
    transport: FakeTransport, settings: Settings
) -> AsyncGenerator[SessionRelay, None]:
    """A started relay in the INITIALIZING state, torn down after the test."""
    state_machine = SessionStateMachine()
    hub = BroadcastHub()
    normalizer = EventNormalizer()
    gateway = SendMessageGateway(transport, state_machine, hub, normalizer)
    dispatcher = CommandDispatcher(
        gateway, hub, transport, replies=settings.replies, prefix=settings.bot_prefix
    )
    relay = SessionRelay(transport, state_machine, normalizer, hub, gateway, dispatcher)
    await relay.start()
    yield relay
    await relay.stop()


@pytest.fixture(autouse=True)
async def _cleanup_asyncio_tasks() -> AsyncGenerator[None, None]:
    """Cancel any task a test leaves behind before the loop closes."""
    yield

    loop = asyncio.get_running_loop()
    pending: list[asyncio.Task[Any]] = [
        t
        for t in asyncio.all_tasks(loop)
        if t is not asyncio.current_task(loop=loop) and not t.done()
    ]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
