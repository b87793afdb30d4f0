"""Cross-platform helper to install OS signal handlers on an asyncio loop.

The relay registers ``SIGINT`` and ``SIGTERM`` so it can shut down gracefully
when the user presses *Ctrl+C* or the process manager sends a termination
request.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Callable, Iterable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

__all__ = ["install_handlers", "remove_handlers"]


class _ShutdownTarget(Protocol):
    async def shutdown(self, signal_name: str | None = None) -> None: ...


def install_handlers(
    loop: asyncio.AbstractEventLoop,
    manager: _ShutdownTarget,
    *,
    signals: Iterable[signal.Signals] | None = None,
) -> list[signal.Signals]:
    """Register *signals* on *loop* and forward them to *manager.shutdown()*.

    Parameters
    ----------
    loop:
        The running asyncio event loop.
    manager:
        An object exposing an async ``shutdown(signal_name=...)`` coroutine;
        for the relay this is :class:`whatsrelay.core.lifecycle.RelayLifecycle`.
    signals:
        Optional iterable of :class:`signal.Signals` to hook up.  When *None*,
        ``SIGINT`` + ``SIGTERM`` on POSIX, only ``SIGINT`` on Windows.

    Returns
    -------
    list[signal.Signals]
        The signals that were successfully installed.
    """

    if signals is None:
        sigs: list[signal.Signals] = [signal.SIGINT]
        if os.name != "nt":
            sigs.append(signal.SIGTERM)
    else:
        sigs = list(signals)

    tasks: set[asyncio.Task[Any]] = set()

    def _make_handler(sig_to_use: signal.Signals) -> Callable[[], None]:
        def _handler() -> None:  # pragma: no cover - real signal path
            logger.info("Received signal %s, initiating graceful shutdown", sig_to_use.name)
            task = loop.create_task(manager.shutdown(signal_name=sig_to_use.name))
            tasks.add(task)
            task.add_done_callback(tasks.discard)

        return _handler

    installed: list[signal.Signals] = []
    for sig in sigs:
        try:
            loop.add_signal_handler(sig, _make_handler(sig))
            logger.debug("Registered handler for %s", sig.name)
            installed.append(sig)
        except (NotImplementedError, AttributeError, ValueError, RuntimeError) as e:
            logger.warning("Could not set %s handler: %s", sig.name, e)

    return installed


def remove_handlers(loop: asyncio.AbstractEventLoop, installed: Iterable[signal.Signals]) -> None:
    for sig in installed:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, ValueError, RuntimeError):
            pass
