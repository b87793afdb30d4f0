"""core/telemetry.py
====================
Prometheus metrics registry and helper utilities.

This module centralises every runtime metric exposed by the relay and hosts
an in-process HTTP exporter that Prometheus can scrape.  Other sub-systems
depend only on the light-weight helper functions defined here; they do
**not** import anything directly from ``prometheus_client``.

The exporter is started idempotently via :func:`start_exporter`.  If the
configured port is ``0`` or the exporter has already been started, the call
is a no-op.
"""

from __future__ import annotations

import asyncio
import logging
from errno import EADDRINUSE
from typing import Any

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    PlatformCollector,
    ProcessCollector,
    start_http_server,
)

__all__ = [
    "REGISTRY",
    "record_broadcast",
    "record_delivery_failure",
    "record_command",
    "record_outbound",
    "set_observer_count",
    "set_session_state",
    "update_queue_gauge",
    "remove_queue_gauge",
    "start_exporter",
]

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------+
#  Global registry                                                            +
# ---------------------------------------------------------------------------+

REGISTRY: CollectorRegistry = CollectorRegistry(auto_describe=True)

ProcessCollector(registry=REGISTRY)
PlatformCollector(registry=REGISTRY)

# --- Fan-out -----------------------------------------------------------------
BROADCAST_TOTAL = Counter(
    "relay_broadcast_events_total",
    "Events broadcast to observers, by event name",
    ["event"],
    registry=REGISTRY,
)
DELIVERY_FAILURE_TOTAL = Counter(
    "relay_observer_delivery_failures_total",
    "Event deliveries that failed for a single observer",
    registry=REGISTRY,
)
OBSERVERS = Gauge(
    "relay_observers_connected",
    "Currently registered dashboard observers",
    registry=REGISTRY,
)

# --- Session -----------------------------------------------------------------
SESSION_STATE = Gauge(
    "relay_session_state",
    "1 for the session's current lifecycle state, 0 for the others",
    ["state"],
    registry=REGISTRY,
)

# --- Traffic -----------------------------------------------------------------
COMMAND_TOTAL = Counter(
    "relay_commands_executed_total",
    "Inbound commands dispatched, by resolved command name",
    ["command"],
    registry=REGISTRY,
)
OUTBOUND_TOTAL = Counter(
    "relay_messages_sent_total",
    "Outbound send attempts, by outcome",
    ["outcome"],
    registry=REGISTRY,
)

QUEUE_SIZE = Gauge(
    "relay_queue_fill",
    "Current fill level of named asyncio.Queue",
    ["queue"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------+
#  Public helpers                                                            +
# ---------------------------------------------------------------------------+


def record_broadcast(event_name: str) -> None:
    BROADCAST_TOTAL.labels(event_name).inc()


def record_delivery_failure() -> None:
    DELIVERY_FAILURE_TOTAL.inc()


def record_command(command: str) -> None:
    COMMAND_TOTAL.labels(command).inc()


def record_outbound(outcome: str) -> None:
    """*outcome* is one of ``sent``, ``rejected`` or ``failed``."""
    OUTBOUND_TOTAL.labels(outcome).inc()


def set_observer_count(count: int) -> None:
    OBSERVERS.set(count)


def set_session_state(current: str, all_states: list[str]) -> None:
    for name in all_states:
        SESSION_STATE.labels(name).set(1 if name == current else 0)


def update_queue_gauge(name: str, q: asyncio.Queue[Any]) -> None:
    """Export instantaneous fill level of an ``asyncio.Queue``."""
    QUEUE_SIZE.labels(name).set(q.qsize())


def remove_queue_gauge(name: str) -> None:
    try:
        QUEUE_SIZE.remove(name)
    except KeyError:
        pass


# ---------------------------------------------------------------------------+
#  Exporter bootstrap                                                        +
# ---------------------------------------------------------------------------+

_started: bool = False


def start_exporter(port: int) -> None:
    """Start the Prometheus HTTP exporter.

    Behaviour:
    * No-op when *port* == 0 (disabled).
    * Idempotent: calls after the first successful start return immediately.
    * If the preferred *port* is already taken, retries once on *port* + 1.
    """
    global _started
    if port == 0 or _started:
        return

    try:
        start_http_server(port, registry=REGISTRY)
        actual = port
    except OSError as exc:  # pragma: no cover - depends on environment
        if exc.errno == EADDRINUSE:
            alt = port + 1
            _log.warning("Metrics port %d in use, falling back to %d", port, alt)
            start_http_server(alt, registry=REGISTRY)
            actual = alt
        else:
            raise

    _started = True
    _log.info("Prometheus exporter listening on :%s/metrics", actual)
