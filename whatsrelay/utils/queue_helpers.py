"""Asyncio Queue helper wrappers that automatically update Prometheus gauges.

These tiny helpers centralise the bookkeeping around *asyncio.Queue* objects so
callers no longer have to remember to call ``update_queue_gauge`` after every
queue operation.
"""

from __future__ import annotations

import asyncio
from typing import Any, TypeVar

from whatsrelay.core.telemetry import update_queue_gauge

T = TypeVar("T")

__all__ = [
    "put_nowait",
    "get",
    "task_done",
    "new_queue",
]


def put_nowait(q: asyncio.Queue[T], item: T, name: str) -> None:
    """Put *item* into *q* without blocking and refresh its gauge.

    Raises :class:`asyncio.QueueFull` like the underlying call.
    """
    q.put_nowait(item)
    update_queue_gauge(name, q)


async def get(q: asyncio.Queue[T], name: str) -> T:
    """`await q.get()` and refresh its gauge before returning the item."""
    item: T = await q.get()
    update_queue_gauge(name, q)
    return item


def task_done(q: asyncio.Queue[Any], name: str) -> None:  # noqa: ANN401
    """Mark one task processed for *q* and refresh its gauge."""
    q.task_done()
    update_queue_gauge(name, q)


def new_queue(name: str, maxsize: int = 0) -> asyncio.Queue[Any]:
    """Return a queue of *maxsize* with its gauge initialised to 0."""
    q: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
    update_queue_gauge(name, q)
    return q
