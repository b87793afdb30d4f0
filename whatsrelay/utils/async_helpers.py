"""Retry helper for flaky async operations (transport restarts and the like)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

__all__ = ["with_retries"]

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def with_retries(
    coro_factory: Callable[[], Awaitable[T]],
    max_tries: int | None,
    initial_delay: float,
    *,
    backoff: float = 2.0,
    max_delay: float | None = None,
) -> T:
    """Run *coro_factory* with exponential back-off until it succeeds or retries are exhausted.

    Parameters
    ----------
    coro_factory:
        Zero-arg callable returning an awaitable.  A *new* awaitable **must**
        be created on each call, so pass a *factory*, not the coroutine itself.
    max_tries:
        Total attempts (initial call counts as 1).  ``None`` or ``0`` retries
        forever.
    initial_delay:
        Delay **before** the first retry attempt (in seconds).
    backoff:
        Multiplier applied to the delay after each failed attempt.
    max_delay:
        Upper bound for the delay between attempts.

    Raises
    ------
    Exception
        Re-raises the *last* encountered exception if all attempts fail.
    """
    attempt = 0
    delay = initial_delay
    while True:
        try:
            return await coro_factory()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            attempt += 1
            if max_tries and attempt >= max_tries:
                raise
            logger.warning("Attempt %d failed (%s); retrying in %.1fs", attempt, exc, delay)
            await asyncio.sleep(delay)
            delay *= backoff
            if max_delay is not None:
                delay = min(delay, max_delay)
