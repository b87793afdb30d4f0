import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from whatsrelay.utils.async_helpers import with_retries


@pytest.mark.asyncio
async def test_returns_first_success() -> None:
    factory = AsyncMock(return_value="ok")
    assert await with_retries(factory, 3, 0.0) == "ok"
    assert factory.await_count == 1


@pytest.mark.asyncio
async def test_retries_then_succeeds_with_backoff() -> None:
    factory = AsyncMock(side_effect=[ConnectionError("1"), ConnectionError("2"), "ok"])
    with patch("whatsrelay.utils.async_helpers.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await with_retries(factory, 5, 1.0, backoff=3.0, max_delay=2.0)

    assert result == "ok"
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_reraises_after_max_tries() -> None:
    factory = AsyncMock(side_effect=ConnectionError("down"))
    with patch("whatsrelay.utils.async_helpers.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(ConnectionError, match="down"):
            await with_retries(factory, 3, 0.1)
    assert factory.await_count == 3


@pytest.mark.asyncio
async def test_cancellation_is_not_retried() -> None:
    factory = AsyncMock(side_effect=asyncio.CancelledError())
    with pytest.raises(asyncio.CancelledError):
        await with_retries(factory, None, 0.0)
    assert factory.await_count == 1
