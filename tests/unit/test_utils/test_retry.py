"""Unit tests for the async retry decorator."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmdbwalk.utils.retry import async_retry


def _status_error(status: int) -> Exception:
    exc = Exception(f"HTTP {status}")
    exc.response = MagicMock(status_code=status)  # type: ignore[attr-defined]
    return exc


@pytest.mark.asyncio
async def test_returns_first_success():
    func = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])
    func.__name__ = "fetch"

    wrapped = async_retry(max_attempts=3, base_delay=0)(func)

    assert await wrapped() == "ok"
    assert func.await_count == 2


@pytest.mark.asyncio
async def test_reraises_after_max_attempts():
    func = AsyncMock(side_effect=ConnectionError("reset"))
    func.__name__ = "fetch"

    with pytest.raises(ConnectionError):
        await async_retry(max_attempts=2, base_delay=0)(func)()
    assert func.await_count == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
async def test_client_errors_are_not_retried(status):
    func = AsyncMock(side_effect=_status_error(status))
    func.__name__ = "fetch"

    with pytest.raises(Exception, match=f"HTTP {status}"):
        await async_retry(max_attempts=3, base_delay=0)(func)()
    assert func.await_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 503])
async def test_throttling_and_server_errors_are_retried(status):
    func = AsyncMock(side_effect=[_status_error(status), "ok"])
    func.__name__ = "fetch"

    assert await async_retry(max_attempts=3, base_delay=0)(func)() == "ok"


@pytest.mark.asyncio
async def test_unlisted_exceptions_propagate_immediately():
    func = AsyncMock(side_effect=KeyError("nope"))
    func.__name__ = "fetch"

    with pytest.raises(KeyError):
        await async_retry(max_attempts=3, base_delay=0, retryable_exceptions=(ConnectionError,))(func)()
    assert func.await_count == 1
