"""Async exponential backoff retry decorator for Table API calls."""

from __future__ import annotations

import asyncio
import functools
import random
from typing import Any, Callable, TypeVar

from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def _status_of(exc: Exception) -> int | None:
    return getattr(getattr(exc, "response", None), "status_code", None)


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Callable[[F], F]:
    """Decorator for async functions with exponential backoff + jitter.

    Exceptions carrying an HTTP response are only retried for 429 and 5xx;
    any other status is re-raised on the first attempt.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    status = _status_of(exc)
                    if status is not None and status not in RETRYABLE_STATUS_CODES:
                        raise

                    if attempt >= max_attempts:
                        logger.warning(
                            "retry_exhausted",
                            func=func.__name__,
                            attempts=attempt,
                            status=status,
                            error=str(exc),
                        )
                        raise

                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    total_delay = delay + random.uniform(0, delay * 0.5)
                    logger.warning(
                        "retry_attempt",
                        func=func.__name__,
                        attempt=attempt,
                        status=status,
                        delay=round(total_delay, 2),
                        error=str(exc),
                    )
                    await asyncio.sleep(total_delay)

            raise RuntimeError(f"async_retry({func.__name__}) needs max_attempts >= 1")

        return wrapper  # type: ignore[return-value]

    return decorator
