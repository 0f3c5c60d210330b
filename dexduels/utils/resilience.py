"""Retry and timeout helpers for chain and database calls."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Seconds to wait after failed ``attempt`` (0-based), capped at ``max_delay``."""
    delay = base_delay * exponential_base**attempt
    if jitter:
        delay *= random.uniform(0.75, 1.25)
    return min(delay, max_delay)


def with_exponential_backoff(
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async call on ``retry_on`` errors, at most ``max_retries`` attempts.

    Errors outside ``retry_on`` propagate on the first attempt; the last
    ``retry_on`` error propagates once attempts are exhausted.

    Example:
        >>> @with_exponential_backoff(max_retries=3, retry_on=(OSError,))
        ... async def connect():
        ...     return await asyncpg.create_pool(dsn)
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    attempt += 1
                    if attempt >= max_retries:
                        log.error("retry.exhausted", function=func.__name__, attempts=attempt, error=str(e))
                        raise
                    delay = backoff_delay(attempt - 1, base_delay, max_delay, exponential_base, jitter)
                    log.warning(
                        "retry.attempt",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=round(delay, 3),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


async def with_timeout(
    coro: Awaitable[T],
    timeout: float,
    error_message: str = "Operation timed out",
) -> T:
    """Await ``coro`` for at most ``timeout`` seconds.

    Raises:
        TimeoutError: With ``error_message`` when the deadline passes
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        log.warning("timeout", timeout=timeout, message=error_message)
        raise TimeoutError(error_message) from e
