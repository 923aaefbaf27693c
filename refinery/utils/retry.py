"""Retry utilities with exponential backoff for external API calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, initial_delay: float = 1.0, backoff_factor: float = 2.0) -> float:
    """
    Delay before the attempt that follows ``attempt`` (1-based).

    With the defaults this is ``2 ** (attempt - 1)`` seconds: 1s, 2s, 4s, ...
    """
    return initial_delay * backoff_factor ** (attempt - 1)


async def retry_with_exponential_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retry_on_exceptions: tuple[type[Exception], ...] = (Exception,),
    **kwargs: Any,
) -> T:
    """
    Retry an async function with exponential backoff.

    Attempts are counted explicitly: attempt ``n`` that fails is followed by a
    sleep of ``initial_delay * backoff_factor ** (n - 1)`` seconds, unless it was
    the last of ``max_attempts``.

    Args:
        func: Async function to retry
        *args: Positional arguments for the function
        max_attempts: Total number of attempts, including the first
        initial_delay: Delay in seconds after the first failed attempt
        backoff_factor: Multiplier for delay after each failed attempt (default: 2.0)
        retry_on_exceptions: Tuple of exception types to retry on
        **kwargs: Keyword arguments for the function

    Returns:
        Result from successful function execution

    Raises:
        The last exception if all attempts fail
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    name = getattr(func, "__name__", repr(func))
    attempt = 1

    while True:
        try:
            return await func(*args, **kwargs)
        except retry_on_exceptions as e:
            if attempt >= max_attempts:
                logger.error(
                    "retry_exhausted",
                    function=name,
                    attempts=attempt,
                    error=str(e),
                )
                raise

            delay = backoff_delay(attempt, initial_delay, backoff_factor)
            logger.warning(
                "retry_attempt",
                function=name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)
            attempt += 1
