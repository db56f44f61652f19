"""
Retry logic for feed calls.

Feeds are retried with a linear backoff: the wait before retry N is
``base_delay * N`` seconds (1s, 2s, ... by default). There is no jitter and
no coalescing of concurrent identical requests; each caller pays the full
retry budget.
"""
import functools
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


def linear_retrying(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    exceptions: tuple = (Exception,),
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> AsyncRetrying:
    """
    Build an AsyncRetrying controller with linear backoff.

    Args:
        max_attempts: Total attempts, including the first call
        base_delay: Wait after the first failure (seconds); grows by the same step
        exceptions: Exception types that trigger a retry
        sleep: Optional async sleep function (defaults to asyncio.sleep)
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    kwargs = {}
    if sleep is not None:
        kwargs['sleep'] = sleep

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        **kwargs,
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    exceptions: tuple = (Exception,),
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> T:
    """
    Await ``operation()`` until it succeeds or attempts run out.

    The last failure is re-raised unchanged.

    Usage:
        data = await with_retry(lambda: client.get(url), max_attempts=3)
    """
    async for attempt in linear_retrying(max_attempts, base_delay, exceptions, sleep):
        with attempt:
            return await operation()


def with_retry_async(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    exceptions: tuple = (Exception,),
):
    """
    Async decorator form of :func:`with_retry`.

    Usage:
        @with_retry_async(max_attempts=3, exceptions=(FeedConnectionError,))
        async def fetch():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                base_delay=base_delay,
                exceptions=exceptions,
            )

        return wrapper

    return decorator
