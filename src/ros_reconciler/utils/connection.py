"""Transport retry policy with exponential backoff.

Retries live here and only here: the reconciliation engine never retries on
its own, it surfaces DeviceError and lets the caller decide.
"""
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Network failures worth another attempt for idempotent requests
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    httpx.TransportError,
)

# Failures where the request never reached the device, safe to retry for writes
CONNECT_EXCEPTIONS = (
    ConnectionRefusedError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.PoolTimeout,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Decorator factory for async retry logic with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (1 disables retrying)
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @retry(
            stop=stop_after_attempt(max(1, max_attempts)),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def request_retry(attempts: int, delay: float, idempotent: bool) -> Callable:
    """Retry policy for one HTTP request.

    Idempotent requests retry on any transport failure; writes only retry
    when the connection could not be established.
    """
    return with_retry(
        max_attempts=attempts,
        min_wait=delay,
        max_wait=max(delay, delay * 8),
        exceptions=RETRYABLE_EXCEPTIONS if idempotent else CONNECT_EXCEPTIONS,
    )
