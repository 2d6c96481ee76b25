import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from .exceptions import LLMTimeoutError

T = TypeVar('T')

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff around a single async operation

    Every exception is retried the same way; once the attempt budget is
    spent the last exception is re-raised as is.

    Args:
        max_attempts: Total number of invocations (first call included)
        delay: Delay before the first retry (seconds)
        backoff: Multiplier applied to the delay after each retry
        timeout: Optional per-attempt limit (seconds)
        sleep: Awaitable sleep function, swapped out in tests
    """
    max_attempts: int = 4
    delay: float = 3.0
    backoff: float = 2.0
    timeout: Optional[float] = None
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False, compare=False
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def call(self, operation: Callable[[], Awaitable[T]], *, label: str = "") -> T:
        current_delay = self.delay
        name = label or getattr(operation, "__name__", "operation")

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(operation)
            except Exception as e:
                if attempt >= self.max_attempts:
                    LOGGER.error("%s failed after %d attempts: %s", name, attempt, e)
                    raise
                LOGGER.warning(
                    "%s failed, retrying in %.1fs (%d attempts left): %s",
                    name, current_delay, self.max_attempts - attempt, e
                )
                await self.sleep(current_delay)
                current_delay *= self.backoff

        raise AssertionError("unreachable")  # pragma: no cover

    async def _attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), self.timeout)
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(
                message=f"No response within {self.timeout}s",
                error_type="timeout",
                original_error=e
            ) from e


def with_retry(
    max_attempts: int = 4,
    delay: float = 3.0,
    backoff: float = 2.0,
    timeout: Optional[float] = None
):
    """
    Retry decorator with exponential backoff for coroutine functions

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries (seconds)
        backoff: Multiplier for delay after each retry
        timeout: Optional per-attempt timeout (seconds)
    """
    policy = RetryPolicy(
        max_attempts=max_attempts, delay=delay, backoff=backoff, timeout=timeout
    )

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await policy.call(lambda: func(*args, **kwargs), label=func.__name__)

        return wrapper
    return decorator


def log_request(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Log API requests for debugging"""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> T:
        provider = args[0].__class__.__name__ if args else "Unknown"
        LOGGER.debug("[%s] Calling %s", provider, func.__name__)

        try:
            result = await func(*args, **kwargs)
            LOGGER.debug("[%s] %s succeeded", provider, func.__name__)
            return result
        except Exception as e:
            LOGGER.debug("[%s] %s failed: %s", provider, func.__name__, e)
            raise

    return wrapper
