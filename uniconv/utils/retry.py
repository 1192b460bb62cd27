"""
Retry helper with exponential backoff for remote fetches.

Both remote providers share the same policy object and the same helper,
so the attempt counting lives in exactly one place.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from uniconv.exceptions import ConverterError

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between."""

    max_attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        delay = self.base_delay * (self.factor ** (attempt - 1))
        return max(0.0, min(delay, self.max_delay))


def is_retryable(error: BaseException) -> bool:
    """Network, API and rate-limit failures are worth another attempt."""
    if isinstance(error, ConverterError):
        return error.retryable
    return isinstance(error, (OSError, asyncio.TimeoutError))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool] = is_retryable,
    description: str = "operation",
) -> T:
    """
    Runs an async operation until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        policy: Attempt count and backoff configuration.
        should_retry: Decides whether a failure is transient.
        description: Used in log messages.

    Returns:
        The result of the first successful attempt.

    Raises:
        The last error once all attempts failed, or the first non-retryable one.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not should_retry(e) or attempt == attempts:
                raise
            delay = policy.delay_for(attempt)
            log.debug(
                f"{description} attempt {attempt}/{attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")
