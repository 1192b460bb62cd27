"""
Provides an adaptive rate limiter so public data providers do not throttle us.
"""

import asyncio
import logging
import time

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Spaces out calls to one provider and backs off when it answers HTTP 429.
    """

    RECOVERY_QUIET_PERIOD = 300  # seconds without a 429 before speeding up again

    def __init__(
        self,
        name: str = "provider",
        initial_calls_per_second: float = 4.0,
        max_calls_per_second: float = 8.0,
    ):
        """
        Args:
            name: Provider name used in log messages.
            initial_calls_per_second: The starting rate of calls per second.
            max_calls_per_second: The maximum rate to recover to.
        """
        self.name = name
        self._rate = initial_calls_per_second
        self._max_rate = max_calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._last_429_time = 0.0
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def on_429(self) -> None:
        """Halves the current request rate, down to one call per second."""
        async with self._lock:
            self._rate = max(1.0, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            self._last_429_time = time.monotonic()
            log.warning(
                f"[yellow]{self.name} is rate limiting us. "
                f"New rate: {self._rate:.1f} calls/s[/yellow]"
            )

    async def acquire(self) -> None:
        """Waits if necessary to respect the current rate before a call proceeds."""
        async with self._lock:
            if time.monotonic() - self._last_429_time > self.RECOVERY_QUIET_PERIOD:
                self._rate = min(self._max_rate, self._rate * 1.005)
                self._min_interval = 1.0 / self._rate

            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self._last_call_time
            if time_since_last < self._min_interval:
                await asyncio.sleep(self._min_interval - time_since_last)

            self._last_call_time = loop.time()
