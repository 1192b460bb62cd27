"""
Circuit breaker guarding calls to a remote data provider.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from uniconv.exceptions import ApiError

log = logging.getLogger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking requests
    HALF_OPEN = "half_open"  # Testing if provider recovered


class CircuitBreakerError(ApiError):
    """Raised when the circuit for a provider is open."""

    retryable = False


class CircuitBreaker:
    """
    Stops hammering a provider that keeps failing.

    States:
    - CLOSED: requests pass through
    - OPEN: too many consecutive failures, requests are rejected immediately
    - HALF_OPEN: recovery timeout elapsed, a few trial requests are allowed
    """

    def __init__(
        self,
        name: str = "provider",
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        success_threshold: int = 2,
    ):
        """
        Args:
            name: Provider name used in log messages and errors.
            failure_threshold: Consecutive failures before the circuit opens.
            recovery_timeout: Seconds to wait before trying the provider again.
            success_threshold: Consecutive successes needed to close the circuit.
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    def _check_state(self) -> None:
        """Moves an OPEN circuit to HALF_OPEN once the recovery timeout passed."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return

        elapsed = time.monotonic() - self._last_failure_time
        if elapsed >= self.recovery_timeout:
            log.info(
                f"[yellow]Circuit for {self.name} is HALF_OPEN "
                f"(testing recovery after {elapsed:.0f}s)[/yellow]"
            )
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0

    async def _on_success(self) -> None:
        async with self._lock:
            self._failure_count = 0

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    log.info(f"[green]✓ Circuit for {self.name} closed again.[/green]")
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                log.warning(
                    f"[yellow]Circuit for {self.name}: recovery test failed, "
                    "reopening.[/yellow]"
                )
                self._state = CircuitState.OPEN
                self._failure_count = 0
                self._success_count = 0
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                log.error(
                    f"[red]✗ Circuit for {self.name} OPENED after "
                    f"{self._failure_count} consecutive failures. "
                    f"Requests blocked for {self.recovery_timeout}s.[/red]"
                )
                self._state = CircuitState.OPEN

    async def __aenter__(self):
        async with self._lock:
            self._check_state()
            if self._state == CircuitState.OPEN:
                raise CircuitBreakerError(
                    f"{self.name} is temporarily unavailable. Will retry after "
                    f"{self.recovery_timeout:.0f} seconds.",
                    {"provider": self.name},
                )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            await self._on_failure()
        else:
            await self._on_success()
