"""
Shared async HTTP plumbing for the remote data providers, with circuit breaker
protection and status classification.
"""

import asyncio
import logging
import time
from typing import Any

import aiohttp

from uniconv.exceptions import ApiError, NetworkError, RateLimitError
from uniconv.utils.circuit_breaker import CircuitBreaker, CircuitBreakerError

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)


class BaseAPIClient:
    """
    Async JSON client for one read-only provider.

    Features:
    - Lazily created, reusable aiohttp session
    - Circuit breaker per provider
    - Adaptive rate limiting
    - Every failure mapped onto the converter error taxonomy
    """

    name = "provider"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        user_agent: str = "uniconv/1.0",
    ):
        """
        Initializes the API client.

        Args:
            base_url: Root URL of the provider, without a trailing slash.
            timeout: Total seconds allowed for one request.
            user_agent: Value of the User-Agent header.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

        self._session: aiohttp.ClientSession | None = None
        self._rate_limiter = AdaptiveRateLimiter(name=self.name)
        self._circuit_breaker = CircuitBreaker(
            name=self.name,
            failure_threshold=5,
            recovery_timeout=60,
            success_threshold=2,
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=8,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_json(self, path: str, **params: Any) -> Any:
        """
        Performs a GET against `path` and returns the decoded JSON body.

        Raises:
            RateLimitError: The provider answered HTTP 429.
            ApiError: Any other non-2xx status, a non-JSON body, or an open
                circuit (`CircuitBreakerError`).
            NetworkError: The request could not be completed or timed out.
        """
        await self._initialize_session()
        url = f"{self.base_url}/{path.lstrip('/')}"
        context = {"provider": self.name, "url": url}

        try:
            async with self._circuit_breaker:
                await self._rate_limiter.acquire()
                start_time = time.monotonic()

                async with self._session.get(url, params=params or None) as r:
                    duration_ms = (time.monotonic() - start_time) * 1000
                    log.debug(f"GET {url} -> {r.status} in {duration_ms:.0f}ms")

                    if r.status == 429:
                        await self._rate_limiter.on_429()
                        raise RateLimitError(
                            f"{self.name} rate limit exceeded. Please try again later.",
                            {**context, "status": r.status},
                        )
                    if not 200 <= r.status < 300:
                        raise ApiError(
                            f"{self.name} request failed with HTTP {r.status}.",
                            {**context, "status": r.status},
                        )
                    try:
                        return await r.json(content_type=None)
                    except ValueError as e:
                        raise ApiError(
                            f"{self.name} returned a response that is not JSON.",
                            context,
                        ) from e

        except CircuitBreakerError as e:
            log.error(f"[red]Circuit breaker is open for {self.name}: {e}[/red]")
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"Request to {url} failed: {e!r}")
            raise NetworkError(
                f"Could not reach {self.name}: {e or type(e).__name__}", context
            ) from e
