"""
Integration tests for the provider clients against a local aiohttp server.

Each test starts a throwaway application that imitates the provider's
endpoint, so requests go through a real session, connector and JSON decoding.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from uniconv.api.rates import RatesAPIClient
from uniconv.api.worldtime import TimeAPIClient
from uniconv.exceptions import ApiError, NetworkError, RateLimitError
from uniconv.utils.circuit_breaker import CircuitBreakerError, CircuitState

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]
ServerFactory = Callable[[str, Handler], Awaitable[str]]


@pytest_asyncio.fixture
async def serve() -> AsyncGenerator[ServerFactory, None]:
    """Starts a local server for a single route and returns its base URL."""
    servers: list[TestServer] = []

    async def start(route: str, handler: Handler) -> str:
        app = web.Application()
        app.router.add_get(route, handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url("")).rstrip("/")

    yield start

    for server in servers:
        await server.close()


def _status(status: int) -> Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response({"error": "nope"}, status=status)

    return handler


def _payload(body: object) -> Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response(body)

    return handler


# ============ Exchange rate provider ============


class TestRatesAPIClient:
    """Tests for RatesAPIClient.fetch_latest()."""

    @pytest.mark.asyncio
    async def test_fetch_latest(self, serve: ServerFactory) -> None:
        seen: dict[str, str] = {}

        async def latest(request: web.Request) -> web.Response:
            seen["from"] = request.query.get("from", "")
            seen["agent"] = request.headers.get("User-Agent", "")
            return web.json_response(
                {"base": "EUR", "date": "2024-07-15", "rates": {"USD": 1.09, "GBP": 0.84}}
            )

        client = RatesAPIClient(await serve("/latest", latest), user_agent="tests/1.0")
        try:
            rates = await client.fetch_latest("EUR")
        finally:
            await client.close()

        assert seen == {"from": "EUR", "agent": "tests/1.0"}
        assert rates.base == "EUR"
        assert rates.rates == {"USD": 1.09, "GBP": 0.84}
        assert rates.source == "frankfurter"

    @pytest.mark.asyncio
    async def test_429_is_rate_limit_error(self, serve: ServerFactory) -> None:
        client = RatesAPIClient(await serve("/latest", _status(429)))
        try:
            with pytest.raises(RateLimitError) as exc_info:
                await client.fetch_latest("USD")
        finally:
            await client.close()

        assert exc_info.value.context["status"] == 429
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    async def test_other_statuses_are_api_errors(
        self, serve: ServerFactory, status: int
    ) -> None:
        client = RatesAPIClient(await serve("/latest", _status(status)))
        try:
            with pytest.raises(ApiError) as exc_info:
                await client.fetch_latest("USD")
        finally:
            await client.close()

        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.context["status"] == status

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"base": "USD"},
            {"base": "USD", "rates": ["EUR", 0.85]},
            {"base": "USD", "rates": {"EUR": -0.85}},
            {"base": "USD", "rates": {"EUR": "cheap"}},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_payloads(self, serve: ServerFactory, body: object) -> None:
        client = RatesAPIClient(await serve("/latest", _payload(body)))
        try:
            with pytest.raises(ApiError):
                await client.fetch_latest("USD")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self, serve: ServerFactory) -> None:
        async def html(request: web.Request) -> web.Response:
            return web.Response(text="<html>maintenance</html>", content_type="text/html")

        client = RatesAPIClient(await serve("/latest", html))
        try:
            with pytest.raises(ApiError, match="not JSON"):
                await client.fetch_latest("USD")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_host_is_network_error(self) -> None:
        client = RatesAPIClient("http://127.0.0.1:1", timeout=2)
        try:
            with pytest.raises(NetworkError):
                await client.fetch_latest("USD")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, serve: ServerFactory) -> None:
        async def slow(request: web.Request) -> web.Response:
            await asyncio.sleep(0.5)
            return web.json_response({"rates": {"EUR": 1.0}})

        client = RatesAPIClient(await serve("/latest", slow), timeout=0.1)
        try:
            with pytest.raises(NetworkError):
                await client.fetch_latest("USD")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_circuit_opens_after_repeated_failures(
        self, serve: ServerFactory
    ) -> None:
        client = RatesAPIClient(await serve("/latest", _status(500)))
        try:
            for _ in range(client.circuit_breaker.failure_threshold):
                with pytest.raises(ApiError):
                    await client.fetch_latest("USD")
            assert client.circuit_breaker.state is CircuitState.OPEN

            with pytest.raises(CircuitBreakerError):
                await client.fetch_latest("USD")
        finally:
            await client.close()


# ============ Time provider ============


class TestTimeAPIClient:
    """Tests for TimeAPIClient.fetch_timezone()."""

    @pytest.mark.asyncio
    async def test_fetch_timezone(self, serve: ServerFactory) -> None:
        async def zone(request: web.Request) -> web.Response:
            return web.json_response(
                {
                    "datetime": "2024-07-15T14:00:00.123+02:00",
                    "timezone": request.match_info["zone"],
                    "utc_offset": "+02:00",
                    "dst": True,
                    "dst_offset": 3600,
                }
            )

        client = TimeAPIClient(await serve("/timezone/{zone:.+}", zone))
        try:
            data = await client.fetch_timezone("Europe/Paris")
        finally:
            await client.close()

        assert data.timezone == "Europe/Paris"
        assert data.dst is True
        assert data.dst_offset == 3600

    @pytest.mark.asyncio
    async def test_missing_fields_default(self, serve: ServerFactory) -> None:
        body = {"datetime": "2024-01-15T12:00:00+00:00", "timezone": "UTC"}
        client = TimeAPIClient(await serve("/timezone/{zone:.+}", _payload(body)))
        try:
            data = await client.fetch_timezone("UTC")
        finally:
            await client.close()

        assert data.utc_offset == "+00:00"
        assert data.dst is False
        assert data.dst_offset == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"timezone": "UTC"},
            {"datetime": "2024-01-15T12:00:00+00:00"},
            {"datetime": "", "timezone": "UTC"},
            "UTC",
        ],
    )
    async def test_malformed_payloads(self, serve: ServerFactory, body: object) -> None:
        client = TimeAPIClient(await serve("/timezone/{zone:.+}", _payload(body)))
        try:
            with pytest.raises(ApiError):
                await client.fetch_timezone("UTC")
        finally:
            await client.close()
