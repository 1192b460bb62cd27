"""Unit tests for the currency service and its fallback chain."""

import asyncio
import time

import pytest

from uniconv.core.currency import CurrencyService, rebase_rates
from uniconv.exceptions import (
    ApiError,
    ConversionError,
    InvalidInputError,
    NetworkError,
    RateLimitError,
)
from uniconv.models.entities import ExchangeRates
from uniconv.storage.cache_manager import STORAGE_KEYS, CacheManager
from uniconv.utils.connectivity import ConnectivityMonitor
from uniconv.utils.retry import RetryPolicy


def _snapshot(age: float = 0, base: str = "USD", **rates: float) -> ExchangeRates:
    return ExchangeRates(
        base=base,
        rates=rates or {"EUR": 0.85, "GBP": 0.75},
        timestamp=time.time() - age,
        source="cache",
    )


async def _store_snapshot(cache_manager: CacheManager, snapshot: ExchangeRates) -> None:
    """Writes a snapshot the way an earlier session would have left it."""
    payload = snapshot.model_dump()
    await cache_manager.store.set(STORAGE_KEYS.EXCHANGE_RATES, payload, 3600)
    await cache_manager.store.set(STORAGE_KEYS.LAST_KNOWN_RATES, payload, 7 * 86400)


@pytest.fixture
def service(
    rates_client, cache_manager: CacheManager, online: ConnectivityMonitor,
    no_delay_policy: RetryPolicy,
) -> CurrencyService:
    return CurrencyService(rates_client, cache_manager, online, no_delay_policy)


# ============ Re-basing ============


class TestRebaseRates:
    """Tests for algebraic re-basing of a rate table."""

    def test_same_base_is_unchanged(self) -> None:
        snapshot = _snapshot()
        assert rebase_rates(snapshot, "USD") is snapshot

    def test_rebase(self) -> None:
        rebased = rebase_rates(_snapshot(EUR=0.5, GBP=0.25), "EUR")
        assert rebased.base == "EUR"
        assert rebased.rates["USD"] == pytest.approx(2.0)
        assert rebased.rates["GBP"] == pytest.approx(0.5)
        assert "EUR" not in rebased.rates

    def test_rebase_keeps_timestamp(self) -> None:
        snapshot = _snapshot(age=120)
        assert rebase_rates(snapshot, "EUR").timestamp == snapshot.timestamp

    def test_missing_pivot(self) -> None:
        with pytest.raises(ConversionError):
            rebase_rates(_snapshot(), "JPY")


# ============ Conversion ============


class TestConvertCurrency:
    """Tests for convert_currency()."""

    @pytest.mark.asyncio
    async def test_cached_rate_conversion(
        self, service: CurrencyService, cache_manager: CacheManager, rates_client
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(EUR=0.85))
        await service.initialize()
        result = await service.convert_currency(100, "USD", "EUR")
        assert result.amount == pytest.approx(85)
        assert result.rate == 0.85
        assert result.formatted_amount == "€85.00"
        assert not result.is_stale
        assert rates_client.calls == []

    @pytest.mark.asyncio
    async def test_same_currency_is_identity(
        self, service: CurrencyService, rates_client
    ) -> None:
        result = await service.convert_currency(42.5, "GBP", "gbp")
        assert result.amount == 42.5
        assert result.rate == 1
        assert rates_client.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount", [-1, float("nan"), float("inf"), 10**400, True, "5"]
    )
    async def test_invalid_amount(self, service: CurrencyService, amount: object) -> None:
        with pytest.raises(InvalidInputError):
            await service.convert_currency(amount, "USD", "EUR")  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_unsupported_currency(self, service: CurrencyService) -> None:
        with pytest.raises(InvalidInputError):
            await service.convert_currency(1, "USD", "XYZ")

    @pytest.mark.asyncio
    async def test_missing_target_rate(self, service: CurrencyService) -> None:
        with pytest.raises(ConversionError):
            await service.convert_currency(1, "USD", "KRW")

    @pytest.mark.asyncio
    async def test_zero_amount(self, service: CurrencyService) -> None:
        result = await service.convert_currency(0, "USD", "EUR")
        assert result.amount == 0


# ============ Rate fetching ============


class TestGetExchangeRates:
    """Tests for the in-memory / remote / cache fallback chain."""

    @pytest.mark.asyncio
    async def test_fetches_when_nothing_cached(
        self, service: CurrencyService, cache_manager: CacheManager, rates_client
    ) -> None:
        rates = await service.get_exchange_rates("USD")
        assert rates.rates["EUR"] == 0.85
        assert rates_client.calls == ["USD"]
        assert await cache_manager.get_cached_exchange_rates() is not None
        assert service.get_last_update_time() == rates.timestamp

    @pytest.mark.asyncio
    async def test_fresh_snapshot_is_rebased_without_fetching(
        self, service: CurrencyService, rates_client
    ) -> None:
        await service.get_exchange_rates("USD")
        eur = await service.get_exchange_rates("EUR")
        assert eur.base == "EUR"
        assert eur.rates["USD"] == pytest.approx(1 / 0.85)
        assert rates_client.calls == ["USD"]

    @pytest.mark.asyncio
    async def test_old_snapshot_triggers_one_fetch_sequence(
        self,
        cache_manager: CacheManager,
        online: ConnectivityMonitor,
        failing_rates_client,
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=2 * 3600))
        policy = RetryPolicy(max_attempts=3, base_delay=0)
        service = CurrencyService(failing_rates_client, cache_manager, online, policy)
        await service.initialize()

        rates = await service.get_exchange_rates("USD")

        assert failing_rates_client.calls == ["USD"] * 3
        assert rates.rates["EUR"] == 0.85

    @pytest.mark.asyncio
    async def test_non_retryable_error_is_not_retried(
        self, cache_manager: CacheManager, online: ConnectivityMonitor, rates_client,
        no_delay_policy: RetryPolicy,
    ) -> None:
        rates_client.error = InvalidInputError("bad request")
        service = CurrencyService(rates_client, cache_manager, online, no_delay_policy)
        with pytest.raises(InvalidInputError):
            await service.get_exchange_rates("USD")
        assert rates_client.calls == ["USD"]

    @pytest.mark.asyncio
    async def test_online_failure_rejects_snapshot_older_than_a_day(
        self, cache_manager: CacheManager, online: ConnectivityMonitor, rates_client,
        no_delay_policy: RetryPolicy,
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=30 * 3600))
        rates_client.error = RateLimitError("slow down")
        service = CurrencyService(rates_client, cache_manager, online, no_delay_policy)
        with pytest.raises(RateLimitError):
            await service.get_exchange_rates("USD")

    @pytest.mark.asyncio
    async def test_online_failure_with_snapshot_lacking_base_keeps_provider_error(
        self, cache_manager: CacheManager, online: ConnectivityMonitor, rates_client,
        no_delay_policy: RetryPolicy,
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=2 * 3600, EUR=0.85))
        rates_client.error = RateLimitError("slow down")
        service = CurrencyService(rates_client, cache_manager, online, no_delay_policy)
        with pytest.raises(RateLimitError):
            await service.get_exchange_rates("GBP")

    @pytest.mark.asyncio
    async def test_invalid_provider_data_is_an_api_error(
        self, cache_manager: CacheManager, online: ConnectivityMonitor, rates_client,
        no_delay_policy: RetryPolicy,
    ) -> None:
        rates_client.rates = {}
        service = CurrencyService(rates_client, cache_manager, online, no_delay_policy)
        with pytest.raises(ApiError):
            await service.get_exchange_rates("USD")
        assert await cache_manager.get_cached_exchange_rates() is None

    @pytest.mark.asyncio
    async def test_refresh_ignores_fresh_snapshot(
        self, service: CurrencyService, rates_client
    ) -> None:
        await service.get_exchange_rates("USD")
        await service.refresh_rates("USD")
        assert rates_client.calls == ["USD", "USD"]

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_fetch(
        self, service: CurrencyService, rates_client
    ) -> None:
        original = rates_client.fetch_latest

        async def slow_fetch(base: str) -> ExchangeRates:
            await asyncio.sleep(0.01)
            return await original(base)

        rates_client.fetch_latest = slow_fetch
        results = await asyncio.gather(
            *(service.get_exchange_rates("USD") for _ in range(5))
        )
        assert rates_client.calls == ["USD"]
        assert len({r.timestamp for r in results}) == 1

    @pytest.mark.asyncio
    async def test_unsupported_base(self, service: CurrencyService) -> None:
        with pytest.raises(InvalidInputError):
            await service.get_exchange_rates("ABC")


# ============ Offline ============


class TestOffline:
    """Behaviour while offline."""

    @pytest.mark.asyncio
    async def test_offline_without_cache_is_network_error(
        self, cache_manager: CacheManager, offline: ConnectivityMonitor, rates_client
    ) -> None:
        service = CurrencyService(rates_client, cache_manager, offline)
        with pytest.raises(NetworkError) as exc_info:
            await service.convert_currency(10, "USD", "EUR")
        assert exc_info.value.error_type.value == "NETWORK_ERROR"
        assert rates_client.calls == []

    @pytest.mark.asyncio
    async def test_offline_uses_cached_snapshot(
        self, cache_manager: CacheManager, offline: ConnectivityMonitor, rates_client
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=2 * 3600))
        service = CurrencyService(rates_client, cache_manager, offline)
        result = await service.convert_currency(10, "USD", "GBP")
        assert result.amount == pytest.approx(7.5)
        assert not result.is_stale
        assert rates_client.calls == []

    @pytest.mark.asyncio
    async def test_day_old_snapshot_is_flagged_stale_offline(
        self, cache_manager: CacheManager, offline: ConnectivityMonitor, rates_client
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=30 * 3600))
        service = CurrencyService(rates_client, cache_manager, offline)
        await service.initialize()
        for target in ("EUR", "GBP"):
            result = await service.convert_currency(1, "USD", target)
            assert result.is_stale

    @pytest.mark.asyncio
    async def test_offline_rebases_cached_snapshot(
        self, cache_manager: CacheManager, offline: ConnectivityMonitor, rates_client
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=2 * 3600, EUR=0.5, GBP=0.25))
        service = CurrencyService(rates_client, cache_manager, offline)
        result = await service.convert_currency(10, "EUR", "USD")
        assert result.amount == pytest.approx(20)

    @pytest.mark.asyncio
    async def test_offline_snapshot_lacking_base_is_network_error(
        self, cache_manager: CacheManager, offline: ConnectivityMonitor, rates_client
    ) -> None:
        await _store_snapshot(cache_manager, _snapshot(age=2 * 3600, EUR=0.85))
        service = CurrencyService(rates_client, cache_manager, offline)
        with pytest.raises(NetworkError):
            await service.get_exchange_rates("GBP")


# ============ Metadata ============


class TestCurrencyMetadata:
    """Tests for currency lookup and formatting."""

    def test_supported_currencies(self, service: CurrencyService) -> None:
        codes = [c.code for c in service.get_supported_currencies()]
        assert len(codes) == 20
        assert codes[:3] == ["USD", "EUR", "GBP"]

    def test_currency_info_is_case_insensitive(self, service: CurrencyService) -> None:
        assert service.get_currency_info("jpy").symbol == "¥"

    @pytest.mark.parametrize(
        ("amount", "code", "expected"),
        [
            (1234.5, "USD", "$1,234.50"),
            (0.123456789, "EUR", "€0.123457"),
            (10, "CHF", "CHF 10.00"),
            (3, "SEK", "kr 3.00"),
        ],
    )
    def test_format_currency(
        self, service: CurrencyService, amount: float, code: str, expected: str
    ) -> None:
        assert service.format_currency(amount, code) == expected

    def test_staleness_threshold(self) -> None:
        assert not CurrencyService.is_rate_stale(time.time() - 23 * 3600)
        assert CurrencyService.is_rate_stale(time.time() - 25 * 3600)
