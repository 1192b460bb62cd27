"""Shared pytest fixtures for uniconv tests."""

import time
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from uniconv.exceptions import ConverterError, NetworkError
from uniconv.models.entities import ExchangeRates, TimeZoneData
from uniconv.storage.cache import PersistentStore
from uniconv.storage.cache_manager import STORAGE_KEYS, CacheManager
from uniconv.storage.preferences import PreferencesStore
from uniconv.utils.connectivity import ConnectivityMonitor
from uniconv.utils.retry import RetryPolicy

# -----------------------------------------------------------------------------
# Provider stubs
# -----------------------------------------------------------------------------


class StubRatesClient:
    """Stands in for RatesAPIClient; returns canned tables or raises."""

    def __init__(self, rates: dict[str, float] | None = None, error: Exception | None = None):
        self.rates = rates if rates is not None else {"EUR": 0.85, "GBP": 0.75, "JPY": 150.0}
        self.error = error
        self.calls: list[str] = []

    async def fetch_latest(self, base: str) -> ExchangeRates:
        self.calls.append(base)
        if self.error is not None:
            raise self.error
        return ExchangeRates(
            base=base, rates=dict(self.rates), timestamp=time.time(), source="stub"
        )

    async def close(self) -> None:
        pass


class StubTimeClient:
    """Stands in for TimeAPIClient."""

    def __init__(self, error: ConverterError | None = None):
        self.error = error
        self.calls: list[str] = []

    async def fetch_timezone(self, zone_id: str) -> TimeZoneData:
        self.calls.append(zone_id)
        if self.error is not None:
            raise self.error
        return TimeZoneData(
            datetime="2024-07-15T12:00:00+00:00",
            timezone=zone_id,
            utc_offset="+00:00",
            dst=False,
            dst_offset=0,
        )

    async def close(self) -> None:
        pass


# -----------------------------------------------------------------------------
# Storage fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest_asyncio.fixture
async def store(store_dir: Path) -> AsyncGenerator[PersistentStore, None]:
    """Isolated persistent store with the application's preserved keys."""
    persistent = PersistentStore(store_dir, preserved_keys=STORAGE_KEYS.PRESERVED)
    yield persistent
    await persistent.close()


@pytest.fixture
def cache_manager(store: PersistentStore) -> CacheManager:
    return CacheManager(store)


@pytest.fixture
def preferences(cache_manager: CacheManager) -> PreferencesStore:
    return PreferencesStore(cache_manager)


# -----------------------------------------------------------------------------
# Service fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def no_delay_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0)


@pytest.fixture
def online() -> ConnectivityMonitor:
    return ConnectivityMonitor(online=True)


@pytest.fixture
def offline() -> ConnectivityMonitor:
    monitor = ConnectivityMonitor()
    monitor.force_offline()
    return monitor


@pytest.fixture
def rates_client() -> StubRatesClient:
    return StubRatesClient()


@pytest.fixture
def failing_rates_client() -> StubRatesClient:
    return StubRatesClient(error=NetworkError("connection refused"))


@pytest.fixture
def time_client() -> StubTimeClient:
    return StubTimeClient()
