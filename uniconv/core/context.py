"""
Composition root: builds every service from one configuration object.
"""

import logging
from pathlib import Path

from uniconv.api.rates import RatesAPIClient
from uniconv.api.worldtime import TimeAPIClient
from uniconv.models.config import ConverterConfig
from uniconv.storage.cache import PersistentStore
from uniconv.storage.cache_manager import STORAGE_KEYS, CacheManager
from uniconv.storage.preferences import PreferencesStore
from uniconv.utils.connectivity import ConnectivityMonitor
from uniconv.utils.retry import RetryPolicy

from .currency import CurrencyService
from .timezones import TimeZoneService
from .units import UnitConversionEngine

log = logging.getLogger(__name__)


class ConverterContext:
    """
    Owns the store, clients and services for one session.

    Use as an async context manager: entering loads cached state and starts
    the background sweep, leaving stops it and closes the HTTP sessions.
    """

    def __init__(
        self,
        config: ConverterConfig | None = None,
        rates_client: RatesAPIClient | None = None,
        time_client: TimeAPIClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.config = config or ConverterConfig()
        data_dir = (
            Path(self.config.data_dir).expanduser()
            if self.config.data_dir
            else Path.home() / ".uniconv"
        )

        self.store = PersistentStore(
            data_dir / "store",
            capacity_bytes=self.config.primary_capacity_kb * 1024,
            max_value_bytes=self.config.primary_max_value_kb * 1024,
            secondary_max_value_bytes=self.config.secondary_max_value_kb * 1024,
            cleanup_interval=self.config.cleanup_interval,
            cleanup_initial_delay=self.config.cleanup_initial_delay,
            preserved_keys=STORAGE_KEYS.PRESERVED,
        )
        self.cache_manager = CacheManager(self.store)
        self.preferences = PreferencesStore(self.cache_manager)

        self.connectivity = ConnectivityMonitor()
        if self.config.offline:
            self.connectivity.force_offline()

        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
        )
        self.rates_client = rates_client or RatesAPIClient(
            self.config.rates_api_url,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
        )
        self.time_client = time_client or TimeAPIClient(
            self.config.time_api_url,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
        )

        self.units = UnitConversionEngine(
            memo_max_entries=self.config.memo_max_entries,
            memo_ttl=self.config.memo_ttl,
        )
        self.currency = CurrencyService(
            self.rates_client, self.cache_manager, self.connectivity, self.retry_policy
        )
        self.time_zones = TimeZoneService(
            self.time_client, self.cache_manager, self.connectivity, self.retry_policy
        )

    async def start(self) -> None:
        await self.cache_manager.initialize()
        await self.preferences.initialize()
        await self.currency.initialize()
        await self.store.start_background_cleanup()
        log.debug("Converter context started.")

    async def close(self) -> None:
        await self.store.close()
        await self.rates_client.close()
        await self.time_client.close()
        log.debug("Converter context closed.")

    async def __aenter__(self) -> "ConverterContext":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
