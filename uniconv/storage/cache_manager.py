"""
Typed caching layer over the persistent store.

Every domain object is validated before it is written and again after it is
read back. Invalid cached data is purged and reported as "nothing cached"
instead of being handed to callers.
"""

import logging
import math
import time
from typing import Any

from uniconv import __version__
from uniconv.exceptions import InvalidInputError
from uniconv.models.entities import ExchangeRates, TimeZoneData
from uniconv.models.preferences import UserPreferences
from uniconv.models.stats import CacheStats
from uniconv.utils.validation import ValidationResult, Validator

from .cache import PersistentStore

log = logging.getLogger(__name__)


class STORAGE_KEYS:  # noqa: N801
    USER_PREFERENCES = "universal_converter_preferences"
    EXCHANGE_RATES = "currency_exchange_rates"
    LAST_KNOWN_RATES = "currency_exchange_rates_last_known"
    TIMEZONE_DATA = "timezone_data"
    UNIT_PREFERENCES = "unit_preferences"
    APP_VERSION = "app_version"

    PRESERVED = (USER_PREFERENCES, APP_VERSION)


class CACHE_TTL:  # noqa: N801
    EXCHANGE_RATES = 3600.0
    LAST_KNOWN_RATES = 7 * 24 * 3600.0
    TIMEZONE_DATA = 24 * 3600.0
    USER_PREFERENCES = math.inf
    UNIT_PREFERENCES = 7 * 24 * 3600.0


RATES_MAX_AGE = 7 * 24 * 3600.0
RATES_MAX_FUTURE_SKEW = 24 * 3600.0
HEALTHY_STORE_SIZE = 10 * 1024 * 1024


def rates_timestamp_in_window(rates: ExchangeRates) -> str | None:
    """Rejects snapshots dated more than 7 days ago or more than 1 day ahead."""
    age = time.time() - rates.timestamp
    if age > RATES_MAX_AGE:
        return f"timestamp: snapshot is {age / 86400:.1f} days old"
    if age < -RATES_MAX_FUTURE_SKEW:
        return "timestamp: snapshot is dated in the future"
    return None


def _non_empty_rates(rates: ExchangeRates) -> str | None:
    return None if rates.rates else "rates: at least one rate is required"


class CacheManager:
    """Validates, stores and retrieves exchange rates, zone data and preferences."""

    def __init__(self, store: PersistentStore):
        self.store = store
        self.rates_validator = Validator(
            ExchangeRates, rules=[_non_empty_rates, rates_timestamp_in_window]
        )
        self.time_zone_validator = Validator(TimeZoneData)
        self.preferences_validator = Validator(UserPreferences)
        self.unit_preferences_validator = Validator(dict[str, str])

    @staticmethod
    def _time_zone_key(zone_id: str) -> str:
        return f"{STORAGE_KEYS.TIMEZONE_DATA}_{zone_id}"

    async def initialize(self) -> None:
        """Writes the version marker so `clear()` can tell which build wrote the store."""
        stored_version = await self.store.get(STORAGE_KEYS.APP_VERSION)
        if stored_version != __version__:
            if stored_version is not None:
                log.info(f"Cache written by version {stored_version}, now {__version__}.")
            await self.store.set(STORAGE_KEYS.APP_VERSION, __version__, ttl=math.inf)

    async def _read_validated(
        self, key: str, validator: Validator, label: str
    ) -> ValidationResult | None:
        data = await self.store.get(key)
        if data is None:
            return None
        result = validator.validate(data)
        if not result.is_valid:
            log.warning(
                f"Invalid cached {label} found, removing: {'; '.join(result.errors)}"
            )
            await self.store.remove(key)
            return None
        return result

    # --- Exchange rates -------------------------------------------------------

    async def cache_exchange_rates(self, rates: ExchangeRates | dict[str, Any]) -> None:
        """
        Stores a validated snapshot as the fresh entry and as the last known one.

        Raises:
            InvalidInputError: If the snapshot fails validation.
        """
        result = self.rates_validator.validate(rates)
        if not result.is_valid:
            raise InvalidInputError(
                f"Invalid exchange rates data: {'; '.join(result.errors)}",
                {"errors": result.errors},
            )
        payload = result.value.model_dump()
        await self.store.set(STORAGE_KEYS.EXCHANGE_RATES, payload, CACHE_TTL.EXCHANGE_RATES)
        await self.store.set(
            STORAGE_KEYS.LAST_KNOWN_RATES, payload, CACHE_TTL.LAST_KNOWN_RATES
        )
        log.debug(f"Cached exchange rates for base {result.value.base}.")

    async def get_cached_exchange_rates(self) -> ExchangeRates | None:
        result = await self._read_validated(
            STORAGE_KEYS.EXCHANGE_RATES, self.rates_validator, "exchange rates"
        )
        return result.value if result else None

    async def get_last_known_exchange_rates(self) -> ExchangeRates | None:
        """Returns the most recent valid snapshot even after the fresh entry expired."""
        result = await self._read_validated(
            STORAGE_KEYS.LAST_KNOWN_RATES, self.rates_validator, "last known rates"
        )
        return result.value if result else None

    # --- Time zone data -------------------------------------------------------

    async def cache_time_zone_data(
        self, zone_id: str, data: TimeZoneData | dict[str, Any]
    ) -> None:
        result = self.time_zone_validator.validate(data)
        if not result.is_valid:
            raise InvalidInputError(
                f"Invalid time zone data for {zone_id}: {'; '.join(result.errors)}",
                {"zone": zone_id, "errors": result.errors},
            )
        await self.store.set(
            self._time_zone_key(zone_id),
            result.value.model_dump(),
            CACHE_TTL.TIMEZONE_DATA,
        )

    async def get_cached_time_zone_data(self, zone_id: str) -> TimeZoneData | None:
        result = await self._read_validated(
            self._time_zone_key(zone_id), self.time_zone_validator, "time zone data"
        )
        return result.value if result else None

    # --- Preferences ----------------------------------------------------------

    async def cache_user_preferences(
        self, preferences: UserPreferences | dict[str, Any]
    ) -> None:
        result = self.preferences_validator.validate(preferences)
        if not result.is_valid:
            raise InvalidInputError(
                f"Invalid user preferences: {'; '.join(result.errors)}",
                {"errors": result.errors},
            )
        await self.store.set(
            STORAGE_KEYS.USER_PREFERENCES,
            result.value.model_dump(),
            CACHE_TTL.USER_PREFERENCES,
        )

    async def get_cached_user_preferences(self) -> UserPreferences:
        """
        Returns stored preferences merged over the defaults.

        Partially written or schema-drifted records still produce a complete
        object; anything that fails validation yields pure defaults.
        """
        data = await self.store.get(STORAGE_KEYS.USER_PREFERENCES)
        defaults = UserPreferences.defaults()
        if data is None:
            return defaults
        if not isinstance(data, dict):
            log.warning("Stored preferences are not an object, using defaults.")
            return defaults

        merged = {**defaults.model_dump(), **data}
        result = self.preferences_validator.validate(merged)
        if not result.is_valid:
            log.warning(
                f"Invalid cached preferences, using defaults: {'; '.join(result.errors)}"
            )
            return defaults
        return result.value

    async def has_user_preferences(self) -> bool:
        return await self.store.get_entry(STORAGE_KEYS.USER_PREFERENCES) is not None

    async def cache_unit_preferences(self, preferred_units: dict[str, str]) -> None:
        result = self.unit_preferences_validator.validate(preferred_units)
        if not result.is_valid:
            raise InvalidInputError(
                f"Invalid unit preferences: {'; '.join(result.errors)}",
                {"errors": result.errors},
            )
        await self.store.set(
            STORAGE_KEYS.UNIT_PREFERENCES, result.value, CACHE_TTL.UNIT_PREFERENCES
        )

    async def get_cached_unit_preferences(self) -> dict[str, str] | None:
        result = await self._read_validated(
            STORAGE_KEYS.UNIT_PREFERENCES,
            self.unit_preferences_validator,
            "unit preferences",
        )
        return result.value if result else None

    # --- Housekeeping ---------------------------------------------------------

    async def get_data_age(self, key: str) -> float | None:
        """Seconds since `key` was written, or None if nothing is cached."""
        entry = await self.store.get_entry(key)
        return time.time() - entry.timestamp if entry else None

    async def is_data_stale(self, key: str, max_age: float) -> bool:
        age = await self.get_data_age(key)
        return age is None or age > max_age

    async def get_cache_stats(self) -> CacheStats:
        # Snapshot the counters before the lookups below move them.
        hits, misses = self.store.hits, self.store.misses
        total_size = await self.store.size()
        _, overflow_count = await self.store.tier_counts()
        return CacheStats(
            total_size=total_size,
            entry_count=self.store.metadata.entry_count,
            secondary_entry_count=overflow_count,
            exchange_rates_age=await self.get_data_age(STORAGE_KEYS.LAST_KNOWN_RATES),
            user_preferences_exists=await self.has_user_preferences(),
            hits=hits,
            misses=misses,
            last_cleanup=self.store.metadata.last_cleanup,
        )

    async def clear_cache(self, preserve_preferences: bool = True) -> None:
        await self.store.clear(full=not preserve_preferences)
        if not preserve_preferences:
            await self.initialize()

    async def is_cache_healthy(self) -> bool:
        stats = await self.get_cache_stats()
        if stats.total_size > HEALTHY_STORE_SIZE:
            return False
        return stats.exchange_rates_age is None or stats.exchange_rates_age <= RATES_MAX_AGE
