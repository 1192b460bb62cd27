"""
Currency conversion backed by a remote rate provider with layered fallback.

Lookup order for a rate table: the in-memory snapshot while it is fresh, then
the remote provider (with retries), then whatever valid snapshot the cache
still holds. Every result carries an honest staleness flag.
"""

import logging
import math
import time

from uniconv.api.rates import RatesAPIClient
from uniconv.exceptions import (
    ApiError,
    ConversionError,
    ConverterError,
    InvalidInputError,
    NetworkError,
    StorageError,
)
from uniconv.models.currencies import CURRENCIES
from uniconv.models.entities import Currency, CurrencyConversionResult, ExchangeRates
from uniconv.storage.cache_manager import CacheManager
from uniconv.utils.connectivity import ConnectivityMonitor
from uniconv.utils.retry import RetryPolicy, retry_async
from uniconv.utils.singleflight import SingleFlight

log = logging.getLogger(__name__)

FRESH_DURATION = 3600.0
MAX_STALE_DURATION = 24 * 3600.0


def rebase_rates(rates: ExchangeRates, new_base: str) -> ExchangeRates:
    """
    Re-expresses a rate table relative to `new_base` using its cross rates.

    Raises:
        ConversionError: If the table has no rate for `new_base`.
    """
    if rates.base == new_base:
        return rates

    pivot = rates.rates.get(new_base)
    if not pivot:
        raise ConversionError(
            f"Cannot convert rates to base currency {new_base} - rate not available.",
            {"base": rates.base, "target": new_base},
        )

    rebased = {
        code: rate / pivot for code, rate in rates.rates.items() if code != new_base
    }
    rebased[rates.base] = 1 / pivot
    return ExchangeRates(
        base=new_base, rates=rebased, timestamp=rates.timestamp, source=rates.source
    )


class CurrencyService:
    """Exchange rates, currency conversion and currency metadata."""

    def __init__(
        self,
        client: RatesAPIClient,
        cache_manager: CacheManager,
        connectivity: ConnectivityMonitor,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client
        self.cache_manager = cache_manager
        self.connectivity = connectivity
        self.retry_policy = retry_policy or RetryPolicy()
        self._snapshot: ExchangeRates | None = None
        self._inflight = SingleFlight()

    async def initialize(self) -> None:
        """Loads the newest cached snapshot so offline use works after a restart."""
        self._snapshot = await self._newest_cached_snapshot()
        if self._snapshot:
            log.debug(
                f"Loaded cached {self._snapshot.base} rates from "
                f"{time.time() - self._snapshot.timestamp:.0f}s ago."
            )

    # --- Currency metadata ----------------------------------------------------

    def get_supported_currencies(self) -> list[Currency]:
        return list(CURRENCIES.values())

    def _require_currency(self, code: str) -> str:
        normalized = code.strip().upper() if isinstance(code, str) else ""
        if normalized not in CURRENCIES:
            raise InvalidInputError(
                f"Unsupported currency code: {code!r}", {"currency": code}
            )
        return normalized

    def get_currency_info(self, code: str) -> Currency:
        return CURRENCIES[self._require_currency(code)]

    def format_currency(self, amount: float, code: str) -> str:
        """Formats with the currency symbol and 2 to 6 fraction digits."""
        currency = self.get_currency_info(code)
        text = f"{amount:,.6f}".rstrip("0")
        whole, _, fraction = text.partition(".")
        fraction = fraction.ljust(2, "0")
        separator = " " if currency.symbol.isalpha() and len(currency.symbol) > 1 else ""
        return f"{currency.symbol}{separator}{whole}.{fraction}"

    # --- Freshness ------------------------------------------------------------

    @staticmethod
    def is_rate_stale(timestamp: float) -> bool:
        return time.time() - timestamp > MAX_STALE_DURATION

    @staticmethod
    def _is_fresh(rates: ExchangeRates) -> bool:
        return time.time() - rates.timestamp < FRESH_DURATION

    def get_last_update_time(self) -> float | None:
        return self._snapshot.timestamp if self._snapshot else None

    # --- Rate tables ----------------------------------------------------------

    async def get_exchange_rates(self, base: str = "USD") -> ExchangeRates:
        """
        Returns rates relative to `base`.

        Raises:
            InvalidInputError: If `base` is not a supported currency.
            NetworkError: Offline with nothing cached.
            ApiError: Provider failures (including `RateLimitError`) once retries
                and cache fallback are exhausted.
        """
        base = self._require_currency(base)

        snapshot = self._snapshot
        if snapshot and self._is_fresh(snapshot):
            try:
                return rebase_rates(snapshot, base)
            except ConversionError:
                log.debug(f"Fresh snapshot lacks {base}; fetching instead.")

        return await self._inflight.run(base, lambda: self._load_rates(base))

    async def refresh_rates(self, base: str = "USD") -> ExchangeRates:
        """Forces a remote fetch, ignoring how fresh the current snapshot is."""
        base = self._require_currency(base)
        return await self._inflight.run(base, lambda: self._load_rates(base))

    async def _fetch_validated(self, base: str) -> ExchangeRates:
        rates = await self.client.fetch_latest(base)
        result = self.cache_manager.rates_validator.validate(rates)
        if not result.is_valid:
            raise ApiError(
                f"Exchange rate API returned invalid data: {'; '.join(result.errors)}",
                {"base": base},
            )
        return result.value

    async def _load_rates(self, base: str) -> ExchangeRates:
        last_error: ConverterError | None = None

        if self.connectivity.is_online:
            try:
                rates = await retry_async(
                    lambda: self._fetch_validated(base),
                    self.retry_policy,
                    description=f"Fetching {base} exchange rates",
                )
            except ConverterError as e:
                log.warning(f"Failed to fetch fresh exchange rates: {e.message}")
                last_error = e
            else:
                try:
                    await self.cache_manager.cache_exchange_rates(rates)
                except StorageError as e:
                    log.warning(f"Could not cache exchange rates: {e.message}")
                self._snapshot = rates
                return rates

        fallback = await self._newest_cached_snapshot()
        if fallback is not None:
            # Online failures only fall back to reasonably recent data; offline,
            # any valid snapshot is better than nothing and is flagged stale.
            if last_error is None or not self.is_rate_stale(fallback.timestamp):
                try:
                    rebased = rebase_rates(fallback, base)
                except ConversionError:
                    log.debug(f"Cached exchange rates cannot be rebased to {base}.")
                else:
                    age_hours = (time.time() - fallback.timestamp) / 3600
                    log.warning(
                        f"[yellow]Using cached exchange rates from "
                        f"{age_hours:.1f}h ago.[/yellow]"
                    )
                    self._snapshot = fallback
                    return rebased

        if last_error is not None:
            raise last_error
        raise NetworkError(
            "No internet connection and no cached exchange rates available.",
            {"base": base},
        )

    async def _newest_cached_snapshot(self) -> ExchangeRates | None:
        candidates = [
            self._snapshot,
            await self.cache_manager.get_cached_exchange_rates(),
            await self.cache_manager.get_last_known_exchange_rates(),
        ]
        valid = [c for c in candidates if c is not None]
        return max(valid, key=lambda r: r.timestamp) if valid else None

    # --- Conversion -----------------------------------------------------------

    async def convert_currency(
        self, amount: float, from_currency: str, to_currency: str
    ) -> CurrencyConversionResult:
        """
        Converts `amount` using the current rate table for `from_currency`.

        Raises:
            InvalidInputError: Negative, non-finite or non-numeric amount, or an
                unsupported currency code.
            ConversionError: The rate table has no rate for `to_currency`.
        """
        if isinstance(amount, bool) or not isinstance(amount, int | float):
            raise InvalidInputError(
                "Invalid amount for currency conversion.", {"amount": amount}
            )
        try:
            finite = math.isfinite(float(amount))
        except OverflowError:
            finite = False
        if not finite or amount < 0:
            raise InvalidInputError(
                "Invalid amount for currency conversion.", {"amount": amount}
            )
        source = self.get_currency_info(from_currency)
        target = self.get_currency_info(to_currency)

        if source.code == target.code:
            return CurrencyConversionResult(
                amount=amount,
                formatted_amount=self.format_currency(amount, target.code),
                from_currency=source,
                to_currency=target,
                rate=1.0,
                timestamp=time.time(),
                is_stale=False,
            )

        rates = await self.get_exchange_rates(source.code)
        rate = rates.rates.get(target.code)
        if not rate:
            raise ConversionError(
                f"Exchange rate not available for {source.code} to {target.code}.",
                {"from": source.code, "to": target.code},
            )

        converted = amount * rate
        return CurrencyConversionResult(
            amount=converted,
            formatted_amount=self.format_currency(converted, target.code),
            from_currency=source,
            to_currency=target,
            rate=rate,
            timestamp=rates.timestamp,
            is_stale=self.is_rate_stale(rates.timestamp),
        )
