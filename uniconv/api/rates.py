"""
Client for the exchange rate provider (Frankfurter-compatible `latest` endpoint).
"""

import logging
import time

from pydantic import ValidationError

from uniconv.exceptions import ApiError
from uniconv.models.entities import ExchangeRates

from .client import BaseAPIClient

log = logging.getLogger(__name__)


class RatesAPIClient(BaseAPIClient):
    """Fetches the latest rate table for a base currency."""

    name = "Exchange rate provider"
    source = "frankfurter"

    async def fetch_latest(self, base: str) -> ExchangeRates:
        """
        Returns the provider's latest rates relative to `base`.

        The snapshot is stamped with the fetch time, not the provider's
        publication date, so freshness reflects when we last heard from it.
        """
        payload = await self.get_json("latest", **{"from": base})

        if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
            raise ApiError(
                "Invalid response format from exchange rate API: missing rates.",
                {"provider": self.name, "base": base},
            )

        try:
            rates = ExchangeRates(
                base=base,
                rates=payload["rates"],
                timestamp=time.time(),
                source=self.source,
            )
        except ValidationError as e:
            raise ApiError(
                f"Exchange rate API returned unusable rates: {e.error_count()} errors.",
                {"provider": self.name, "base": base},
            ) from e

        log.debug(
            f"Fetched {len(rates.rates)} rates for {rates.base} "
            f"(published {payload.get('date', 'unknown')})."
        )
        return rates
