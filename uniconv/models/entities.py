"""
Pydantic models for the domain objects shared by the converters and the cache.
"""

import datetime as dt
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator

PositiveRate = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class Unit(BaseModel):
    """One measurement unit, scaled linearly to its category's base unit."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symbol: str
    category: str
    base_multiplier: float = Field(gt=0)
    aliases: tuple[str, ...] = ()


class UnitCategory(BaseModel):
    """A group of mutually convertible units."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    base_unit: str
    units: tuple[Unit, ...]
    description: str = ""


class ConversionResult(BaseModel):
    value: float
    formatted_value: str
    unit: Unit
    precision: int
    timestamp: float


class Currency(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    symbol: str
    flag: str | None = None


class ExchangeRates(BaseModel):
    """A snapshot of rates relative to `base`, fetched at `timestamp`."""

    base: str = Field(min_length=1)
    rates: dict[str, PositiveRate]
    timestamp: float
    source: str | None = None


class CurrencyConversionResult(BaseModel):
    amount: float
    formatted_amount: str
    from_currency: Currency
    to_currency: Currency
    rate: float
    timestamp: float
    is_stale: bool


class TimeZone(BaseModel):
    id: str
    name: str
    offset: int  # minutes east of UTC
    is_dst: bool
    country: str | None = None
    region: str | None = None


class TimeZoneData(BaseModel):
    """Snapshot returned by the remote time provider."""

    datetime: str = Field(min_length=1)
    timezone: str = Field(min_length=1)
    utc_offset: str = Field(min_length=1)
    dst: StrictBool
    dst_offset: float


class TimeConversionResult(BaseModel):
    source_time: dt.datetime
    target_time: dt.datetime
    source_time_zone: TimeZone
    target_time_zone: TimeZone
    is_dst_transition: bool


class CacheEntry(BaseModel):
    """
    Persisted record layout: {data, timestamp, expiresAt, version}.

    Strict so that a record whose timestamp was written as a string is treated
    as corrupt instead of being coerced.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)

    data: Any
    timestamp: float
    expires_at: float = Field(alias="expiresAt")
    version: str

    @model_validator(mode="after")
    def check_expiry_order(self) -> "CacheEntry":
        if self.expires_at < self.timestamp:
            raise ValueError("expiresAt must not precede timestamp")
        return self

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheMetadata(BaseModel):
    total_size: int = 0
    entry_count: int = 0
    last_cleanup: float = 0.0
    version: str = "1.0"
