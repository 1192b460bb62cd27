"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: configuration, domain entities, preferences
and cache statistics.
"""

from .config import ConverterConfig
from .entities import (
    CacheEntry,
    CacheMetadata,
    ConversionResult,
    Currency,
    CurrencyConversionResult,
    ExchangeRates,
    TimeConversionResult,
    TimeZone,
    TimeZoneData,
    Unit,
    UnitCategory,
)
from .preferences import UserPreferences
from .stats import CacheStats

__all__ = [
    "CacheEntry",
    "CacheMetadata",
    "CacheStats",
    "ConversionResult",
    "ConverterConfig",
    "Currency",
    "CurrencyConversionResult",
    "ExchangeRates",
    "TimeConversionResult",
    "TimeZone",
    "TimeZoneData",
    "Unit",
    "UnitCategory",
    "UserPreferences",
]
