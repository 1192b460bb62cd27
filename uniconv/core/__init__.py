"""
Conversion engines and the context that wires them together.

`UnitConversionEngine` is synchronous and table driven. `CurrencyService` and
`TimeZoneService` talk to remote providers through the cache layer.
`ConverterContext` builds all of them from one `ConverterConfig`.
"""

from .context import ConverterContext
from .currency import CurrencyService, rebase_rates
from .timezones import TimeZoneService
from .units import UnitConversionEngine

__all__ = [
    "ConverterContext",
    "CurrencyService",
    "TimeZoneService",
    "UnitConversionEngine",
    "rebase_rates",
]
