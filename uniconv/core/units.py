"""
Table-driven unit conversion across the eleven supported categories.
"""

import logging
import math
import time

from uniconv.exceptions import ConversionError, InvalidInputError
from uniconv.models.entities import ConversionResult, Unit, UnitCategory
from uniconv.utils.formatting import decimal_places, format_number
from uniconv.utils.memo import TTLCache

from .unit_tables import CATEGORIES, POPULAR_UNITS

log = logging.getLogger(__name__)

RESULT_DECIMALS = 10

# Each temperature scale as (to celsius, from celsius).
_TO_CELSIUS = {
    "celsius": lambda v: v,
    "fahrenheit": lambda v: (v - 32) * 5 / 9,
    "kelvin": lambda v: v - 273.15,
    "rankine": lambda v: (v - 491.67) * 5 / 9,
}
_FROM_CELSIUS = {
    "celsius": lambda c: c,
    "fahrenheit": lambda c: c * 9 / 5 + 32,
    "kelvin": lambda c: c + 273.15,
    "rankine": lambda c: (c + 273.15) * 9 / 5,
}


class UnitConversionEngine:
    """
    Converts values between units of the same category.

    Linear categories go through the base unit; temperature goes through
    Celsius. Numeric results are memoized in a bounded TTL cache.
    """

    def __init__(
        self,
        categories: tuple[UnitCategory, ...] = CATEGORIES,
        memo_max_entries: int = 1000,
        memo_ttl: float = 600.0,
    ):
        self._categories: dict[str, UnitCategory] = {c.id: c for c in categories}
        self._units: dict[str, Unit] = {}
        self._aliases: dict[str, Unit] = {}
        for category in categories:
            for unit in category.units:
                self._units[unit.id] = unit
                for name in (unit.id, *unit.aliases):
                    self._aliases.setdefault(name.lower(), unit)
        # Symbols resolve last so an alias wins a collision ("c" is Celsius).
        for unit in self._units.values():
            self._aliases.setdefault(unit.symbol.lower(), unit)
        self.memo: TTLCache[float] = TTLCache(max_size=memo_max_entries, ttl=memo_ttl)

    # --- Lookup ---------------------------------------------------------------

    def get_categories(self) -> list[UnitCategory]:
        return list(self._categories.values())

    def get_category(self, category_id: str) -> UnitCategory | None:
        return self._categories.get(category_id)

    def get_supported_units(self, category_id: str) -> list[Unit]:
        category = self._categories.get(category_id)
        return list(category.units) if category else []

    def find_unit(self, unit_id: str) -> Unit | None:
        """Resolves a unit by id, then by case-insensitive alias or symbol."""
        if not isinstance(unit_id, str):
            return None
        return self._units.get(unit_id) or self._aliases.get(unit_id.strip().lower())

    def _require_unit(self, unit_id: str) -> Unit:
        unit = self.find_unit(unit_id)
        if unit is None:
            raise InvalidInputError(f"Unknown unit '{unit_id}'.", {"unit": unit_id})
        return unit

    def search_units(self, query: str, category: str | None = None) -> list[Unit]:
        units = (
            self.get_supported_units(category)
            if category
            else list(self._units.values())
        )
        term = (query or "").strip().lower()
        if not term:
            return units
        return [
            unit
            for unit in units
            if term in unit.name.lower()
            or term in unit.symbol.lower()
            or term in unit.id.lower()
            or any(term in alias.lower() for alias in unit.aliases)
        ]

    def get_popular_units(self, category_id: str) -> list[Unit]:
        """Returns the category's units with the commonly used ones first."""
        units = self.get_supported_units(category_id)
        popular_ids = POPULAR_UNITS.get(category_id, ())
        by_id = {unit.id: unit for unit in units}
        popular = [by_id[unit_id] for unit_id in popular_ids if unit_id in by_id]
        return popular + [unit for unit in units if unit.id not in popular_ids]

    def can_convert(self, from_unit_id: str, to_unit_id: str) -> bool:
        from_unit = self.find_unit(from_unit_id)
        to_unit = self.find_unit(to_unit_id)
        return bool(from_unit and to_unit and from_unit.category == to_unit.category)

    # --- Conversion -----------------------------------------------------------

    @staticmethod
    def validate_input(raw: str) -> bool:
        """True if `raw` parses to a finite number."""
        if not isinstance(raw, str) or not raw.strip():
            return False
        try:
            value = float(raw)
        except ValueError:
            return False
        return math.isfinite(value)

    def _resolve_pair(self, from_unit_id: str, to_unit_id: str) -> tuple[Unit, Unit]:
        from_unit = self._require_unit(from_unit_id)
        to_unit = self._require_unit(to_unit_id)
        if from_unit.category != to_unit.category:
            raise ConversionError(
                f"Cannot convert between different unit categories: "
                f"{from_unit.category} and {to_unit.category}.",
                {"from": from_unit.id, "to": to_unit.id},
            )
        return from_unit, to_unit

    def get_conversion_factor(self, from_unit_id: str, to_unit_id: str) -> float:
        """Multiplier taking `from` to `to`; 1 for temperature, which is affine."""
        from_unit, to_unit = self._resolve_pair(from_unit_id, to_unit_id)
        if from_unit.category == "temperature":
            return 1.0
        return from_unit.base_multiplier / to_unit.base_multiplier

    @staticmethod
    def _compute(value: float, from_unit: Unit, to_unit: Unit) -> float:
        if from_unit.id == to_unit.id:
            return value
        if from_unit.category == "temperature":
            celsius = _TO_CELSIUS[from_unit.id](value)
            return _FROM_CELSIUS[to_unit.id](celsius)
        return value * from_unit.base_multiplier / to_unit.base_multiplier

    def convert(self, value: float, from_unit_id: str, to_unit_id: str) -> ConversionResult:
        """
        Converts `value` between two units of the same category.

        Raises:
            InvalidInputError: If the value is not a finite number or a unit is unknown.
            ConversionError: If the units belong to different categories.
        """
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise InvalidInputError(f"Invalid input value: {value!r}", {"value": value})
        try:
            number = float(value)
        except OverflowError as e:
            raise InvalidInputError(
                "Input value is too large.", {"value": value}
            ) from e
        if not math.isfinite(number):
            raise InvalidInputError(f"Invalid input value: {value}", {"value": value})

        from_unit, to_unit = self._resolve_pair(from_unit_id, to_unit_id)

        key = (number, from_unit.id, to_unit.id)
        result = self.memo.get(key)
        if result is None:
            result = round(self._compute(number, from_unit, to_unit), RESULT_DECIMALS)
            # Normalise negative zero produced by rounding tiny negatives.
            result = result + 0.0
            self.memo.set(key, result)

        formatted = format_number(result, RESULT_DECIMALS)
        return ConversionResult(
            value=result,
            formatted_value=formatted,
            unit=to_unit,
            precision=decimal_places(formatted),
            timestamp=time.time(),
        )
