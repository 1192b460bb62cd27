"""
Unit definitions for every supported category.

Each linear unit carries its multiplier to the category's base unit. The
temperature multipliers are placeholders; temperature uses formulas instead.
"""

import math

from uniconv.models.entities import Unit, UnitCategory

# (id, name, symbol, base multiplier, aliases)
_UnitRow = tuple[str, str, str, float, tuple[str, ...]]


def _category(
    category_id: str, name: str, base_unit: str, description: str, rows: list[_UnitRow]
) -> UnitCategory:
    return UnitCategory(
        id=category_id,
        name=name,
        base_unit=base_unit,
        description=description,
        units=tuple(
            Unit(
                id=unit_id,
                name=unit_name,
                symbol=symbol,
                category=category_id,
                base_multiplier=multiplier,
                aliases=aliases,
            )
            for unit_id, unit_name, symbol, multiplier, aliases in rows
        ),
    )


CATEGORIES: tuple[UnitCategory, ...] = (
    _category("length", "Length", "meter", "Distance and length measurements", [
        ("meter", "Meter", "m", 1, ("metre", "meters")),
        ("kilometer", "Kilometer", "km", 1000, ("kilometre", "kilometers")),
        ("centimeter", "Centimeter", "cm", 0.01, ("centimetre",)),
        ("millimeter", "Millimeter", "mm", 0.001, ("millimetre",)),
        ("micrometer", "Micrometer", "μm", 1e-6, ("micron", "um")),
        ("nanometer", "Nanometer", "nm", 1e-9, ()),
        ("inch", "Inch", "in", 0.0254, ("inches", '"')),
        ("foot", "Foot", "ft", 0.3048, ("feet", "'")),
        ("yard", "Yard", "yd", 0.9144, ("yards",)),
        ("mile", "Mile", "mi", 1609.344, ("miles",)),
        ("nautical_mile", "Nautical Mile", "nmi", 1852, ()),
        ("light_year", "Light Year", "ly", 9.4607304725808e15, ()),
    ]),
    _category("weight", "Weight & Mass", "kilogram", "Mass and weight measurements", [
        ("kilogram", "Kilogram", "kg", 1, ("kilo", "kilos")),
        ("gram", "Gram", "g", 0.001, ("grams",)),
        ("milligram", "Milligram", "mg", 1e-6, ()),
        ("microgram", "Microgram", "μg", 1e-9, ("mcg", "ug")),
        ("tonne", "Tonne", "t", 1000, ("metric ton",)),
        ("pound", "Pound", "lb", 0.45359237, ("lbs", "pounds")),
        ("ounce", "Ounce", "oz", 0.028349523125, ("ounces",)),
        ("stone", "Stone", "st", 6.35029318, ()),
        ("short_ton", "Short Ton (US)", "ton", 907.18474, ("us ton",)),
        ("long_ton", "Long Ton (UK)", "long ton", 1016.0469088, ("imperial ton",)),
        ("carat", "Carat", "ct", 0.0002, ()),
    ]),
    _category("temperature", "Temperature", "celsius", "Temperature measurements", [
        ("celsius", "Celsius", "°C", 1, ("centigrade", "c")),
        ("fahrenheit", "Fahrenheit", "°F", 1, ("f",)),
        ("kelvin", "Kelvin", "K", 1, ("k",)),
        ("rankine", "Rankine", "°R", 1, ("r",)),
    ]),
    _category("volume", "Volume", "liter", "Volume and capacity measurements", [
        ("liter", "Liter", "L", 1, ("litre", "liters")),
        ("milliliter", "Milliliter", "mL", 0.001, ("millilitre", "ml")),
        ("cubic_meter", "Cubic Meter", "m³", 1000, ("m3",)),
        ("cubic_centimeter", "Cubic Centimeter", "cm³", 0.001, ("cc", "cm3")),
        ("cubic_inch", "Cubic Inch", "in³", 0.016387064, ("in3",)),
        ("cubic_foot", "Cubic Foot", "ft³", 28.316846592, ("ft3",)),
        ("gallon_us", "Gallon (US)", "gal", 3.785411784, ("gallon",)),
        ("gallon_uk", "Gallon (UK)", "gal (UK)", 4.54609, ("imperial gallon",)),
        ("quart_us", "Quart (US)", "qt", 0.946352946, ("quart",)),
        ("pint_us", "Pint (US)", "pt", 0.473176473, ("pint",)),
        ("cup_us", "Cup (US)", "cup", 0.2365882365, ("cups",)),
        ("fluid_ounce_us", "Fluid Ounce (US)", "fl oz", 0.0295735296875, ("floz",)),
        ("tablespoon", "Tablespoon", "tbsp", 0.01478676478125, ()),
        ("teaspoon", "Teaspoon", "tsp", 0.00492892159375, ()),
    ]),
    _category("area", "Area", "square_meter", "Area and surface measurements", [
        ("square_meter", "Square Meter", "m²", 1, ("m2", "sqm")),
        ("square_kilometer", "Square Kilometer", "km²", 1e6, ("km2",)),
        ("square_centimeter", "Square Centimeter", "cm²", 1e-4, ("cm2",)),
        ("square_millimeter", "Square Millimeter", "mm²", 1e-6, ("mm2",)),
        ("square_inch", "Square Inch", "in²", 0.00064516, ("in2", "sq in")),
        ("square_foot", "Square Foot", "ft²", 0.09290304, ("ft2", "sq ft")),
        ("square_yard", "Square Yard", "yd²", 0.83612736, ("yd2",)),
        ("square_mile", "Square Mile", "mi²", 2589988.110336, ("mi2",)),
        ("acre", "Acre", "ac", 4046.8564224, ("acres",)),
        ("hectare", "Hectare", "ha", 10000, ("hectares",)),
    ]),
    _category("speed", "Speed", "meter_per_second", "Speed and velocity measurements", [
        ("meter_per_second", "Meter per Second", "m/s", 1, ("mps",)),
        ("kilometer_per_hour", "Kilometer per Hour", "km/h", 1 / 3.6, ("kph", "kmh")),
        ("mile_per_hour", "Mile per Hour", "mph", 0.44704, ()),
        ("foot_per_second", "Foot per Second", "ft/s", 0.3048, ("fps",)),
        ("knot", "Knot", "kn", 1852 / 3600, ("knots", "kt")),
        # Speed of sound at sea level, 20 °C
        ("mach", "Mach", "Ma", 343, ()),
        ("speed_of_light", "Speed of Light", "c", 299792458, ()),
    ]),
    _category("time", "Time", "second", "Time duration measurements", [
        ("second", "Second", "s", 1, ("sec", "seconds")),
        ("millisecond", "Millisecond", "ms", 0.001, ()),
        ("microsecond", "Microsecond", "μs", 1e-6, ("us",)),
        ("nanosecond", "Nanosecond", "ns", 1e-9, ()),
        ("minute", "Minute", "min", 60, ("minutes",)),
        ("hour", "Hour", "h", 3600, ("hr", "hours")),
        ("day", "Day", "d", 86400, ("days",)),
        ("week", "Week", "wk", 604800, ("weeks",)),
        ("month", "Month", "mo", 2629746, ("months",)),
        ("year", "Year", "yr", 31556952, ("years",)),
        ("decade", "Decade", "dec", 315569520, ()),
        ("century", "Century", "c", 3155695200, ()),
    ]),
    _category(
        "digital_storage", "Digital Storage", "byte", "Digital data storage measurements", [
            ("byte", "Byte", "B", 1, ("bytes",)),
            ("bit", "Bit", "bit", 0.125, ("bits",)),
            ("kilobyte", "Kilobyte", "KB", 1e3, ()),
            ("kibibyte", "Kibibyte", "KiB", 1024, ()),
            ("megabyte", "Megabyte", "MB", 1e6, ()),
            ("mebibyte", "Mebibyte", "MiB", 1024**2, ()),
            ("gigabyte", "Gigabyte", "GB", 1e9, ()),
            ("gibibyte", "Gibibyte", "GiB", 1024**3, ()),
            ("terabyte", "Terabyte", "TB", 1e12, ()),
            ("tebibyte", "Tebibyte", "TiB", 1024**4, ()),
            ("petabyte", "Petabyte", "PB", 1e15, ()),
            ("pebibyte", "Pebibyte", "PiB", 1024**5, ()),
        ]
    ),
    _category("energy", "Energy", "joule", "Energy and work measurements", [
        ("joule", "Joule", "J", 1, ("joules",)),
        ("kilojoule", "Kilojoule", "kJ", 1e3, ()),
        ("megajoule", "Megajoule", "MJ", 1e6, ()),
        ("calorie", "Calorie", "cal", 4.184, ("calories",)),
        ("kilocalorie", "Kilocalorie", "kcal", 4184, ("food calorie",)),
        ("watt_hour", "Watt Hour", "Wh", 3600, ()),
        ("kilowatt_hour", "Kilowatt Hour", "kWh", 3.6e6, ()),
        ("btu", "British Thermal Unit", "BTU", 1055.05585262, ()),
        ("therm", "Therm", "thm", 105505585.262, ()),
        ("foot_pound", "Foot-Pound", "ft⋅lbf", 1.3558179483314004, ("ft-lb",)),
        ("electron_volt", "Electron Volt", "eV", 1.602176634e-19, ()),
    ]),
    _category("pressure", "Pressure", "pascal", "Pressure and stress measurements", [
        ("pascal", "Pascal", "Pa", 1, ()),
        ("kilopascal", "Kilopascal", "kPa", 1e3, ()),
        ("megapascal", "Megapascal", "MPa", 1e6, ()),
        ("bar", "Bar", "bar", 1e5, ()),
        ("millibar", "Millibar", "mbar", 100, ("hpa",)),
        ("atmosphere", "Atmosphere", "atm", 101325, ()),
        ("torr", "Torr", "Torr", 101325 / 760, ()),
        ("mmhg", "Millimeter of Mercury", "mmHg", 133.322387415, ()),
        ("psi", "Pounds per Square Inch", "psi", 6894.75729316836, ()),
        ("psf", "Pounds per Square Foot", "psf", 47.8802589803358, ()),
    ]),
    _category("angle", "Angle", "degree", "Angular measurements", [
        ("degree", "Degree", "°", 1, ("deg", "degrees")),
        ("radian", "Radian", "rad", 180 / math.pi, ("radians",)),
        ("gradian", "Gradian", "gon", 0.9, ("grad",)),
        ("turn", "Turn", "tr", 360, ("revolution",)),
        ("arcminute", "Arcminute", "′", 1 / 60, ("arcmin",)),
        ("arcsecond", "Arcsecond", "″", 1 / 3600, ("arcsec",)),
        ("milliradian", "Milliradian", "mrad", 0.18 / math.pi, ("mil",)),
    ]),
)

POPULAR_UNITS: dict[str, tuple[str, ...]] = {
    "length": ("meter", "kilometer", "centimeter", "millimeter", "inch", "foot", "yard", "mile"),
    "weight": ("kilogram", "gram", "pound", "ounce", "tonne"),
    "temperature": ("celsius", "fahrenheit", "kelvin"),
    "volume": ("liter", "milliliter", "gallon_us", "cup_us", "cubic_meter"),
    "area": ("square_meter", "square_kilometer", "square_foot", "acre", "hectare"),
    "speed": ("meter_per_second", "kilometer_per_hour", "mile_per_hour", "knot"),
    "time": ("second", "minute", "hour", "day", "week", "month", "year"),
    "digital_storage": ("byte", "kilobyte", "megabyte", "gigabyte", "terabyte"),
    "energy": ("joule", "kilojoule", "calorie", "kilocalorie", "kilowatt_hour"),
    "pressure": ("pascal", "bar", "atmosphere", "psi"),
    "angle": ("degree", "radian", "gradian"),
}
