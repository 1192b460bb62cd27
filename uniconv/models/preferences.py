"""
Pydantic model for persisted user preferences and their defaults.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

Theme = Literal["light", "dark", "system"]
ColorScheme = Literal["warm", "neutral"]
Contrast = Literal["normal", "high"]
FontSize = Literal["small", "medium", "large"]

THEMES: tuple[str, ...] = ("light", "dark", "system")
COLOR_SCHEMES: tuple[str, ...] = ("warm", "neutral")
CONTRASTS: tuple[str, ...] = ("normal", "high")
FONT_SIZES: tuple[str, ...] = ("small", "medium", "large")

MIN_DECIMAL_PLACES = 0
MAX_DECIMAL_PLACES = 15

DEFAULT_PREFERRED_UNITS: dict[str, str] = {
    "length": "meter",
    "weight": "kilogram",
    "temperature": "celsius",
    "volume": "liter",
    "area": "square_meter",
    "speed": "meter_per_second",
    "time": "second",
    "digital_storage": "byte",
    "energy": "joule",
    "pressure": "pascal",
    "angle": "degree",
}


class UserPreferences(BaseModel):
    """A complete, valid set of user settings."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    default_currency: str = Field(default="USD", pattern=r"^[A-Z]{3}$")
    default_time_zone: str = Field(default="UTC", min_length=1)
    preferred_units: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PREFERRED_UNITS)
    )
    decimal_places: StrictInt = Field(
        default=6, ge=MIN_DECIMAL_PLACES, le=MAX_DECIMAL_PLACES
    )
    theme: Theme = "system"
    color_scheme: ColorScheme = "warm"
    contrast: Contrast = "normal"
    font_size: FontSize = "medium"
    auto_update_rates: StrictBool = True
    show_copy_feedback: StrictBool = True
    enable_animations: StrictBool = True
    reduced_motion: StrictBool = False

    @classmethod
    def defaults(cls) -> "UserPreferences":
        return cls()


PREFERENCE_FIELDS: tuple[str, ...] = tuple(UserPreferences.model_fields)
