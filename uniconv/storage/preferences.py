"""
Observable, validated user preferences backed by the cache manager.
"""

import asyncio
import json
import logging
import math
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from uniconv.exceptions import InvalidInputError, PreferencesImportError
from uniconv.models.currencies import is_supported_currency
from uniconv.models.preferences import (
    COLOR_SCHEMES,
    CONTRASTS,
    FONT_SIZES,
    MAX_DECIMAL_PLACES,
    MIN_DECIMAL_PLACES,
    PREFERENCE_FIELDS,
    THEMES,
    UserPreferences,
)
from uniconv.utils.events import Subscribers
from uniconv.utils.zones import is_valid_zone

from .cache_manager import CacheManager

log = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"

_ENUM_FIELDS: dict[str, tuple[str, ...]] = {
    "theme": THEMES,
    "color_scheme": COLOR_SCHEMES,
    "contrast": CONTRASTS,
    "font_size": FONT_SIZES,
}
_BOOLEAN_FIELDS = (
    "auto_update_rates",
    "show_copy_feedback",
    "enable_animations",
    "reduced_motion",
)


def _validate_field(name: str, value: Any) -> tuple[bool, Any]:
    """
    Checks a single preference value.

    Returns (accepted, normalized value). Rejected values are never coerced.
    """
    if name == "default_currency":
        if isinstance(value, str) and is_supported_currency(value.strip().upper()):
            return True, value.strip().upper()
        return False, None

    if name == "default_time_zone":
        if isinstance(value, str) and is_valid_zone(value):
            return True, value
        return False, None

    if name == "decimal_places":
        if isinstance(value, bool) or not isinstance(value, int | float):
            return False, None
        try:
            value = float(value)
        except OverflowError:
            return False, None
        if not math.isfinite(value) or not (
            MIN_DECIMAL_PLACES <= value <= MAX_DECIMAL_PLACES
        ):
            return False, None
        return True, math.floor(value)

    if name in _ENUM_FIELDS:
        return (True, value) if value in _ENUM_FIELDS[name] else (False, None)

    if name in _BOOLEAN_FIELDS:
        return (True, value) if isinstance(value, bool) else (False, None)

    if name == "preferred_units":
        if isinstance(value, dict) and all(
            isinstance(k, str) and isinstance(v, str) and v for k, v in value.items()
        ):
            return True, dict(value)
        return False, None

    return False, None


def validate_preference_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Returns only the fields of `updates` that pass validation, normalized."""
    validated = {}
    for name, value in updates.items():
        accepted, normalized = _validate_field(name, value)
        if accepted:
            validated[name] = normalized
        else:
            log.debug(f"Dropping invalid preference {name}={value!r}")
    return validated


class PreferencesStore:
    """
    Holds the current preferences, persists every change and notifies listeners.

    Until `initialize()` finishes, readers get the defaults.
    """

    def __init__(self, cache_manager: CacheManager):
        self.cache_manager = cache_manager
        self._preferences = UserPreferences.defaults()
        self._ready = asyncio.Event()
        self.changes: Subscribers[UserPreferences] = Subscribers("preferences")

    async def initialize(self) -> None:
        if self._ready.is_set():
            return
        self._preferences = await self.cache_manager.get_cached_user_preferences()
        self._ready.set()
        log.debug("Preferences loaded.")

    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def get_preferences(self) -> UserPreferences:
        await self.initialize()
        return self._preferences.model_copy(deep=True)

    def get_preferences_sync(self) -> UserPreferences:
        return self._preferences.model_copy(deep=True)

    async def _commit(self, preferences: UserPreferences) -> None:
        await self.cache_manager.cache_user_preferences(preferences)
        self._preferences = preferences
        self.changes.publish(preferences.model_copy(deep=True))

    async def update_preferences(self, updates: dict[str, Any]) -> UserPreferences:
        """
        Applies every valid field in `updates`; invalid fields are dropped.

        `preferred_units` is merged key by key into the current mapping.
        """
        await self.initialize()
        validated = validate_preference_updates(updates)
        if not validated:
            return self._preferences.model_copy(deep=True)

        current = self._preferences.model_dump()
        if "preferred_units" in validated:
            validated["preferred_units"] = {
                **current["preferred_units"],
                **validated["preferred_units"],
            }
        updated = UserPreferences.model_validate({**current, **validated})
        await self._commit(updated)
        return updated.model_copy(deep=True)

    async def reset_preferences(self) -> UserPreferences:
        await self.initialize()
        defaults = UserPreferences.defaults()
        await self._commit(defaults)
        log.info("Preferences reset to defaults.")
        return defaults.model_copy(deep=True)

    async def get_preference(self, key: str) -> Any:
        if key not in PREFERENCE_FIELDS:
            raise InvalidInputError(f"Unknown preference '{key}'.", {"key": key})
        preferences = await self.get_preferences()
        return getattr(preferences, key)

    async def set_preference(self, key: str, value: Any) -> UserPreferences:
        """
        Sets one preference.

        Raises:
            InvalidInputError: If the key is unknown or the value is rejected.
        """
        if key not in PREFERENCE_FIELDS:
            raise InvalidInputError(f"Unknown preference '{key}'.", {"key": key})
        accepted, _ = _validate_field(key, value)
        if not accepted:
            raise InvalidInputError(
                f"Invalid value for preference '{key}': {value!r}",
                {"key": key, "value": value},
            )
        return await self.update_preferences({key: value})

    def add_change_listener(
        self, listener: Callable[[UserPreferences], None]
    ) -> Callable[[], None]:
        """Registers `listener`; returns a callable that unsubscribes it."""
        return self.changes.subscribe(listener)

    async def get_theme_preferences(self) -> dict[str, Any]:
        preferences = await self.get_preferences()
        return preferences.model_dump(
            include={
                "theme",
                "color_scheme",
                "contrast",
                "font_size",
                "enable_animations",
                "reduced_motion",
            }
        )

    async def get_conversion_preferences(self) -> dict[str, Any]:
        preferences = await self.get_preferences()
        return preferences.model_dump(
            include={
                "default_currency",
                "default_time_zone",
                "preferred_units",
                "decimal_places",
                "auto_update_rates",
            }
        )

    async def export_preferences(self) -> str:
        preferences = await self.get_preferences()
        return json.dumps(
            {
                "preferences": preferences.model_dump(),
                "exportDate": datetime.now(timezone.utc).isoformat(),
                "version": EXPORT_FORMAT_VERSION,
            },
            indent=2,
        )

    async def import_preferences(self, payload: str) -> UserPreferences:
        """
        Restores preferences from an `export_preferences()` document.

        Valid imported fields replace current values; imported fields that
        fail validation fall back to their defaults.

        Raises:
            PreferencesImportError: If the payload is not JSON or lacks the
                `preferences` object or `version` marker. Current preferences
                are left untouched.
        """
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise PreferencesImportError(
                f"Failed to import preferences: not valid JSON ({e})."
            ) from e

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("preferences"), dict)
            or not data.get("version")
        ):
            raise PreferencesImportError(
                "Failed to import preferences: invalid backup format.",
                {"keys": sorted(data) if isinstance(data, dict) else type(data).__name__},
            )

        await self.initialize()
        imported = data["preferences"]
        defaults = UserPreferences.defaults().model_dump()
        merged = self._preferences.model_dump()
        for name in PREFERENCE_FIELDS:
            if name not in imported:
                continue
            accepted, normalized = _validate_field(name, imported[name])
            merged[name] = normalized if accepted else defaults[name]

        preferences = UserPreferences.model_validate(merged)
        await self._commit(preferences)
        log.info("Preferences imported.")
        return preferences.model_copy(deep=True)
