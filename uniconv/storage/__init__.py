"""
Storage Layer.

This package handles all data persistence: the configuration file, the tiered
persistent store, the typed cache manager on top of it, and user preferences.
"""

from .cache import PersistentStore
from .cache_manager import CACHE_TTL, STORAGE_KEYS, CacheManager
from .config_manager import ConfigManager
from .overflow import SQLiteOverflowTier
from .preferences import PreferencesStore

__all__ = [
    "CACHE_TTL",
    "STORAGE_KEYS",
    "CacheManager",
    "ConfigManager",
    "PersistentStore",
    "PreferencesStore",
    "SQLiteOverflowTier",
]
