"""
A tiered, file-based JSON store with per-entry expiry.

Values land in a capacity-limited directory of JSON files. When that tier is
full even after sweeping expired entries, the value overflows into a SQLite
table. Every record is wrapped in a `CacheEntry` envelope and checked on read;
a record that fails the check is purged instead of returned.
"""

import asyncio
import errno
import hashlib
import json
import logging
import math
import os
import sqlite3
import threading
import time
from collections.abc import Iterable
from contextlib import suppress
from pathlib import Path
from typing import Any

from uniconv.exceptions import StorageError, StorageQuotaExceededError
from uniconv.models.entities import CacheEntry, CacheMetadata
from uniconv.utils.validation import Validator

from .overflow import SQLiteOverflowTier

log = logging.getLogger(__name__)

STORE_VERSION = "1.0"
DEFAULT_TTL = 24 * 3600.0


class FileTier:
    """The primary tier: one JSON file per key, bounded in total bytes."""

    def __init__(self, directory: Path, capacity_bytes: int, max_value_bytes: int):
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)
        self.capacity_bytes = capacity_bytes
        self.max_value_bytes = max_value_bytes

    def _get_path(self, key: str) -> Path:
        """Generates a safe filename for a given key."""
        hashed_key = hashlib.md5(key.encode("utf-8")).hexdigest()  # noqa: S324
        return self.directory / f"{hashed_key}.json"

    def files(self) -> list[Path]:
        return list(self.directory.glob("*.json"))

    def read(self, key: str) -> str | None:
        path = self._get_path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            log.debug(f"Primary tier read failed for key '{key}': {e}")
            return None

    def write(self, key: str, payload: str) -> None:
        encoded = payload.encode("utf-8")
        size = len(encoded)
        if size > self.max_value_bytes:
            raise StorageQuotaExceededError(
                f"Value for '{key}' ({size} bytes) exceeds the primary tier limit.",
                {"key": key, "size": size},
            )

        path = self._get_path(key)
        existing = path.stat().st_size if path.is_file() else 0
        _, used = self.usage()
        if used - existing + size > self.capacity_bytes:
            raise StorageQuotaExceededError(
                "Primary tier is full.",
                {"key": key, "used": used, "capacity": self.capacity_bytes},
            )

        # Readers must never observe a half-written file.
        temp_path = path.with_suffix(f".{threading.get_ident()}.tmp")
        try:
            temp_path.write_bytes(encoded)
            os.replace(temp_path, path)
        except OSError as e:
            with suppress(OSError):
                temp_path.unlink()
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                raise StorageQuotaExceededError(
                    f"Disk quota hit while writing '{key}'.", {"key": key}
                ) from e
            raise StorageError(f"Could not write '{key}': {e}", {"key": key}) from e

    def delete(self, key: str) -> bool:
        path = self._get_path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def usage(self) -> tuple[int, int]:
        """Returns (file count, total bytes)."""
        count = total = 0
        for path in self.files():
            with suppress(OSError):
                total += path.stat().st_size
                count += 1
        return count, total


class PersistentStore:
    """
    Key/value store over a primary file tier and a SQLite overflow tier.

    Reads check the primary tier first, then the overflow tier. A write that
    lands in one tier removes any copy of the key from the other.
    """

    def __init__(
        self,
        root_dir: Path,
        default_ttl: float = DEFAULT_TTL,
        capacity_bytes: int = 5 * 1024 * 1024,
        max_value_bytes: int = 512 * 1024,
        secondary_max_value_bytes: int = 25 * 1024 * 1024,
        cleanup_interval: float = 3600.0,
        cleanup_initial_delay: float = 5.0,
        preserved_keys: Iterable[str] = (),
    ):
        """
        Initializes both tiers under `root_dir`.

        Args:
            root_dir: Directory holding the primary files, overflow database and
                metadata file.
            default_ttl: TTL in seconds applied when `set` is called without one.
            capacity_bytes: Total size budget of the primary tier.
            max_value_bytes: Largest single record the primary tier accepts.
            secondary_max_value_bytes: Largest single record the overflow tier
                accepts.
            cleanup_interval: Seconds between background sweeps.
            cleanup_initial_delay: Seconds before the first background sweep.
            preserved_keys: Keys that survive a non-full `clear()`.
        """
        self.root_dir = root_dir
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self.cleanup_initial_delay = cleanup_initial_delay
        self.preserved_keys = frozenset(preserved_keys)

        self._primary = FileTier(self.root_dir / "cache", capacity_bytes, max_value_bytes)
        self._overflow = SQLiteOverflowTier(
            self.root_dir / "overflow.db", max_value_bytes=secondary_max_value_bytes
        )
        self._entry_validator = Validator(CacheEntry)
        self._metadata_path = self.root_dir / "metadata.json"
        self._metadata = self._load_metadata()
        self._cleanup_task: asyncio.Task | None = None

        self.hits = 0
        self.misses = 0

    @property
    def metadata(self) -> CacheMetadata:
        return self._metadata

    # --- Metadata -------------------------------------------------------------

    def _load_metadata(self) -> CacheMetadata:
        if not self._metadata_path.is_file():
            return CacheMetadata(version=STORE_VERSION)
        try:
            return CacheMetadata.model_validate_json(
                self._metadata_path.read_text(encoding="utf-8")
            )
        except (OSError, ValueError) as e:
            log.debug(f"Discarding unreadable store metadata: {e}")
            return CacheMetadata(version=STORE_VERSION)

    async def _refresh_metadata(self) -> None:
        primary_count, primary_bytes = await asyncio.to_thread(self._primary.usage)
        overflow_count, overflow_bytes = await self._overflow.usage()
        self._metadata = CacheMetadata(
            total_size=primary_bytes + overflow_bytes,
            entry_count=primary_count + overflow_count,
            last_cleanup=self._metadata.last_cleanup,
            version=STORE_VERSION,
        )
        try:
            self._metadata_path.write_text(
                self._metadata.model_dump_json(), encoding="utf-8"
            )
        except OSError as e:
            log.warning(f"Failed to persist store metadata: {e}")

    # --- Record envelope ------------------------------------------------------

    def _decode(self, key: str, raw: str) -> CacheEntry | None:
        """Parses and validates a stored record; returns None if it is corrupt."""
        try:
            record = json.loads(raw)
        except ValueError as e:
            log.warning(f"Purging unreadable cache entry '{key}': {e}")
            return None
        if not isinstance(record, dict):
            log.warning(f"Purging malformed cache entry '{key}'.")
            return None

        record.pop("key", None)
        result = self._entry_validator.validate(record)
        if not result.is_valid:
            log.warning(
                f"Purging corrupted cache entry '{key}': {'; '.join(result.errors)}"
            )
            return None
        return result.value

    @staticmethod
    def _expiry_for(now: float, ttl: float) -> float:
        if math.isinf(ttl) and ttl > 0:
            return math.inf
        # A negative TTL yields an entry that is already expired.
        return max(now, now + ttl)

    # --- Public API -----------------------------------------------------------

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Returns the live envelope for `key`, purging it if corrupt or expired."""
        now = time.time()

        raw = await asyncio.to_thread(self._primary.read, key)
        if raw is not None:
            entry = self._decode(key, raw)
            if entry is not None and not entry.is_expired(now):
                self.hits += 1
                return entry
            await asyncio.to_thread(self._primary.delete, key)
            await self._refresh_metadata()
            if entry is not None:
                self.misses += 1
                return None

        raw = await self._overflow.get(key)
        if raw is None:
            self.misses += 1
            return None

        entry = self._decode(key, raw)
        if entry is None or entry.is_expired(now):
            await self._overflow.delete(key)
            await self._refresh_metadata()
            self.misses += 1
            return None

        self.hits += 1
        return entry

    async def get(self, key: str) -> Any | None:
        entry = await self.get_entry(key)
        return entry.data if entry else None

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Stores `value` under `key` for `ttl` seconds (`math.inf` never expires).

        Raises:
            StorageError: If neither tier accepts the value, or it cannot be
                serialized.
        """
        now = time.time()
        ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(
            data=value,
            timestamp=now,
            expires_at=self._expiry_for(now, ttl),
            version=STORE_VERSION,
        )
        try:
            payload = json.dumps({"key": key, **entry.model_dump(by_alias=True)})
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Value for '{key}' cannot be serialized: {e}", {"key": key}
            ) from e

        try:
            await asyncio.to_thread(self._write_primary, key, payload)
            await self._overflow.delete(key)
        except StorageQuotaExceededError as e:
            log.debug(f"Primary tier rejected '{key}' ({e.message}), using overflow.")
            try:
                await self._overflow.put(key, payload, entry.expires_at)
            except (StorageQuotaExceededError, sqlite3.Error) as overflow_error:
                raise StorageError(
                    f"No storage tier accepted the value for '{key}'.",
                    {"key": key, "reason": overflow_error},
                ) from overflow_error
            await asyncio.to_thread(self._primary.delete, key)

        await self._refresh_metadata()

    def _write_primary(self, key: str, payload: str) -> None:
        try:
            self._primary.write(key, payload)
        except StorageQuotaExceededError:
            removed = self._sweep_primary(time.time())
            log.debug(f"Primary tier full; swept {removed} entries before retrying.")
            self._primary.write(key, payload)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._primary.delete, key)
        await self._overflow.delete(key)
        await self._refresh_metadata()

    async def keys(self) -> list[str]:
        primary_keys = await asyncio.to_thread(self._primary_keys)
        overflow_keys = await self._overflow.keys()
        return sorted(set(primary_keys) | set(overflow_keys))

    def _primary_keys(self) -> list[str]:
        keys = []
        for path in self._primary.files():
            try:
                record = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue
            if isinstance(record, dict) and isinstance(record.get("key"), str):
                keys.append(record["key"])
        return keys

    async def clear(self, full: bool = False) -> None:
        """Removes all entries except the preserved keys, or everything if `full`."""
        keep = frozenset() if full else self.preserved_keys
        log.info("Clearing all cache entries..." if full else "Clearing cache entries...")
        await asyncio.to_thread(self._clear_primary, keep)
        await self._overflow.clear(keep)
        await self._refresh_metadata()

    def _clear_primary(self, keep: frozenset[str]) -> None:
        keep_paths = {self._primary._get_path(key) for key in keep}
        for path in self._primary.files():
            if path in keep_paths:
                continue
            try:
                path.unlink()
            except OSError as e:
                log.error(f"Failed to remove cache file {path.name}: {e}")

    async def size(self) -> int:
        """Returns the total bytes held across both tiers."""
        await self._refresh_metadata()
        return self._metadata.total_size

    async def tier_counts(self) -> tuple[int, int]:
        """Returns the number of records held by (primary, overflow)."""
        primary_count, _ = await asyncio.to_thread(self._primary.usage)
        overflow_count, _ = await self._overflow.usage()
        return primary_count, overflow_count

    async def vacuum(self) -> bool:
        """Sweeps expired entries, then compacts the overflow database."""
        await self.sweep_expired()
        return await self._overflow.vacuum()

    # --- Expiry sweeping ------------------------------------------------------

    def _sweep_primary(self, now: float) -> int:
        """Removes expired and unreadable files from the primary tier."""
        removed = 0
        for path in self._primary.files():
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError:
                continue
            entry = self._decode(path.stem, raw)
            if entry is not None and not entry.is_expired(now):
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                log.warning(f"Failed to remove expired cache file {path.name}: {e}")
        return removed

    async def sweep_expired(self) -> int:
        """Removes expired entries from both tiers and returns how many went."""
        now = time.time()
        removed = await asyncio.to_thread(self._sweep_primary, now)
        removed += await self._overflow.sweep(now)
        self._metadata = self._metadata.model_copy(update={"last_cleanup": now})
        await self._refresh_metadata()
        if removed > 0:
            log.debug(f"Cache cleanup: removed {removed} expired entries.")
        return removed

    async def start_background_cleanup(self):
        """Starts the periodic background cleanup task."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            log.debug("Started cache background cleanup task.")

    async def _cleanup_loop(self):
        """Runs the sweep periodically in the background."""
        delay = self.cleanup_initial_delay
        while True:
            try:
                await asyncio.sleep(delay)
                await self.sweep_expired()
            except asyncio.CancelledError:
                log.debug("Cache cleanup task cancelled.")
                break
            except Exception as e:
                log.warning(f"Error in cache cleanup loop: {e}")
            delay = self.cleanup_interval

    async def stop_background_cleanup(self):
        """Stops the background cleanup task gracefully."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._cleanup_task
            log.debug("Stopped cache background cleanup task.")

    async def close(self) -> None:
        await self.stop_background_cleanup()
