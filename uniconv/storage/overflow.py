"""
SQLite-backed secondary tier used only when the primary file tier is full.
"""

import asyncio
import logging
import math
import sqlite3
from contextlib import closing
from pathlib import Path

from uniconv.exceptions import StorageQuotaExceededError

log = logging.getLogger(__name__)


class SQLiteOverflowTier:
    """
    A higher-capacity key/value table holding serialized cache records.

    Calls run in worker threads behind a semaphore so the event loop never
    blocks on disk I/O.
    """

    def __init__(
        self, db_path: Path, max_value_bytes: int = 25 * 1024 * 1024, pool_size: int = 5
    ):
        self.db_path = db_path
        self.max_value_bytes = max_value_bytes
        self._connection_semaphore = asyncio.Semaphore(pool_size)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Opens a new database connection with WAL enabled."""
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _initialize_db(self) -> None:
        try:
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cache_entries (
                        key TEXT PRIMARY KEY NOT NULL,
                        payload TEXT NOT NULL,
                        expires_at REAL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_expires_at ON"
                    " cache_entries(expires_at);"
                )
        except sqlite3.Error as e:
            log.error(f"Failed to initialize overflow database at '{self.db_path}': {e}")

    async def _run_in_executor(self, func, *args):
        async with self._connection_semaphore:
            return await asyncio.to_thread(func, *args)

    def _get_sync(self, key: str) -> str | None:
        with closing(self._get_connection()) as conn:
            row = conn.execute(
                "SELECT payload FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _put_sync(self, key: str, payload: str, expires_at: float) -> None:
        size = len(payload.encode("utf-8"))
        if size > self.max_value_bytes:
            raise StorageQuotaExceededError(
                f"Value for '{key}' ({size} bytes) exceeds the overflow tier limit.",
                {"key": key, "size": size},
            )
        stored_expiry = None if math.isinf(expires_at) else expires_at
        with closing(self._get_connection()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, payload, expires_at) "
                "VALUES (?, ?, ?)",
                (key, payload, stored_expiry),
            )

    def _delete_sync(self, key: str) -> None:
        with closing(self._get_connection()) as conn, conn:
            conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))

    def _keys_sync(self) -> list[str]:
        with closing(self._get_connection()) as conn:
            return [row[0] for row in conn.execute("SELECT key FROM cache_entries")]

    def _clear_sync(self, keep: frozenset[str]) -> int:
        with closing(self._get_connection()) as conn, conn:
            if keep:
                placeholders = ",".join("?" * len(keep))
                cursor = conn.execute(
                    f"DELETE FROM cache_entries WHERE key NOT IN ({placeholders})",  # noqa: S608
                    tuple(keep),
                )
            else:
                cursor = conn.execute("DELETE FROM cache_entries")
            return cursor.rowcount

    def _sweep_sync(self, now: float) -> int:
        with closing(self._get_connection()) as conn, conn:
            cursor = conn.execute(
                "DELETE FROM cache_entries "
                "WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
            return cursor.rowcount

    def _usage_sync(self) -> tuple[int, int]:
        with closing(self._get_connection()) as conn:
            count, total = conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(LENGTH(payload)), 0) FROM cache_entries"
            ).fetchone()
        return int(count), int(total)

    async def get(self, key: str) -> str | None:
        return await self._run_in_executor(self._get_sync, key)

    async def put(self, key: str, payload: str, expires_at: float) -> None:
        await self._run_in_executor(self._put_sync, key, payload, expires_at)

    async def delete(self, key: str) -> None:
        await self._run_in_executor(self._delete_sync, key)

    async def keys(self) -> list[str]:
        return await self._run_in_executor(self._keys_sync)

    async def clear(self, keep: frozenset[str] = frozenset()) -> int:
        return await self._run_in_executor(self._clear_sync, keep)

    async def sweep(self, now: float) -> int:
        return await self._run_in_executor(self._sweep_sync, now)

    async def usage(self) -> tuple[int, int]:
        """Returns (entry count, payload bytes)."""
        return await self._run_in_executor(self._usage_sync)

    def _vacuum_sync(self) -> bool:
        try:
            with closing(self._get_connection()) as conn:
                conn.execute("VACUUM;")
                conn.execute("ANALYZE;")
            log.info("Overflow database optimized successfully.")
            return True
        except sqlite3.Error as e:
            log.error(f"Overflow database vacuum failed: {e}")
            return False

    async def vacuum(self) -> bool:
        """Rebuilds the database file to reclaim space freed by sweeps."""
        return await self._run_in_executor(self._vacuum_sync)
