"""Seen-set persistence, one logical set per region."""

import aiosqlite
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Set
import logging

from .errors import StoreError
from .models import StoreMode

logger = logging.getLogger(__name__)


class SeenSetStore(Protocol):
    """What the diff engine needs from persistence."""

    async def read(self, region: str) -> Set[str]: ...

    async def write(self, region: str, keys: Iterable[str], mode: StoreMode) -> None: ...


class MemorySeenSetStore:
    """In-process store, for stateless runs and tests."""

    def __init__(self, initial: Optional[Dict[str, Set[str]]] = None):
        self._sets: Dict[str, Set[str]] = {
            region: set(keys) for region, keys in (initial or {}).items()
        }

    async def __aenter__(self) -> "MemorySeenSetStore":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def read(self, region: str) -> Set[str]:
        return set(self._sets.get(region, set()))

    async def write(self, region: str, keys: Iterable[str], mode: StoreMode) -> None:
        keys = {k for k in keys if k}
        if mode == StoreMode.REPLACE:
            self._sets[region] = keys
        else:
            self._sets.setdefault(region, set()).update(keys)


class UnavailableSeenSetStore:
    """Stands in for a store that could not be opened; every call fails."""

    def __init__(self, error: StoreError):
        self.error = error

    async def read(self, region: str) -> Set[str]:
        raise self.error

    async def write(self, region: str, keys: Iterable[str], mode: StoreMode) -> None:
        raise self.error


class SqliteSeenSetStore:
    """
    Async SQLite seen-set store.

    Scoped to one run: open it with ``async with`` so the connection is
    released on every exit path.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def __aenter__(self) -> "SqliteSeenSetStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the connection and create tables."""
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._create_tables()
        except (OSError, sqlite3.Error) as e:
            await self.close()
            raise StoreError(f"Cannot open seen-set store {self.db_path}: {e}") from e
        logger.info(f"Seen-set store connected: {self.db_path}")

    async def close(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("Seen-set store closed")

    async def _create_tables(self) -> None:
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS seen_keys (
                region TEXT NOT NULL,
                normalized_key TEXT NOT NULL,
                first_seen_at TEXT NOT NULL,
                PRIMARY KEY (region, normalized_key)
            )
        """)
        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_seen_first_seen
            ON seen_keys(region, first_seen_at)
        """)
        await self._connection.commit()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StoreError("Seen-set store is not connected")
        return self._connection

    async def read(self, region: str) -> Set[str]:
        """Return the seen keys for a region, empty when none were stored."""
        conn = self._require_connection()
        try:
            cursor = await conn.execute(
                "SELECT normalized_key FROM seen_keys WHERE region = ?", (region,)
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Reading seen set for {region} failed: {e}") from e
        return {row[0] for row in rows}

    async def write(self, region: str, keys: Iterable[str], mode: StoreMode) -> None:
        """
        Persist keys for a region.

        Additive mode unions them into the stored set. Replace mode swaps the
        stored set for exactly ``keys``, in one transaction.
        """
        conn = self._require_connection()
        now = datetime.now(timezone.utc).isoformat()
        rows = [(region, key, now) for key in dict.fromkeys(keys) if key]

        try:
            if mode == StoreMode.REPLACE:
                await conn.execute("DELETE FROM seen_keys WHERE region = ?", (region,))
            await conn.executemany(
                """
                INSERT OR IGNORE INTO seen_keys (region, normalized_key, first_seen_at)
                VALUES (?, ?, ?)
                """,
                rows,
            )
            await conn.commit()
        except sqlite3.Error as e:
            try:
                await conn.rollback()
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback for {region} failed: {rollback_error}")
            raise StoreError(f"Writing seen set for {region} failed: {e}") from e

        logger.debug(f"Stored {len(rows)} keys for {region} ({mode.value})")

    async def prune(self, region: str, older_than: datetime) -> int:
        """Remove keys first seen before ``older_than``. Returns the count removed."""
        conn = self._require_connection()
        try:
            cursor = await conn.execute(
                "DELETE FROM seen_keys WHERE region = ? AND first_seen_at < ?",
                (region, older_than.astimezone(timezone.utc).isoformat()),
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Pruning seen set for {region} failed: {e}") from e

        deleted = cursor.rowcount
        if deleted > 0:
            logger.info(f"Pruned {deleted} seen keys for {region}")
        return deleted
