"""
Shared SQLite connection for the tracker.

The bot keeps a single aiosqlite connection open for its whole lifetime.
The status cache and the subscription store both go through it:

    async with db_connection.read() as conn:
        rows = await conn.execute_fetchall("SELECT * FROM cc_status")

    async with db_connection.transaction() as conn:
        await conn.execute("DELETE FROM cc_status WHERE thread_id = ?", (thread_id,))

SQLite allows one writer at a time, so ``transaction()`` holds an
``asyncio.Lock`` for its duration. In WAL mode readers are never blocked
by that writer, so ``read()`` takes no lock.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from cctracker.util.logger import get_logger

logger = get_logger("db_connection")

CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 5000",
    "PRAGMA temp_store = MEMORY",
)


class ConnectionManager:
    """Owns the tracker's aiosqlite connection and hands it out for reads and writes."""

    def __init__(self) -> None:
        self._db: aiosqlite.Connection | None = None
        self._db_path: Path | None = None
        self._writer_lock = asyncio.Lock()

    @property
    def path(self) -> Path | None:
        return self._db_path

    async def open(self, path: Path) -> None:
        """Connect to ``path``, creating its directory, and apply the connection pragmas.

        A second call while already connected is logged and ignored.
        """
        if self._db is not None:
            logger.warning("[DB] Connection to %s already open, not reopening", self._db_path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(path)
        db.row_factory = aiosqlite.Row
        for pragma in CONNECTION_PRAGMAS:
            await db.execute(pragma)
        await db.commit()

        self._db = db
        self._db_path = path
        logger.info("[DB] Connected to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file and disconnect. Safe to call twice."""
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except aiosqlite.Error:
            logger.exception("[DB] WAL checkpoint failed while closing %s", self._db_path)
        finally:
            await db.close()
        logger.info("[DB] Disconnected from %s", self._db_path)

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database connection is not open; Database.initialize() must run first")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Exclusive write scope. Commits when the block exits normally and rolls back otherwise."""
        db = self.connection
        async with self._writer_lock:
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


db_connection = ConnectionManager()
