"""
Startup and shutdown of the tracker's SQLite store.

``Database`` opens the shared connection and makes sure the ``cc_status``
and ``cc_subscriptions`` tables exist. Everything after that goes through
the repositories and :class:`cctracker.cc.status_cache.StatusCache`.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from cctracker.database.db_connection import ConnectionManager, db_connection
from cctracker.database.db_schema import SchemaManager
from cctracker.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/cctracker.db").resolve()


class Database:
    """Opens the store at ``db_path`` on ``connection_manager`` and creates the schema."""

    def __init__(self, db_path: Path = DB_PATH, connection_manager: ConnectionManager = db_connection):
        self.db_path = db_path
        self.connection_manager = connection_manager
        self._ready = False

    async def initialize(self) -> bool:
        """Connect and create missing tables.

        Returns False, after logging why, when the file cannot be opened or
        the schema cannot be created. Calling it again once ready is a no-op.
        """
        if self._ready:
            return True

        try:
            await self.connection_manager.open(self.db_path)
            async with self.connection_manager.transaction() as db:
                await SchemaManager.initialize_schema(db)
        except (aiosqlite.Error, OSError) as exc:
            logger.error("[DATABASE] Could not prepare %s: %s", self.db_path, exc)
            await self.connection_manager.close()
            return False

        self._ready = True
        logger.info("[DATABASE] Ready at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        if not self._ready:
            return
        await self.connection_manager.close()
        self._ready = False
        logger.info("[DATABASE] Shut down")
