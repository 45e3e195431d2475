"""
Persistent storage for the last-known status of each C&C thread.

One row per tracked thread. Stages are stored by their display name
("WIP", "QC", "GP", "HTML", "Done") so the table reads naturally in a
SQLite shell.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from cctracker.datatypes.cc_datatypes import CacheEntry, Stage
from cctracker.util.logger import get_logger

logger = get_logger("cc_status_repo")


class CCStatusRepo:
    """Low-level CRUD for the ``cc_status`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, entry: CacheEntry) -> None:
        """Insert or replace the status row for a thread (primary key = thread_id)."""
        await conn.execute(
            """
            INSERT INTO cc_status (thread_id, stage, progress)
            VALUES (?, ?, ?)
            ON CONFLICT(thread_id) DO UPDATE SET
                stage    = excluded.stage,
                progress = excluded.progress
            """,
            (entry.thread_id, entry.stage.value, entry.progress),
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, thread_id: int) -> int:
        """Remove the row for a thread. Returns the number of rows deleted."""
        cursor = await conn.execute("DELETE FROM cc_status WHERE thread_id = ?", (thread_id,))
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> List[CacheEntry]:
        """Return every cached status.

        Rows whose stage is not a known stage name are logged and left out;
        the next cycle overwrites them with a fresh classification.
        """
        cursor = await conn.execute("SELECT thread_id, stage, progress FROM cc_status")
        rows = await cursor.fetchall()

        entries: List[CacheEntry] = []
        for row in rows:
            try:
                stage = Stage.parse(row[1])
            except ValueError:
                logger.warning("[CC STATUS REPO] Ignoring row for thread %s with unknown stage %r", row[0], row[1])
                continue
            entries.append(CacheEntry(thread_id=int(row[0]), stage=stage, progress=row[2] or ""))
        return entries


# Module-level singleton
cc_status_storage = CCStatusRepo()
