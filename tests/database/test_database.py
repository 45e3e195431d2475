"""
Tests for Database startup and shutdown.
"""

from unittest.mock import AsyncMock, patch

import aiosqlite
import pytest

from cctracker.database.database import Database
from cctracker.database.db_connection import ConnectionManager


@pytest.mark.asyncio
async def test_initialize_and_shutdown(tmp_path):
    manager = ConnectionManager()
    db = Database(tmp_path / "nested" / "cc.db", connection_manager=manager)

    assert await db.initialize()
    assert await db.initialize()  # second call is a no-op
    assert (tmp_path / "nested" / "cc.db").exists()

    await db.shutdown()
    with pytest.raises(RuntimeError):
        manager.connection


@pytest.mark.asyncio
async def test_failed_schema_closes_connection(tmp_path):
    manager = ConnectionManager()
    db = Database(tmp_path / "cc.db", connection_manager=manager)

    failing = AsyncMock(side_effect=aiosqlite.OperationalError("disk I/O error"))
    with patch("cctracker.database.database.SchemaManager.initialize_schema", new=failing):
        assert await db.initialize() is False

    with pytest.raises(RuntimeError):
        manager.connection

    # a later attempt can reopen the same manager
    assert await db.initialize()
    await db.shutdown()
