"""
Table definitions for the tracker's SQLite store.

Every statement is idempotent, so the schema is (re)applied on each start.
"""

import aiosqlite

from cctracker.util.logger import get_logger

logger = get_logger("db_schema")

SCHEMA_VERSION = 1

TABLES = (
    # Last stage and progress seen for each open C&C thread
    """
    CREATE TABLE IF NOT EXISTS cc_status (
        thread_id INTEGER PRIMARY KEY,
        stage TEXT NOT NULL,
        progress TEXT NOT NULL DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # cooldown and prefix are stored for the configuration commands only
    """
    CREATE TABLE IF NOT EXISTS cc_subscriptions (
        server_id INTEGER NOT NULL,
        channel_id INTEGER NOT NULL,
        tier TEXT NOT NULL,
        generation TEXT NOT NULL,
        role_id INTEGER,
        cooldown INTEGER,
        prefix TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (server_id, channel_id, tier, generation)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_cc_subscriptions_target ON cc_subscriptions(tier, generation)",
    "CREATE INDEX IF NOT EXISTS idx_cc_subscriptions_server ON cc_subscriptions(server_id)",
)

TRIGGERS = (
    """
    CREATE TRIGGER IF NOT EXISTS touch_cc_status
    AFTER UPDATE OF stage, progress ON cc_status
    FOR EACH ROW
    BEGIN
        UPDATE cc_status SET updated_at = CURRENT_TIMESTAMP WHERE thread_id = NEW.thread_id;
    END
    """,
)


class SchemaManager:
    """Applies :data:`TABLES`, :data:`INDEXES` and :data:`TRIGGERS` and records the version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        for statement in (*TABLES, *INDEXES, *TRIGGERS):
            await db.execute(statement)
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.debug("[SCHEMA] Schema version %d applied", SCHEMA_VERSION)
