"""
Repository for the cc_subscriptions table.

A subscription routes alerts for one tier/generation pair to one channel,
optionally pinging a role.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from cctracker.datatypes.cc_datatypes import SubscriptionEntry
from cctracker.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from cctracker.util.logger import get_logger

logger = get_logger("cc_subscription_repo")

_COLUMNS = "server_id, channel_id, tier, generation, role_id, cooldown, prefix"


def _row_to_entry(row: aiosqlite.Row) -> SubscriptionEntry:
    return SubscriptionEntry(
        server_id=GuildID(row[0]),
        channel_id=ChannelID(row[1]),
        tier=row[2],
        generation=row[3],
        role_id=RoleID(row[4]) if row[4] is not None else None,
        cooldown=row[5],
        prefix=row[6],
    )


class CCSubscriptionRepo:
    """CRUD for the cc_subscriptions table."""

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> List[SubscriptionEntry]:
        """Return every subscription row."""
        async with conn.execute(f"SELECT {_COLUMNS} FROM cc_subscriptions") as cursor:
            rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    @staticmethod
    async def get_for_server(conn: aiosqlite.Connection, server_id: GuildID) -> List[SubscriptionEntry]:
        """Return the subscriptions configured in one server."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM cc_subscriptions WHERE server_id = ? ORDER BY channel_id, tier, generation",
            (server_id.to_int(),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, entry: SubscriptionEntry) -> None:
        """Insert a subscription, or refresh role/cooldown/prefix if it already exists."""
        await conn.execute(
            f"""
            INSERT INTO cc_subscriptions ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(server_id, channel_id, tier, generation) DO UPDATE SET
                role_id  = excluded.role_id,
                cooldown = excluded.cooldown,
                prefix   = excluded.prefix
            """,
            (
                entry.server_id.to_int(),
                entry.channel_id.to_int(),
                entry.tier,
                entry.generation,
                entry.role_id.to_int() if entry.role_id is not None else None,
                entry.cooldown,
                entry.prefix,
            ),
        )

    @staticmethod
    async def delete(
        conn: aiosqlite.Connection,
        server_id: GuildID,
        channel_id: ChannelID,
        tier: str,
        generation: str,
    ) -> int:
        """Remove one subscription. Returns the number of rows deleted."""
        cursor = await conn.execute(
            "DELETE FROM cc_subscriptions WHERE server_id = ? AND channel_id = ? AND tier = ? AND generation = ?",
            (server_id.to_int(), channel_id.to_int(), tier, generation),
        )
        return cursor.rowcount

    @staticmethod
    async def delete_by_server(conn: aiosqlite.Connection, server_id: GuildID, channel_id: Optional[ChannelID] = None) -> int:
        """Remove every subscription in a server, or only those of one channel."""
        if channel_id is None:
            cursor = await conn.execute("DELETE FROM cc_subscriptions WHERE server_id = ?", (server_id.to_int(),))
        else:
            cursor = await conn.execute(
                "DELETE FROM cc_subscriptions WHERE server_id = ? AND channel_id = ?",
                (server_id.to_int(), channel_id.to_int()),
            )
        return cursor.rowcount


# Module-level singleton
cc_subscription_storage = CCSubscriptionRepo()
