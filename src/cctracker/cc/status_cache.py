"""
Status cache for the C&C tracker.

Wraps the ``cc_status`` and ``cc_subscriptions`` repositories behind the
small interface the reconciliation cycle needs. Write failures are logged
and reported as ``False`` rather than raised: a thread whose cache write
failed still looks changed on the next cycle and is retried then.
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from cctracker.cc.forum_sections import normalize_generation, normalize_tier
from cctracker.database.db_connection import ConnectionManager, db_connection
from cctracker.datatypes.cc_datatypes import CacheEntry, StatusCacheData, SubscriptionEntry
from cctracker.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from cctracker.repositories.cc_status_repo import cc_status_storage
from cctracker.repositories.cc_subscription_repo import cc_subscription_storage
from cctracker.util.logger import get_logger

logger = get_logger("status_cache")


class StatusCache:
    """Persisted thread statuses plus the subscription table."""

    def __init__(self, connection_manager: ConnectionManager = db_connection) -> None:
        self._db = connection_manager

    # ------------------------------------------------------------------
    # Reconciliation interface
    # ------------------------------------------------------------------

    async def load(self) -> StatusCacheData:
        """Read every cached status and every subscription."""
        async with self._db.read() as conn:
            entries = await cc_status_storage.get_all(conn)
            subscriptions = await cc_subscription_storage.get_all(conn)
        logger.debug("[STATUS CACHE] Loaded %d entries and %d subscriptions", len(entries), len(subscriptions))
        return StatusCacheData(entries=entries, subscriptions=subscriptions)

    async def upsert(self, entry: CacheEntry) -> bool:
        """Store the latest status of a thread; last write wins."""
        try:
            async with self._db.transaction() as conn:
                await cc_status_storage.upsert(conn, entry)
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[STATUS CACHE] Failed to store status for thread %s: %s", entry.thread_id, exc)
            return False
        return True

    async def delete(self, thread_id: int) -> bool:
        """Forget a thread. Deleting a thread that is not cached succeeds."""
        try:
            async with self._db.transaction() as conn:
                await cc_status_storage.delete(conn, thread_id)
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[STATUS CACHE] Failed to evict thread %s: %s", thread_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    async def add_subscription(
        self,
        server_id: GuildID,
        channel_id: ChannelID,
        tier: str,
        generation: str,
        *,
        role_id: Optional[RoleID] = None,
        cooldown: Optional[int] = None,
        prefix: Optional[str] = None,
    ) -> SubscriptionEntry:
        """Subscribe a channel to a tier/generation pair, replacing role and options if it exists.

        Raises:
            ValueError: If the tier is blank or the generation is not recognised.
        """
        normalized_tier = normalize_tier(tier)
        if not normalized_tier:
            raise ValueError("Tier must not be empty")
        normalized_generation = normalize_generation(generation)
        if normalized_generation is None:
            raise ValueError(f"Unknown generation: {generation!r}")

        entry = SubscriptionEntry(
            server_id=server_id,
            channel_id=channel_id,
            tier=normalized_tier,
            generation=normalized_generation,
            role_id=role_id,
            cooldown=cooldown,
            prefix=prefix,
        )
        async with self._db.transaction() as conn:
            await cc_subscription_storage.upsert(conn, entry)
        logger.info(
            "[STATUS CACHE] Channel %s in server %s subscribed to gen %s %s",
            channel_id, server_id, normalized_generation, normalized_tier,
        )
        return entry

    async def remove_subscription(self, server_id: GuildID, channel_id: ChannelID, tier: str, generation: str) -> bool:
        """Remove one subscription. Returns False if it did not exist."""
        normalized_generation = normalize_generation(generation)
        if normalized_generation is None:
            return False
        async with self._db.transaction() as conn:
            removed = await cc_subscription_storage.delete(
                conn, server_id, channel_id, normalize_tier(tier), normalized_generation
            )
        return removed > 0

    async def remove_server_subscriptions(self, server_id: GuildID, channel_id: Optional[ChannelID] = None) -> int:
        """Remove every subscription of a server (or of one of its channels)."""
        async with self._db.transaction() as conn:
            removed = await cc_subscription_storage.delete_by_server(conn, server_id, channel_id)
        if removed:
            logger.info("[STATUS CACHE] Removed %d subscriptions for server %s", removed, server_id)
        return removed

    async def list_subscriptions(self, server_id: Optional[GuildID] = None) -> List[SubscriptionEntry]:
        async with self._db.read() as conn:
            if server_id is None:
                return await cc_subscription_storage.get_all(conn)
            return await cc_subscription_storage.get_for_server(conn, server_id)
