"""
Tests for the SQLite-backed status cache and subscription storage.
"""

import pytest
import pytest_asyncio

from cctracker.cc.status_cache import StatusCache
from cctracker.database.database import Database
from cctracker.database.db_connection import ConnectionManager
from cctracker.datatypes.cc_datatypes import CacheEntry, Stage
from cctracker.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@pytest_asyncio.fixture
async def connection_manager(tmp_path):
    manager = ConnectionManager()
    db = Database(tmp_path / "cc.db", connection_manager=manager)
    assert await db.initialize()
    yield manager
    await db.shutdown()


@pytest_asyncio.fixture
async def cache(connection_manager):
    return StatusCache(connection_manager)


@pytest.mark.asyncio
async def test_load_empty_database(cache):
    data = await cache.load()
    assert data.entries == []
    assert data.subscriptions == []


@pytest.mark.asyncio
async def test_upsert_is_last_write_wins(cache):
    assert await cache.upsert(CacheEntry(100, Stage.QC, "0/2"))
    assert await cache.upsert(CacheEntry(100, Stage.QC, "1/2"))
    assert await cache.upsert(CacheEntry(101, Stage.WIP))

    data = await cache.load()
    assert sorted(data.entries, key=lambda e: e.thread_id) == [
        CacheEntry(100, Stage.QC, "1/2"),
        CacheEntry(101, Stage.WIP, ""),
    ]


@pytest.mark.asyncio
async def test_upsert_same_value_twice_is_harmless(cache):
    entry = CacheEntry(100, Stage.DONE)
    assert await cache.upsert(entry)
    assert await cache.upsert(entry)
    assert (await cache.load()).entries == [entry]


@pytest.mark.asyncio
async def test_delete(cache):
    await cache.upsert(CacheEntry(100, Stage.GP, "0/?"))

    assert await cache.delete(100)
    assert await cache.delete(100)  # already gone
    assert (await cache.load()).entries == []


@pytest.mark.asyncio
async def test_rows_with_unknown_stage_are_ignored(cache, connection_manager):
    async with connection_manager.transaction() as conn:
        await conn.execute("INSERT INTO cc_status (thread_id, stage, progress) VALUES (1, 'Bogus', '')")
    await cache.upsert(CacheEntry(2, Stage.HTML))

    assert [e.thread_id for e in (await cache.load()).entries] == [2]


@pytest.mark.asyncio
async def test_write_failures_are_reported_not_raised():
    cache = StatusCache(ConnectionManager())  # never opened

    assert await cache.upsert(CacheEntry(1, Stage.WIP)) is False
    assert await cache.delete(1) is False


# ----------------------------------------------------------------------
# Subscriptions
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_subscription_normalises_tier_and_generation(cache):
    entry = await cache.add_subscription(GuildID(1), ChannelID(10), "Stadium OU", "RBY", role_id=RoleID(99))

    assert entry.tier == "stadium-ou"
    assert entry.generation == "1"

    data = await cache.load()
    assert len(data.subscriptions) == 1
    stored = data.subscriptions[0]
    assert stored.server_id == GuildID(1)
    assert stored.channel_id == ChannelID(10)
    assert stored.role_id == RoleID(99)
    assert stored.cooldown is None and stored.prefix is None


@pytest.mark.asyncio
async def test_add_subscription_twice_updates_options(cache):
    await cache.add_subscription(GuildID(1), ChannelID(10), "ou", "9")
    await cache.add_subscription(GuildID(1), ChannelID(10), "OU", "Gen 9", role_id=RoleID(5), cooldown=60, prefix="!")

    subs = await cache.list_subscriptions()
    assert len(subs) == 1
    assert subs[0].role_id == RoleID(5)
    assert subs[0].cooldown == 60
    assert subs[0].prefix == "!"


@pytest.mark.asyncio
async def test_add_subscription_rejects_bad_input(cache):
    with pytest.raises(ValueError):
        await cache.add_subscription(GuildID(1), ChannelID(10), "ou", "gen 12")
    with pytest.raises(ValueError):
        await cache.add_subscription(GuildID(1), ChannelID(10), "   ", "9")


@pytest.mark.asyncio
async def test_remove_subscription(cache):
    await cache.add_subscription(GuildID(1), ChannelID(10), "ou", "9")

    assert await cache.remove_subscription(GuildID(1), ChannelID(10), "OU", "sv") is True
    assert await cache.remove_subscription(GuildID(1), ChannelID(10), "ou", "9") is False
    assert await cache.remove_subscription(GuildID(1), ChannelID(10), "ou", "nonsense") is False


@pytest.mark.asyncio
async def test_remove_and_list_by_server(cache):
    await cache.add_subscription(GuildID(1), ChannelID(10), "ou", "9")
    await cache.add_subscription(GuildID(1), ChannelID(11), "uu", "9")
    await cache.add_subscription(GuildID(2), ChannelID(20), "ou", "9")

    assert [s.channel_id for s in await cache.list_subscriptions(GuildID(1))] == [ChannelID(10), ChannelID(11)]

    assert await cache.remove_server_subscriptions(GuildID(1), ChannelID(11)) == 1
    assert await cache.remove_server_subscriptions(GuildID(1)) == 1
    assert await cache.remove_server_subscriptions(GuildID(1)) == 0

    remaining = await cache.list_subscriptions()
    assert [s.server_id for s in remaining] == [GuildID(2)]
