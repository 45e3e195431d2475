from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cctracker import main as main_module
from cctracker.cog.cc_status_cog import CCStatusCog


def test_load_environment_returns_token(monkeypatch, tmp_path):
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")
    assert main_module.load_environment(tmp_path) == "abc"


def test_load_environment_exits_without_token(monkeypatch, tmp_path):
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)
    with pytest.raises(SystemExit) as exc_info:
        main_module.load_environment(tmp_path)
    assert exc_info.value.code == 1


def test_resolve_base_dir_prefers_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CCTRACKER_HOME", str(tmp_path))
    assert main_module.resolve_base_dir() == tmp_path.resolve()


def test_build_intents_does_not_request_message_content():
    intents = main_module.build_intents()
    assert intents.guilds is True
    assert intents.message_content is False


def test_create_bot_registers_status_cog():
    with patch("cctracker.main.discord.Bot") as bot_cls:
        bot = main_module.create_bot()

    assert bot is bot_cls.return_value
    (cog,), _ = bot.add_cog.call_args
    assert isinstance(cog, CCStatusCog)


@pytest.mark.asyncio
async def test_shutdown_runtime_closes_everything():
    cog = MagicMock()
    cog.close = AsyncMock()
    bot = MagicMock()
    bot.cogs = {"CCStatusCog": cog}
    bot.is_closed = MagicMock(return_value=False)
    bot.close = AsyncMock()
    database = MagicMock()
    database.shutdown = AsyncMock()

    await main_module.shutdown_runtime(bot, database)

    cog.close.assert_awaited_once()
    bot.close.assert_awaited_once()
    database.shutdown.assert_awaited_once()


def test_main_returns_async_exit_code():
    with patch("cctracker.main.async_main", new=AsyncMock(return_value=3)):
        assert main_module.main() == 3


def test_main_handles_keyboard_interrupt():
    with patch("cctracker.main.async_main", new=MagicMock()) as async_main, \
            patch("cctracker.main.asyncio.run", side_effect=KeyboardInterrupt):
        assert main_module.main() == 0
    async_main.assert_called_once()
