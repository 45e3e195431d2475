"""
Entry point for the C&C status tracker bot.

Startup order: resolve the project home, load ``.env``, open the SQLite
store, register the tracking cog, then hand control to py-cord until the
gateway connection ends. Shutdown runs the same steps in reverse.
"""

import asyncio
import os
import sys
from pathlib import Path

import discord
from dotenv import load_dotenv

from cctracker.database.database import Database
from cctracker.util.logger import get_logger, handle_exception

logger = get_logger("main")

TOKEN_VARIABLE = "DISCORD_BOT_TOKEN"


def resolve_base_dir() -> Path:
    """``CCTRACKER_HOME`` when set, else the checkout root (two levels above this package)."""
    home = os.getenv("CCTRACKER_HOME")
    if home:
        return Path(home).resolve()
    return Path(__file__).resolve().parents[2]


def load_environment(base_dir: Path) -> str:
    """Read ``base_dir/.env`` into the environment and return the bot token.

    Exits the process with status 1 when no token is configured.
    """
    load_dotenv(dotenv_path=base_dir / ".env")
    token = os.getenv(TOKEN_VARIABLE)
    if not token:
        logger.critical("[MAIN] %s is not set; refusing to start", TOKEN_VARIABLE)
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    # Only channels need resolving; message content is never read
    intents = discord.Intents.default()
    intents.guilds = True
    intents.message_content = False
    return intents


def load_cogs(bot: discord.Bot) -> None:
    from cctracker.cog import cc_status_cog

    cc_status_cog.setup(bot)
    logger.info("[MAIN] Registered cogs: CCStatusCog")


def create_bot() -> discord.Bot:
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Run the gateway connection until it closes or the task is cancelled."""
    logger.info("[MAIN] Connecting to Discord")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("[MAIN] Connection task cancelled")
    finally:
        logger.info("[MAIN] Disconnected from Discord")


async def shutdown_runtime(bot: discord.Bot | None, database: Database) -> None:
    """Stop polling first so no cycle writes to a closing database."""
    if bot is not None:
        tracker = bot.cogs.get("CCStatusCog")
        if tracker is not None:
            try:
                await tracker.close()
            except Exception:
                logger.exception("[MAIN] C&C tracker did not stop cleanly")
        if not bot.is_closed():
            await bot.close()

    await database.shutdown()
    logger.info("[MAIN] Stopped")


async def async_main() -> int:
    base_dir = resolve_base_dir()
    os.chdir(base_dir)
    token = load_environment(base_dir)

    # Relative config and database paths resolve against base_dir, so import after chdir
    from cctracker.configuration.app_configuration import app_config

    database = Database(db_path=app_config.database_path)
    if not await database.initialize():
        logger.critical("[MAIN] Database at %s is unusable", app_config.database_path)
        return 1

    try:
        bot = create_bot()
    except Exception:
        logger.critical("[MAIN] Could not construct the bot", exc_info=True)
        await database.shutdown()
        return 1

    status = 0
    try:
        await start_bot(bot, token)
    except Exception:
        logger.critical("[MAIN] Bot stopped with an error", exc_info=True)
        status = 1
    finally:
        await shutdown_runtime(bot, database)
    return status


def main() -> int:
    """Console-script entry point; returns the process exit status."""
    sys.excepthook = handle_exception
    logger.info("[MAIN] Starting C&C status tracker")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("[MAIN] Interrupted")
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1
    except Exception:
        logger.critical("[MAIN] Unhandled error", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
