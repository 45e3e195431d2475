"""Background C&C status tracking cog.

Runs one reconciliation cycle per tick of a ``tasks.loop``. The interval
comes from ``cc_status.interval_seconds`` and is applied in ``on_ready``.
"""

from __future__ import annotations

import asyncio
import os
from typing import Optional

import aiohttp
import discord
from discord.ext import commands, tasks

from cctracker.cc.forum_reader import XenForoApiReader
from cctracker.cc.notifier import DiscordNotifier
from cctracker.cc.reconciliation import CycleReport, ReconciliationEngine
from cctracker.cc.status_cache import StatusCache
from cctracker.configuration.app_configuration import AppConfig, app_config
from cctracker.util.logger import get_logger

logger = get_logger("cc_status_cog")


class CCStatusCog(commands.Cog):
    """
    Polls the forum and alerts subscribed channels about C&C transitions.

    Cycles never overlap: a tick that fires while the previous cycle is
    still running is skipped.

    Access via:
        bot.cogs["CCStatusCog"]
    """

    def __init__(
        self,
        bot: discord.Bot,
        *,
        config: AppConfig = app_config,
        engine: Optional[ReconciliationEngine] = None,
    ) -> None:
        self.bot = bot
        self.config = config
        self.engine = engine
        self._session: Optional[aiohttp.ClientSession] = None
        self._cycle_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Cog lifecycle
    # ------------------------------------------------------------------

    def _build_engine(self) -> Optional[ReconciliationEngine]:
        api_key = os.getenv("XF_API_KEY")
        if not api_key:
            logger.error("[CC STATUS] 'XF_API_KEY' environment variable not set; C&C tracking disabled")
            return None

        self._session = aiohttp.ClientSession()
        reader = XenForoApiReader(
            self._session,
            self.config.forum_api_url,
            api_key,
            prefix_labels=self.config.prefix_labels,
        )
        return ReconciliationEngine(
            reader,
            StatusCache(),
            DiscordNotifier(self.bot),
            self.config.thread_url_base,
            fetch_timeout=self.config.cc_fetch_timeout_seconds,
        )

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if not self.config.cc_enabled:
            logger.info("[CC STATUS] Disabled in configuration")
            return
        if self._poll_task.is_running():
            return

        if self.engine is None:
            self.engine = self._build_engine()
            if self.engine is None:
                return

        interval = self.config.cc_interval_seconds
        self._poll_task.change_interval(seconds=interval)
        self._poll_task.start()
        logger.info("[CC STATUS] Started (interval=%.1fs)", interval)

    def cog_unload(self) -> None:
        self._poll_task.cancel()
        session, self._session = self._session, None
        if session is not None and not session.closed:
            self.bot.loop.create_task(session.close())
        logger.info("[CC STATUS] Stopped")

    async def close(self) -> None:
        """Stop polling and release the HTTP session."""
        self._poll_task.cancel()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_once(self) -> Optional[CycleReport]:
        """Run one cycle unless one is already in progress.

        Returns the cycle report, or None when the cycle was skipped.
        """
        if self.engine is None:
            logger.debug("[CC STATUS] No engine configured; skipping cycle")
            return None
        if self._cycle_lock.locked():
            logger.warning("[CC STATUS] Previous cycle still running; skipping this tick")
            return None

        async with self._cycle_lock:
            return await self.engine.run_cycle()

    @tasks.loop(seconds=300)  # real interval set in on_ready
    async def _poll_task(self) -> None:
        try:
            await self.run_once()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[CC STATUS] Reconciliation cycle failed")

    @_poll_task.before_loop
    async def _before_poll(self) -> None:
        await self.bot.wait_until_ready()


def setup(bot: discord.Bot) -> None:
    bot.add_cog(CCStatusCog(bot))
