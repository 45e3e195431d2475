"""
Alert formatting and delivery for C&C transitions.

``build_alert_message`` decides what (if anything) a transition says;
``DiscordNotifier`` delivers it. Delivery failures are logged and reported
as ``False`` so one dead channel never stops the others.
"""

from __future__ import annotations

from typing import Optional, Protocol, Union

import discord

from cctracker.datatypes.cc_datatypes import ClassifiedThread, Stage
from cctracker.datatypes.discord_datatypes import ChannelID, RoleID
from cctracker.util.logger import get_logger

logger = get_logger("cc_notifier")

ALERTED_STAGES = frozenset({Stage.QC, Stage.GP, Stage.DONE})

SendableChannel = Union[discord.TextChannel, discord.Thread]


class Notifier(Protocol):
    async def notify(self, channel_id: ChannelID, message: str) -> bool:
        ...


def format_status(thread: ClassifiedThread) -> Optional[str]:
    """Bold status text for a transition, or None when the stage is not announced.

    A QC or GP counter starting at 0 means the stage just opened, which is
    announced as "Ready for QC" / "Ready for GP".
    """
    if thread.stage not in ALERTED_STAGES:
        return None
    if thread.stage in (Stage.QC, Stage.GP) and thread.progress.startswith("0"):
        return f"**Ready for {thread.stage.value}**"
    return f"**{thread.stage.value} {thread.progress}".rstrip() + "**"


def build_alert_message(
    thread: ClassifiedThread,
    role_id: Optional[RoleID],
    thread_url_base: str,
) -> Optional[str]:
    """Full alert text for one subscriber, or None if the transition is suppressed."""
    status = format_status(thread)
    if status is None:
        return None

    base = thread_url_base if thread_url_base.endswith("/") else thread_url_base + "/"
    message = f"Update to thread <{base}{thread.thread_id}/>\nStatus: {status}"
    if role_id is not None:
        message = f"{role_id.mention} {message}"
    return message


class DiscordNotifier:
    """Sends alerts to Discord text channels and threads through the bot."""

    def __init__(self, bot: discord.Bot) -> None:
        self._bot = bot
        self._allowed_mentions = discord.AllowedMentions(everyone=False, users=False, roles=True)

    async def _resolve_channel(self, channel_id: ChannelID) -> Optional[SendableChannel]:
        channel = self._bot.get_channel(channel_id.to_int())
        if channel is None:
            channel = await self._bot.fetch_channel(channel_id.to_int())
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            logger.warning("[CC NOTIFY] Channel %s is not a text channel or thread", channel_id)
            return None
        return channel

    async def notify(self, channel_id: ChannelID, message: str) -> bool:
        try:
            channel = await self._resolve_channel(channel_id)
            if channel is None:
                return False
            await channel.send(message, allowed_mentions=self._allowed_mentions)
        except discord.NotFound:
            logger.warning("[CC NOTIFY] Channel %s not found", channel_id)
            return False
        except discord.Forbidden:
            logger.warning("[CC NOTIFY] Missing permissions to post in channel %s", channel_id)
            return False
        except discord.HTTPException as exc:
            logger.warning("[CC NOTIFY] Failed to post in channel %s: %s", channel_id, exc)
            return False

        logger.debug("[CC NOTIFY] Posted alert to channel %s", channel_id)
        return True
