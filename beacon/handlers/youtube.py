"""
Beacon - Subscribers Handler
============================

/subscribers and its Reload button.

DESIGN:
    The reply carries a `reload-<channelId>` button. Clicking it refetches
    the count and edits the original message in place, at most once per
    cooldown window per user. Clicks during the window get an ephemeral
    "clicking too fast" notice.
"""

import math
from typing import Optional

from beacon.core.config import EmbedColors
from beacon.core.constants import RELOAD_COOLDOWN
from beacon.core.errors import NotFound
from beacon.core.logger import logger
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName, InteractiveTrigger, TriggerKind, make_id
from beacon.dispatch.replies import Button, Reply
from beacon.services.youtube import YouTubeService
from beacon.state.cooldowns import CooldownStore

RELOAD_ACTION = "reload"


def _reload_button(channel_id: str) -> Button:
    return Button(label="🔁 Reload", trigger_id=make_id(TriggerKind.RELOAD, channel_id))


class SubscribersHandler:
    """Handles /subscribers and reload clicks."""

    def __init__(
        self,
        youtube: Optional[YouTubeService],
        cooldowns: CooldownStore,
        reload_cooldown: float = RELOAD_COOLDOWN,
    ) -> None:
        self.youtube = youtube
        self.cooldowns = cooldowns
        self.reload_cooldown = reload_cooldown

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.SUBSCRIBERS, self.subscribers)
        dispatcher.trigger(TriggerKind.RELOAD, self.reload)

    async def subscribers(self, event: CommandInvocation) -> None:
        if self.youtube is None:
            await event.reply.send(Reply(content="❌ YouTube lookups are not configured.", ephemeral=True))
            return

        query = str(event.option("channel")).strip()
        try:
            channel = await self.youtube.find_channel(query)
        except NotFound:
            await event.reply.send(Reply(content="Channel not found ❌", ephemeral=True))
            return

        count = await self.youtube.subscriber_count(channel.channel_id)

        logger.tree("Subscribers Lookup", [
            ("User", str(event.subject_id)),
            ("Query", query[:50]),
            ("Channel", channel.title[:50]),
            ("Count", f"{count:,}"),
        ], emoji="📺")

        await event.reply.send(Reply(
            title=channel.title,
            description=f"📊 Subscribers: **{count:,}**",
            color=EmbedColors.BLUE,
            buttons=[_reload_button(channel.channel_id)],
        ))

    async def reload(self, event: InteractiveTrigger) -> None:
        if self.youtube is None:
            await event.reply.send(Reply(content="❌ YouTube lookups are not configured.", ephemeral=True))
            return

        remaining = self.cooldowns.try_acquire(event.subject_id, RELOAD_ACTION, self.reload_cooldown)
        if remaining > 0:
            await event.reply.send(Reply(
                content=f"⏱ You are clicking too fast! Please wait {math.ceil(remaining)} seconds.",
                ephemeral=True,
            ))
            return

        count = await self.youtube.subscriber_count(event.payload)
        await event.reply.send(Reply(
            title="Updated Subscriber Count",
            description=f"📊 Subscribers: **{count:,}**",
            color=EmbedColors.GREEN,
            buttons=[_reload_button(event.payload)],
            update=True,
        ))


__all__ = ["SubscribersHandler"]
