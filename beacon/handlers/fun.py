"""
Beacon - Fun Handler
====================

/joke from a fixed list and /meme from the social feed.
"""

import random
from typing import Optional

from beacon.core.config import EmbedColors
from beacon.core.errors import NotFound
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName
from beacon.dispatch.replies import Reply
from beacon.services.feed import FeedService

JOKES = (
    "Why don't scientists trust atoms? Because they make up everything!",
    "Why did the computer get cold? Because it forgot to close its Windows!",
    "Why do Java developers wear glasses? Because they don't C#!",
)


class FunHandler:
    """Handles /joke and /meme."""

    def __init__(self, feed: FeedService, rng: Optional[random.Random] = None) -> None:
        self.feed = feed
        self._rng = rng or random.Random()

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.JOKE, self.joke)
        dispatcher.command(CommandName.MEME, self.meme)

    async def joke(self, event: CommandInvocation) -> None:
        await event.reply.send(Reply(content=self._rng.choice(JOKES)))

    async def meme(self, event: CommandInvocation) -> None:
        try:
            post = await self.feed.random_post()
        except NotFound:
            await event.reply.send(Reply(content="😕 Couldn't find a meme right now, try again.", ephemeral=True))
            return

        footer = " • ".join(part for part in (
            f"r/{post.community}" if post.community else "",
            f"u/{post.author}" if post.author else "",
        ) if part)
        await event.reply.send(Reply(
            title=post.title[:256],
            description=f"[Open post]({post.link})",
            image_url=post.image_url,
            color=EmbedColors.PURPLE,
            footer=footer or None,
        ))


__all__ = ["FunHandler", "JOKES"]
