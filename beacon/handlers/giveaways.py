"""
Beacon - Giveaway Handler
=========================

/giveaway, /reroll and 🎉 reaction entries.
"""

from beacon.core.constants import GIVEAWAY_EMOJI, MAX_GIVEAWAY_WINNERS
from beacon.core.errors import NotFound
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName, ReactionChange
from beacon.dispatch.replies import Reply
from beacon.services.giveaways import GiveawayService
from beacon.utils.duration import format_duration, parse_duration

INVALID_DURATION = "❌ Invalid duration. Use formats like `30s`, `10m`, `2h`, `1d` or `1h30m`."


class GiveawayHandler:
    """Handles giveaway commands and entry reactions."""

    def __init__(self, giveaways: GiveawayService) -> None:
        self.giveaways = giveaways

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.GIVEAWAY, self.start)
        dispatcher.command(CommandName.REROLL, self.reroll)
        dispatcher.on_reaction(self.on_reaction)

    async def start(self, event: CommandInvocation) -> None:
        duration = parse_duration(str(event.option("duration")))
        if duration is None:
            await event.reply.send(Reply(content=INVALID_DURATION, ephemeral=True))
            return

        winners = int(event.option("winners"))
        if not 1 <= winners <= MAX_GIVEAWAY_WINNERS:
            await event.reply.send(Reply(
                content=f"❌ Winners must be between 1 and {MAX_GIVEAWAY_WINNERS}.",
                ephemeral=True,
            ))
            return

        prize = str(event.option("prize")).strip()
        await self.giveaways.start(event.channel_id, event.subject_id, duration, winners, prize)
        await event.reply.send(Reply(
            content=f"🎉 Giveaway for **{prize}** started! Ends in {format_duration(duration)}.",
            ephemeral=True,
        ))

    async def reroll(self, event: CommandInvocation) -> None:
        try:
            message_id = int(str(event.option("message_id")).strip())
        except ValueError:
            await event.reply.send(Reply(content="❌ That is not a message id.", ephemeral=True))
            return

        try:
            winners = await self.giveaways.reroll(message_id, event.option("winners"))
        except NotFound:
            await event.reply.send(Reply(content="❌ No recently ended giveaway with that message.", ephemeral=True))
            return

        await event.reply.send(Reply(content=f"🔄 Rerolled {len(winners)} winner(s).", ephemeral=True))

    async def on_reaction(self, event: ReactionChange) -> None:
        if event.emoji != GIVEAWAY_EMOJI or event.message is None:
            return
        if event.added:
            self.giveaways.enter(event.message.message_id, event.subject_id)
        else:
            self.giveaways.leave(event.message.message_id, event.subject_id)


__all__ = ["GiveawayHandler"]
