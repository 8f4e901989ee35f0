"""
Beacon - Poll Handler
=====================

/poll and numbered vote reactions.
"""

from beacon.core.constants import POLL_EMOJIS
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName, ReactionChange
from beacon.dispatch.replies import Reply
from beacon.handlers.giveaways import INVALID_DURATION
from beacon.services.polls import PollService, parse_options
from beacon.utils.duration import format_duration, parse_duration


class PollHandler:
    """Handles /poll and vote reactions."""

    def __init__(self, polls: PollService) -> None:
        self.polls = polls

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.POLL, self.start)
        dispatcher.on_reaction(self.on_reaction)

    async def start(self, event: CommandInvocation) -> None:
        duration = parse_duration(str(event.option("duration")))
        if duration is None:
            await event.reply.send(Reply(content=INVALID_DURATION, ephemeral=True))
            return

        try:
            options = parse_options(str(event.option("options")))
        except ValueError as e:
            await event.reply.send(Reply(content=f"❌ {e}. Separate options with `|`.", ephemeral=True))
            return

        question = str(event.option("question")).strip()
        await self.polls.start(event.channel_id, event.subject_id, question, options, duration)
        await event.reply.send(Reply(
            content=f"📊 Poll started! Closes in {format_duration(duration)}.",
            ephemeral=True,
        ))

    async def on_reaction(self, event: ReactionChange) -> None:
        if event.emoji not in POLL_EMOJIS or event.message is None:
            return
        if event.added:
            self.polls.vote(event.message.message_id, event.subject_id, event.emoji)
        else:
            self.polls.unvote(event.message.message_id, event.subject_id, event.emoji)


__all__ = ["PollHandler"]
