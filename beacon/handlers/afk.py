"""
Beacon - AFK Handler
====================

/afk sets a status; the user's next message clears it, and mentions of
AFK users get a short notice with their reason.
"""

from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName, RawMessage
from beacon.dispatch.replies import Reply
from beacon.services.afk import AfkTracker


class AfkHandler:
    """Handles /afk and AFK checks on plain messages."""

    def __init__(self, tracker: AfkTracker) -> None:
        self.tracker = tracker

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.AFK, self.set_afk)
        dispatcher.on_message(self.on_message)

    async def set_afk(self, event: CommandInvocation) -> None:
        status = self.tracker.set(event.subject_id, event.option("reason"))
        await event.reply.send(Reply(content=f"💤 <@{event.subject_id}> is now AFK: {status.reason}"))

    async def on_message(self, event: RawMessage) -> None:
        if self.tracker.clear(event.subject_id) is not None:
            await event.reply.send(Reply(content=f"👋 Welcome back <@{event.subject_id}>, your AFK status was removed."))

        away = [(sid, status) for sid, status in self.tracker.mentioned(event.mentions) if sid != event.subject_id]
        if away:
            lines = [f"💤 <@{sid}> is AFK: {status.reason} (since <t:{int(status.since)}:R>)" for sid, status in away]
            await event.reply.send(Reply(content="\n".join(lines)))


__all__ = ["AfkHandler"]
