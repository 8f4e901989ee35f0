"""
Beacon - Leveling Handler
=========================

Message XP, level-up announcements, /rank and /leaderboard.
"""

from beacon.core.config import EmbedColors
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import CommandInvocation, CommandName, RawMessage
from beacon.dispatch.replies import Reply
from beacon.services.leveling import LevelingService, required_xp

MEDALS = ("🥇", "🥈", "🥉")


class LevelingHandler:
    """Handles XP on messages plus /rank and /leaderboard."""

    def __init__(self, leveling: LevelingService) -> None:
        self.leveling = leveling

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.RANK, self.rank)
        dispatcher.command(CommandName.LEADERBOARD, self.leaderboard)
        dispatcher.on_message(self.on_message)

    async def on_message(self, event: RawMessage) -> None:
        if event.scope_id is None:
            return
        result = self.leveling.on_message(event.subject_id, event.scope_id)
        if result and result.leveled_up:
            await event.reply.send(Reply(
                content=f"🎉 <@{event.subject_id}> reached **level {result.record.level}**!",
            ))

    async def rank(self, event: CommandInvocation) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content="❌ Ranks only exist in servers.", ephemeral=True))
            return

        target = int(event.option("target") or event.subject_id)
        record = self.leveling.store.record_for(target, event.scope_id)
        needed = required_xp(record.level)

        await event.reply.send(Reply(
            title="⭐ Rank",
            description=f"<@{target}>",
            color=EmbedColors.GOLD,
            fields=[
                ("Level", str(record.level), True),
                ("XP", f"{record.xp}/{needed}", True),
            ],
        ))

    async def leaderboard(self, event: CommandInvocation) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content="❌ Leaderboards only exist in servers.", ephemeral=True))
            return

        entries = self.leveling.store.leaderboard(event.scope_id)
        if not entries:
            await event.reply.send(Reply(content="Nobody has earned XP here yet.", ephemeral=True))
            return

        lines = [
            f"{MEDALS[i] if i < len(MEDALS) else f'**{i + 1}.**'} <@{user_id}> · Level {record.level} ({record.xp} XP)"
            for i, (user_id, record) in enumerate(entries)
        ]
        await event.reply.send(Reply(
            title="🏆 Leaderboard",
            description="\n".join(lines),
            color=EmbedColors.GOLD,
        ))


__all__ = ["LevelingHandler"]
