"""
Beacon - Moderation Handler
===========================

/ban, /kick and the warning commands.

DESIGN:
    Ban and kick are single platform calls through ModerationActions.
    /warn without a reason opens a `warn-<userId>` form; its submission
    lands back here as a FormSubmission and records the warning the same
    way. Reaching the warning threshold bans through WarningService.

    Command options carry user ids as `target` plus the display name as
    `target_name` for replies.
"""

from datetime import datetime

from beacon.core.config import EmbedColors
from beacon.core.constants import WARN_REASON_MAX_LENGTH
from beacon.core.logger import logger, NY_TZ
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import (
    CommandInvocation,
    CommandName,
    Event,
    FormKind,
    FormSubmission,
    make_id,
)
from beacon.dispatch.replies import Form, FormField, ModerationActions, Reply
from beacon.services.warnings import WarningService

GUILD_ONLY = "❌ This command only works in a server."


def _target_label(event: CommandInvocation) -> str:
    return str(event.option("target_name") or f"<@{event.option('target')}>")


class ModerationHandler:
    """Handles /ban, /kick, /warn, /warnings, /clearwarnings and the warn form."""

    def __init__(self, moderation: ModerationActions, warnings: WarningService) -> None:
        self.moderation = moderation
        self.warnings = warnings

    def register(self, dispatcher: Dispatcher) -> None:
        dispatcher.command(CommandName.BAN, self.ban)
        dispatcher.command(CommandName.KICK, self.kick)
        dispatcher.command(CommandName.WARN, self.warn)
        dispatcher.command(CommandName.WARNINGS, self.list_warnings)
        dispatcher.command(CommandName.CLEAR_WARNINGS, self.clear_warnings)
        dispatcher.form(FormKind.WARN, self.warn_form)

    # =========================================================================
    # Ban / Kick
    # =========================================================================

    async def ban(self, event: CommandInvocation) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content=GUILD_ONLY, ephemeral=True))
            return

        target = int(event.option("target"))
        reason = event.option("reason") or f"Banned by {event.subject_id}"
        await self.moderation.ban(event.scope_id, target, reason)

        logger.tree("User Banned", [
            ("User", str(target)),
            ("Moderator", str(event.subject_id)),
            ("Guild", str(event.scope_id)),
        ], emoji="🔨")
        await event.reply.send(Reply(content=f"{_target_label(event)} has been banned 🚫"))

    async def kick(self, event: CommandInvocation) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content=GUILD_ONLY, ephemeral=True))
            return

        target = int(event.option("target"))
        reason = event.option("reason") or f"Kicked by {event.subject_id}"
        if not await self.moderation.kick(event.scope_id, target, reason):
            await event.reply.send(Reply(content="User not found ❌"))
            return

        logger.tree("User Kicked", [
            ("User", str(target)),
            ("Moderator", str(event.subject_id)),
            ("Guild", str(event.scope_id)),
        ], emoji="👢")
        await event.reply.send(Reply(content=f"{_target_label(event)} has been kicked 👢"))

    # =========================================================================
    # Warnings
    # =========================================================================

    async def warn(self, event: CommandInvocation) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content=GUILD_ONLY, ephemeral=True))
            return

        target = int(event.option("target"))
        reason = str(event.option("reason") or "").strip()
        if not reason:
            await event.reply.send(Reply(form=Form(
                form_id=make_id(FormKind.WARN, target),
                title="Warn User",
                fields=(FormField(
                    key="reason",
                    label="Reason",
                    max_length=WARN_REASON_MAX_LENGTH,
                    long=True,
                ),),
            )))
            return

        await self._record_warning(event, target, reason)

    async def warn_form(self, event: FormSubmission) -> None:
        if event.scope_id is None:
            await event.reply.send(Reply(content=GUILD_ONLY, ephemeral=True))
            return

        try:
            target = int(event.payload)
        except ValueError:
            await event.reply.send(Reply(content="❌ That form has expired.", ephemeral=True))
            return

        reason = str(event.fields.get("reason") or "").strip() or "No reason provided"
        await self._record_warning(event, target, reason)

    async def _record_warning(self, event: Event, target: int, reason: str) -> None:
        reason = reason[:WARN_REASON_MAX_LENGTH]
        result = await self.warnings.warn(event.scope_id, target, reason, moderator_id=event.subject_id)

        fields = [
            ("User", f"<@{target}>", True),
            ("Warnings", f"{result.count}/{self.warnings.store.threshold}", True),
            ("Reason", reason, False),
        ]
        if result.triggered:
            fields.append(("Action", "🔨 Banned for reaching the warning limit", False))

        await event.reply.send(Reply(
            title="⚠️ User Warned",
            color=EmbedColors.ERROR if result.triggered else EmbedColors.WARNING,
            fields=fields,
        ))

    async def list_warnings(self, event: CommandInvocation) -> None:
        target = int(event.option("target"))
        entries = self.warnings.store.history(target)
        if not entries:
            await event.reply.send(Reply(content=f"✅ {_target_label(event)} has no warnings.", ephemeral=True))
            return

        lines = []
        for i, entry in enumerate(entries, start=1):
            when = datetime.fromtimestamp(entry.timestamp, NY_TZ).strftime("%Y-%m-%d %H:%M")
            lines.append(f"**{i}.** {entry.reason} · {when}")

        await event.reply.send(Reply(
            title=f"⚠️ Warnings for {_target_label(event)}",
            description="\n".join(lines)[:4000],
            color=EmbedColors.WARNING,
            footer=f"{len(entries)} total",
            ephemeral=True,
        ))

    async def clear_warnings(self, event: CommandInvocation) -> None:
        target = int(event.option("target"))
        removed = self.warnings.store.clear(target)

        logger.tree("Warnings Cleared", [
            ("User", str(target)),
            ("Moderator", str(event.subject_id)),
            ("Removed", str(removed)),
        ], emoji="🧹")
        await event.reply.send(Reply(
            content=f"🧹 Cleared {removed} warning(s) for {_target_label(event)}.",
            ephemeral=True,
        ))


__all__ = ["ModerationHandler"]
