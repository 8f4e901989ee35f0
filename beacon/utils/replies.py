"""
Beacon - Discord Reply Rendering
================================

Turns platform-neutral Reply payloads into discord.py objects and
implements the reply, channel and moderation sinks on top of them.

DESIGN:
    This module and bot.py are the only places that import discord.py.

    Buttons and form fields carry their `action-payload` ids as custom
    ids. Views and modals are sent without callbacks: clicks and
    submissions come back through BeaconBot.on_interaction and the
    Dispatcher like every other event.

    InteractionReplySink answers an interaction whichever way it is
    currently allowed to: initial response, edit of a deferred response,
    or followup. A public "thinking" placeholder is deleted before a
    private first reply, since a followup cannot make it ephemeral.
"""

from typing import Any, Dict, Mapping, Optional, Union

import discord

from beacon.core.logger import logger
from beacon.dispatch.replies import Form, MessageRef, Reply


# =============================================================================
# Rendering
# =============================================================================

def to_embed(reply: Reply) -> Optional[discord.Embed]:
    """Build the card for a reply, None if it has no card content."""
    if not reply.has_card:
        return None

    embed = discord.Embed(
        title=reply.title,
        description=reply.description,
        color=reply.color,
    )
    for name, value, inline in reply.fields:
        embed.add_field(name=name, value=value, inline=inline)
    if reply.image_url:
        embed.set_image(url=reply.image_url)
    if reply.footer:
        embed.set_footer(text=reply.footer)
    return embed


def to_view(reply: Reply) -> Optional[discord.ui.View]:
    """Build a button row for a reply, None if it has no buttons."""
    if not reply.buttons:
        return None

    view = discord.ui.View(timeout=None)
    for button in reply.buttons:
        view.add_item(discord.ui.Button(
            label=button.label,
            custom_id=button.trigger_id,
            style=discord.ButtonStyle.primary,
        ))
    return view


def to_modal(form: Form) -> discord.ui.Modal:
    """Build a modal whose text inputs use the form field keys as custom ids."""
    modal = discord.ui.Modal(title=form.title, custom_id=form.form_id, timeout=None)
    for item in form.fields:
        modal.add_item(discord.ui.TextInput(
            label=item.label,
            custom_id=item.key,
            required=item.required,
            max_length=item.max_length,
            style=discord.TextStyle.paragraph if item.long else discord.TextStyle.short,
        ))
    return modal


def form_values(data: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Flatten a modal submission payload into {custom_id: value}."""
    values: Dict[str, str] = {}
    for row in (data or {}).get("components", []):
        for component in row.get("components", []):
            if "custom_id" in component:
                values[component["custom_id"]] = component.get("value") or ""
    return values


def _message_kwargs(reply: Reply) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"content": reply.content}
    embed = to_embed(reply)
    if embed is not None:
        kwargs["embed"] = embed
    view = to_view(reply)
    if view is not None:
        kwargs["view"] = view
    return kwargs


async def _add_reactions(message: discord.Message, reply: Reply) -> None:
    for emoji in reply.reactions:
        try:
            await message.add_reaction(emoji)
        except discord.HTTPException as e:
            logger.warning("Reaction Not Added", [
                ("Message", str(message.id)),
                ("Emoji", emoji),
                ("Error", str(e)[:100]),
            ])


def _ref(message: Union[discord.Message, discord.InteractionMessage, discord.WebhookMessage]) -> MessageRef:
    return MessageRef(channel_id=message.channel.id, message_id=message.id)


# =============================================================================
# Sinks
# =============================================================================

class InteractionReplySink:
    """Answers one slash command, button click or modal submission."""

    def __init__(self, interaction: discord.Interaction) -> None:
        self.interaction = interaction
        self._placeholder = False

    async def defer_thinking(self) -> None:
        """Acknowledge now and show a public placeholder until the first reply."""
        await self.interaction.response.defer(thinking=True)
        self._placeholder = True

    async def _drop_placeholder(self) -> None:
        try:
            await self.interaction.delete_original_response()
        except discord.HTTPException as e:
            logger.warning("Placeholder Not Deleted", [
                ("Interaction", str(self.interaction.id)),
                ("Error", str(e)[:100]),
            ])

    async def send(self, reply: Reply) -> Optional[MessageRef]:
        response = self.interaction.response

        if reply.form is not None:
            await response.send_modal(to_modal(reply.form))
            return None

        kwargs = _message_kwargs(reply)

        if reply.update:
            if not response.is_done():
                await response.edit_message(**kwargs)
            else:
                await self.interaction.edit_original_response(**kwargs)
            self._placeholder = False
            message = self.interaction.message
            return _ref(message) if message else None

        if not response.is_done():
            await response.send_message(ephemeral=reply.ephemeral, **kwargs)
            if not reply.reactions:
                return None
            message = await self.interaction.original_response()
        else:
            if self._placeholder and reply.ephemeral:
                await self._drop_placeholder()
            self._placeholder = False
            message = await self.interaction.followup.send(ephemeral=reply.ephemeral, wait=True, **kwargs)

        await _add_reactions(message, reply)
        return _ref(message)


class BotChannelSink:
    """Posts replies to channels by id."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def post(self, channel_id: int, reply: Reply) -> Optional[MessageRef]:
        channel = self.client.get_channel(channel_id) or await self.client.fetch_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("Channel Not Messageable", [("Channel", str(channel_id))])
            return None

        message = await channel.send(**_message_kwargs(reply))
        await _add_reactions(message, reply)
        return _ref(message)


class ChannelReplySink:
    """Reply sink for events with no interaction to answer (messages, reactions)."""

    def __init__(self, channels: BotChannelSink, channel_id: int) -> None:
        self.channels = channels
        self.channel_id = channel_id

    async def send(self, reply: Reply) -> Optional[MessageRef]:
        return await self.channels.post(self.channel_id, reply)


class BotModeration:
    """Ban and kick through the guild API."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def _guild(self, scope_id: int) -> discord.Guild:
        return self.client.get_guild(scope_id) or await self.client.fetch_guild(scope_id)

    async def ban(self, scope_id: int, subject_id: int, reason: str) -> None:
        guild = await self._guild(scope_id)
        await guild.ban(discord.Object(id=subject_id), reason=reason)

    async def kick(self, scope_id: int, subject_id: int, reason: str) -> bool:
        guild = await self._guild(scope_id)
        member = guild.get_member(subject_id)
        if member is None:
            return False
        await member.kick(reason=reason)
        return True


__all__ = [
    "BotChannelSink",
    "BotModeration",
    "ChannelReplySink",
    "InteractionReplySink",
    "form_values",
    "to_embed",
    "to_modal",
    "to_view",
]
