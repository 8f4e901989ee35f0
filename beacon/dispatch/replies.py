"""
Beacon - Reply Model
====================

Platform-neutral reply payloads and the sinks that deliver them.

DESIGN:
    Handlers never touch discord.py objects. They build a Reply and hand
    it to the ReplySink carried by the event; bot.py renders it into an
    embed, buttons or a modal. Background work with no originating event
    (giveaway end, poll end) posts through a ChannelSink instead.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple


# =============================================================================
# Message Reference
# =============================================================================

@dataclass(frozen=True)
class MessageRef:
    """Where a message lives on the platform."""

    channel_id: int
    message_id: int


# =============================================================================
# Reply Payload
# =============================================================================

@dataclass(frozen=True)
class Button:
    """An interactive button whose clicks arrive as `<action>-<payload>` triggers."""

    label: str
    trigger_id: str


@dataclass(frozen=True)
class FormField:
    """A single text input in a form."""

    key: str
    label: str
    required: bool = True
    max_length: int = 500
    long: bool = False


@dataclass(frozen=True)
class Form:
    """A form (modal) the user fills in; submitted as `<action>-<payload>`."""

    form_id: str
    title: str
    fields: Tuple[FormField, ...]


@dataclass
class Reply:
    """
    Payload addressed to the originating event or a channel.

    Attributes:
        content: Plain message text.
        title: Card title; a card is rendered when title or description is set.
        description: Card body.
        color: Card color.
        fields: Card fields as (name, value, inline).
        footer: Card footer text.
        image_url: Card image.
        buttons: Buttons attached below the message.
        reactions: Emoji added to the sent message.
        ephemeral: Visible only to the invoking user.
        update: Edit the message the trigger came from instead of sending.
        form: Open a form instead of sending a message.
    """

    content: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[int] = None
    fields: List[Tuple[str, str, bool]] = field(default_factory=list)
    footer: Optional[str] = None
    image_url: Optional[str] = None
    buttons: List[Button] = field(default_factory=list)
    reactions: List[str] = field(default_factory=list)
    ephemeral: bool = False
    update: bool = False
    form: Optional[Form] = None

    @property
    def has_card(self) -> bool:
        return bool(self.title or self.description or self.fields or self.image_url)


# =============================================================================
# Sinks
# =============================================================================

class ReplySink(Protocol):
    """Delivers replies to the event that produced them."""

    async def send(self, reply: Reply) -> Optional[MessageRef]:
        ...


class ChannelSink(Protocol):
    """Posts to a channel outside of any event (timers, announcements)."""

    async def post(self, channel_id: int, reply: Reply) -> Optional[MessageRef]:
        ...


class ModerationActions(Protocol):
    """Platform moderation calls; one-liners over the SDK."""

    async def ban(self, scope_id: int, subject_id: int, reason: str) -> None:
        ...

    async def kick(self, scope_id: int, subject_id: int, reason: str) -> bool:
        ...


__all__ = [
    "Button",
    "ChannelSink",
    "Form",
    "FormField",
    "MessageRef",
    "ModerationActions",
    "Reply",
    "ReplySink",
]
