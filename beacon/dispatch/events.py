"""
Beacon - Dispatcher Events
==========================

The closed set of inbound events the dispatcher understands.

DESIGN:
    bot.py converts every discord.py callback into one of five event
    types. Each carries who triggered it, where, and the ReplySink for
    answering. Commands, buttons and forms are discriminated by enums
    rather than free strings so a typo fails at construction instead of
    silently matching nothing.

    Interactive trigger and form ids are namespaced as `action-payload`
    and split on the first dash only (YouTube channel ids may contain
    dashes themselves).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar

from beacon.dispatch.replies import MessageRef, ReplySink

E = TypeVar("E", bound=Enum)


# =============================================================================
# Discriminators
# =============================================================================

class CommandName(str, Enum):
    """Every slash command the bot registers."""

    SUBSCRIBERS = "subscribers"
    BAN = "ban"
    KICK = "kick"
    JOKE = "joke"
    MEME = "meme"
    STATUS = "status"
    STATUS_MARK = "status-mark"
    AFK = "afk"
    RANK = "rank"
    LEADERBOARD = "leaderboard"
    WARN = "warn"
    WARNINGS = "warnings"
    CLEAR_WARNINGS = "clearwarnings"
    GIVEAWAY = "giveaway"
    REROLL = "reroll"
    POLL = "poll"


class TriggerKind(str, Enum):
    """Button actions, the part of a trigger id before the first dash."""

    RELOAD = "reload"


class FormKind(str, Enum):
    """Form actions, the part of a form id before the first dash."""

    WARN = "warn"


REQUIRED_OPTIONS: Dict[CommandName, Tuple[str, ...]] = {
    CommandName.SUBSCRIBERS: ("channel",),
    CommandName.BAN: ("target",),
    CommandName.KICK: ("target",),
    CommandName.STATUS_MARK: ("service", "state"),
    CommandName.WARN: ("target",),
    CommandName.WARNINGS: ("target",),
    CommandName.CLEAR_WARNINGS: ("target",),
    CommandName.GIVEAWAY: ("duration", "winners", "prize"),
    CommandName.REROLL: ("message_id",),
    CommandName.POLL: ("question", "options", "duration"),
}
"""Options each command must carry; the rest are optional."""


def make_id(kind: Enum, payload: object) -> str:
    """Build a namespaced `action-payload` id."""
    return f"{kind.value}-{payload}"


def parse_id(raw_id: str, kinds: Type[E]) -> Optional[Tuple[E, str]]:
    """
    Split an `action-payload` id into its enum member and payload.

    Returns:
        (kind, payload), or None when the action is unknown or the id
        has no payload.
    """
    action, sep, payload = raw_id.partition("-")
    if not sep or not payload:
        return None
    try:
        return kinds(action), payload
    except ValueError:
        return None


# =============================================================================
# Event Variants
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Common fields of every inbound event.

    Attributes:
        subject_id: User who caused the event.
        scope_id: Guild the event happened in, None in DMs.
        channel_id: Channel the event happened in.
        reply: Sink addressed to this event.
    """

    subject_id: int
    scope_id: Optional[int]
    channel_id: int
    reply: ReplySink


@dataclass(frozen=True)
class CommandInvocation(Event):
    """A slash command with its options."""

    name: CommandName = CommandName.JOKE
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = [opt for opt in REQUIRED_OPTIONS.get(self.name, ()) if self.options.get(opt) is None]
        if missing:
            raise ValueError(f"/{self.name.value} missing options: {', '.join(missing)}")

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


@dataclass(frozen=True)
class InteractiveTrigger(Event):
    """A button click, already parsed from its `action-payload` id."""

    kind: TriggerKind = TriggerKind.RELOAD
    payload: str = ""
    message: Optional[MessageRef] = None


@dataclass(frozen=True)
class FormSubmission(Event):
    """A submitted form with its field values."""

    kind: FormKind = FormKind.WARN
    payload: str = ""
    fields: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RawMessage(Event):
    """A plain chat message from a human user."""

    content: str = ""
    message: Optional[MessageRef] = None
    mentions: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ReactionChange(Event):
    """A reaction added to or removed from a message."""

    message: Optional[MessageRef] = None
    emoji: str = ""
    added: bool = True


__all__ = [
    "CommandInvocation",
    "CommandName",
    "Event",
    "FormKind",
    "FormSubmission",
    "InteractiveTrigger",
    "RawMessage",
    "ReactionChange",
    "REQUIRED_OPTIONS",
    "TriggerKind",
    "make_id",
    "parse_id",
]
