"""
Beacon - Polls
==============

Reaction polls with numbered options and a timed close.

DESIGN:
    Polls live in memory only; a restart drops running polls. Each poll
    keeps one vote per user: reacting to another number moves the vote
    there (latest wins), and removing the reaction that holds the vote
    withdraws it. Removing a stale reaction is ignored.

    The close timer is a ScheduledAction keyed by message id.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from beacon.core.config import EmbedColors
from beacon.core.constants import POLL_EMOJIS
from beacon.core.errors import UpstreamError
from beacon.core.logger import logger
from beacon.dispatch.replies import ChannelSink, MessageRef, Reply
from beacon.state.scheduler import ActionScheduler

MIN_OPTIONS = 2
MAX_OPTIONS = len(POLL_EMOJIS)


def parse_options(raw: str) -> Tuple[str, ...]:
    """
    Split a `|` (or comma) separated option list.

    Raises:
        ValueError: If fewer than 2 or more than 10 options remain.
    """
    separator = "|" if "|" in raw else ","
    options = tuple(part.strip() for part in raw.split(separator) if part.strip())
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValueError(f"A poll needs between {MIN_OPTIONS} and {MAX_OPTIONS} options")
    return options


@dataclass
class Poll:
    """A running poll. `votes` maps voter id to option index."""

    message: MessageRef
    question: str
    options: Tuple[str, ...]
    end_at: float
    creator_id: int
    votes: Dict[int, int] = field(default_factory=dict)

    def tally(self) -> List[int]:
        counts = [0] * len(self.options)
        for index in self.votes.values():
            counts[index] += 1
        return counts


class PollService:
    """Creates polls, records votes and announces results."""

    def __init__(
        self,
        scheduler: ActionScheduler,
        channels: ChannelSink,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.scheduler = scheduler
        self.channels = channels
        self._clock = clock
        self._polls: Dict[int, Poll] = {}

    def get(self, message_id: int) -> Optional[Poll]:
        return self._polls.get(message_id)

    async def start(
        self,
        channel_id: int,
        creator_id: int,
        question: str,
        options: Tuple[str, ...],
        duration: float,
    ) -> Poll:
        """
        Post the poll and arm its close.

        Raises:
            UpstreamError: If the poll message could not be posted.
        """
        lines = [f"{POLL_EMOJIS[i]} {option}" for i, option in enumerate(options)]
        end_at = self._clock() + duration
        message = await self.channels.post(channel_id, Reply(
            title=f"📊 {question}",
            description="\n".join(lines),
            color=EmbedColors.INFO,
            footer=f"Poll by user {creator_id}",
            fields=[("Ends", f"<t:{int(end_at)}:R>", False)],
            reactions=list(POLL_EMOJIS[: len(options)]),
        ))
        if message is None:
            raise UpstreamError("Poll", "poll message was not posted")

        poll = Poll(message=message, question=question, options=options, end_at=end_at, creator_id=creator_id)
        self._polls[message.message_id] = poll
        self.scheduler.arm(str(message.message_id), duration, lambda: self.end(message.message_id))

        logger.tree("Poll Started", [
            ("Question", question[:50]),
            ("Options", str(len(options))),
            ("Message", str(message.message_id)),
        ], emoji="📊")
        return poll

    def vote(self, message_id: int, subject_id: int, emoji: str) -> bool:
        """Record a vote; returns False if not a poll reaction."""
        poll = self._polls.get(message_id)
        index = _option_index(poll, emoji)
        if poll is None or index is None:
            return False
        poll.votes[subject_id] = index
        return True

    def unvote(self, message_id: int, subject_id: int, emoji: str) -> bool:
        """Withdraw a vote if the removed reaction is the one currently counted."""
        poll = self._polls.get(message_id)
        index = _option_index(poll, emoji)
        if poll is None or index is None or poll.votes.get(subject_id) != index:
            return False
        del poll.votes[subject_id]
        return True

    async def end(self, message_id: int) -> Optional[List[int]]:
        """
        Close a poll and post its results.

        Returns:
            Vote counts per option, or None if the poll is unknown.
        """
        poll = self._polls.pop(message_id, None)
        if poll is None:
            return None
        self.scheduler.cancel(str(message_id))

        counts = poll.tally()
        total = sum(counts)
        best = max(counts)
        lines = []
        for i, (option, count) in enumerate(zip(poll.options, counts)):
            share = f"{count / total:.0%}" if total else "0%"
            marker = " 🏆" if total and count == best else ""
            lines.append(f"{POLL_EMOJIS[i]} {option}: **{count}** ({share}){marker}")

        await self.channels.post(poll.message.channel_id, Reply(
            title=f"📊 Poll Results: {poll.question}",
            description="\n".join(lines),
            color=EmbedColors.SUCCESS,
            footer=f"Total votes: {total}",
        ))

        logger.tree("Poll Ended", [
            ("Question", poll.question[:50]),
            ("Votes", str(total)),
        ], emoji="📊")
        return counts


def _option_index(poll: Optional[Poll], emoji: str) -> Optional[int]:
    if poll is None or emoji not in POLL_EMOJIS:
        return None
    index = POLL_EMOJIS.index(emoji)
    return index if index < len(poll.options) else None


__all__ = [
    "Poll",
    "PollService",
    "parse_options",
]
