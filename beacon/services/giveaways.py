"""
Beacon - Giveaways
==================

Reaction-entered giveaways that end themselves on a timer.

DESIGN:
    The persisted GiveawayRecord and the timer that ends it are separate:
    - GiveawayStore holds every running giveaway (participants included)
    - ActionScheduler holds one end timer per giveaway id

    Lifecycle:
    1. start(): post the announcement, persist the record, arm the timer
    2. enter()/leave(): 🎉 reactions add or remove participants, each a
       single synchronous store update
    3. end(): draw winners, announce, delete the record. The record is
       deleted even if the announcement fails so it cannot end twice.

    Restart recovery: restore() re-arms every persisted giveaway with its
    remaining time, and ends the ones already past due right away.

    Ended giveaways are remembered in memory (bounded) so /reroll can
    draw again from the same participants without touching the store.
"""

import random
import time
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, FrozenSet, List, Optional, Sequence, Set, Tuple, Union

from beacon.core.constants import (
    CONCLUDED_GIVEAWAY_LIMIT,
    GIVEAWAY_EMOJI,
    MAX_GIVEAWAY_WINNERS,
)
from beacon.core.config import EmbedColors
from beacon.core.errors import NotFound, UpstreamError
from beacon.core.logger import logger, NY_TZ
from beacon.dispatch.replies import ChannelSink, MessageRef, Reply
from beacon.state.scheduler import ActionScheduler
from beacon.state.store import PersistedKeyedStore


# =============================================================================
# Record
# =============================================================================

@dataclass(frozen=True)
class GiveawayRecord:
    """
    A running giveaway.

    Attributes:
        giveaway_id: `<channel_id>-<start_millis>`.
        message: The announcement message people react to.
        end_at: Unix timestamp (seconds) the giveaway ends at.
        winner_count: Winners to draw.
        prize: Prize label.
        participants: Unique entrant ids.
        creator_id: Who started it.
    """

    giveaway_id: str
    message: MessageRef
    end_at: float
    winner_count: int
    prize: str
    creator_id: int
    participants: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def channel_id(self) -> int:
        return self.message.channel_id


def pick_winners(participants: Sequence[int], count: int, rng: Optional[random.Random] = None) -> List[int]:
    """
    Draw up to `count` distinct winners uniformly without replacement.

    The input is never modified. Fewer participants than `count` means
    everyone wins; no participants means no winners.
    """
    pool = sorted(set(participants))
    if count <= 0 or not pool:
        return []
    return (rng or random).sample(pool, min(count, len(pool)))


# =============================================================================
# Giveaway Store
# =============================================================================

class GiveawayStore(PersistedKeyedStore[GiveawayRecord]):
    """Running giveaways keyed by giveaway id."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(path, name="giveaways")

    def encode_value(self, value: GiveawayRecord) -> Any:
        return {
            "giveaway_id": value.giveaway_id,
            "channel_id": value.message.channel_id,
            "message_id": value.message.message_id,
            "end_at": value.end_at,
            "winner_count": value.winner_count,
            "prize": value.prize,
            "creator_id": value.creator_id,
            "participants": sorted(value.participants),
        }

    def decode_value(self, raw: Any) -> GiveawayRecord:
        return GiveawayRecord(
            giveaway_id=str(raw["giveaway_id"]),
            message=MessageRef(int(raw["channel_id"]), int(raw["message_id"])),
            end_at=float(raw["end_at"]),
            winner_count=int(raw["winner_count"]),
            prize=str(raw["prize"]),
            creator_id=int(raw["creator_id"]),
            participants=frozenset(int(p) for p in raw["participants"]),
        )

    def find_by_message(self, message_id: int) -> Optional[GiveawayRecord]:
        for _, record in self.items():
            if record.message.message_id == message_id:
                return record
        return None


# =============================================================================
# Giveaway Service
# =============================================================================

class GiveawayService:
    """Starts, tracks, ends and rerolls giveaways."""

    def __init__(
        self,
        store: GiveawayStore,
        scheduler: ActionScheduler,
        channels: ChannelSink,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        concluded_limit: int = CONCLUDED_GIVEAWAY_LIMIT,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.channels = channels
        self._clock = clock
        self._rng = rng or random.Random()
        self._concluded_limit = concluded_limit
        self._concluded: "OrderedDict[int, GiveawayRecord]" = OrderedDict()
        self._ending: Set[str] = set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def restore(self) -> Tuple[int, int]:
        """
        Re-arm end timers for every persisted giveaway.

        Returns:
            (re-armed, ended immediately because already past due).
        """
        now = self._clock()
        rearmed = overdue = 0
        for giveaway_id, record in self.store.items():
            remaining = record.end_at - now
            if remaining <= 0:
                overdue += 1
            else:
                rearmed += 1
            self._arm(giveaway_id, max(0.0, remaining))

        if rearmed or overdue:
            logger.tree("Giveaways Restored", [
                ("Re-armed", str(rearmed)),
                ("Overdue", str(overdue)),
            ], emoji="🎉")
        return rearmed, overdue

    async def start(
        self,
        channel_id: int,
        creator_id: int,
        duration: float,
        winner_count: int,
        prize: str,
    ) -> GiveawayRecord:
        """
        Announce a giveaway and arm its end.

        Raises:
            ValueError: If the winner count or duration is out of range.
            UpstreamError: If the announcement could not be posted.
        """
        if not 1 <= winner_count <= MAX_GIVEAWAY_WINNERS:
            raise ValueError(f"Winners must be between 1 and {MAX_GIVEAWAY_WINNERS}")
        if duration <= 0:
            raise ValueError("Duration must be positive")

        now = self._clock()
        end_at = now + duration
        message = await self.channels.post(channel_id, Reply(
            title=f"{GIVEAWAY_EMOJI} GIVEAWAY {GIVEAWAY_EMOJI}",
            description=f"**{prize}**\n\nReact with {GIVEAWAY_EMOJI} to enter!",
            color=EmbedColors.GIVEAWAY,
            fields=[
                ("Winners", str(winner_count), True),
                ("Ends", f"<t:{int(end_at)}:R>", True),
                ("Hosted by", f"<@{creator_id}>", True),
            ],
            reactions=[GIVEAWAY_EMOJI],
        ))
        if message is None:
            raise UpstreamError("Giveaway", "announcement was not posted")

        record = GiveawayRecord(
            giveaway_id=f"{channel_id}-{int(now * 1000)}",
            message=message,
            end_at=end_at,
            winner_count=winner_count,
            prize=prize,
            creator_id=creator_id,
        )
        self.store.set(record.giveaway_id, record)
        self._arm(record.giveaway_id, duration)

        logger.tree("Giveaway Started", [
            ("ID", record.giveaway_id),
            ("Prize", prize[:50]),
            ("Winners", str(winner_count)),
            ("Ends", datetime.fromtimestamp(end_at, NY_TZ).strftime("%Y-%m-%d %H:%M:%S")),
        ], emoji="🎉")
        return record

    def _arm(self, giveaway_id: str, delay: float) -> None:
        self.scheduler.arm(giveaway_id, delay, lambda: self.end(giveaway_id))

    # =========================================================================
    # Participation
    # =========================================================================

    def enter(self, message_id: int, subject_id: int) -> bool:
        """Add a participant. Returns False if the message is not a running giveaway."""
        return self._change(message_id, lambda p: p | {subject_id})

    def leave(self, message_id: int, subject_id: int) -> bool:
        """Remove a participant. Returns False if the message is not a running giveaway."""
        return self._change(message_id, lambda p: p - {subject_id})

    def _change(self, message_id: int, mutate: Callable[[FrozenSet[int]], FrozenSet[int]]) -> bool:
        record = self.store.find_by_message(message_id)
        if record is None or record.giveaway_id in self._ending:
            return False
        self.store.update(
            record.giveaway_id,
            lambda current: replace(current or record, participants=mutate((current or record).participants)),
        )
        return True

    # =========================================================================
    # Ending
    # =========================================================================

    async def end(self, giveaway_id: str) -> Optional[List[int]]:
        """
        Draw winners, announce them and delete the record.

        Returns:
            The winners, or None if the giveaway is unknown or already ending.
        """
        record = self.store.get(giveaway_id)
        if record is None or giveaway_id in self._ending:
            return None

        self._ending.add(giveaway_id)
        self.scheduler.cancel(giveaway_id)
        try:
            winners = pick_winners(tuple(record.participants), record.winner_count, self._rng)
            logger.tree("Giveaway Ended", [
                ("ID", giveaway_id),
                ("Participants", str(len(record.participants))),
                ("Winners", ", ".join(str(w) for w in winners) or "none"),
            ], emoji="🏆")
            await self._announce(record, winners, reroll=False)
            return winners
        finally:
            self.store.delete(giveaway_id)
            self._ending.discard(giveaway_id)
            self._remember(record)

    async def reroll(self, message_id: int, count: Optional[int] = None) -> List[int]:
        """
        Draw new winners for a recently ended giveaway.

        Raises:
            NotFound: If no recently ended giveaway has that message.
        """
        record = self._concluded.get(message_id)
        if record is None:
            raise NotFound("No recently ended giveaway with that message")

        winners = pick_winners(tuple(record.participants), count or record.winner_count, self._rng)
        logger.tree("Giveaway Rerolled", [
            ("ID", record.giveaway_id),
            ("Winners", ", ".join(str(w) for w in winners) or "none"),
        ], emoji="🔄")
        await self._announce(record, winners, reroll=True)
        return winners

    def concluded(self, message_id: int) -> Optional[GiveawayRecord]:
        return self._concluded.get(message_id)

    def _remember(self, record: GiveawayRecord) -> None:
        self._concluded[record.message.message_id] = record
        self._concluded.move_to_end(record.message.message_id)
        while len(self._concluded) > self._concluded_limit:
            self._concluded.popitem(last=False)

    async def _announce(self, record: GiveawayRecord, winners: List[int], reroll: bool) -> None:
        if winners:
            mentions = ", ".join(f"<@{w}>" for w in winners)
            description = f"Congratulations {mentions}! You won **{record.prize}**!"
            color = EmbedColors.SUCCESS
        else:
            description = f"No valid entries for **{record.prize}**."
            color = EmbedColors.WARNING

        await self.channels.post(record.channel_id, Reply(
            title="🔄 Giveaway Rerolled" if reroll else "🏆 Giveaway Ended",
            description=description,
            color=color,
            footer=f"Entries: {len(record.participants)}",
        ))


__all__ = [
    "GiveawayRecord",
    "GiveawayService",
    "GiveawayStore",
    "pick_winners",
]
