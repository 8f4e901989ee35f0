"""
Beacon - Leveling
=================

Message XP and levels per (user, guild).

DESIGN:
    Records are keyed `<user_id>-<guild_id>` so one user levels
    independently in every guild. Level L needs L * L * 50 XP. Crossing
    that threshold bumps the level and resets XP to 0; leftover XP is
    discarded, never carried over.

    The increment, the threshold compare and the write happen inside one
    synchronous store.update() call, so two messages handled "at the same
    time" cannot interleave between read and write.

    XP is granted at most once per cooldown window per (user, guild).
"""

import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from beacon.core.constants import LEADERBOARD_SIZE, XP_COOLDOWN, XP_LEVEL_FACTOR, XP_MAX, XP_MIN
from beacon.core.logger import logger
from beacon.state.cooldowns import CooldownStore
from beacon.state.store import PersistedKeyedStore


def required_xp(level: int) -> int:
    """XP needed to advance from `level` to `level + 1`."""
    return level * level * XP_LEVEL_FACTOR


@dataclass(frozen=True)
class LevelRecord:
    xp: int = 0
    level: int = 1


@dataclass(frozen=True)
class XpResult:
    """Outcome of one XP grant."""

    record: LevelRecord
    gained: int
    leveled_up: bool


def apply_xp(record: LevelRecord, amount: int) -> LevelRecord:
    """Add XP, levelling up with a reset to 0 when the threshold is reached."""
    xp = record.xp + amount
    if xp >= required_xp(record.level):
        return LevelRecord(xp=0, level=record.level + 1)
    return LevelRecord(xp=xp, level=record.level)


# =============================================================================
# Level Store
# =============================================================================

class LevelStore(PersistedKeyedStore[LevelRecord]):
    """Snapshot-backed level records keyed by `<user_id>-<guild_id>`."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(path, name="levels")

    @staticmethod
    def key(subject_id: int, scope_id: int) -> str:
        return f"{subject_id}-{scope_id}"

    def encode_value(self, value: LevelRecord) -> Any:
        return {"xp": value.xp, "level": value.level}

    def decode_value(self, raw: Any) -> LevelRecord:
        xp, level = int(raw["xp"]), int(raw["level"])
        if xp < 0 or level < 1:
            raise ValueError(f"invalid level record {raw!r}")
        return LevelRecord(xp=xp, level=level)

    def record_for(self, subject_id: int, scope_id: int) -> LevelRecord:
        return self.get(self.key(subject_id, scope_id)) or LevelRecord()

    def add_xp(self, subject_id: int, scope_id: int, amount: int) -> XpResult:
        """
        Grant XP atomically and persist.

        Raises:
            ValueError: If amount is negative.
        """
        if amount < 0:
            raise ValueError("XP amount must be non-negative")

        before = self.record_for(subject_id, scope_id)
        after = self.update(
            self.key(subject_id, scope_id),
            lambda current: apply_xp(current or LevelRecord(), amount),
        )
        return XpResult(record=after, gained=amount, leveled_up=after.level > before.level)

    def leaderboard(self, scope_id: int, limit: int = LEADERBOARD_SIZE) -> List[Tuple[int, LevelRecord]]:
        """Top users in a guild by level, then XP."""
        suffix = f"-{scope_id}"
        entries = [
            (int(key[: -len(suffix)]), record)
            for key, record in self.items()
            if key.endswith(suffix)
        ]
        entries.sort(key=lambda e: (e[1].level, e[1].xp), reverse=True)
        return entries[:limit]


# =============================================================================
# Leveling Service
# =============================================================================

class LevelingService:
    """Applies the XP cooldown and random grant size on top of LevelStore."""

    def __init__(
        self,
        store: LevelStore,
        cooldowns: CooldownStore,
        cooldown: float = XP_COOLDOWN,
        xp_range: Tuple[int, int] = (XP_MIN, XP_MAX),
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.cooldowns = cooldowns
        self.cooldown = cooldown
        self.xp_range = xp_range
        self._rng = rng or random.Random()

    def on_message(self, subject_id: int, scope_id: int) -> Optional[XpResult]:
        """
        Grant message XP unless the user is still on cooldown.

        Returns:
            The grant result, or None if on cooldown.
        """
        if self.cooldowns.try_acquire((subject_id, scope_id), "xp", self.cooldown) > 0:
            return None

        result = self.store.add_xp(subject_id, scope_id, self._rng.randint(*self.xp_range))
        if result.leveled_up:
            logger.tree("Level Up", [
                ("User", str(subject_id)),
                ("Guild", str(scope_id)),
                ("Level", str(result.record.level)),
            ], emoji="⭐")
        return result


__all__ = [
    "LevelRecord",
    "LevelStore",
    "LevelingService",
    "XpResult",
    "apply_xp",
    "required_xp",
]
