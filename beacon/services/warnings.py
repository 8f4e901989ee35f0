"""
Beacon - Warnings
=================

Append-only warning history per user with an automatic ban threshold.

DESIGN:
    Each record holds the ordered warnings plus a `threshold_crossed`
    flag. The append that first brings the count to the threshold sets
    the flag and reports `triggered`; later appends see the flag and do
    not trigger again, so the ban fires exactly once per crossing.
    Clearing a user's warnings deletes the record, which re-arms the
    threshold.

    The flag is set in the same synchronous update as the append. If the
    ban call then fails, the flag stays set and the failure surfaces to
    the moderator instead of being retried on the next warning.
"""

import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from beacon.core.constants import WARN_THRESHOLD
from beacon.core.logger import logger
from beacon.dispatch.replies import ModerationActions
from beacon.state.store import PersistedKeyedStore


@dataclass(frozen=True)
class WarningEntry:
    reason: str
    timestamp: float
    moderator_id: Optional[int] = None


@dataclass(frozen=True)
class WarningRecord:
    entries: Tuple[WarningEntry, ...] = ()
    threshold_crossed: bool = False


@dataclass(frozen=True)
class WarnResult:
    """Outcome of one warning."""

    record: WarningRecord
    triggered: bool

    @property
    def count(self) -> int:
        return len(self.record.entries)


# =============================================================================
# Warning Store
# =============================================================================

class WarningStore(PersistedKeyedStore[WarningRecord]):
    """Snapshot-backed warning histories keyed by user id."""

    def __init__(
        self,
        path: Union[str, Path],
        threshold: int = WARN_THRESHOLD,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(path, name="warnings")
        self.threshold = threshold
        self._clock = clock

    def encode_value(self, value: WarningRecord) -> Any:
        return {
            "entries": [
                {"reason": e.reason, "timestamp": e.timestamp, "moderator_id": e.moderator_id}
                for e in value.entries
            ],
            "threshold_crossed": value.threshold_crossed,
        }

    def decode_value(self, raw: Any) -> WarningRecord:
        entries = tuple(
            WarningEntry(
                reason=str(e["reason"]),
                timestamp=float(e["timestamp"]),
                moderator_id=e.get("moderator_id"),
            )
            for e in raw["entries"]
        )
        return WarningRecord(entries=entries, threshold_crossed=bool(raw.get("threshold_crossed", False)))

    def add(self, subject_id: int, reason: str, moderator_id: Optional[int] = None) -> WarnResult:
        """Append a warning atomically and report whether the threshold was just crossed."""
        entry = WarningEntry(reason=reason, timestamp=self._clock(), moderator_id=moderator_id)
        triggered = False

        def append(current: Optional[WarningRecord]) -> WarningRecord:
            nonlocal triggered
            record = current or WarningRecord()
            entries = record.entries + (entry,)
            triggered = not record.threshold_crossed and len(entries) >= self.threshold
            return replace(record, entries=entries, threshold_crossed=record.threshold_crossed or triggered)

        record = self.update(str(subject_id), append)
        return WarnResult(record=record, triggered=triggered)

    def history(self, subject_id: int) -> Tuple[WarningEntry, ...]:
        record = self.get(str(subject_id))
        return record.entries if record else ()

    def clear(self, subject_id: int) -> int:
        """
        Drop all warnings for a user and re-arm the threshold.

        Returns:
            Number of warnings removed.
        """
        count = len(self.history(subject_id))
        self.delete(str(subject_id))
        return count


# =============================================================================
# Warning Service
# =============================================================================

class WarningService:
    """Records warnings and carries out the threshold ban."""

    def __init__(self, store: WarningStore, moderation: ModerationActions) -> None:
        self.store = store
        self.moderation = moderation

    async def warn(
        self,
        scope_id: int,
        subject_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
    ) -> WarnResult:
        """
        Record a warning; ban the user if it is the one that crosses the threshold.

        Returns:
            The warning result.
        """
        result = self.store.add(subject_id, reason, moderator_id)

        logger.tree("User Warned", [
            ("User", str(subject_id)),
            ("Guild", str(scope_id)),
            ("Count", f"{result.count}/{self.store.threshold}"),
            ("Reason", reason[:50]),
        ], emoji="⚠️")

        if result.triggered:
            await self.moderation.ban(
                scope_id, subject_id, f"Reached {self.store.threshold} warnings",
            )
            logger.tree("Warning Threshold Ban", [
                ("User", str(subject_id)),
                ("Guild", str(scope_id)),
            ], emoji="🔨")

        return result


__all__ = [
    "WarningEntry",
    "WarningRecord",
    "WarningService",
    "WarningStore",
    "WarnResult",
]
