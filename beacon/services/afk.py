"""
Beacon - AFK Tracker
====================

In-memory away-from-keyboard status per user.

Set by /afk, cleared by the user's next message, and reported when
someone mentions an AFK user.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

DEFAULT_REASON = "AFK"


@dataclass(frozen=True)
class AfkStatus:
    reason: str
    since: float


class AfkTracker:
    """Who is AFK, why and since when."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._away: Dict[int, AfkStatus] = {}

    def set(self, subject_id: int, reason: Optional[str] = None) -> AfkStatus:
        status = AfkStatus(reason=(reason or "").strip() or DEFAULT_REASON, since=self._clock())
        self._away[subject_id] = status
        return status

    def clear(self, subject_id: int) -> Optional[AfkStatus]:
        """Remove AFK status. Returns the cleared status, None if not AFK."""
        return self._away.pop(subject_id, None)

    def get(self, subject_id: int) -> Optional[AfkStatus]:
        return self._away.get(subject_id)

    def mentioned(self, mentions: Iterable[int]) -> List[Tuple[int, AfkStatus]]:
        """AFK statuses of mentioned users, in mention order without repeats."""
        seen = set()
        result = []
        for subject_id in mentions:
            status = self._away.get(subject_id)
            if status and subject_id not in seen:
                seen.add(subject_id)
                result.append((subject_id, status))
        return result

    def __len__(self) -> int:
        return len(self._away)


__all__ = [
    "AfkStatus",
    "AfkTracker",
]
