"""
Beacon - Cooldown Store
=======================

Per-(subject, action) expiry timestamps that clean themselves up.

DESIGN:
    An entry whose expiry is at or before "now" is logically absent, so
    every read checks the clock rather than trusting the timer. The timer
    only exists so one-off users do not leave entries behind forever.

    - set() always overwrites; there is no silent extension
    - remaining() is max(0, expiry - now), 0 meaning "usable now"
    - try_acquire() is the check-then-set used by handlers, done in one
      synchronous step so no other task can interleave between them

    Durations are seconds. The clock is injectable for tests.
"""

import asyncio
import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from beacon.core.logger import logger

CooldownKey = Tuple[Hashable, str]


class CooldownStore:
    """
    Tracks when each (subject, action) pair becomes usable again.

    Attributes:
        name: Label used in log messages.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, name: str = "cooldowns") -> None:
        """
        Initialize an empty store.

        Args:
            clock: Monotonic clock returning seconds.
            name: Label used in log messages.
        """
        self.name = name
        self._clock = clock
        self._expiries: Dict[CooldownKey, float] = {}
        self._timers: Dict[CooldownKey, asyncio.TimerHandle] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    def set(self, subject: Hashable, action: str, duration: float) -> None:
        """
        Start (or restart) a cooldown.

        Args:
            subject: Who the cooldown applies to (usually a user ID).
            action: What is cooling down (e.g. "reload").
            duration: Cooldown length in seconds.
        """
        key = (subject, action)
        if duration <= 0:
            self._drop(key)
            return

        expiry = self._clock() + duration
        self._expiries[key] = expiry
        self._arm_cleanup(key, expiry, duration)

    def remaining(self, subject: Hashable, action: str) -> float:
        """
        Seconds until the action is usable again.

        Returns:
            0.0 when usable now, otherwise the time left.
        """
        key = (subject, action)
        expiry = self._expiries.get(key)
        if expiry is None:
            return 0.0

        left = expiry - self._clock()
        if left <= 0:
            self._drop(key)
            return 0.0
        return left

    def try_acquire(self, subject: Hashable, action: str, duration: float) -> float:
        """
        Start the cooldown if it is not already running.

        Returns:
            0.0 if the cooldown was started (action allowed), otherwise
            the seconds remaining on the existing cooldown.
        """
        left = self.remaining(subject, action)
        if left > 0:
            return left
        self.set(subject, action, duration)
        return 0.0

    def reset(self, subject: Hashable, action: str) -> None:
        """Clear a cooldown early."""
        self._drop((subject, action))

    def cleanup_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [k for k, expiry in self._expiries.items() if expiry <= now]
        for key in expired:
            self._drop(key)
        return len(expired)

    def __len__(self) -> int:
        return len(self._expiries)

    # =========================================================================
    # Cleanup Timers
    # =========================================================================

    def _arm_cleanup(self, key: CooldownKey, expiry: float, delay: float) -> None:
        """Schedule removal of the entry; lazy checks cover a missing loop."""
        old = self._timers.pop(key, None)
        if old:
            old.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[key] = loop.call_later(delay, self._expire, key, expiry)

    def _expire(self, key: CooldownKey, expiry: float) -> None:
        self._timers.pop(key, None)
        # A later set() may have replaced this entry
        if self._expiries.get(key) != expiry:
            return
        left = expiry - self._clock()
        if left > 0:
            # Timer fired early (clock resolution), try again
            self._arm_cleanup(key, expiry, left)
            return
        del self._expiries[key]
        logger.debug(f"Cooldown expired: {self.name} {key}")

    def _drop(self, key: CooldownKey) -> None:
        self._expiries.pop(key, None)
        timer: Optional[asyncio.TimerHandle] = self._timers.pop(key, None)
        if timer:
            timer.cancel()


__all__ = [
    "CooldownStore",
]
