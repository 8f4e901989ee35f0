"""
Beacon - Timed Cache
====================

Caches one computed value with a freshness window.

DESIGN:
    get() returns the stored value while it is younger than the requested
    freshness; otherwise it runs the producer and stores the new value.

    Concurrent misses are collapsed into a single in-flight computation
    (single-flight): the first caller starts the producer, everyone else
    awaits the same task. The shared task is shielded, so one caller
    being cancelled does not cancel the refresh for the others.

    invalidate() bumps a generation counter and detaches any in-flight
    refresh. A refresh only stores its result if the generation is
    unchanged since it started, so a value computed before an
    invalidation is never cached after it. Callers already waiting on
    that refresh still get its result.

    A failed refresh caches nothing; every waiter sees the exception and
    the next call tries again.
"""

import asyncio
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from beacon.core.logger import logger

V = TypeVar("V")


class TimedCache(Generic[V]):
    """
    Single-value cache with single-flight refresh.

    Attributes:
        name: Label used in log messages.
        refreshes: Number of producer invocations so far.
        generation: Incremented by every invalidate().
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, name: str = "cache") -> None:
        self.name = name
        self.refreshes = 0
        self.generation = 0
        self._clock = clock
        self._value: Optional[V] = None
        self._computed_at: Optional[float] = None
        self._inflight: Optional[asyncio.Task] = None

    # =========================================================================
    # Public API
    # =========================================================================

    async def get(self, producer: Callable[[], Awaitable[V]], freshness: float) -> V:
        """
        Return a fresh value, computing it at most once across concurrent callers.

        Args:
            producer: Zero-argument coroutine function computing the value.
            freshness: Maximum age in seconds of a reusable value.

        Returns:
            The cached or newly computed value.
        """
        age = self.age
        if age is not None and age < freshness:
            return self._value

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh(producer, self.generation))
            self._inflight.add_done_callback(self._on_refresh_done)

        return await asyncio.shield(self._inflight)

    def peek(self) -> Optional[V]:
        """Return the last value regardless of age, or None."""
        return self._value

    @property
    def age(self) -> Optional[float]:
        """Seconds since the value was computed, None if never computed."""
        if self._computed_at is None:
            return None
        return self._clock() - self._computed_at

    def invalidate(self) -> None:
        """Force the next get() to recompute, discarding any refresh already running."""
        self.generation += 1
        self._computed_at = None
        self._inflight = None

    # =========================================================================
    # Refresh
    # =========================================================================

    async def _refresh(self, producer: Callable[[], Awaitable[V]], generation: int) -> V:
        self.refreshes += 1
        value = await producer()
        if generation == self.generation:
            self._value = value
            self._computed_at = self._clock()
        else:
            logger.debug(f"Discarded stale refresh: {self.name}")
        return value

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Cache Refresh Failed", [
                ("Cache", self.name),
                ("Error Type", type(error).__name__),
                ("Error", str(error)[:100]),
            ])


__all__ = [
    "TimedCache",
]
