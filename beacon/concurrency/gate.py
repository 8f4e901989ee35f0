"""
Beacon - Concurrency Gate
=========================

Process-wide bound on simultaneously in-flight outbound calls.

DESIGN:
    Every network call in the bot goes through one shared gate so a burst
    of commands cannot overwhelm a remote API or exhaust local sockets.

    - At most `limit` tasks run at once
    - Excess submissions wait in strict submission order (FIFO)
    - A finishing task hands its slot straight to the oldest waiter, so
      a late arrival can never overtake someone already queued
    - A failing or cancelled task releases its slot like any other

    Tasks must not submit further work to the same gate while holding a
    slot; call chains are flattened before submission instead.

Usage:
    gate = ConcurrencyGate(limit=3)
    data = await gate.run(lambda: fetch_json(url))
"""

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

from beacon.core.constants import MAX_CONCURRENT_REQUESTS
from beacon.core.logger import logger

T = TypeVar("T")


# =============================================================================
# Concurrency Gate
# =============================================================================

class ConcurrencyGate:
    """
    FIFO-fair bounded concurrency for deferred units of work.

    Attributes:
        limit: Maximum number of tasks running at once.
        peak: Highest number of simultaneously running tasks observed.
        completed: Number of tasks that finished (successfully or not).
    """

    def __init__(self, limit: int = MAX_CONCURRENT_REQUESTS, name: str = "outbound") -> None:
        """
        Initialize the gate.

        Args:
            limit: Maximum concurrent tasks, fixed for the gate's lifetime.
            name: Label used in log messages.

        Raises:
            ValueError: If limit is less than 1.
        """
        if limit < 1:
            raise ValueError(f"ConcurrencyGate limit must be >= 1, got {limit}")

        self.limit = limit
        self.name = name
        self.peak = 0
        self.completed = 0
        self._running = 0
        self._waiters: Deque[asyncio.Future] = deque()

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def running(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._running

    @property
    def queued(self) -> int:
        """Number of submissions waiting for a slot."""
        return sum(1 for w in self._waiters if not w.done())

    # =========================================================================
    # Slot Management
    # =========================================================================

    async def _acquire(self) -> None:
        """Take a slot, waiting behind earlier submissions if the gate is full."""
        if self._running < self.limit and not self._waiters:
            self._running += 1
            self.peak = max(self.peak, self._running)
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)

        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just as we were cancelled
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        """Hand the slot to the oldest live waiter, or free it."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._running -= 1

    # =========================================================================
    # Public API
    # =========================================================================

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Run a deferred unit of work once a slot is free.

        Args:
            task: Zero-argument callable returning an awaitable. It is not
                invoked until a slot has been granted.

        Returns:
            Whatever the task returns.

        Raises:
            Whatever the task raises; the slot is released either way.
        """
        await self._acquire()
        if self.queued:
            logger.debug(f"Gate {self.name}: {self._running}/{self.limit} running, {self.queued} queued")
        try:
            return await task()
        finally:
            self.completed += 1
            self._release()


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ConcurrencyGate",
]
