"""
Beacon - Deadline Guard
=======================

Wraps a single outbound call with a cancellation deadline.

DESIGN:
    When the deadline passes the in-flight call is cancelled, not merely
    abandoned. aiohttp requests react to cancellation by closing their
    connection, so sockets and gate slots are released promptly.

    A guard is single-use: arm a new one per call.

Usage:
    guard = DeadlineGuard(5, "YouTube search")
    data = await guard.run(lambda: session.get(url))
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from beacon.core.errors import Timeout

T = TypeVar("T")


class DeadlineGuard:
    """
    One-shot deadline for one outbound call.

    Attributes:
        seconds: Deadline in seconds.
        operation: Name reported in the Timeout failure.
        expired: True once the deadline fired.
    """

    def __init__(self, seconds: float, operation: str = "outbound call") -> None:
        if seconds <= 0:
            raise ValueError(f"Deadline must be positive, got {seconds}")
        self.seconds = seconds
        self.operation = operation
        self.expired = False
        self._used = False

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        """
        Start the call and wait for it up to the deadline.

        Args:
            call: Zero-argument callable producing the awaitable to guard.

        Returns:
            The call's result.

        Raises:
            Timeout: If the deadline passed; the call has been cancelled.
            RuntimeError: If this guard was already used.
        """
        if self._used:
            raise RuntimeError("DeadlineGuard instances are single-use")
        self._used = True

        try:
            return await asyncio.wait_for(call(), timeout=self.seconds)
        except asyncio.TimeoutError:
            self.expired = True
            raise Timeout(self.operation, self.seconds) from None


__all__ = [
    "DeadlineGuard",
]
