"""
Beacon - Scheduled Actions
==========================

One-shot deferred callbacks armed for a future instant.

DESIGN:
    A ScheduledAction is only the timer. The record it acts on (a
    giveaway, a poll) lives elsewhere, so losing the timer never loses
    the record. Timers do not survive a restart: owners that need them
    back re-derive the remaining delay from their persisted end instant
    and arm again on load.

    - Firing is at-most-once
    - cancel() withdraws an action that has not fired yet
    - Coroutine actions run as safe background tasks, so a failing end
      action is logged instead of killing the event loop

    ActionScheduler keeps armed actions by key so owners can replace,
    cancel, or shut them all down.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from beacon.core.logger import logger
from beacon.utils.async_utils import create_safe_task

Action = Callable[[], Union[None, Awaitable[Any]]]


# =============================================================================
# Scheduled Action
# =============================================================================

class ScheduledAction:
    """
    A single deferred callback.

    Attributes:
        delay: Seconds between arm() and firing.
        name: Label used in logs and for the background task.
        task: Background task running a coroutine action, once fired.
    """

    def __init__(self, delay: float, action: Action, name: str = "Scheduled Action") -> None:
        self.delay = max(0.0, delay)
        self.name = name
        self.task: Optional[asyncio.Task] = None
        self._action = action
        self._handle: Optional[asyncio.TimerHandle] = None
        self._fired = False
        self._cancelled = False

    @property
    def armed(self) -> bool:
        return self._handle is not None and not self._fired and not self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def arm(self) -> "ScheduledAction":
        """
        Start the timer on the running event loop.

        Raises:
            RuntimeError: If already armed, fired or cancelled.
        """
        if self._handle is not None or self._fired or self._cancelled:
            raise RuntimeError(f"{self.name} cannot be armed twice")
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)
        return self

    def cancel(self) -> bool:
        """
        Withdraw the action before it fires.

        Returns:
            True if the action was pending and is now cancelled.
        """
        if self._fired or self._cancelled:
            return False
        self._cancelled = True
        if self._handle:
            self._handle.cancel()
        return True

    def _fire(self) -> None:
        if self._fired or self._cancelled:
            return
        self._fired = True

        try:
            result = self._action()
        except Exception as e:
            logger.error("Scheduled Action Failed", [
                ("Action", self.name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])
            return

        if inspect.isawaitable(result):
            self.task = create_safe_task(_await(result), self.name)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def arm(delay: float, action: Action, name: str = "Scheduled Action") -> ScheduledAction:
    """Create and arm a ScheduledAction in one call."""
    return ScheduledAction(delay, action, name).arm()


# =============================================================================
# Action Scheduler
# =============================================================================

class ActionScheduler:
    """
    Registry of armed actions keyed by the record they belong to.

    DESIGN:
        Re-arming a key cancels the previous action first, so each record
        has at most one pending timer. Fired actions remove themselves.
    """

    def __init__(self, name: str = "scheduler") -> None:
        self.name = name
        self._actions: Dict[str, ScheduledAction] = {}

    def arm(self, key: str, delay: float, action: Action) -> ScheduledAction:
        """
        Arm an action for a key, replacing any pending one.

        Args:
            key: Identity of the record the action belongs to.
            delay: Seconds until firing.
            action: Callback or coroutine function to run.

        Returns:
            The armed ScheduledAction.
        """
        self.cancel(key)

        def run() -> Union[None, Awaitable[Any]]:
            if self._actions.get(key) is scheduled:
                del self._actions[key]
            return action()

        scheduled = ScheduledAction(delay, run, name=f"{self.name}:{key}")
        self._actions[key] = scheduled
        scheduled.arm()
        return scheduled

    def cancel(self, key: str) -> bool:
        """Cancel the pending action for a key, if any."""
        scheduled = self._actions.pop(key, None)
        if scheduled is None:
            return False
        return scheduled.cancel()

    def cancel_all(self) -> int:
        """Cancel every pending action. Returns how many were cancelled."""
        cancelled = sum(1 for s in self._actions.values() if s.cancel())
        self._actions.clear()
        return cancelled

    def pending(self) -> List[str]:
        """Keys with an action still waiting to fire."""
        return [key for key, s in self._actions.items() if s.armed]

    def get(self, key: str) -> Optional[ScheduledAction]:
        return self._actions.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._actions


__all__ = [
    "ScheduledAction",
    "ActionScheduler",
    "arm",
]
