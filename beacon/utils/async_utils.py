"""
Beacon - Async Utilities
========================

Background work that must never die silently.

DESIGN:
    Timers (giveaway and poll ends), the presence loop and startup
    notices all run detached from any event. A failure there has no
    reply sink to report to, so it is logged here and dropped.
    Cancellation passes through untouched: shutdown cancels these tasks
    on purpose.
"""

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

from beacon.core.logger import logger

T = TypeVar("T")


# =============================================================================
# Safe Background Tasks
# =============================================================================

def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Schedule a coroutine as a named task whose failure is logged.

    Args:
        coro: The coroutine to run.
        name: Task name, also shown in the failure log.

    Returns:
        The created asyncio.Task.
    """
    async def guarded() -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])
            return None

    return asyncio.create_task(guarded(), name=name)


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, T],
    default: Optional[T] = None,
) -> Optional[T]:
    """Await one step of a loop, falling back to `default` if it raises."""
    try:
        return await coro
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning("Async Operation Failed", [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ])
        return default


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "create_safe_task",
    "safe_async_operation",
]
