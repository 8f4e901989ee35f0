"""
Beacon - State Package
======================

In-memory state with explicit lifecycles:

- CooldownStore: self-expiring (subject, action) timers
- PersistedKeyedStore: JSON-snapshot backed keyed records
- TimedCache: single value with freshness window and single-flight refresh
- ScheduledAction / ActionScheduler: one-shot deferred callbacks
"""

from .cache import TimedCache
from .cooldowns import CooldownStore
from .scheduler import ActionScheduler, ScheduledAction
from .store import PersistedKeyedStore

__all__ = [
    "ActionScheduler",
    "CooldownStore",
    "PersistedKeyedStore",
    "ScheduledAction",
    "TimedCache",
]
