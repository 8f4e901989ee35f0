"""
Beacon - Source Package
=======================

A Discord community bot: YouTube subscriber lookups, service status,
leveling, warnings, giveaways, polls and AFK notices, built over a small
concurrency and state-lifecycle core.

Package Structure:
- bot.py: discord.py client, turns platform events into dispatcher events
- core/: config, logging, constants and error types
- concurrency/: outbound call gate and deadlines
- state/: cooldowns, persisted stores, timed cache, scheduled actions
- dispatch/: event variants and the dispatcher
- services/: feature logic (YouTube, status, leveling, giveaways, ...)
- handlers/: handler chains registered on the dispatcher
- utils/: Discord rendering helpers, durations, background tasks
"""

__version__ = "1.0.0"
