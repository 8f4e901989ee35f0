"""
Beacon - Utilities Package
==========================

Helpers shared across features. Modules are imported directly
(e.g. `from beacon.utils.duration import parse_duration`); replies.py
is the only one that touches discord.py.
"""
