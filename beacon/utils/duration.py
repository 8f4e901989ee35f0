"""
Duration Utilities
==================

Parsing and formatting of command durations.

Usage:
    from beacon.utils.duration import parse_duration, format_duration

    seconds = parse_duration("1h30m")   # 5400
    display = format_duration(5400)     # "1h 30m"
"""

import re
from typing import Optional

from beacon.core.constants import (
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
    SECONDS_PER_WEEK,
)


# =============================================================================
# Time Constants
# =============================================================================

TIME_MULTIPLIERS = {
    "w": SECONDS_PER_WEEK,
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
    "s": 1,
}

# Full word aliases mapping to short forms
TIME_UNIT_ALIASES = {
    "week": "w", "weeks": "w", "wk": "w", "wks": "w",
    "day": "d", "days": "d",
    "hour": "h", "hours": "h", "hr": "h", "hrs": "h",
    "minute": "m", "minutes": "m", "min": "m", "mins": "m",
    "second": "s", "seconds": "s", "sec": "s", "secs": "s",
}

_COMBINED = re.compile(r"(?:(\d+)w)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?")


# =============================================================================
# Parsing
# =============================================================================

def _normalize_duration_string(duration_str: str) -> str:
    """
    Normalize full unit words to their short forms.

    Examples:
        "1 day" -> "1d"
        "1 hour 30 minutes" -> "1h30m"
    """
    result = duration_str.lower().strip()
    result = re.sub(r"(\d+)\s+", r"\1", result)

    # Longest first so "mins" wins over "min"
    for word, short in sorted(TIME_UNIT_ALIASES.items(), key=lambda x: -len(x[0])):
        result = re.sub(rf"(?<=\d){word}\b|(?<!\w){word}\b", short, result)

    return result.replace(" ", "")


def parse_duration(duration_str: str) -> Optional[int]:
    """
    Parse a duration string into seconds.

    Supports:
        - "30s", "10m", "2h", "1d", "1w"
        - Combined: "1h30m", "2d12h"
        - Full words: "1 day", "2 hours"
        - Plain number: "30" -> 30 minutes

    Args:
        duration_str: Duration string to parse.

    Returns:
        Duration in seconds, or None if the string is invalid or zero.

    Examples:
        >>> parse_duration("1h30m")
        5400
        >>> parse_duration("soon")
        None
    """
    if not duration_str:
        return None

    normalized = _normalize_duration_string(duration_str)

    if normalized.isdigit():
        total = int(normalized) * SECONDS_PER_MINUTE
        return total if total > 0 else None

    match = _COMBINED.fullmatch(normalized)
    if not match or not any(match.groups()):
        return None

    total = sum(
        int(value or 0) * TIME_MULTIPLIERS[unit]
        for value, unit in zip(match.groups(), ("w", "d", "h", "m", "s"))
    )
    return total if total > 0 else None


# =============================================================================
# Formatting
# =============================================================================

def format_duration(seconds: float, max_units: int = 3) -> str:
    """
    Format seconds into a human-readable duration string.

    Examples:
        >>> format_duration(5400)
        "1h 30m"
        >>> format_duration(45)
        "45s"
    """
    remaining = int(seconds)
    if remaining <= 0:
        return "0s"

    parts = []
    for unit in ("w", "d", "h", "m", "s"):
        size = TIME_MULTIPLIERS[unit]
        if remaining >= size and len(parts) < max_units:
            count, remaining = divmod(remaining, size)
            parts.append(f"{count}{unit}")

    return " ".join(parts)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "TIME_MULTIPLIERS",
    "format_duration",
    "parse_duration",
]
