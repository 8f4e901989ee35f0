"""
Beacon - Configuration Module
=============================

Centralized configuration management with environment variable validation.

DESIGN:
    This module is the only place that reads the environment. It runs once
    at startup and hands plain values to the rest of the bot; stores,
    gates and caches never look at os.environ themselves.

    Key patterns:
    - Singleton pattern via get_config() ensures one Config instance
    - Validation happens once at load time, not on every access
    - Range-checked integers so a typo fails startup instead of a feature
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from beacon.core import constants
from beacon.core.logger import NY_TZ


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Standardized color palette for Discord embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    BLUE = 0x3498DB
    PURPLE = 0x9B59B6

    SUCCESS = GREEN
    ERROR = RED
    WARNING = GOLD
    INFO = BLUE
    GIVEAWAY = PURPLE


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    DESIGN:
        Only the Discord token is required. Features whose keys are missing
        disable themselves instead of failing startup.

    Attributes:
        discord_token: Discord bot authentication token.
        youtube_api_key: YouTube Data API key for /subscribers.
        log_channel_id: Channel for moderation log messages.
        data_dir: Directory holding snapshot files.
        status_targets: Mapping of service name to probe URL.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Integrations
    # -------------------------------------------------------------------------

    youtube_api_key: Optional[str] = None
    feed_url: str = constants.DEFAULT_FEED_URL
    error_webhook_url: Optional[str] = None
    log_channel_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # Optional: Storage
    # -------------------------------------------------------------------------

    data_dir: str = constants.DATA_DIR

    # -------------------------------------------------------------------------
    # Optional: Outbound Calls
    # -------------------------------------------------------------------------

    max_concurrent_requests: int = constants.MAX_CONCURRENT_REQUESTS
    api_timeout: int = constants.API_TIMEOUT
    probe_timeout: int = constants.PROBE_TIMEOUT

    # -------------------------------------------------------------------------
    # Optional: Status
    # -------------------------------------------------------------------------

    status_targets: Dict[str, str] = field(default_factory=dict)
    status_freshness: int = constants.STATUS_FRESHNESS

    # -------------------------------------------------------------------------
    # Optional: Cooldowns & Leveling
    # -------------------------------------------------------------------------

    reload_cooldown: int = constants.RELOAD_COOLDOWN
    xp_cooldown: int = constants.XP_COOLDOWN
    xp_min: int = constants.XP_MIN
    xp_max: int = constants.XP_MAX

    # -------------------------------------------------------------------------
    # Optional: Moderation
    # -------------------------------------------------------------------------

    warn_threshold: int = constants.WARN_THRESHOLD

    # -------------------------------------------------------------------------
    # Optional: Scheduler Intervals (seconds)
    # -------------------------------------------------------------------------

    presence_update_interval: int = constants.PRESENCE_UPDATE_INTERVAL
    health_check_port: int = constants.HEALTH_CHECK_PORT


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """
    Raised when required configuration is missing or invalid.

    DESIGN:
        Custom exception type allows callers to distinguish config
        errors from other startup failures.
    """

    pass


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    """
    Parse optional string to integer, returning None on failure.

    Args:
        value: String value from environment variable, may be None.

    Returns:
        Parsed integer or None if parsing fails.
    """
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse string to integer with a default and optional bounds.

    Args:
        value: String value from environment variable.
        default: Value used when the variable is unset.
        name: Variable name for error messages.
        min_val: Inclusive lower bound.
        max_val: Inclusive upper bound.

    Returns:
        Parsed integer value.

    Raises:
        ConfigValidationError: If value is not an integer or out of range.
    """
    if value is None or value.strip() == "":
        return default
    try:
        result = int(value)
    except ValueError:
        raise ConfigValidationError(f"Invalid integer for {name}: {value}")

    if min_val is not None and result < min_val:
        raise ConfigValidationError(f"{name} must be >= {min_val}, got {result}")
    if max_val is not None and result > max_val:
        raise ConfigValidationError(f"{name} must be <= {max_val}, got {result}")
    return result


def _parse_targets(value: Optional[str]) -> Dict[str, str]:
    """
    Parse a "name=url,name=url" list into an ordered mapping.

    Raises:
        ConfigValidationError: If an entry is missing its name or URL.
    """
    targets: Dict[str, str] = {}
    if not value:
        return targets

    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, url = entry.partition("=")
        name, url = name.strip(), url.strip()
        if not sep or not name or not url:
            raise ConfigValidationError(f"Invalid STATUS_TARGETS entry: {entry}")
        targets[name] = _validate_url(url, f"STATUS_TARGETS[{name}]")
    return targets


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """
    Validate that an optional value looks like an http(s) URL.

    Raises:
        ConfigValidationError: If the value is set but not a URL.
    """
    if not value:
        return None
    if not value.startswith(("http://", "https://")):
        raise ConfigValidationError(f"Invalid URL for {name}: {value}")
    return value


# =============================================================================
# Loader
# =============================================================================

def load_config() -> Config:
    """
    Load configuration from environment variables.

    Returns:
        Validated Config instance.

    Raises:
        ConfigValidationError: If required configuration is missing or invalid.
    """
    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        raise ConfigValidationError("Missing required: DISCORD_TOKEN")

    xp_min = _parse_int_with_default(os.getenv("XP_MIN"), constants.XP_MIN, "XP_MIN", min_val=1, max_val=1000)
    xp_max = _parse_int_with_default(os.getenv("XP_MAX"), constants.XP_MAX, "XP_MAX", min_val=1, max_val=1000)
    if xp_min > xp_max:
        raise ConfigValidationError(f"XP_MIN ({xp_min}) must not exceed XP_MAX ({xp_max})")

    return Config(
        discord_token=discord_token,
        youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
        feed_url=_validate_url(os.getenv("FEED_URL"), "FEED_URL") or constants.DEFAULT_FEED_URL,
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
        log_channel_id=_parse_int_optional(os.getenv("LOG_CHANNEL_ID")),
        data_dir=os.getenv("DATA_DIR", constants.DATA_DIR),
        max_concurrent_requests=_parse_int_with_default(
            os.getenv("MAX_CONCURRENT_REQUESTS"), constants.MAX_CONCURRENT_REQUESTS,
            "MAX_CONCURRENT_REQUESTS", min_val=1, max_val=50,
        ),
        api_timeout=_parse_int_with_default(
            os.getenv("API_TIMEOUT_SECONDS"), constants.API_TIMEOUT, "API_TIMEOUT_SECONDS", min_val=1, max_val=60
        ),
        probe_timeout=_parse_int_with_default(
            os.getenv("PROBE_TIMEOUT_SECONDS"), constants.PROBE_TIMEOUT, "PROBE_TIMEOUT_SECONDS", min_val=1, max_val=120
        ),
        status_targets=_parse_targets(os.getenv("STATUS_TARGETS")),
        status_freshness=_parse_int_with_default(
            os.getenv("STATUS_FRESHNESS_SECONDS"), constants.STATUS_FRESHNESS,
            "STATUS_FRESHNESS_SECONDS", min_val=0, max_val=3600,
        ),
        reload_cooldown=_parse_int_with_default(
            os.getenv("RELOAD_COOLDOWN_SECONDS"), constants.RELOAD_COOLDOWN,
            "RELOAD_COOLDOWN_SECONDS", min_val=0, max_val=300,
        ),
        xp_cooldown=_parse_int_with_default(
            os.getenv("XP_COOLDOWN_SECONDS"), constants.XP_COOLDOWN, "XP_COOLDOWN_SECONDS", min_val=0, max_val=3600
        ),
        xp_min=xp_min,
        xp_max=xp_max,
        warn_threshold=_parse_int_with_default(
            os.getenv("WARN_THRESHOLD"), constants.WARN_THRESHOLD, "WARN_THRESHOLD", min_val=1, max_val=100
        ),
        presence_update_interval=_parse_int_with_default(
            os.getenv("PRESENCE_UPDATE_INTERVAL"), constants.PRESENCE_UPDATE_INTERVAL,
            "PRESENCE_UPDATE_INTERVAL", min_val=10, max_val=3600,
        ),
        health_check_port=_parse_int_with_default(
            os.getenv("HEALTH_CHECK_PORT"), constants.HEALTH_CHECK_PORT, "HEALTH_CHECK_PORT", min_val=0, max_val=65535
        ),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Returns:
        The global Config instance.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """
    Validate configuration and log results at startup.

    Returns:
        The validated Config instance.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from beacon.core.logger import logger

    config = get_config()

    features = ["Leveling", "Warnings", "Giveaways", "Polls", "AFK"]
    if config.youtube_api_key:
        features.append("Subscribers")
    else:
        logger.info("Optional config not set: YOUTUBE_API_KEY")
    if config.status_targets:
        features.append("Status")
    else:
        logger.info("Optional config not set: STATUS_TARGETS")

    logger.tree("Configuration Validated", [
        ("Features", ", ".join(features)),
        ("Data Dir", config.data_dir),
        ("Concurrency", str(config.max_concurrent_requests)),
        ("Deadlines", f"{config.api_timeout}s api / {config.probe_timeout}s probe"),
        ("Status Targets", str(len(config.status_targets))),
    ], emoji="⚙️")

    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    "load_config",
    "validate_and_log_config",
]
