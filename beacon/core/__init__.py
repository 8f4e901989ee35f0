"""
Beacon - Core Package
=====================

Configuration, logging, constants and the error taxonomy shared by
every other package.

DESIGN:
    - get_config() returns the same Config instance
    - logger is a global TreeLogger instance
    - errors are plain exception classes, no Discord imports here
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    NY_TZ,
    get_config,
)

from .errors import (
    BeaconError,
    NotFound,
    PersistenceError,
    Timeout,
    UpstreamError,
)

from .logger import logger, TreeLogger


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    # Errors
    "BeaconError",
    "NotFound",
    "PersistenceError",
    "Timeout",
    "UpstreamError",
    # Logger
    "logger",
    "TreeLogger",
]
