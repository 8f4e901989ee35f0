"""
Beacon - Centralized Constants
==============================

All magic numbers and constants are defined here for maintainability.
Import from this module instead of hardcoding values.
"""

# =============================================================================
# Time Constants (in seconds)
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800

MS_PER_SECOND = 1000

# =============================================================================
# Outbound Call Constants
# =============================================================================

MAX_CONCURRENT_REQUESTS = 3           # Process-wide in-flight outbound calls
API_TIMEOUT = 5                       # Data API deadline (YouTube, feed)
PROBE_TIMEOUT = 10                    # Liveness probe deadline

# =============================================================================
# Network Constants
# =============================================================================

HEALTH_CHECK_PORT = 8080

# =============================================================================
# Interval Constants (in seconds)
# =============================================================================

PRESENCE_UPDATE_INTERVAL = 60         # Rotate presence status
STATUS_FRESHNESS = 60                 # Status snapshot reuse window
SHUTDOWN_TIMEOUT = 10                 # Wait for in-flight handlers on close

# =============================================================================
# Cooldown Constants (in seconds)
# =============================================================================

RELOAD_COOLDOWN = 5                   # Subscriber reload button
XP_COOLDOWN = 60                      # XP grant per (user, guild)

# =============================================================================
# Leveling Constants
# =============================================================================

XP_MIN = 5
XP_MAX = 15
XP_LEVEL_FACTOR = 50                  # required_xp(level) = level * level * factor

# =============================================================================
# Moderation Constants
# =============================================================================

WARN_THRESHOLD = 3                    # Warnings before the automatic ban
WARN_REASON_MAX_LENGTH = 500

# =============================================================================
# Giveaway & Poll Constants
# =============================================================================

GIVEAWAY_EMOJI = "🎉"
MAX_GIVEAWAY_WINNERS = 20
CONCLUDED_GIVEAWAY_LIMIT = 50         # Ended giveaways kept for /reroll
POLL_EMOJIS = ("1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟")

# =============================================================================
# Storage Constants
# =============================================================================

DATA_DIR = "data"
LEVELS_FILE = "levels.json"
WARNINGS_FILE = "warnings.json"
GIVEAWAYS_FILE = "giveaways.json"
VERSION_FILE = "version.json"

# =============================================================================
# Remote Endpoints
# =============================================================================

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
SUBSCRIBER_ESTIMATE_URL = "https://backend.mixerno.space/api/youtube/estv3/{channel_id}"
DEFAULT_FEED_URL = "https://meme-api.com/gimme"

# =============================================================================
# Limits
# =============================================================================

LOG_TRUNCATE_LENGTH = 100
LEADERBOARD_SIZE = 10
