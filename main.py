#!/usr/bin/env python3
"""
Beacon - Discord Bot Entry Point
================================

Loads .env, validates configuration, stamps the run version and starts
the bot.

Startup failures (bad configuration, invalid token, cannot reach
Discord) are the only conditions that stop the process; everything after
startup degrades a feature instead.
"""

import asyncio
import sys
from pathlib import Path

import discord
from dotenv import load_dotenv

from beacon.bot import BeaconBot
from beacon.core.config import ConfigValidationError, validate_and_log_config
from beacon.core.constants import VERSION_FILE
from beacon.core.logger import logger
from beacon.services.version import bump_version_file


async def main() -> None:
    """
    Main entry point for the Beacon Discord bot.

    Handles the complete bot lifecycle:
    1. Loads environment configuration
    2. Bumps the run version
    3. Initializes the bot with its services
    4. Connects to Discord and runs until interrupted

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start.
    """
    load_dotenv()

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.critical("Configuration Invalid", [("Error", str(e))])
        sys.exit(1)

    version = bump_version_file(Path(config.data_dir) / VERSION_FILE)

    logger.tree("BEACON STARTING", [
        ("Version", version),
        ("Data Dir", config.data_dir),
    ], emoji="📡")

    bot = BeaconBot(config, version)
    try:
        async with bot:
            await bot.start(config.discord_token)
    except discord.LoginFailure as e:
        logger.critical("Discord Login Failed", [("Error", str(e)[:100])])
        sys.exit(1)
    except (discord.HTTPException, discord.GatewayNotFound, OSError) as e:
        logger.critical("Bot Startup Failed", [
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ])
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Bot stopped by user (Ctrl+C)")
