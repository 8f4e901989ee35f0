"""
Beacon - Health Check Server
============================

HTTP health check endpoint for external monitoring.

DESIGN:
    Provides a lightweight HTTP server that uptime checkers can ping to
    verify the bot is running and responsive.

    The server knows nothing about discord.py: the bot hands it a
    provider callable returning a JSON-safe dict. The /health endpoint
    adds a timestamp and reports "healthy" once the provider says the
    bot is connected, "starting" before that.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from aiohttp import web

from beacon.core.constants import HEALTH_CHECK_PORT
from beacon.core.logger import logger, NY_TZ

StatusProvider = Callable[[], Dict[str, Any]]


# =============================================================================
# Health Check Server
# =============================================================================

class HealthCheckServer:
    """
    Simple HTTP health check server for monitoring.

    Attributes:
        port: Port number for the HTTP server (0 picks a free port).
        app: aiohttp Application instance.
        runner: aiohttp AppRunner for lifecycle management.
    """

    def __init__(self, provider: StatusProvider, port: int = HEALTH_CHECK_PORT, host: str = "0.0.0.0") -> None:
        self.provider = provider
        self.port = port
        self.host = host
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None

        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/", self.health_handler)

    # =========================================================================
    # Request Handlers
    # =========================================================================

    async def health_handler(self, request: web.Request) -> web.Response:
        """Return bot status as JSON; 500 if the provider fails."""
        try:
            details = dict(self.provider())
            connected = bool(details.get("connected"))
            status = {
                "status": "healthy" if connected else "starting",
                "bot": "Beacon",
                **details,
                "timestamp": datetime.now(NY_TZ).isoformat(),
            }
            logger.debug(f"Health check: {status['status']}")
            return web.json_response(status)

        except Exception as e:
            logger.error("Health Check Error", [
                ("Error", str(e)[:100]),
            ])
            return web.json_response(
                {"status": "error", "error": str(e)},
                status=500,
            )

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        """Start serving; a bind failure is logged and the bot runs without it."""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()

            logger.tree("Health Server Started", [
                ("Port", str(self.port)),
                ("Endpoint", f"http://{self.host}:{self.port}/health"),
            ], emoji="🏥")

        except OSError as e:
            logger.error("Health Server Startup Failed", [
                ("Port", str(self.port)),
                ("Error", str(e)[:100]),
            ])

    async def stop(self) -> None:
        """Stop the server; safe to call even if it never started."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Health check server stopped")


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["HealthCheckServer"]
