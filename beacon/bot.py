"""
Beacon - Main Bot Class
=======================

discord.py client that feeds platform events into the Dispatcher.

DESIGN: Central orchestrator that:
- Builds every store, service and handler once and injects them
- Converts slash commands, component clicks, modal submissions, plain
  messages and reactions into Dispatcher events
- Implements the reply/channel/moderation sinks over discord.py
- Owns startup (snapshot loads, giveaway restore, command sync, health
  server) and shutdown (drain handlers, stop timers, close HTTP)

Handlers never see discord.py objects; nothing below beacon.dispatch
depends on this module.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import discord
from discord import app_commands
from discord.ext import commands

from beacon.concurrency import ConcurrencyGate
from beacon.core.config import Config
from beacon.core.constants import (
    GIVEAWAYS_FILE,
    LEVELS_FILE,
    SHUTDOWN_TIMEOUT,
    WARNINGS_FILE,
)
from beacon.core.health import HealthCheckServer
from beacon.core.logger import logger, NY_TZ
from beacon.dispatch import Dispatcher
from beacon.dispatch.events import (
    CommandInvocation,
    CommandName,
    FormKind,
    FormSubmission,
    InteractiveTrigger,
    RawMessage,
    ReactionChange,
    TriggerKind,
    parse_id,
)
from beacon.dispatch.replies import MessageRef, Reply
from beacon.handlers import (
    AfkHandler,
    FunHandler,
    GiveawayHandler,
    LevelingHandler,
    ModerationHandler,
    PollHandler,
    StatusHandler,
    SubscribersHandler,
)
from beacon.services import (
    AfkTracker,
    FeedService,
    GiveawayService,
    GiveawayStore,
    LevelingService,
    LevelStore,
    OutboundClient,
    PollService,
    StatusService,
    WarningService,
    WarningStore,
    YouTubeService,
)
from beacon.state import ActionScheduler, CooldownStore
from beacon.utils.async_utils import create_safe_task, safe_async_operation
from beacon.utils.replies import (
    BotChannelSink,
    BotModeration,
    ChannelReplySink,
    InteractionReplySink,
    form_values,
)

# Commands that make outbound calls and may outlive the 3s response window
DEFERRED_COMMANDS = frozenset({CommandName.SUBSCRIBERS, CommandName.MEME, CommandName.STATUS})


# =============================================================================
# BeaconBot Class
# =============================================================================

class BeaconBot(commands.Bot):
    """
    Main Discord bot class.

    SERVICE INITIALIZATION ORDER:
    1. __init__: stores, gate, HTTP client, services, handlers, dispatcher
    2. setup_hook (before on_ready):
       - Snapshot loads
       - Giveaway timer restore
       - Slash command registration and sync
       - Health check server
    3. on_ready: presence loop, startup notice
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, config: Config, version: str) -> None:
        self.config = config
        self.version = version

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.start_time: datetime = datetime.now(NY_TZ)
        data_dir = Path(config.data_dir)

        # Shared infrastructure
        self.gate = ConcurrencyGate(config.max_concurrent_requests)
        self.http_client = OutboundClient(self.gate, default_timeout=config.api_timeout)
        self.cooldowns = CooldownStore()
        self.giveaway_timers = ActionScheduler("giveaways")
        self.poll_timers = ActionScheduler("polls")

        # Platform sinks
        self.channel_sink = BotChannelSink(self)
        self.moderation = BotModeration(self)

        # Persisted stores
        self.level_store = LevelStore(data_dir / LEVELS_FILE)
        self.warning_store = WarningStore(data_dir / WARNINGS_FILE, threshold=config.warn_threshold)
        self.giveaway_store = GiveawayStore(data_dir / GIVEAWAYS_FILE)

        # Services
        self.youtube = (
            YouTubeService(self.http_client, config.youtube_api_key, timeout=config.api_timeout)
            if config.youtube_api_key else None
        )
        self.feed = FeedService(self.http_client, config.feed_url, timeout=config.api_timeout)
        self.status_service = StatusService(
            self.http_client,
            config.status_targets,
            probe_timeout=config.probe_timeout,
            freshness=config.status_freshness,
        )
        self.leveling = LevelingService(
            self.level_store,
            self.cooldowns,
            cooldown=config.xp_cooldown,
            xp_range=(config.xp_min, config.xp_max),
        )
        self.warnings = WarningService(self.warning_store, self.moderation)
        self.giveaways = GiveawayService(self.giveaway_store, self.giveaway_timers, self.channel_sink)
        self.polls = PollService(self.poll_timers, self.channel_sink)
        self.afk = AfkTracker()

        # Dispatcher; message chain order: AFK before leveling
        self.dispatcher = Dispatcher()
        for handler in (
            SubscribersHandler(self.youtube, self.cooldowns, config.reload_cooldown),
            FunHandler(self.feed),
            StatusHandler(self.status_service),
            ModerationHandler(self.moderation, self.warnings),
            AfkHandler(self.afk),
            LevelingHandler(self.leveling),
            GiveawayHandler(self.giveaways),
            PollHandler(self.polls),
        ):
            handler.register(self.dispatcher)

        self.health_server: Optional[HealthCheckServer] = None
        self._presence_task: Optional[asyncio.Task] = None
        self._ready_initialized: bool = False
        self._shutting_down: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load state, register commands and start side servers before on_ready."""
        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url, self.gate)

        await self.http_client.start()

        self.level_store.load()
        self.warning_store.load()
        self.giveaway_store.load()
        self.giveaways.restore()

        self._register_commands()
        try:
            synced = await self.tree.sync()
            logger.tree("Commands Synced", [("Count", str(len(synced)))], emoji="✅")
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e)[:100])])

        self.health_server = HealthCheckServer(self._health_status, port=self.config.health_check_port)
        await self.health_server.start()

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return
        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
            ("Version", self.version),
        ], emoji="🚀")

        self._presence_task = create_safe_task(self._presence_loop(), "Presence Loop")

        if self.config.log_channel_id:
            create_safe_task(self.channel_sink.post(self.config.log_channel_id, Reply(
                content=f"🟢 Beacon V{self.version} is online.",
            )), "Startup Notice")

    # =========================================================================
    # Slash Commands
    # =========================================================================

    def _register_commands(self) -> None:
        """Declare every slash command; each callback only forwards to the Dispatcher."""
        tree = self.tree
        submit = self._submit_command

        @tree.command(name="subscribers", description="Get a YouTube channel's subscriber count")
        @app_commands.describe(channel="YouTube channel name")
        async def subscribers(interaction: discord.Interaction, channel: str) -> None:
            await submit(interaction, CommandName.SUBSCRIBERS, {"channel": channel})

        @tree.command(name="ban", description="Ban a user")
        @app_commands.default_permissions(ban_members=True)
        @app_commands.guild_only()
        async def ban(interaction: discord.Interaction, target: discord.User, reason: Optional[str] = None) -> None:
            await submit(interaction, CommandName.BAN, _user_options(target, reason=reason))

        @tree.command(name="kick", description="Kick a user")
        @app_commands.default_permissions(kick_members=True)
        @app_commands.guild_only()
        async def kick(interaction: discord.Interaction, target: discord.User, reason: Optional[str] = None) -> None:
            await submit(interaction, CommandName.KICK, _user_options(target, reason=reason))

        @tree.command(name="joke", description="Get a random joke")
        async def joke(interaction: discord.Interaction) -> None:
            await submit(interaction, CommandName.JOKE, {})

        @tree.command(name="meme", description="Get a random meme")
        async def meme(interaction: discord.Interaction) -> None:
            await submit(interaction, CommandName.MEME, {})

        @tree.command(name="status", description="Show service status")
        async def status(interaction: discord.Interaction) -> None:
            await submit(interaction, CommandName.STATUS, {})

        @tree.command(name="status-mark", description="Pin a service to a state (auto clears)")
        @app_commands.default_permissions(manage_guild=True)
        @app_commands.describe(service="Configured service name", state="Up, Down, Unknown, Fixed or auto")
        async def status_mark(interaction: discord.Interaction, service: str, state: str) -> None:
            await submit(interaction, CommandName.STATUS_MARK, {"service": service, "state": state})

        @tree.command(name="afk", description="Set yourself as AFK")
        async def afk(interaction: discord.Interaction, reason: Optional[str] = None) -> None:
            await submit(interaction, CommandName.AFK, {"reason": reason})

        @tree.command(name="rank", description="Show a level and XP")
        @app_commands.guild_only()
        async def rank(interaction: discord.Interaction, target: Optional[discord.User] = None) -> None:
            await submit(interaction, CommandName.RANK, _user_options(target) if target else {})

        @tree.command(name="leaderboard", description="Top members by level")
        @app_commands.guild_only()
        async def leaderboard(interaction: discord.Interaction) -> None:
            await submit(interaction, CommandName.LEADERBOARD, {})

        @tree.command(name="warn", description="Warn a user")
        @app_commands.default_permissions(moderate_members=True)
        @app_commands.guild_only()
        async def warn(interaction: discord.Interaction, target: discord.User, reason: Optional[str] = None) -> None:
            await submit(interaction, CommandName.WARN, _user_options(target, reason=reason))

        @tree.command(name="warnings", description="List a user's warnings")
        @app_commands.default_permissions(moderate_members=True)
        @app_commands.guild_only()
        async def warnings(interaction: discord.Interaction, target: discord.User) -> None:
            await submit(interaction, CommandName.WARNINGS, _user_options(target))

        @tree.command(name="clearwarnings", description="Clear a user's warnings")
        @app_commands.default_permissions(moderate_members=True)
        @app_commands.guild_only()
        async def clearwarnings(interaction: discord.Interaction, target: discord.User) -> None:
            await submit(interaction, CommandName.CLEAR_WARNINGS, _user_options(target))

        @tree.command(name="giveaway", description="Start a giveaway")
        @app_commands.default_permissions(manage_guild=True)
        @app_commands.guild_only()
        @app_commands.describe(duration="e.g. 10m, 2h, 1d", winners="Number of winners", prize="What is being given away")
        async def giveaway(interaction: discord.Interaction, duration: str, winners: int, prize: str) -> None:
            await submit(interaction, CommandName.GIVEAWAY, {"duration": duration, "winners": winners, "prize": prize})

        @tree.command(name="reroll", description="Draw new winners for an ended giveaway")
        @app_commands.default_permissions(manage_guild=True)
        @app_commands.guild_only()
        async def reroll(interaction: discord.Interaction, message_id: str, winners: Optional[int] = None) -> None:
            await submit(interaction, CommandName.REROLL, {"message_id": message_id, "winners": winners})

        @tree.command(name="poll", description="Start a reaction poll")
        @app_commands.describe(options="Options separated by |", duration="e.g. 10m, 2h, 1d")
        async def poll(interaction: discord.Interaction, question: str, options: str, duration: str) -> None:
            await submit(interaction, CommandName.POLL, {"question": question, "options": options, "duration": duration})

    async def _submit_command(
        self,
        interaction: discord.Interaction,
        name: CommandName,
        options: Mapping[str, Any],
    ) -> None:
        sink = InteractionReplySink(interaction)
        event = CommandInvocation(
            subject_id=interaction.user.id,
            scope_id=interaction.guild_id,
            channel_id=interaction.channel_id or 0,
            reply=sink,
            name=name,
            options=dict(options),
        )
        if name in DEFERRED_COMMANDS:
            await sink.defer_thinking()
        self.dispatcher.submit(event)

    # =========================================================================
    # Event Conversion
    # =========================================================================

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        """Route button clicks and modal submissions; slash commands go through the tree."""
        custom_id = (interaction.data or {}).get("custom_id") or ""

        if interaction.type == discord.InteractionType.component:
            parsed = parse_id(custom_id, TriggerKind)
            if parsed is None:
                return
            kind, payload = parsed
            message = interaction.message
            if not interaction.response.is_done():
                await interaction.response.defer()
            self.dispatcher.submit(InteractiveTrigger(
                subject_id=interaction.user.id,
                scope_id=interaction.guild_id,
                channel_id=interaction.channel_id or 0,
                reply=InteractionReplySink(interaction),
                kind=kind,
                payload=payload,
                message=MessageRef(message.channel.id, message.id) if message else None,
            ))

        elif interaction.type == discord.InteractionType.modal_submit:
            parsed = parse_id(custom_id, FormKind)
            if parsed is None:
                return
            kind, payload = parsed
            self.dispatcher.submit(FormSubmission(
                subject_id=interaction.user.id,
                scope_id=interaction.guild_id,
                channel_id=interaction.channel_id or 0,
                reply=InteractionReplySink(interaction),
                kind=kind,
                payload=payload,
                fields=form_values(interaction.data),
            ))

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        self.dispatcher.submit(RawMessage(
            subject_id=message.author.id,
            scope_id=message.guild.id if message.guild else None,
            channel_id=message.channel.id,
            reply=ChannelReplySink(self.channel_sink, message.channel.id),
            content=message.content,
            message=MessageRef(message.channel.id, message.id),
            mentions=tuple(user.id for user in message.mentions),
        ))

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.member is not None and payload.member.bot:
            return
        self._submit_reaction(payload, added=True)

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        self._submit_reaction(payload, added=False)

    def _submit_reaction(self, payload: discord.RawReactionActionEvent, added: bool) -> None:
        if self.user is not None and payload.user_id == self.user.id:
            return

        self.dispatcher.submit(ReactionChange(
            subject_id=payload.user_id,
            scope_id=payload.guild_id,
            channel_id=payload.channel_id,
            reply=ChannelReplySink(self.channel_sink, payload.channel_id),
            message=MessageRef(payload.channel_id, payload.message_id),
            emoji=str(payload.emoji),
            added=added,
        ))

    # =========================================================================
    # Presence & Health
    # =========================================================================

    async def presence_text(self) -> str:
        """"V<version>" plus the status summary when probes are configured."""
        text = f"V{self.version}"
        if self.status_service.enabled:
            snapshot = await self.status_service.snapshot()
            text = f"{text} • {snapshot.summary()}"
        return text

    async def _presence_loop(self) -> None:
        await self.wait_until_ready()
        while not self.is_closed():
            text = await safe_async_operation("Presence Text", self.presence_text(), default=f"V{self.version}")
            try:
                await self.change_presence(
                    activity=discord.Game(name=text),
                    status=discord.Status.online,
                )
            except (discord.HTTPException, discord.ConnectionClosed) as e:
                logger.warning("Presence Update Failed", [("Error", str(e)[:100])])
            await asyncio.sleep(self.config.presence_update_interval)

    def _health_status(self) -> Dict[str, Any]:
        latest = self.status_service.latest()
        return {
            "connected": self.is_ready(),
            "version": self.version,
            "guilds": len(self.guilds),
            "in_flight": self.dispatcher.in_flight,
            "handler_failures": self.dispatcher.failures,
            "outbound_running": self.gate.running,
            "outbound_queued": self.gate.queued,
            "services": latest.summary() if latest else None,
        }

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        if self._shutting_down:
            return
        self._shutting_down = True
        logger.info("Initiating Graceful Shutdown")

        if self._presence_task:
            self._presence_task.cancel()

        cancelled = await self.dispatcher.drain(SHUTDOWN_TIMEOUT)
        if cancelled:
            logger.warning(f"Cancelled {cancelled} handler(s) still running at shutdown")

        # Giveaways are persisted and re-armed by restore() on next start
        self.giveaway_timers.cancel_all()
        self.poll_timers.cancel_all()

        if self.health_server:
            await self.health_server.stop()

        await self.http_client.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now(NY_TZ) - self.start_time).split(".")[0]),
        ], emoji="🛑")

    async def close(self) -> None:
        """Override close to ensure proper shutdown."""
        await self.shutdown()


def _user_options(user: discord.abc.User, **extra: Any) -> Dict[str, Any]:
    return {"target": user.id, "target_name": str(user), **extra}


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["BeaconBot"]
