"""
Discord bot client - event wiring and command registration.

Business logic lives in the services; the client only forwards gateway
events to them and owns their lifecycle.
"""
from __future__ import annotations

import asyncio
import logging
import signal
import time
from typing import Any, Optional

import discord
from discord import app_commands

from core.constants import K
from modules.league_commands import on_tree_error, register_league_commands
from services.activity_tracker import ActivityTracker
from services.gateway import MemberGateway
from services.news_feeds import NewsFeedService
from services.welcome import WelcomeService

logger = logging.getLogger("gridiron")


class GridironBot(discord.Client):
    """
    Main Discord bot client.

    Handles:
    - Discord events (on_ready, on_message, member joins and updates)
    - Slash command registration and sync
    - Startup and shutdown of the tracker and news feeds
    """

    def __init__(self, config: dict[str, Any]) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.guilds = True
        intents.dm_messages = True
        super().__init__(intents=intents)

        self.config = config
        self.guild_id = int(config[K.GUILD_ID])
        self.league_role_id = int(config[K.LEAGUE_ROLE_ID])

        self.tree = app_commands.CommandTree(self)
        self.tree.error(on_tree_error)
        self.gateway = MemberGateway(self)
        self.tracker = ActivityTracker(config, self.gateway)
        self.welcome = WelcomeService(self, config)
        self.news = NewsFeedService(self, config)

        self.ready_once = False
        self.started_monotonic = time.monotonic()
        self._closing = False
        self.shutdown_task: Optional[asyncio.Task] = None

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    async def setup_hook(self) -> None:
        """Register slash commands and sync them to the league guild."""
        register_league_commands(self)
        guild = discord.Object(id=self.guild_id)
        self.tree.copy_global_to(guild=guild)
        try:
            synced = await self.tree.sync(guild=guild)
            logger.info("Successfully reloaded %s application (/) commands", len(synced))
        except discord.HTTPException as e:
            logger.error("Error deploying commands: %s", e)

    async def on_ready(self) -> None:
        if self.ready_once:
            return
        self.ready_once = True
        logger.info("🏈 %s is ready for the season!", self.user)

        await self.tracker.initialize()
        logger.info(
            "Welcome system initialized - notifications %s",
            "enabled" if self.welcome.embeds_enabled else "disabled",
        )
        self.news.start()
        self.tracker.start_reconciliation()

    async def close(self) -> None:
        """Stop background work and flush activity before disconnecting."""
        if not self._closing:
            self._closing = True
            logger.info("Shutting down bot...")
            if self.tracker.initialized:
                await self.tracker.shutdown()
            await self.news.stop()
        await super().close()

    # ─── Message Events ───────────────────────────────────────────────────────

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return
        member = message.author if isinstance(message.author, discord.Member) else None
        if member is None or member.get_role(self.league_role_id) is None:
            return
        self.tracker.record_activity(member.id, message.guild.id)

    # ─── Member Events ────────────────────────────────────────────────────────

    async def on_member_join(self, member: discord.Member) -> None:
        if member.guild.id != self.guild_id:
            return
        await self.welcome.handle_member_join(member)

    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if after.guild.id != self.guild_id:
            return
        had_league = before.get_role(self.league_role_id) is not None
        has_league = after.get_role(self.league_role_id) is not None
        if not had_league and has_league and self.welcome.embeds_enabled:
            await self.welcome.send_welcome_message(after)

    # ─── Errors ───────────────────────────────────────────────────────────────

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        logger.exception("Discord client error in %s", event_method)


def install_signal_handlers(bot: GridironBot, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Close the bot on SIGINT/SIGTERM so the final activity save runs."""
    loop = loop or asyncio.get_running_loop()

    def _request_close(sig_name: str) -> None:
        logger.info("Received %s, shutting down gracefully...", sig_name)
        if bot.shutdown_task is None or bot.shutdown_task.done():
            bot.shutdown_task = asyncio.create_task(bot.close())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_close, sig.name)
        except (NotImplementedError, RuntimeError):
            # Not supported on Windows event loops.
            pass
