"""
League slash commands.

/inactive, /active and /league-stats report on activity roles;
/bot-info, /force-active and /test-rss are administrator tools.
Classification of members is done by ``summarize_league`` so the reporting
logic can be exercised without a Discord connection.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

import aiohttp
import discord
from discord import app_commands

from core.constants import (
    BRAND_ICON_URL,
    COLOR_ACTIVE,
    COLOR_INACTIVE,
    COLOR_INFO,
    EMBED_FIELD_LIMIT,
    FOOTER_TEXT,
    FeedKey,
    K,
    RoleState,
)
from core.utils import format_duration, join_lines_limited
from services.activity_tracker import role_state_for
from services.news_feeds import FeedError, build_article_embed

if TYPE_CHECKING:
    from bot.client import GridironBot

logger = logging.getLogger("gridiron.commands")

ROLES_MISSING = "❌ Required roles not found. Please check bot configuration."
ADMIN_ONLY = "❌ You need Administrator permissions to use this command."


@dataclass
class LeagueSummary:
    active: list[Any] = field(default_factory=list)
    inactive: list[Any] = field(default_factory=list)
    unassigned: list[Any] = field(default_factory=list)
    conflicted: list[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.active) + len(self.inactive) + len(self.unassigned) + len(self.conflicted)

    @property
    def activity_rate(self) -> int:
        """Percentage of league members holding the active role."""
        if self.total == 0:
            return 0
        return round(len(self.active) / self.total * 100)


def summarize_league(
    members: Iterable[Any],
    league_role_id: int,
    active_role_id: int,
    inactive_role_id: int,
) -> LeagueSummary:
    summary = LeagueSummary()
    buckets = {
        RoleState.ACTIVE: summary.active,
        RoleState.INACTIVE: summary.inactive,
        RoleState.UNASSIGNED: summary.unassigned,
        RoleState.CONFLICTED: summary.conflicted,
    }
    for member in members:
        if member.bot:
            continue
        role_ids = {role.id for role in member.roles}
        if league_role_id not in role_ids:
            continue
        state = role_state_for(active_role_id in role_ids, inactive_role_id in role_ids)
        buckets[state].append(member)
    return summary


def format_member_list(members: Iterable[Any], limit: int = EMBED_FIELD_LIMIT) -> str:
    return join_lines_limited((f"• **{m.display_name}** ({m.name})" for m in members), limit)


def _footer(embed: discord.Embed) -> discord.Embed:
    embed.set_footer(text=FOOTER_TEXT, icon_url=BRAND_ICON_URL)
    embed.timestamp = discord.utils.utcnow()
    return embed


def build_inactive_report(summary: LeagueSummary, inactive_hours: float) -> discord.Embed:
    if not summary.inactive and not summary.unassigned:
        description = "🎉 All league members are currently active!"
    else:
        description = (
            f"Found {len(summary.inactive)} inactive member(s) and "
            f"{len(summary.unassigned)} unassigned member(s):"
        )
    embed = discord.Embed(title="📋 Inactive League Members", description=description, color=COLOR_INACTIVE)
    if summary.inactive:
        embed.add_field(
            name=f"😴 Inactive Members ({len(summary.inactive)})",
            value=format_member_list(summary.inactive),
            inline=False,
        )
    if summary.unassigned:
        embed.add_field(
            name=f"❓ Unassigned Members ({len(summary.unassigned)})",
            value=format_member_list(summary.unassigned),
            inline=False,
        )
    if summary.inactive or summary.unassigned:
        embed.add_field(
            name="💡 Note",
            value=(
                f"Members become inactive after {inactive_hours:g} hours of no activity. "
                "Unassigned members get a role on the next activity check."
            ),
            inline=False,
        )
    return _footer(embed)


def build_active_report(summary: LeagueSummary) -> discord.Embed:
    embed = discord.Embed(
        title="✅ Active League Members",
        description=f"Found {len(summary.active)} active member(s) out of {summary.total} league members.",
        color=COLOR_ACTIVE,
    )
    if summary.active:
        embed.add_field(
            name=f"👥 Active Members ({len(summary.active)})",
            value=format_member_list(summary.active),
            inline=False,
        )
    else:
        embed.add_field(
            name="👥 Active Members (0)",
            value="No active members found. Check role assignments.",
            inline=False,
        )
    return _footer(embed)


def build_stats_report(summary: LeagueSummary, inactive_hours: float) -> discord.Embed:
    embed = discord.Embed(
        title="📊 League Statistics",
        description="Current league member activity overview",
        color=COLOR_INFO,
    )
    embed.add_field(name="👥 Total League Members", value=str(summary.total), inline=True)
    embed.add_field(name="✅ Active Members", value=str(len(summary.active)), inline=True)
    embed.add_field(name="😴 Inactive Members", value=str(len(summary.inactive)), inline=True)
    embed.add_field(name="❓ Unassigned Members", value=str(len(summary.unassigned)), inline=True)
    embed.add_field(name="📊 Activity Rate", value=f"{summary.activity_rate}%", inline=True)
    embed.add_field(name="⏰ Activity Threshold", value=f"{inactive_hours:g} hours", inline=True)
    if summary.conflicted:
        embed.add_field(
            name="⚠️ Conflicting Roles",
            value=f"{len(summary.conflicted)} member(s) hold both activity roles; fixed on the next check.",
            inline=False,
        )
    embed.add_field(
        name="💾 Data Persistence",
        value="Activity data is automatically saved and restored on bot restart",
        inline=False,
    )
    return _footer(embed)


def _is_admin(interaction: discord.Interaction) -> bool:
    member = interaction.user
    perms = getattr(member, "guild_permissions", None)
    return bool(perms and perms.administrator)


async def _send_error(interaction: discord.Interaction, text: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(text, ephemeral=True)
    else:
        await interaction.response.send_message(text, ephemeral=True)


def register_league_commands(bot: "GridironBot") -> None:
    """Attach every league command to ``bot.tree``."""
    config = bot.config
    league_role_id = int(config[K.LEAGUE_ROLE_ID])
    active_role_id = int(config[K.ACTIVE_ROLE_ID])
    inactive_role_id = int(config[K.INACTIVE_ROLE_ID])
    inactive_hours = float(config[K.INACTIVE_HOURS])

    async def _summary(guild: discord.Guild) -> LeagueSummary:
        members = await bot.gateway.fetch_members(guild)
        return summarize_league(members, league_role_id, active_role_id, inactive_role_id)

    def _roles_present(guild: discord.Guild, *role_ids: int) -> bool:
        return all(guild.get_role(role_id) is not None for role_id in role_ids)

    @app_commands.command(name="inactive", description="Show all inactive league members")
    @app_commands.guild_only()
    async def inactive_cmd(interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if not _roles_present(guild, league_role_id, active_role_id, inactive_role_id):
            await _send_error(interaction, ROLES_MISSING)
            return
        await interaction.response.defer()
        summary = await _summary(guild)
        logger.info(
            "Found %s inactive members and %s unassigned members",
            len(summary.inactive),
            len(summary.unassigned),
        )
        await interaction.followup.send(embed=build_inactive_report(summary, inactive_hours))

    @app_commands.command(name="active", description="Show all active league members")
    @app_commands.guild_only()
    async def active_cmd(interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if not _roles_present(guild, league_role_id, active_role_id):
            await _send_error(interaction, ROLES_MISSING)
            return
        await interaction.response.defer()
        summary = await _summary(guild)
        await interaction.followup.send(embed=build_active_report(summary))

    @app_commands.command(name="league-stats", description="Show league member statistics")
    @app_commands.guild_only()
    async def league_stats_cmd(interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if not _roles_present(guild, league_role_id, active_role_id, inactive_role_id):
            await _send_error(interaction, ROLES_MISSING)
            return
        await interaction.response.defer()
        summary = await _summary(guild)
        await interaction.followup.send(embed=build_stats_report(summary, inactive_hours))

    @app_commands.command(name="bot-info", description="Show bot information and status")
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def bot_info_cmd(interaction: discord.Interaction) -> None:
        if not _is_admin(interaction):
            await _send_error(interaction, ADMIN_ONLY)
            return
        guild = interaction.guild
        await interaction.response.defer()
        summary = await _summary(guild)
        tracked = len(bot.tracker.ledger)

        embed = discord.Embed(
            title="🤖 Bot Information",
            description="Gridiron Fantasy League Discord Bot Status",
            color=COLOR_INFO,
        )
        embed.add_field(name="⏱️ Uptime", value=format_duration(time.monotonic() - bot.started_monotonic), inline=True)
        embed.add_field(name="📊 Server", value=guild.name, inline=True)
        embed.add_field(name="👥 Members Monitored", value=str(summary.total), inline=True)
        embed.add_field(name="🗂️ Activity Records", value=str(tracked), inline=True)
        embed.add_field(
            name="🔧 Features",
            value="• Activity Tracking\n• Welcome System\n• News Feeds\n• Role Management\n• League Statistics",
            inline=False,
        )
        embed.set_thumbnail(url=BRAND_ICON_URL)
        await interaction.followup.send(embed=_footer(embed))

    @app_commands.command(name="force-active", description="Force a user to be active (Admin only)")
    @app_commands.describe(user="The user to mark as active")
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def force_active_cmd(interaction: discord.Interaction, user: discord.Member) -> None:
        if not _is_admin(interaction):
            await _send_error(interaction, ADMIN_ONLY)
            return
        guild = interaction.guild
        if guild.get_role(league_role_id) is None or user.get_role(league_role_id) is None:
            await _send_error(interaction, "❌ User is not a league member.")
            return
        if not await bot.tracker.mark_active(guild, user):
            await _send_error(interaction, ROLES_MISSING)
            return

        embed = discord.Embed(
            title="✅ User Activated",
            description=f"{user.mention} has been marked as active.",
            color=COLOR_ACTIVE,
        )
        embed.set_footer(
            text=f"Action performed by {interaction.user.name}",
            icon_url=interaction.user.display_avatar.url,
        )
        embed.timestamp = discord.utils.utcnow()
        await interaction.response.send_message(embed=embed, allowed_mentions=discord.AllowedMentions.none())
        logger.info("%s forced %s to active status", interaction.user, user)

    @app_commands.command(name="test-rss", description="Test RSS feeds and show latest articles (Admin only)")
    @app_commands.describe(feed="Which feed to test")
    @app_commands.choices(
        feed=[
            app_commands.Choice(name="NFL News", value=FeedKey.NFL),
            app_commands.Choice(name="Madden News", value=FeedKey.MADDEN),
            app_commands.Choice(name="Both", value="both"),
        ]
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def test_rss_cmd(interaction: discord.Interaction, feed: app_commands.Choice[str]) -> None:
        if not _is_admin(interaction):
            await _send_error(interaction, ADMIN_ONLY)
            return
        await interaction.response.defer(ephemeral=True, thinking=True)

        keys = [FeedKey.NFL, FeedKey.MADDEN] if feed.value == "both" else [feed.value]
        embeds: list[discord.Embed] = []
        try:
            for key in keys:
                source, count, latest = await bot.news.test_feed(key)
                if latest is None:
                    continue
                embed = build_article_embed(source, latest, test=True)
                embed.add_field(name="📊 Feed Status", value=f"✅ Working - Found {count} articles", inline=False)
                embeds.append(embed)
        except (FeedError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("RSS feed test error: %s", e)
            await interaction.followup.send(f"❌ RSS Feed Error: {e}", ephemeral=True)
            return

        if embeds:
            await interaction.followup.send(
                f"📡 RSS Feed Test Results for **{feed.value.upper()}**:",
                embeds=embeds,
                ephemeral=True,
            )
        else:
            await interaction.followup.send(
                "❌ No articles found in the selected feed(s). Check the RSS URLs in your configuration.",
                ephemeral=True,
            )

    for command in (inactive_cmd, active_cmd, league_stats_cmd, bot_info_cmd, force_active_cmd, test_rss_cmd):
        bot.tree.add_command(command)


async def on_tree_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
    """Log unhandled command failures and tell the invoking user."""
    name = interaction.command.name if interaction.command else "unknown"
    logger.error("Error executing command %s: %s", name, error, exc_info=error)
    try:
        await _send_error(interaction, "❌ There was an error while executing this command!")
    except discord.HTTPException:
        logger.debug("Could not report error for command %s", name)
