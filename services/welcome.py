"""
Welcome service - greets new league members.

Joining the server only gets the optional auto-assign role; the public
welcome post and DM are sent once the member is granted the league role.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import discord

from core.constants import BRAND_ICON_URL, BRAND_NAME, COLOR_ACTIVE, COLOR_INFO, K
from core.utils import utcnow

logger = logging.getLogger("gridiron.welcome")

WELCOME_REACTION = "🏈"


def _channel_mention(channel_id: Optional[int], fallback: str) -> str:
    return f"<#{channel_id}>" if channel_id else fallback


class WelcomeService:
    def __init__(self, client: discord.Client, config: dict[str, Any]) -> None:
        self.client = client
        self.config = config

    @property
    def embeds_enabled(self) -> bool:
        return bool(self.config.get(K.WELCOME_EMBEDS_ENABLED, True))

    def build_welcome_embed(self, member: discord.Member) -> discord.Embed:
        rules = _channel_mention(self.config.get(K.RULES_CHANNEL_ID), "the rules channel")
        teams = _channel_mention(self.config.get(K.TEAMS_CHANNEL_ID), "the teams channel")
        league = _channel_mention(self.config.get(K.LEAGUE_CHANNEL_ID), "the league channel")

        embed = discord.Embed(
            title=f"🏈 Welcome to the {BRAND_NAME}!",
            description=f"Hey {member.name}! Welcome to the most competitive Madden league on Discord!",
            color=COLOR_INFO,
            timestamp=utcnow(),
        )
        embed.set_thumbnail(url=member.display_avatar.url)
        embed.add_field(
            name="📋 Get Started",
            value=(
                f"• Check out {rules} for league rules\n"
                f"• Browse {teams} to see available teams\n"
                f"• Visit {league} for league updates"
            ),
            inline=False,
        )
        embed.add_field(
            name="🎮 Ready to Play?",
            value=f"React to this message with {WELCOME_REACTION} if you're ready to dominate the gridiron!",
            inline=False,
        )
        embed.add_field(
            name="🆘 Need Help?",
            value="Feel free to ask questions or DM the commissioners!",
            inline=False,
        )
        embed.set_image(url=BRAND_ICON_URL)
        guild_icon = member.guild.icon.url if member.guild.icon else None
        embed.set_footer(text=BRAND_NAME, icon_url=guild_icon)
        return embed

    def build_welcome_dm_embed(self, member: discord.Member) -> discord.Embed:
        embed = discord.Embed(
            title=f"🏈 Welcome to {BRAND_NAME}!",
            description=f"Thanks for joining our Madden league, {member.name}!",
            color=COLOR_ACTIVE,
        )
        embed.add_field(
            name="🎯 What's Next?",
            value=(
                "• Complete your team selection\n"
                "• Review league rules and settings\n"
                "• Join the draft when announced\n"
                "• Connect with other league members"
            ),
            inline=False,
        )
        embed.add_field(
            name="📱 Stay Connected",
            value="Make sure to enable notifications for important league updates and game reminders.",
            inline=False,
        )
        embed.add_field(
            name="🏆 Season Goals",
            value="Championship spots are limited - bring your A-game and may the best manager win!",
            inline=False,
        )
        embed.set_footer(text="Good luck this season!", icon_url=BRAND_ICON_URL)
        return embed

    async def handle_member_join(self, member: discord.Member) -> bool:
        """Give a newly joined member the auto-assign role, if one is configured."""
        role_id = self.config.get(K.AUTO_ASSIGN_ROLE_ID)
        if not role_id:
            return False
        role = member.guild.get_role(int(role_id))
        if role is None:
            logger.warning("Auto-assign role %s not found in guild %s", role_id, member.guild.id)
            return False
        try:
            await member.add_roles(role, reason="Auto-assign on join")
        except discord.HTTPException as e:
            logger.error("Failed to auto-assign role to %s: %s", member, e)
            return False
        logger.info("Auto-assigned role to %s", member)
        return True

    async def send_welcome_message(self, member: discord.Member) -> bool:
        """Post the public welcome embed, react to it, and DM the member."""
        channel_id = self.config.get(K.WELCOME_CHANNEL_ID)
        channel = member.guild.get_channel(int(channel_id)) if channel_id else None
        if channel is None:
            logger.error("Welcome channel not found")
            return False

        try:
            message = await channel.send(
                content=f"🎉 Everyone welcome {member.mention} to the league!",
                embed=self.build_welcome_embed(member),
                allowed_mentions=discord.AllowedMentions(users=True, roles=False, everyone=False),
            )
            await message.add_reaction(WELCOME_REACTION)
        except discord.HTTPException as e:
            logger.error("Failed to send welcome message for %s: %s", member, e)
            return False

        await self.send_welcome_dm(member)
        logger.info("Sent welcome message for %s", member)
        return True

    async def send_welcome_dm(self, member: discord.Member) -> bool:
        try:
            await member.send(embed=self.build_welcome_dm_embed(member))
            return True
        except discord.Forbidden:
            logger.warning("Cannot send welcome DM to %s - DMs closed", member)
        except discord.HTTPException as e:
            logger.error("Failed to send welcome DM to %s: %s", member, e)
        return False
