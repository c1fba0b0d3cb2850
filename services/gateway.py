"""
Member gateway - the only place the activity tracker touches discord.py.

Keeping role lookups, role mutation and direct messages behind one small
class lets the reconciliation logic run against fakes in tests.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import discord

logger = logging.getLogger("gridiron.gateway")


class MemberGateway:
    """Thin adapter over discord.py guild, member and role primitives."""

    def __init__(self, client: Optional[discord.Client] = None) -> None:
        self.client = client

    def get_guild(self, guild_id: int) -> Optional[discord.Guild]:
        if self.client is None:
            return None
        return self.client.get_guild(guild_id)

    def resolve_role(self, guild: discord.Guild, role_id: Optional[int]) -> Optional[discord.Role]:
        if not role_id:
            return None
        return guild.get_role(int(role_id))

    async def fetch_members(self, guild: discord.Guild) -> Iterable[discord.Member]:
        """Return the guild's members, chunking the member cache first if needed."""
        if not guild.chunked:
            try:
                await guild.chunk(cache=True)
            except discord.HTTPException as e:
                logger.warning("Could not chunk members for guild %s: %s", guild.id, e)
        return list(guild.members)

    def has_role(self, member: discord.Member, role_id: int) -> bool:
        return member.get_role(int(role_id)) is not None

    def is_automation(self, member: discord.Member) -> bool:
        return bool(member.bot)

    async def add_role(self, member: discord.Member, role: discord.Role, reason: str) -> None:
        await member.add_roles(role, reason=reason)

    async def remove_role(self, member: discord.Member, role: discord.Role, reason: str) -> None:
        await member.remove_roles(role, reason=reason)

    async def send_direct_message(self, member: discord.Member, embed: discord.Embed) -> None:
        await member.send(embed=embed)
