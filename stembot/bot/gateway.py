"""
stembot.bot.gateway — Guild-Scoped Discord Operations
======================================================

Everything the services need from Discord, bound to one guild:

* resolve a member by user id
* read the role ids a member holds
* grant / revoke a role
* create a role
* set a nickname

discord.py exceptions stop here.  A missing member becomes
:class:`NotFoundError`; any other HTTP failure becomes
:class:`UpstreamError`, so callers only ever handle the domain taxonomy.
"""

from __future__ import annotations

import logging

import discord

from stembot.constants import EVERYONE_ROLE_NAME
from stembot.errors import ConfigError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

AUDIT_REASON = "stembot role sync"


class GuildGateway:
    """Discord operations scoped to the club guild.

    Parameters
    ----------
    client:
        A logged-in :class:`discord.Client`.
    guild_id:
        The guild every operation acts on.
    """

    def __init__(self, client: discord.Client, guild_id: int) -> None:
        self.client = client
        self.guild_id = guild_id

    async def _guild(self) -> discord.Guild:
        guild = self.client.get_guild(self.guild_id)
        if guild is not None:
            return guild
        try:
            return await self.client.fetch_guild(self.guild_id)
        except (discord.NotFound, discord.Forbidden):
            raise ConfigError(f"Guild {self.guild_id} is not visible to the bot")
        except discord.HTTPException as exc:
            raise UpstreamError(f"Failed to fetch guild {self.guild_id}: {exc}") from exc

    # -------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------
    async def resolve_member(self, discord_uid: int) -> discord.Member:
        """Fetch a guild member fresh from the API.

        Raises :class:`NotFoundError` when the user is not in the guild.
        """
        guild = await self._guild()
        try:
            return await guild.fetch_member(discord_uid)
        except discord.NotFound:
            raise NotFoundError(f"Discord member not found: {discord_uid}")
        except discord.HTTPException as exc:
            logger.error("Failed to fetch Discord member %s: %s", discord_uid, exc)
            raise UpstreamError(f"Failed to fetch Discord member {discord_uid}: {exc}") from exc

    async def find_member(self, discord_uid: int) -> discord.Member | None:
        """Like :meth:`resolve_member` but ``None`` when not in the guild."""
        try:
            return await self.resolve_member(discord_uid)
        except NotFoundError:
            return None

    @staticmethod
    def current_roles(member: discord.Member) -> set[int]:
        """Role ids the member holds, without ``@everyone``."""
        return {role.id for role in member.roles if not role.is_default()}

    @staticmethod
    def role_names(member: discord.Member) -> list[str]:
        return [role.name for role in member.roles if role.name != EVERYONE_ROLE_NAME]

    @staticmethod
    def current_nickname(member: discord.Member) -> str:
        """Guild nickname, falling back to the account username."""
        return member.nick or member.name

    @staticmethod
    def display_name(member: discord.Member) -> str:
        return member.display_name

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def add_role(self, member: discord.Member, role_id: int, *, reason: str = AUDIT_REASON) -> None:
        try:
            await member.add_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as exc:
            raise UpstreamError(f"Failed to add role {role_id}: {exc}") from exc
        logger.info("Added role %s to member %s", role_id, member)

    async def remove_role(self, member: discord.Member, role_id: int, *, reason: str = AUDIT_REASON) -> None:
        try:
            await member.remove_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as exc:
            raise UpstreamError(f"Failed to remove role {role_id}: {exc}") from exc
        logger.info("Removed role %s from member %s", role_id, member)

    async def create_role(self, name: str, *, reason: str = AUDIT_REASON) -> int:
        """Create a role named *name* and return its id."""
        guild = await self._guild()
        try:
            role = await guild.create_role(name=name, reason=reason)
        except discord.HTTPException as exc:
            logger.error("Failed to create Discord role %r: %s", name, exc)
            raise UpstreamError(f"Failed to create role on Discord: {exc}") from exc
        logger.info("Created role: %s (%s)", name, role.id)
        return role.id

    async def set_nickname(self, member: discord.Member, nickname: str) -> None:
        try:
            await member.edit(nick=nickname, reason=AUDIT_REASON)
        except discord.HTTPException as exc:
            logger.error("Failed to set nickname for %s: %s", member, exc)
            raise UpstreamError(f"Failed to update nickname on Discord: {exc}") from exc
        logger.info("Set nickname for %s to: %s", member, nickname)
