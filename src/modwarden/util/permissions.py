"""
Authorization checks for moderation commands.

Pure functions over py-cord members and guilds: role name matching,
permission bits, and role hierarchy comparisons.
"""

from __future__ import annotations

from typing import Iterable

import discord


def has_role_matching(member: discord.Member, fragments: Iterable[str]) -> bool:
    """Return True if any of the member's role names contains one of ``fragments`` (case-insensitive)."""
    lowered = [fragment.lower() for fragment in fragments if fragment]
    return any(
        fragment in role.name.lower()
        for role in member.roles
        for fragment in lowered
    )


def has_guild_permission(member: discord.Member, permission_name: str) -> bool:
    """Return True if the member's guild-wide permissions include ``permission_name``."""
    return bool(getattr(member.guild_permissions, permission_name, False))


def is_guild_owner(member: discord.abc.Snowflake, guild: discord.Guild) -> bool:
    return member.id == guild.owner_id


def outranks(actor: discord.Member, target: discord.Member, guild: discord.Guild) -> bool:
    """
    Return True if ``actor`` may act on ``target`` by role hierarchy.

    The guild owner outranks everyone; otherwise the actor's highest role
    must sit strictly above the target's.
    """
    if is_guild_owner(actor, guild):
        return True
    return actor.top_role.position > target.top_role.position


def bot_can_manage(guild: discord.Guild, target: discord.Member) -> bool:
    """
    Return True if the bot's own member can moderate ``target``.

    Nobody can manage the owner, the bot cannot manage itself, and otherwise
    the bot's highest role must sit above the target's.
    """
    me = guild.me
    if me is None:
        return False
    if target.id == guild.owner_id or target.id == me.id:
        return False
    if me.id == guild.owner_id:
        return True
    return me.top_role.position > target.top_role.position
