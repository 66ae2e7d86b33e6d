"""
discord_utils.py
================

Stateless Discord helpers shared by the handler modules: responding to an
interaction whether or not it was already acknowledged, reading slash
command options, resolving members, and finding the audit log channel.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import discord

from modwarden.util.logger import get_logger

logger = get_logger("discord_utils")


async def send_response(
    interaction: discord.Interaction,
    content: Optional[str] = None,
    *,
    embed: Optional[discord.Embed] = None,
    view: Optional[discord.ui.View] = None,
    ephemeral: bool = False,
) -> None:
    """
    Reply to an interaction, using a followup if the initial response was already sent.

    Args:
        interaction: Interaction to answer.
        content: Plain text content.
        embed: Optional embed to attach.
        view: Optional component view to attach.
        ephemeral: Only show the reply to the invoking user.
    """
    kwargs: dict[str, Any] = {"ephemeral": ephemeral}
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view

    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


async def reply_ephemeral(interaction: discord.Interaction, message: str) -> None:
    """Plain-text ephemeral reply; used as the dispatcher's notice callback."""
    await send_response(interaction, message, ephemeral=True)


def get_option(interaction: discord.Interaction, name: str, default: Any = None) -> Any:
    """
    Return the raw value of a top-level slash command option.

    User options come back as snowflake strings; resolve them with
    :func:`fetch_member`.
    """
    data = interaction.data or {}
    for option in data.get("options", []) or []:
        if option.get("name") == name:
            return option.get("value", default)
    return default


async def fetch_member(guild: discord.Guild, user_id: Any) -> Optional[discord.Member]:
    """
    Resolve a guild member from cache or the API.

    Returns:
        The member, or None if the user is not in the guild or the lookup fails.
    """
    if user_id is None:
        return None
    try:
        member_id = int(user_id)
    except (TypeError, ValueError):
        return None

    member = guild.get_member(member_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(member_id)
    except discord.HTTPException as exc:
        logger.debug("Could not fetch member %s in guild %s: %s", member_id, guild.id, exc)
        return None


def find_log_channel(guild: discord.Guild, channel_names: Iterable[str]) -> Optional[discord.TextChannel]:
    """Return the first text channel whose name matches, in the configured order."""
    for channel_name in channel_names:
        channel = discord.utils.get(guild.text_channels, name=channel_name)
        if channel is not None:
            return channel
    return None


async def send_to_log_channel(
    guild: discord.Guild,
    channel_names: Iterable[str],
    embed: discord.Embed,
    fallback: str,
) -> bool:
    """
    Post ``embed`` to the guild's audit log channel.

    When no channel exists or the send fails, ``fallback`` is written to the
    bot log instead.

    Returns:
        True if the embed was posted.
    """
    try:
        channel = find_log_channel(guild, channel_names)
        if channel is not None:
            await channel.send(embed=embed)
            return True
    except discord.HTTPException as exc:
        logger.error("Failed to send to logging channel: %s", exc)
    logger.info(fallback)
    return False


def format_uptime(seconds: float) -> str:
    """Format a duration as ``1d 2h 3m 4s``, dropping zero parts ("0s" when empty)."""
    seconds = int(seconds)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, secs = divmod(seconds, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0:
        parts.append(f"{secs}s")
    return " ".join(parts) or "0s"
