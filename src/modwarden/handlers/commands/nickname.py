"""
/nickname: change your own nickname, or another member's as a moderator.

Members may change their own nickname. Changing someone else's requires a
configured nickname role, ownership of the guild, or the Manage Nicknames
permission, plus a higher role than the target.
"""

from __future__ import annotations

import re
from typing import Optional

import discord

from modwarden.datatypes.command_datatypes import NicknameResult
from modwarden.datatypes.handler_datatypes import HandlerServices
from modwarden.handlers.base import OPTION_STRING, OPTION_USER, CommandHandler
from modwarden.ui.embeds import nickname_embed
from modwarden.util.discord_utils import fetch_member, get_option, send_response, send_to_log_channel
from modwarden.util.logger import get_logger
from modwarden.util.permissions import (
    bot_can_manage,
    has_guild_permission,
    has_role_matching,
    is_guild_owner,
    outranks,
)

logger = get_logger("nickname_command")

NICKNAME_PATTERN = re.compile(r"[a-zA-Z0-9\s\-_]+")

# Lookalike alphabets commonly used to dodge name filters
BLOCKED_CODEPOINT_RANGES = (
    (0x1D400, 0x1D7FF),  # mathematical alphanumerics
    (0x1F100, 0x1F1FF),  # enclosed alphanumerics
    (0x2100, 0x214F),  # letterlike symbols
    (0xFF00, 0xFFEF),  # fullwidth forms
    (0x0400, 0x04FF),  # cyrillic
    (0x0370, 0x03FF),  # greek
)

# Discord API error codes
MISSING_PERMISSIONS = 50013
INVALID_FORM_BODY = 50035
MISSING_ACCESS = 50001

DEFINITION = {
    "name": "nickname",
    "description": "Set your own nickname or manage others (with permissions)",
    "type": 1,
    "options": [
        {
            "type": OPTION_STRING,
            "name": "nickname",
            "description": "The nickname to set (leave empty to clear)",
            "required": False,
            "max_length": 32,
        },
        {
            "type": OPTION_USER,
            "name": "user",
            "description": "The user whose nickname to change (requires moderator role)",
            "required": False,
        },
        {
            "type": OPTION_STRING,
            "name": "reason",
            "description": "Reason for the nickname change (moderator actions only)",
            "required": False,
            "max_length": 256,
        },
    ],
}


def is_valid_nickname(nickname: str) -> bool:
    """Letters, digits, whitespace, hyphens and underscores only; lookalike alphabets are rejected."""
    if not NICKNAME_PATTERN.fullmatch(nickname):
        return False
    return not any(
        low <= ord(char) <= high
        for char in nickname
        for low, high in BLOCKED_CODEPOINT_RANGES
    )


OWNER_NICKNAME_MESSAGE = (
    "Server owners cannot change their own nicknames through bots. "
    "You'll need to change it manually through Discord's interface."
)


def describe_edit_failure(exc: discord.HTTPException, is_mod_action: bool, is_server_owner: bool = False) -> str:
    if exc.code == MISSING_PERMISSIONS:
        if is_server_owner:
            return OWNER_NICKNAME_MESSAGE
        if is_mod_action:
            return "Missing permissions or role hierarchy prevents this action"
        return "You don't have permission to change your nickname in this server"
    if exc.code == INVALID_FORM_BODY:
        return "Invalid nickname (too long or contains forbidden characters)"
    if exc.code == MISSING_ACCESS:
        return "Missing access to perform this action"
    return "Unknown error occurred"


class NicknameCommand(CommandHandler):
    key = "nickname"
    definition = DEFINITION

    async def run(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if guild is None:
            return await self.send_error(interaction, "This command can only be used in a server.")

        member = interaction.user
        if not isinstance(member, discord.Member):
            return await self.send_error(interaction, "Could not find your member information.")

        new_nickname: Optional[str] = get_option(interaction, "nickname") or None
        target_id = get_option(interaction, "user")
        reason = get_option(interaction, "reason") or "No reason provided"

        if new_nickname and not is_valid_nickname(new_nickname):
            return await self.send_error(
                interaction,
                "Invalid nickname. Only letters, numbers, spaces, underscores, and hyphens are allowed.",
            )

        if target_id is not None and str(target_id) != str(member.id):
            return await self.change_for_other(interaction, guild, member, target_id, new_nickname, reason)

        result = await self.change_nickname(member, new_nickname, is_server_owner=is_guild_owner(member, guild))
        await send_response(interaction, embed=nickname_embed(result, member), ephemeral=True)

    async def change_for_other(
        self,
        interaction: discord.Interaction,
        guild: discord.Guild,
        member: discord.Member,
        target_id: str,
        new_nickname: Optional[str],
        reason: str,
    ) -> None:
        allowed = (
            has_role_matching(member, self.config.nickname_roles)
            or is_guild_owner(member, guild)
            or has_guild_permission(member, "manage_nicknames")
        )
        if not allowed:
            return await self.send_error(
                interaction,
                "You don't have permission to manage other users' nicknames. "
                "You need a moderator role or the 'Manage Nicknames' permission.",
            )

        if guild.me is None or not has_guild_permission(guild.me, "manage_nicknames"):
            return await self.send_error(
                interaction,
                "I don't have permission to manage nicknames. "
                "Please ask an administrator to grant me the 'Manage Nicknames' permission.",
            )

        target = await fetch_member(guild, target_id)
        if target is None:
            return await self.send_error(interaction, "Could not find that user in this server.")

        if not bot_can_manage(guild, target):
            return await self.send_error(
                interaction,
                f"I cannot change {target}'s nickname due to role hierarchy. "
                "Their highest role is equal to or higher than mine.",
            )

        if not outranks(member, target, guild):
            return await self.send_error(
                interaction,
                "You cannot change the nickname of someone with an equal or higher role.",
            )

        result = await self.change_nickname(target, new_nickname, moderator=str(member), reason=reason)
        embed = nickname_embed(result, member)
        if not result.success:
            return await send_response(interaction, embed=embed, ephemeral=True)

        await send_response(interaction, "Nickname updated.", ephemeral=True)
        await send_to_log_channel(
            guild,
            self.config.log_channel_names,
            embed,
            f"🔧 Nickname of {target} changed by {member}: {result.old_nickname!r} -> {new_nickname!r}",
        )

    async def change_nickname(
        self,
        target: discord.Member,
        new_nickname: Optional[str],
        moderator: Optional[str] = None,
        reason: Optional[str] = None,
        is_server_owner: bool = False,
    ) -> NicknameResult:
        """Apply the nickname and describe the outcome; an empty nickname resets it."""
        is_mod_action = moderator is not None
        old_nickname = target.nick
        audit_reason = f"Changed by {moderator}: {reason}" if is_mod_action else None

        try:
            await target.edit(nick=new_nickname, reason=audit_reason)
        except discord.HTTPException as exc:
            logger.error("Error changing nickname of %s: %s", target, exc)
            return NicknameResult(
                success=False,
                old_nickname=old_nickname,
                new_nickname=new_nickname,
                user=str(target),
                moderator=moderator,
                reason=reason,
                error_reason=describe_edit_failure(exc, is_mod_action, is_server_owner),
                is_mod_action=is_mod_action,
            )

        logger.info("Nickname of %s changed from %r to %r", target, old_nickname, new_nickname)
        return NicknameResult(
            success=True,
            old_nickname=old_nickname,
            new_nickname=new_nickname,
            user=str(target),
            moderator=moderator,
            reason=reason,
            is_mod_action=is_mod_action,
        )


def setup(services: HandlerServices) -> NicknameCommand:
    return NicknameCommand(services)
