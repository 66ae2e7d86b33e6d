"""
/warn: record a warning against a member.

The invoker needs one of the configured moderator roles and must outrank
the target. The warning is stored in the infraction ledger and announced
publicly with its infraction ID. It is also posted to the audit log
channel, and the target gets a DM with appeal information.
"""

from __future__ import annotations

from typing import Optional

import discord

from modwarden.database.infractions import InfractionStoreError
from modwarden.datatypes.command_datatypes import WarnResult
from modwarden.datatypes.handler_datatypes import HandlerServices
from modwarden.handlers.base import OPTION_STRING, OPTION_USER, CommandHandler
from modwarden.ui.embeds import appeal_embed, warn_dm_embed, warn_log_embed
from modwarden.util.discord_utils import fetch_member, get_option, send_response, send_to_log_channel
from modwarden.util.logger import get_logger
from modwarden.util.permissions import bot_can_manage, has_role_matching, outranks

logger = get_logger("warn_command")

DEFINITION = {
    "name": "warn",
    "description": "Warn a user in the server",
    "type": 1,
    "options": [
        {"type": OPTION_USER, "name": "target", "description": "The user to warn", "required": True},
        {"type": OPTION_STRING, "name": "reason", "description": "The reason for the warning", "required": True},
        {
            "type": OPTION_STRING,
            "name": "evidence",
            "description": "Evidence URL link for the warning",
            "required": False,
        },
    ],
}


class WarnCommand(CommandHandler):
    key = "warn"
    definition = DEFINITION
    ephemeral_errors = False

    async def run(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if guild is None:
            return await self.send_error(interaction, "This command can only be used in a server.")

        member = interaction.user
        if not isinstance(member, discord.Member):
            return await self.send_error(interaction, "Issue getting the sending member.")

        target_id = get_option(interaction, "target")
        reason = get_option(interaction, "reason")
        evidence = get_option(interaction, "evidence") or None

        if not target_id:
            return await self.send_error(interaction, "Please specify a user to warn.")
        if not reason:
            return await self.send_error(interaction, "Please input a reason for the warning.")

        if not has_role_matching(member, self.config.warn_roles):
            return await self.send_error(interaction, "You don't have permission to warn users.")

        target = await fetch_member(guild, target_id)
        if target is None:
            return await self.send_error(interaction, "Could not find that user in this server.")

        if not bot_can_manage(guild, target):
            return await self.send_error(
                interaction,
                f"I cannot warn {target} due to role hierarchy. Their highest role is equal to or higher than mine.",
            )

        if not outranks(member, target, guild):
            return await self.send_error(interaction, "You cannot warn someone with an equal or higher role.")

        result = await self.warn_user(target, guild, member, reason, evidence)
        if not result.success:
            return await self.send_error(interaction, result.error_reason or "Failed to warn user.")

        await send_response(
            interaction,
            f"Successfully warned {target}\nReason: {reason} Infraction ID: `{result.infraction_id}`",
        )
        await send_to_log_channel(
            guild,
            self.config.log_channel_names,
            warn_log_embed(result),
            f"🔺 User warned by {result.moderator}: {result.user} (Reason: {result.reason})",
        )
        await self.notify_target(target, guild, result)

    async def warn_user(
        self,
        target: discord.Member,
        guild: discord.Guild,
        moderator: discord.Member,
        reason: str,
        evidence: Optional[str] = None,
    ) -> WarnResult:
        try:
            infraction_id = await self.store.add_warning(target.id, guild.id, moderator.id, reason)
        except InfractionStoreError as exc:
            logger.error("Error warning user %s: %s", target, exc)
            return WarnResult(
                success=False,
                user=str(target),
                error_reason="Failed to save warning to database.",
            )

        return WarnResult(
            success=True,
            user=str(target),
            moderator=str(moderator),
            reason=reason,
            infraction_id=infraction_id,
            evidence_url=evidence,
        )

    async def notify_target(self, target: discord.Member, guild: discord.Guild, result: WarnResult) -> None:
        """DM the warning and appeal information; members with closed DMs are skipped."""
        try:
            await target.send(embed=warn_dm_embed(result, guild, target))
            await target.send(embed=appeal_embed())
        except discord.HTTPException as exc:
            logger.warning("Failed to send warning message to %s: %s", target, exc)


def setup(services: HandlerServices) -> WarnCommand:
    return WarnCommand(services)
