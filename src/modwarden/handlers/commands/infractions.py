"""
/infractions: list a member's recorded infractions, newest first.
"""

from __future__ import annotations

import discord

from modwarden.database.infractions import InfractionStoreError
from modwarden.datatypes.handler_datatypes import HandlerServices
from modwarden.datatypes.infraction_datatypes import InfractionType
from modwarden.handlers.base import OPTION_STRING, OPTION_USER, CommandHandler
from modwarden.ui.embeds import infractions_embed
from modwarden.util.discord_utils import fetch_member, get_option, send_response
from modwarden.util.logger import get_logger
from modwarden.util.permissions import has_role_matching

logger = get_logger("infractions_command")

DEFINITION = {
    "name": "infractions",
    "description": "Show a user's infraction history",
    "type": 1,
    "options": [
        {"type": OPTION_USER, "name": "user", "description": "The user to look up", "required": True},
        {
            "type": OPTION_STRING,
            "name": "type",
            "description": "Only show one kind of infraction",
            "required": False,
            "choices": [{"name": t.value.title(), "value": t.value} for t in InfractionType],
        },
    ],
}


class InfractionsCommand(CommandHandler):
    key = "infractions"
    definition = DEFINITION

    async def run(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if guild is None:
            return await self.send_error(interaction, "This command can only be used in a server.")

        member = interaction.user
        if not isinstance(member, discord.Member) or not has_role_matching(member, self.config.warn_roles):
            return await self.send_error(interaction, "You don't have permission to view infractions.")

        target = await fetch_member(guild, get_option(interaction, "user"))
        if target is None:
            return await self.send_error(interaction, "Could not find that user in this server.")

        raw_type = get_option(interaction, "type")
        try:
            type_filter = InfractionType(raw_type.upper()) if raw_type else None
        except ValueError:
            return await self.send_error(interaction, f"Unknown infraction type `{raw_type}`.")

        try:
            infractions = await self.store.get_user_infractions(target.id, guild.id, type_filter)
            total = await self.store.get_infraction_count(target.id, guild.id, type_filter)
        except InfractionStoreError as exc:
            logger.error("Error loading infractions for %s: %s", target, exc)
            return await self.send_error(interaction, "Failed to load infractions from the database.")

        await send_response(
            interaction,
            embed=infractions_embed(target, infractions, total, type_filter),
            ephemeral=True,
        )


def setup(services: HandlerServices) -> InfractionsCommand:
    return InfractionsCommand(services)
