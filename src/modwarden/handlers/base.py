"""
Shared pieces for handler modules.

Handler modules live in ``modwarden.handlers.commands``, ``.events`` and
``.interactions.*``. Each exposes ``setup(services)`` returning its
handler object(s). This module is outside the scanned packages, so it is
never mistaken for a handler.
"""

from __future__ import annotations

from typing import Optional

import discord

from modwarden.datatypes.handler_datatypes import HandlerKind, HandlerServices, InboundEvent
from modwarden.ui.embeds import error_embed
from modwarden.util.discord_utils import send_response
from modwarden.util.logger import get_logger

logger = get_logger("handlers")

# Discord application command option types
OPTION_STRING = 3
OPTION_USER = 6


class CommandHandler:
    """Base for slash command handlers.

    Subclasses set ``key`` and ``definition`` and implement ``run``.
    """

    key: str = ""
    kind = HandlerKind.COMMAND
    definition: Optional[dict] = None
    ephemeral_errors = True

    def __init__(self, services: HandlerServices):
        self.services = services
        self.store = services.store
        self.config = services.config

    async def invoke(self, event: InboundEvent) -> None:
        await self.run(event.payload)

    async def run(self, interaction: discord.Interaction) -> None:
        raise NotImplementedError

    async def send_error(self, interaction: discord.Interaction, message: str) -> None:
        """Reply with an error embed; a failed send is logged, not raised."""
        try:
            await send_response(interaction, embed=error_embed(message), ephemeral=self.ephemeral_errors)
        except discord.HTTPException as exc:
            logger.error("Failed to send error response for /%s: %s", self.key, exc)
