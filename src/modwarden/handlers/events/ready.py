from __future__ import annotations

import discord

from modwarden.datatypes.handler_datatypes import HandlerKind, HandlerServices, InboundEvent
from modwarden.util.logger import get_logger

logger = get_logger("ready_event")


class ReadyEvent:
    """Logs the bot identity and sets its presence on the first ready."""

    key = "ready"
    kind = HandlerKind.EVENT
    once_only = True

    def __init__(self, services: HandlerServices):
        self.config = services.config

    async def invoke(self, event: InboundEvent) -> None:
        client: discord.Client = event.payload[0]
        logger.info("Logged in as %s!", client.user)
        await client.change_presence(
            activity=discord.Activity(type=discord.ActivityType.watching, name=self.config.presence_activity)
        )


def setup(services: HandlerServices) -> ReadyEvent:
    return ReadyEvent(services)
