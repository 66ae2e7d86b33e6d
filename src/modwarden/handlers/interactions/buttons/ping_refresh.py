"""Refresh button on /ping replies."""

from __future__ import annotations

import datetime

import discord

from modwarden.datatypes.handler_datatypes import HandlerKind, HandlerServices, InboundEvent
from modwarden.handlers.commands.ping import (
    REFRESH_CUSTOM_ID,
    REFRESH_WINDOW_SECONDS,
    collect_metrics,
    refresh_view,
)
from modwarden.ui.embeds import ping_embed
from modwarden.util.discord_utils import reply_ephemeral
from modwarden.util.logger import get_logger

logger = get_logger("ping_refresh_button")


class PingRefreshButton:
    key = REFRESH_CUSTOM_ID
    kind = HandlerKind.BUTTON

    def __init__(self, services: HandlerServices):
        self.services = services

    async def invoke(self, event: InboundEvent) -> None:
        interaction: discord.Interaction = event.payload
        message = interaction.message

        if message is not None:
            age = datetime.datetime.now(datetime.timezone.utc) - message.created_at
            if age.total_seconds() > REFRESH_WINDOW_SECONDS:
                await reply_ephemeral(interaction, "This refresh button has expired. Run /ping again.")
                return

        metrics = collect_metrics(interaction, self.services.started_at)
        await interaction.response.edit_message(
            embed=ping_embed(metrics, interaction.user),
            view=refresh_view(),
        )
        logger.debug("Ping refreshed by %s: %dms", interaction.user, metrics.round_trip_latency)


def setup(services: HandlerServices) -> PingRefreshButton:
    return PingRefreshButton(services)
