"""
/ping: report round-trip and websocket latency plus uptime.

The reply carries a Refresh button (custom id ``ping_refresh``) that is
handled by ``modwarden.handlers.interactions.buttons.ping_refresh``. The
button is disabled once ``REFRESH_WINDOW_SECONDS`` have passed.
"""

from __future__ import annotations

import asyncio
import datetime
import math
import time
from typing import Optional, Set

import discord

from modwarden.datatypes.command_datatypes import PingMetrics
from modwarden.datatypes.handler_datatypes import HandlerServices
from modwarden.handlers.base import CommandHandler
from modwarden.ui.embeds import ping_embed
from modwarden.util.discord_utils import format_uptime
from modwarden.util.logger import get_logger

logger = get_logger("ping_command")

REFRESH_CUSTOM_ID = "ping_refresh"
REFRESH_WINDOW_SECONDS = 60

DEFINITION = {
    "name": "ping",
    "description": "Check the bot's latency, response time and additional metrics",
    "type": 1,
}


def refresh_view(disabled: bool = False) -> discord.ui.View:
    """Single-button row; clicks are routed by custom id, not by the view."""
    view = discord.ui.View(timeout=REFRESH_WINDOW_SECONDS)
    view.add_item(
        discord.ui.Button(
            label="Refresh",
            emoji="🔄",
            style=discord.ButtonStyle.secondary,
            custom_id=REFRESH_CUSTOM_ID,
            disabled=disabled,
        )
    )
    return view


def websocket_latency_ms(client: discord.Client) -> int:
    # latency is nan before the first heartbeat ack
    latency = client.latency
    if latency is None or math.isnan(latency) or math.isinf(latency):
        return -1
    return round(latency * 1000)


def collect_metrics(
    interaction: discord.Interaction,
    started_at: float,
    answered_at: Optional[datetime.datetime] = None,
) -> PingMetrics:
    """Latency between the interaction's creation and ``answered_at`` (defaults to now)."""
    if answered_at is None:
        answered_at = datetime.datetime.now(datetime.timezone.utc)
    round_trip = round((answered_at - interaction.created_at).total_seconds() * 1000)
    return PingMetrics(
        round_trip_latency=round_trip,
        websocket_latency=websocket_latency_ms(interaction.client),
        uptime=format_uptime(time.monotonic() - started_at),
    )


class PingCommand(CommandHandler):
    key = "ping"
    definition = DEFINITION

    def __init__(self, services: HandlerServices):
        super().__init__(services)
        self._expiry_tasks: Set[asyncio.Task] = set()

    async def run(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("Pinging...")
        sent = await interaction.original_response()

        metrics = collect_metrics(interaction, self.services.started_at, sent.created_at)
        await interaction.edit_original_response(
            content=None,
            embed=ping_embed(metrics, interaction.user),
            view=refresh_view(),
        )

        task = asyncio.create_task(self.expire_refresh(interaction))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_tasks.discard)

    async def expire_refresh(self, interaction: discord.Interaction) -> None:
        await asyncio.sleep(REFRESH_WINDOW_SECONDS)
        try:
            await interaction.edit_original_response(view=refresh_view(disabled=True))
        except discord.HTTPException as exc:
            logger.warning("Error disabling ping refresh button: %s", exc)


def setup(services: HandlerServices) -> PingCommand:
    return PingCommand(services)
