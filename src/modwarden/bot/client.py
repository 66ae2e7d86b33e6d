"""
Discord client that routes everything through the dispatcher.

``ModWardenClient`` is a plain ``discord.Client``: py-cord's own command
tree is not used. Interactions are classified and handed to the
``Dispatcher``, and any gateway event with a registered EVENT handler is
forwarded too. Slash command definitions come from the registered command
handlers and are deployed once, on the first ``ready``.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Set

import discord

from modwarden.bot.interactions import classify_interaction
from modwarden.datatypes.handler_datatypes import HandlerKind, InboundEvent
from modwarden.registry.dispatcher import Dispatcher
from modwarden.registry.handler_registry import HandlerRegistry
from modwarden.util.logger import get_logger

logger = get_logger("client")


def build_intents() -> discord.Intents:
    """Intents for guild, message content and member events."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    intents.members = True
    return intents


class ModWardenClient(discord.Client):
    """Discord client bound to one registry and dispatcher."""

    def __init__(self, registry: HandlerRegistry, dispatcher: Dispatcher, **options: Any):
        options.setdefault("intents", build_intents())
        super().__init__(**options)
        self.registry = registry
        self.dispatcher = dispatcher
        self._event_tasks: Set[asyncio.Task] = set()
        self._commands_deployed = False

    def dispatch(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        super().dispatch(event_name, *args, **kwargs)

        # Only forward events someone registered for; the gateway emits far too many to log misses
        if self.registry.lookup(event_name, HandlerKind.EVENT) is None:
            return
        event = InboundEvent(kind=HandlerKind.EVENT, key=event_name, payload=(self, *args))
        task = asyncio.create_task(self.dispatcher.dispatch(event), name=f"modwarden:event:{event_name}")
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        event = classify_interaction(interaction)
        if event is None:
            return
        await self.dispatcher.dispatch(event)

    async def on_ready(self) -> None:
        if self._commands_deployed:
            return
        self._commands_deployed = True
        await self.deploy_commands()

    def command_definitions(self) -> List[dict]:
        return [entry.definition for entry in self.registry.entries(HandlerKind.COMMAND) if entry.definition]

    async def deploy_commands(self) -> int:
        """
        Overwrite the global application commands with the registered definitions.

        Returns:
            Number of commands Discord acknowledged, or -1 on failure
        """
        definitions = self.command_definitions()
        if self.application_id is None:
            logger.error("Cannot deploy commands: application id is unknown")
            return -1

        logger.info("Started refreshing %d application (/) commands.", len(definitions))
        try:
            data = await self.http.bulk_upsert_global_commands(self.application_id, definitions)
        except discord.HTTPException as exc:
            logger.error("Error deploying commands: %s", exc)
            return -1

        logger.info("Successfully reloaded %d application (/) commands.", len(data))
        return len(data)
