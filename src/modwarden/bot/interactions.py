"""Classification of py-cord interactions into dispatcher events."""

from __future__ import annotations

import functools
from typing import Optional

import discord

from modwarden.datatypes.handler_datatypes import HandlerKind, InboundEvent
from modwarden.util.discord_utils import reply_ephemeral
from modwarden.util.logger import get_logger

logger = get_logger("interactions")

CHAT_INPUT_COMMAND = 1

BUTTON_COMPONENT = 2
# string, user, role, mentionable and channel selects
SELECT_COMPONENTS = frozenset({3, 5, 6, 7, 8})


def classify_interaction(interaction: discord.Interaction) -> Optional[InboundEvent]:
    """
    Map an interaction to an ``InboundEvent``, or None if no handler kind covers it.

    Autocomplete, pings and context-menu commands are not routed.
    """
    data = interaction.data or {}
    kind: Optional[HandlerKind] = None
    key: Optional[str] = None

    if interaction.type == discord.InteractionType.application_command:
        if data.get("type", CHAT_INPUT_COMMAND) == CHAT_INPUT_COMMAND:
            kind, key = HandlerKind.COMMAND, data.get("name")
    elif interaction.type == discord.InteractionType.component:
        component_type = data.get("component_type")
        if component_type == BUTTON_COMPONENT:
            kind = HandlerKind.BUTTON
        elif component_type in SELECT_COMPONENTS:
            kind = HandlerKind.SELECT_MENU
        key = data.get("custom_id")
    elif interaction.type == discord.InteractionType.modal_submit:
        kind, key = HandlerKind.MODAL, data.get("custom_id")

    if kind is None or not key:
        logger.debug("Ignoring interaction %s of type %s", interaction.id, interaction.type)
        return None

    return InboundEvent(
        kind=kind,
        key=key,
        actor=str(interaction.user) if interaction.user is not None else None,
        payload=interaction,
        reply=functools.partial(reply_ephemeral, interaction),
    )
