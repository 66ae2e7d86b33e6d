import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from discord_fakes import http_error

from modwarden.bot.client import ModWardenClient
from modwarden.bot.interactions import classify_interaction
from modwarden.datatypes.handler_datatypes import HandlerKind, HandlerServices, InboundEvent
from modwarden.handlers.base import CommandHandler
from modwarden.registry.handler_registry import HandlerRegistry


def fake_interaction(interaction_type, data, user="mod#0001"):
    response = SimpleNamespace(is_done=lambda: False, send_message=AsyncMock())
    return SimpleNamespace(
        id=1234,
        type=interaction_type,
        data=data,
        user=user,
        response=response,
        followup=SimpleNamespace(send=AsyncMock()),
    )


class StubHandler:
    def __init__(self, key, kind, definition=None):
        self.key = key
        self.kind = kind
        self.definition = definition

    async def invoke(self, event):
        return None


# --------------------------------------------------------------------------
# classify_interaction
# --------------------------------------------------------------------------

def test_slash_command_is_keyed_by_name():
    interaction = fake_interaction(discord.InteractionType.application_command, {"name": "warn", "type": 1})

    event = classify_interaction(interaction)

    assert event.kind is HandlerKind.COMMAND
    assert event.key == "warn"
    assert event.actor == "mod#0001"
    assert event.payload is interaction


def test_context_menu_command_is_not_routed():
    interaction = fake_interaction(discord.InteractionType.application_command, {"name": "Report", "type": 2})

    assert classify_interaction(interaction) is None


def test_button_is_keyed_by_custom_id():
    interaction = fake_interaction(
        discord.InteractionType.component, {"component_type": 2, "custom_id": "ping_refresh"}
    )

    event = classify_interaction(interaction)

    assert event.kind is HandlerKind.BUTTON
    assert event.key == "ping_refresh"


@pytest.mark.parametrize("component_type", [3, 5, 6, 7, 8])
def test_select_menus_are_keyed_by_custom_id(component_type):
    interaction = fake_interaction(
        discord.InteractionType.component, {"component_type": component_type, "custom_id": "pick_role"}
    )

    event = classify_interaction(interaction)

    assert event.kind is HandlerKind.SELECT_MENU
    assert event.key == "pick_role"


def test_modal_submit_is_keyed_by_custom_id():
    interaction = fake_interaction(discord.InteractionType.modal_submit, {"custom_id": "appeal_form"})

    event = classify_interaction(interaction)

    assert event.kind is HandlerKind.MODAL
    assert event.key == "appeal_form"


@pytest.mark.parametrize(
    "interaction_type, data",
    [
        (discord.InteractionType.auto_complete, {"name": "warn"}),
        (discord.InteractionType.ping, None),
        (discord.InteractionType.component, {"component_type": 2}),
        (discord.InteractionType.component, {"component_type": 4, "custom_id": "text"}),
    ],
)
def test_unroutable_interactions_are_ignored(interaction_type, data):
    assert classify_interaction(fake_interaction(interaction_type, data)) is None


@pytest.mark.asyncio
async def test_reply_sends_ephemeral_message():
    interaction = fake_interaction(discord.InteractionType.application_command, {"name": "gone", "type": 1})

    event = classify_interaction(interaction)
    await event.reply("Command `gone` not found.")

    interaction.response.send_message.assert_awaited_once_with(
        content="Command `gone` not found.", ephemeral=True
    )


# --------------------------------------------------------------------------
# ModWardenClient
# --------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_client_routes_interactions_to_dispatcher():
    dispatcher = SimpleNamespace(dispatch=AsyncMock())
    client = ModWardenClient(HandlerRegistry(), dispatcher)
    interaction = fake_interaction(discord.InteractionType.application_command, {"name": "ping", "type": 1})

    await client.on_interaction(interaction)

    [event] = dispatcher.dispatch.await_args.args
    assert isinstance(event, InboundEvent)
    assert event.key == "ping"


@pytest.mark.asyncio
async def test_client_forwards_only_registered_gateway_events():
    registry = HandlerRegistry()
    registry.admit(StubHandler("guild_join", HandlerKind.EVENT))
    dispatcher = SimpleNamespace(dispatch=AsyncMock())
    client = ModWardenClient(registry, dispatcher)

    client.dispatch("guild_join", "guild")
    client.dispatch("typing", "channel", "user", "when")
    await asyncio.gather(*client._event_tasks)

    dispatcher.dispatch.assert_awaited_once()
    [event] = dispatcher.dispatch.await_args.args
    assert event.kind is HandlerKind.EVENT
    assert event.key == "guild_join"
    assert event.payload == (client, "guild")


@pytest.mark.asyncio
async def test_client_collects_command_definitions():
    registry = HandlerRegistry()
    registry.admit(StubHandler("ping", HandlerKind.COMMAND, {"name": "ping", "type": 1}))
    registry.admit(StubHandler("internal", HandlerKind.COMMAND))
    registry.admit(StubHandler("ping_refresh", HandlerKind.BUTTON, {"ignored": True}))
    client = ModWardenClient(registry, SimpleNamespace(dispatch=AsyncMock()))

    assert client.command_definitions() == [{"name": "ping", "type": 1}]


# --------------------------------------------------------------------------
# command deployment
# --------------------------------------------------------------------------

def deploying_client(monkeypatch, application_id=4242, upsert=None):
    monkeypatch.setattr(ModWardenClient, "application_id", application_id)
    registry = HandlerRegistry()
    registry.admit(StubHandler("ping", HandlerKind.COMMAND, {"name": "ping", "type": 1}))
    client = ModWardenClient(registry, SimpleNamespace(dispatch=AsyncMock()))
    client.http = SimpleNamespace(
        bulk_upsert_global_commands=upsert or AsyncMock(return_value=[{"name": "ping"}])
    )
    return client


@pytest.mark.asyncio
async def test_commands_deploy_once_on_first_ready(monkeypatch):
    client = deploying_client(monkeypatch)

    await client.on_ready()
    await client.on_ready()

    client.http.bulk_upsert_global_commands.assert_awaited_once_with(4242, [{"name": "ping", "type": 1}])


@pytest.mark.asyncio
async def test_deploy_failure_is_reported_not_raised(monkeypatch):
    upsert = AsyncMock(side_effect=http_error(50001))
    client = deploying_client(monkeypatch, upsert=upsert)

    assert await client.deploy_commands() == -1

    await client.on_ready()
    await client.on_ready()
    assert upsert.await_count == 2


@pytest.mark.asyncio
async def test_deploy_without_application_id(monkeypatch):
    client = deploying_client(monkeypatch, application_id=None)

    assert await client.deploy_commands() == -1
    client.http.bulk_upsert_global_commands.assert_not_awaited()


@pytest.mark.asyncio
async def test_deploy_returns_acknowledged_count(monkeypatch):
    client = deploying_client(monkeypatch)

    assert await client.deploy_commands() == 1


@pytest.mark.asyncio
async def test_command_without_definition_is_not_deployed():
    class Hidden(CommandHandler):
        key = "hidden"

    registry = HandlerRegistry()
    entry = registry.admit(Hidden(HandlerServices(store=None, config=None)))
    client = ModWardenClient(registry, SimpleNamespace(dispatch=AsyncMock()))

    assert entry.definition is None
    assert Hidden.definition is None
    assert client.command_definitions() == []
