import asyncio
import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from discord_fakes import FakeGuild, FakeInteraction, FakeMember, FakeRole

from modwarden.datatypes.handler_datatypes import HandlerKind, HandlerServices, InboundEvent
from modwarden.datatypes.infraction_datatypes import InfractionType
from modwarden.handlers.commands import infractions, ping
from modwarden.handlers.events import ready
from modwarden.handlers.interactions.buttons import ping_refresh


@pytest.fixture(autouse=True)
def patch_discord(monkeypatch):
    monkeypatch.setattr(discord, "Member", FakeMember)
    yield


@pytest.fixture()
def services(store, app_config):
    return HandlerServices(store=store, config=app_config)


def fields_by_name(embed):
    return {field.name: field.value for field in embed.fields}


def ping_interaction(latency=0.05):
    user = FakeMember(10, "user#0001")
    interaction = FakeInteraction(user, guild=None, name="ping")
    interaction.client = SimpleNamespace(latency=latency)
    sent_at = interaction.created_at + datetime.timedelta(milliseconds=250)
    interaction.original_response = AsyncMock(return_value=SimpleNamespace(created_at=sent_at))
    interaction.edit_original_response = AsyncMock()
    return interaction


# --------------------------------------------------------------------------
# /ping and its refresh button
# --------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ping_reports_latency_and_uptime(services, monkeypatch):
    monkeypatch.setattr(ping, "REFRESH_WINDOW_SECONDS", 0)
    command = ping.setup(services)
    interaction = ping_interaction()

    await command.invoke(InboundEvent(kind=HandlerKind.COMMAND, key="ping", payload=interaction))

    interaction.response.send_message.assert_awaited_once_with("Pinging...")
    first_edit = interaction.edit_original_response.await_args_list[0].kwargs
    assert first_edit["content"] is None
    fields = fields_by_name(first_edit["embed"])
    assert fields["Round Trip Latency"] == "🟠 Fair (250ms)"
    assert fields["WebSocket Latency"] == "🟢 Excellent (50ms)"
    assert "Uptime" in fields
    [button] = first_edit["view"].children
    assert button.custom_id == "ping_refresh"
    assert button.disabled is False

    await asyncio.gather(*command._expiry_tasks)
    last_edit = interaction.edit_original_response.await_args.kwargs
    assert last_edit["view"].children[0].disabled is True


def test_websocket_latency_before_first_heartbeat():
    assert ping.websocket_latency_ms(SimpleNamespace(latency=float("nan"))) == -1
    assert ping.websocket_latency_ms(SimpleNamespace(latency=0.1234)) == 123


@pytest.mark.asyncio
async def test_refresh_button_edits_message(services):
    button = ping_refresh.setup(services)
    interaction = ping_interaction()
    interaction.message = SimpleNamespace(created_at=datetime.datetime.now(datetime.timezone.utc))

    await button.invoke(InboundEvent(kind=HandlerKind.BUTTON, key="ping_refresh", payload=interaction))

    kwargs = interaction.response.edit_message.await_args.kwargs
    assert kwargs["embed"].title == "Ping Statistics"
    assert kwargs["view"].children[0].custom_id == "ping_refresh"


@pytest.mark.asyncio
async def test_refresh_button_expires(services):
    button = ping_refresh.setup(services)
    interaction = ping_interaction()
    interaction.message = SimpleNamespace(
        created_at=datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=5)
    )

    await button.invoke(InboundEvent(kind=HandlerKind.BUTTON, key="ping_refresh", payload=interaction))

    interaction.response.edit_message.assert_not_awaited()
    [sent] = interaction.sent_kwargs()
    assert sent["ephemeral"] is True
    assert "expired" in sent["content"]


# --------------------------------------------------------------------------
# /infractions
# --------------------------------------------------------------------------

@pytest.fixture()
def moderation_scene():
    moderator = FakeMember(10, "mod#0001", [FakeRole("Community Moderator", 5)])
    target = FakeMember(20, "target#0002", [FakeRole("Member", 1)])
    me = FakeMember(99, "ModWarden#0000", [FakeRole("ModWarden", 8)])
    guild = FakeGuild(owner_id=1, me=me, members=[moderator, target])
    return SimpleNamespace(moderator=moderator, target=target, guild=guild)


async def run_infractions(services, invoker, guild, **options):
    command = infractions.setup(services)
    interaction = FakeInteraction(invoker, guild, options, name="infractions")
    await command.invoke(InboundEvent(kind=HandlerKind.COMMAND, key="infractions", payload=interaction))
    [sent] = interaction.sent_kwargs()
    return sent


@pytest.mark.asyncio
async def test_infractions_lists_history(services, store, moderation_scene):
    scene = moderation_scene
    await store.add_warning(scene.target.id, scene.guild.id, scene.moderator.id, "spam")
    await store.add_infraction(scene.target.id, scene.guild.id, scene.moderator.id, InfractionType.BAN, "raid")
    await store.add_warning(scene.target.id, scene.guild.id, scene.moderator.id, "caps")

    sent = await run_infractions(services, scene.moderator, scene.guild, user=str(scene.target.id))

    embed = sent["embed"]
    assert sent["ephemeral"] is True
    assert embed.description == "Total: **3**"
    assert len(embed.fields) == 3
    assert embed.fields[0].value.startswith("caps")


@pytest.mark.asyncio
async def test_infractions_type_filter(services, store, moderation_scene):
    scene = moderation_scene
    await store.add_warning(scene.target.id, scene.guild.id, scene.moderator.id, "spam")
    ban_id = await store.add_infraction(scene.target.id, scene.guild.id, scene.moderator.id, InfractionType.BAN, "raid")

    sent = await run_infractions(services, scene.moderator, scene.guild, user=str(scene.target.id), type="BAN")

    embed = sent["embed"]
    assert embed.description == "Total: **1**"
    assert ban_id in embed.fields[0].name


@pytest.mark.asyncio
async def test_infractions_requires_moderator_role(services, moderation_scene):
    scene = moderation_scene

    sent = await run_infractions(services, scene.target, scene.guild, user=str(scene.moderator.id))

    assert sent["embed"].description == "You don't have permission to view infractions."


@pytest.mark.asyncio
async def test_infractions_rejects_unknown_type(services, moderation_scene):
    scene = moderation_scene

    sent = await run_infractions(services, scene.moderator, scene.guild, user=str(scene.target.id), type="softban")

    assert sent["embed"].description == "Unknown infraction type `softban`."


# --------------------------------------------------------------------------
# ready
# --------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ready_sets_watching_presence(app_config):
    handler = ready.setup(HandlerServices(store=None, config=app_config))
    client = SimpleNamespace(user="ModWarden#0000", change_presence=AsyncMock())

    await handler.invoke(InboundEvent(kind=HandlerKind.EVENT, key="ready", payload=(client,)))

    activity = client.change_presence.await_args.kwargs["activity"]
    assert activity.type == discord.ActivityType.watching
    assert activity.name == "your server"
    assert handler.once_only is True
