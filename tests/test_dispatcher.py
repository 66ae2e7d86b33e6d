from unittest.mock import AsyncMock

import pytest

from modwarden.datatypes.handler_datatypes import HandlerKind, InboundEvent
from modwarden.registry.dispatcher import (
    COMMAND_FAILED_MESSAGE,
    DispatchState,
    Dispatcher,
)
from modwarden.registry.handler_registry import HandlerRegistry


class RecordingHandler:
    def __init__(self, key, kind=HandlerKind.COMMAND, error=None, once_only=False):
        self.key = key
        self.kind = kind
        self.once_only = once_only
        self.error = error
        self.events = []

    async def invoke(self, event):
        self.events.append(event)
        if self.error is not None:
            raise self.error


def make_dispatcher(*handlers):
    registry = HandlerRegistry()
    for handler in handlers:
        registry.admit(handler)
    return Dispatcher(registry), registry


def command(key, reply=None):
    return InboundEvent(kind=HandlerKind.COMMAND, key=key, actor="mod#0001", reply=reply)


@pytest.mark.asyncio
async def test_routes_to_registered_handler():
    handler = RecordingHandler("warn")
    dispatcher, _ = make_dispatcher(handler)
    event = command("warn", reply=AsyncMock())

    result = await dispatcher.dispatch(event)

    assert result.state is DispatchState.COMPLETED
    assert result.error is None
    assert result.duration_ms >= 0
    assert handler.events == [event]
    event.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_command_tells_invoker():
    dispatcher, _ = make_dispatcher(RecordingHandler("warn"))
    reply = AsyncMock()

    result = await dispatcher.dispatch(command("frobnicate", reply=reply))

    assert result.state is DispatchState.UNROUTED
    reply.assert_awaited_once_with("Command `frobnicate` not found.")


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [HandlerKind.BUTTON, HandlerKind.MODAL, HandlerKind.SELECT_MENU, HandlerKind.EVENT])
async def test_unknown_non_command_is_silent(kind):
    dispatcher, _ = make_dispatcher()
    reply = AsyncMock()

    result = await dispatcher.dispatch(InboundEvent(kind=kind, key="stale", reply=reply))

    assert result.state is DispatchState.UNROUTED
    reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_failing_command_is_isolated_and_reported():
    failing = RecordingHandler("boom", error=RuntimeError("kaboom"))
    healthy = RecordingHandler("ping")
    dispatcher, _ = make_dispatcher(failing, healthy)
    reply = AsyncMock()

    result = await dispatcher.dispatch(command("boom", reply=reply))

    assert result.state is DispatchState.FAILED
    assert isinstance(result.error, RuntimeError)
    reply.assert_awaited_once_with(COMMAND_FAILED_MESSAGE)

    follow_up = await dispatcher.dispatch(command("ping"))
    assert follow_up.state is DispatchState.COMPLETED
    assert len(healthy.events) == 1


@pytest.mark.asyncio
async def test_failing_button_sends_no_notice():
    dispatcher, _ = make_dispatcher(RecordingHandler("ping_refresh", HandlerKind.BUTTON, error=ValueError("x")))
    reply = AsyncMock()

    result = await dispatcher.dispatch(InboundEvent(kind=HandlerKind.BUTTON, key="ping_refresh", reply=reply))

    assert result.state is DispatchState.FAILED
    reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_notice_is_swallowed():
    dispatcher, _ = make_dispatcher(RecordingHandler("boom", error=RuntimeError("kaboom")))
    reply = AsyncMock(side_effect=ConnectionError("interaction expired"))

    result = await dispatcher.dispatch(command("boom", reply=reply))

    assert result.state is DispatchState.FAILED
    reply.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_command_without_reply_channel():
    dispatcher, _ = make_dispatcher()

    result = await dispatcher.dispatch(command("nothing"))

    assert result.state is DispatchState.UNROUTED


@pytest.mark.asyncio
async def test_once_only_event_runs_once():
    handler = RecordingHandler("ready", HandlerKind.EVENT, once_only=True)
    dispatcher, registry = make_dispatcher(handler)
    event = InboundEvent(kind=HandlerKind.EVENT, key="ready", payload=("client",))

    first = await dispatcher.dispatch(event)
    second = await dispatcher.dispatch(event)

    assert first.state is DispatchState.COMPLETED
    assert second.state is DispatchState.UNROUTED
    assert len(handler.events) == 1
    assert registry.lookup("ready", HandlerKind.EVENT) is None


@pytest.mark.asyncio
async def test_once_only_event_is_dropped_even_when_it_fails():
    handler = RecordingHandler("ready", HandlerKind.EVENT, error=RuntimeError("presence"), once_only=True)
    dispatcher, registry = make_dispatcher(handler)

    result = await dispatcher.dispatch(InboundEvent(kind=HandlerKind.EVENT, key="ready"))

    assert result.state is DispatchState.FAILED
    assert registry.lookup("ready", HandlerKind.EVENT) is None


@pytest.mark.asyncio
async def test_repeatable_event_runs_every_time():
    handler = RecordingHandler("guild_join", HandlerKind.EVENT)
    dispatcher, _ = make_dispatcher(handler)

    for _ in range(3):
        await dispatcher.dispatch(InboundEvent(kind=HandlerKind.EVENT, key="guild_join"))

    assert len(handler.events) == 3


@pytest.mark.asyncio
async def test_invalid_kind_is_unrouted():
    dispatcher, _ = make_dispatcher()

    result = await dispatcher.dispatch(InboundEvent(kind="command", key="warn"))

    assert result.state is DispatchState.UNROUTED
    assert result.states == (DispatchState.RECEIVED, DispatchState.UNROUTED)


@pytest.mark.asyncio
async def test_routed_event_walks_full_lifecycle():
    dispatcher, _ = make_dispatcher(RecordingHandler("warn"))

    result = await dispatcher.dispatch(command("warn"))

    assert result.states == (
        DispatchState.RECEIVED,
        DispatchState.CLASSIFIED,
        DispatchState.ROUTED,
        DispatchState.COMPLETED,
    )


@pytest.mark.asyncio
async def test_failed_and_unrouted_lifecycles():
    dispatcher, _ = make_dispatcher(RecordingHandler("warn", error=RuntimeError("boom")))

    failed = await dispatcher.dispatch(command("warn"))
    missing = await dispatcher.dispatch(command("ban"))

    assert failed.states[-2:] == (DispatchState.ROUTED, DispatchState.FAILED)
    assert missing.states == (DispatchState.RECEIVED, DispatchState.CLASSIFIED, DispatchState.UNROUTED)
