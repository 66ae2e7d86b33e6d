"""
Single funnel for inbound platform events.

Every classified event goes through ``Dispatcher.dispatch``. It looks up
the handler, runs it, and turns any outcome into a ``DispatchResult``.
Nothing a handler does can escape this boundary:

- no handler for a command: the invoker is told the command was not found
- no handler for a button/modal/menu/event: logged only (usually stale components)
- handler raised: logged; for commands a generic failure notice is attempted
- the notice itself failed: logged and dropped

Each call is independent. The dispatcher enforces no timeout on handlers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from modwarden.datatypes.handler_datatypes import HandlerKind, InboundEvent
from modwarden.registry.handler_registry import HandlerRegistry
from modwarden.util.logger import get_logger

logger = get_logger("dispatcher")

COMMAND_NOT_FOUND_MESSAGE = "Command `{key}` not found."
COMMAND_FAILED_MESSAGE = "Something went wrong while executing the command."


class DispatchState(Enum):
    """Lifecycle of a single dispatched event.

    RECEIVED -> CLASSIFIED -> ROUTED | UNROUTED -> COMPLETED | FAILED
    """

    RECEIVED = "received"
    CLASSIFIED = "classified"
    ROUTED = "routed"
    UNROUTED = "unrouted"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class DispatchResult:
    """Outcome of one ``dispatch`` call.

    Attributes:
        kind: Handler kind the event was classified as
        key: Routing key of the event
        states: Every state the event passed through, in order
        duration_ms: Handler run time; 0.0 when no handler ran
        error: Exception raised by the handler, if any
    """
    kind: HandlerKind
    key: str
    states: Tuple[DispatchState, ...]
    duration_ms: float = 0.0
    error: Optional[BaseException] = None

    @property
    def state(self) -> DispatchState:
        """Terminal state: UNROUTED, COMPLETED or FAILED."""
        return self.states[-1]


class Dispatcher:
    """Routes inbound events to registered handlers with failure isolation."""

    def __init__(self, registry: HandlerRegistry):
        self.registry = registry

    async def dispatch(self, event: InboundEvent) -> DispatchResult:
        """Route ``event`` to its handler and report what happened."""
        states: List[DispatchState] = []
        self._advance(event, states, DispatchState.RECEIVED)

        if not isinstance(event.kind, HandlerKind):
            logger.warning("[DISPATCH] Dropping event '%s' with unknown kind %r", event.key, event.kind)
            self._advance(event, states, DispatchState.UNROUTED)
            return DispatchResult(kind=event.kind, key=event.key, states=tuple(states))

        self._advance(event, states, DispatchState.CLASSIFIED)

        entry = self.registry.lookup(event.key, event.kind)
        if entry is None:
            self._advance(event, states, DispatchState.UNROUTED)
            await self._unrouted(event)
            return DispatchResult(kind=event.kind, key=event.key, states=tuple(states))

        self._advance(event, states, DispatchState.ROUTED)
        if entry.once_only:
            self.registry.discard(entry.key, entry.kind)

        if event.actor:
            logger.info("[DISPATCH] Running %s '%s' for %s", event.kind, event.key, event.actor)

        start = time.perf_counter()
        try:
            await entry.invoke(event)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            self._advance(event, states, DispatchState.FAILED)
            logger.error(
                "[DISPATCH] %s '%s' failed after %.1fms: %s",
                event.kind, event.key, duration_ms, exc, exc_info=True,
            )
            if event.kind is HandlerKind.COMMAND:
                await self._notify(event, COMMAND_FAILED_MESSAGE)
            return DispatchResult(
                kind=event.kind, key=event.key, states=tuple(states),
                duration_ms=duration_ms, error=exc,
            )

        duration_ms = (time.perf_counter() - start) * 1000
        self._advance(event, states, DispatchState.COMPLETED)
        logger.info("[DISPATCH] %s '%s' completed in %.1fms", event.kind, event.key, duration_ms)
        return DispatchResult(
            kind=event.kind, key=event.key, states=tuple(states), duration_ms=duration_ms,
        )

    @staticmethod
    def _advance(event: InboundEvent, states: List[DispatchState], state: DispatchState) -> None:
        states.append(state)
        logger.debug("[DISPATCH] %s '%s' -> %s", event.kind, event.key, state.value)

    @staticmethod
    async def _unrouted(event: InboundEvent) -> None:
        if event.kind is HandlerKind.COMMAND:
            logger.warning("[DISPATCH] Unknown command: %s", event.key)
            await Dispatcher._notify(event, COMMAND_NOT_FOUND_MESSAGE.format(key=event.key))
        else:
            logger.info("[DISPATCH] Unhandled %s: %s", event.kind, event.key)

    @staticmethod
    async def _notify(event: InboundEvent, message: str) -> None:
        if event.reply is None:
            return
        try:
            await event.reply(message)
        except Exception as exc:
            logger.error("[DISPATCH] Failed to send notice for %s '%s': %s", event.kind, event.key, exc)
