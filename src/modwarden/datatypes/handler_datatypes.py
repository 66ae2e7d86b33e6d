"""
Handler contract and the records exchanged by the registry and dispatcher.

Key pieces:
- `HandlerKind`: the five kinds of inbound keys a handler can bind to.
- `Handler`: structural protocol every discovered handler satisfies.
- `HandlerEntry`: the validated, immutable registry record.
- `InboundEvent`: one classified platform event handed to a handler.
- `HandlerServices`: shared collaborators passed to each handler module's ``setup``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from modwarden.configuration.app_configuration import AppConfig
    from modwarden.database.infractions import InfractionStore


class HandlerKind(Enum):
    """Kinds of inbound keys a handler can be registered under."""

    COMMAND = "command"
    BUTTON = "button"
    MODAL = "modal"
    SELECT_MENU = "select_menu"
    EVENT = "event"

    def __str__(self) -> str:
        return self.value


class HandlerValidationError(TypeError):
    """Raised when a handler candidate does not satisfy the handler contract."""


ReplyCallable = Callable[[str], Awaitable[Any]]


@dataclass(slots=True)
class InboundEvent:
    """A platform event after classification.

    Attributes:
        kind: Which handler table the event is routed through
        key: Command name, component custom id, or gateway event name
        actor: Display tag of the invoking user, if any
        payload: The platform object (``discord.Interaction``) or event arguments tuple
        reply: Sends an ephemeral text back to the invoker; None when the event has no invoker
    """
    kind: HandlerKind
    key: str
    actor: Optional[str] = None
    payload: Any = None
    reply: Optional[ReplyCallable] = None


@runtime_checkable
class Handler(Protocol):
    """Structural contract for handlers returned by a module's ``setup``.

    Commands may also carry a ``definition`` dict (the slash command JSON
    deployed to Discord) and events may set ``once_only``.
    """

    key: str
    kind: HandlerKind

    async def invoke(self, event: InboundEvent) -> None: ...


@dataclass(frozen=True, slots=True)
class HandlerEntry:
    """Validated registry record; immutable for the lifetime of the process."""
    key: str
    kind: HandlerKind
    invoke: Callable[[InboundEvent], Awaitable[None]]
    once_only: bool = False
    source: str = ""
    definition: Optional[dict] = None

    @classmethod
    def from_handler(cls, candidate: Any, source: str = "") -> "HandlerEntry":
        """Build an entry from a handler object, rejecting anything malformed.

        Raises:
            HandlerValidationError: If ``key``, ``kind`` or ``invoke`` is missing or of the wrong type.
        """
        where = source or type(candidate).__name__

        if not isinstance(candidate, Handler):
            missing = [name for name in ("key", "kind", "invoke") if not hasattr(candidate, name)]
            raise HandlerValidationError(f"handler from {where} is missing {', '.join(missing)}")

        key = getattr(candidate, "key", None)
        if not isinstance(key, str) or not key.strip():
            raise HandlerValidationError(f"handler from {where} has no key")

        kind = getattr(candidate, "kind", None)
        if not isinstance(kind, HandlerKind):
            raise HandlerValidationError(f"handler '{key}' from {where} has invalid kind {kind!r}")

        invoke = getattr(candidate, "invoke", None)
        if not callable(invoke):
            raise HandlerValidationError(f"handler '{key}' from {where} has no invoke entry point")

        definition = getattr(candidate, "definition", None)
        if definition is not None and not isinstance(definition, dict):
            raise HandlerValidationError(f"handler '{key}' from {where} has a non-dict definition")

        return cls(
            key=key,
            kind=kind,
            invoke=invoke,
            once_only=bool(getattr(candidate, "once_only", False)),
            source=source,
            definition=definition,
        )


@dataclass(slots=True)
class HandlerServices:
    """Collaborators shared with every handler module at setup time."""
    store: "InfractionStore"
    config: "AppConfig"
    started_at: float = field(default_factory=time.monotonic)
