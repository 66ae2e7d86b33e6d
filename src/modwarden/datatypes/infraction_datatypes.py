"""
Infraction types and the immutable ledger record.

This module defines the InfractionType enum and the Infraction dataclass
returned by the infraction store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class InfractionType(Enum):
    """Enumeration of moderation actions recorded in the ledger."""

    WARN = "WARN"
    MUTE = "MUTE"
    KICK = "KICK"
    BAN = "BAN"
    TIMEOUT = "TIMEOUT"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Infraction:
    """A recorded moderation action against a user within a guild.

    Attributes:
        id: Short external identifier (8 characters, A-Z and 0-9)
        user_id: ID of the user the infraction was issued against
        guild_id: ID of the guild the infraction belongs to
        moderator_id: ID of the moderator who issued it
        type: Kind of moderation action
        reason: Free-text reason given by the moderator
        created_at: UTC creation time, set once by the store
    """
    id: str
    user_id: str
    guild_id: str
    moderator_id: str
    type: InfractionType
    reason: str
    created_at: datetime
