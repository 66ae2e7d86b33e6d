"""
Result records produced by the moderation command handlers.

These carry everything the embed builders need, so the formatting code
never touches Discord objects beyond the invoking user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class NicknameResult:
    """Outcome of a nickname change.

    Attributes:
        success: Whether Discord accepted the change
        old_nickname: Nickname before the change (None if unset)
        new_nickname: Requested nickname (None clears it)
        user: Tag of the member whose nickname was changed
        moderator: Tag of the moderator, for moderator actions
        reason: Reason supplied by the moderator
        error_reason: Human-readable failure explanation
        is_mod_action: True when a moderator changed someone else's nickname
    """
    success: bool
    old_nickname: Optional[str]
    new_nickname: Optional[str]
    user: str
    moderator: Optional[str] = None
    reason: Optional[str] = None
    error_reason: Optional[str] = None
    is_mod_action: bool = False


@dataclass(slots=True)
class WarnResult:
    """Outcome of a warning."""
    success: bool
    user: str
    moderator: Optional[str] = None
    reason: Optional[str] = None
    infraction_id: Optional[str] = None
    error_reason: Optional[str] = None
    evidence_url: Optional[str] = None


@dataclass(slots=True)
class PingMetrics:
    """Latency figures shown by /ping, in milliseconds."""
    round_trip_latency: int
    websocket_latency: int
    uptime: str


@dataclass(frozen=True, slots=True)
class LatencyStatus:
    emoji: str
    status: str
    color: int
