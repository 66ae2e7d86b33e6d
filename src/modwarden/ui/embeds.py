"""
Embed builders for command responses, audit log posts and DMs.
"""

from __future__ import annotations

import datetime
from typing import Iterable, Optional

import discord

from modwarden.datatypes.command_datatypes import LatencyStatus, NicknameResult, PingMetrics, WarnResult
from modwarden.datatypes.infraction_datatypes import Infraction, InfractionType

SUCCESS_COLOR = 0x00FF00
ERROR_COLOR = 0xFF0000
WARN_LOG_COLOR = 0xFFCC00
WARN_DM_COLOR = 0xFF6B35
APPEAL_COLOR = 0x0099FF
INFO_COLOR = 0x5865F2

MAX_LISTED_INFRACTIONS = 10

INFRACTION_EMOJIS = {
    InfractionType.WARN: "⚠️",
    InfractionType.MUTE: "🔇",
    InfractionType.TIMEOUT: "⏱️",
    InfractionType.KICK: "👢",
    InfractionType.BAN: "🔨",
}


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _avatar_url(user: discord.abc.User) -> Optional[str]:
    avatar = getattr(user, "display_avatar", None)
    return getattr(avatar, "url", None)


def _set_footer(embed: discord.Embed, text: str, icon_url: Optional[str] = None) -> None:
    if icon_url:
        embed.set_footer(text=text, icon_url=icon_url)
    else:
        embed.set_footer(text=text)


def error_embed(message: str) -> discord.Embed:
    return discord.Embed(title="❌ Error", description=message, color=ERROR_COLOR, timestamp=_now())


# -------------------- Nickname --------------------

def nickname_embed(result: NicknameResult, invoker: discord.abc.User) -> discord.Embed:
    """Describe a nickname change for the invoker (and, for moderator actions, the audit log)."""
    embed = discord.Embed(timestamp=_now())
    _set_footer(
        embed,
        f"{'Action' if result.is_mod_action else 'Request'} by {invoker}",
        _avatar_url(invoker),
    )

    if not result.success:
        description = (
            f"Could not change **{result.user}**'s nickname."
            if result.is_mod_action
            else "Could not change your nickname."
        )
        if result.error_reason:
            description += f" Reason: {result.error_reason}"
        embed.title = "❌ Failed to Update Nickname"
        embed.description = description
        embed.color = ERROR_COLOR
        return embed

    embed.color = SUCCESS_COLOR
    if result.is_mod_action:
        if result.new_nickname:
            embed.title = "🔧 Nickname Updated"
            embed.description = f"**{result.user}**'s nickname has been changed to **{result.new_nickname}**"
        else:
            embed.title = "🔧 Nickname Cleared"
            embed.description = f"**{result.user}**'s nickname has been cleared"
        if result.old_nickname:
            embed.add_field(name="Previous Nickname", value=result.old_nickname, inline=True)
        if result.moderator:
            embed.add_field(name="Moderator", value=result.moderator, inline=True)
        if result.reason:
            embed.add_field(name="Reason", value=result.reason, inline=False)
    else:
        if result.new_nickname:
            embed.title = "✅ Nickname Updated"
            embed.description = f"Your nickname has been changed to **{result.new_nickname}**"
        else:
            embed.title = "✅ Nickname Cleared"
            embed.description = "Your nickname has been cleared"
        if result.old_nickname:
            embed.add_field(name="Previous Nickname", value=result.old_nickname, inline=True)
    return embed


# -------------------- Warn --------------------

def warn_log_embed(result: WarnResult) -> discord.Embed:
    embed = discord.Embed(
        title="User Warned",
        description=f"Reason: {result.reason}",
        color=WARN_LOG_COLOR,
        timestamp=_now(),
    )
    embed.add_field(name="User", value=result.user or "-", inline=True)
    embed.add_field(name="Moderator", value=result.moderator or "-", inline=True)
    if result.evidence_url:
        embed.add_field(name="Evidence", value=f"[View Evidence]({result.evidence_url})", inline=False)
    embed.set_footer(text=f"Infraction ID {result.infraction_id}")
    return embed


def warn_dm_embed(
    result: WarnResult,
    guild: discord.Guild,
    target: discord.abc.User,
) -> discord.Embed:
    now = _now()
    embed = discord.Embed(
        title=f"Official Warning in {guild.name}",
        description=result.reason,
        color=WARN_DM_COLOR,
        timestamp=now,
    )
    embed.add_field(name="Infraction ID", value=result.infraction_id or "Unknown", inline=True)
    embed.add_field(name="Issued by", value=result.moderator or "-", inline=False)
    embed.add_field(name="Date", value=f"<t:{int(now.timestamp())}:F>", inline=False)
    if result.evidence_url:
        embed.add_field(name="Evidence", value=f"[View Evidence]({result.evidence_url})", inline=False)
    thumbnail = _avatar_url(target)
    if thumbnail:
        embed.set_thumbnail(url=thumbnail)
    icon = getattr(guild, "icon", None)
    _set_footer(embed, f"Warning issued in {guild.name}", getattr(icon, "url", None))
    return embed


def appeal_embed() -> discord.Embed:
    embed = discord.Embed(
        title="Appeal Information",
        description="If you believe this warning was issued in error, you can appeal it by making a ticket.",
        color=APPEAL_COLOR,
    )
    embed.add_field(
        name="How to Appeal",
        value="Contact a server administrator or moderator to discuss your warning.",
        inline=False,
    )
    embed.add_field(
        name="Appeal Guidelines",
        value=(
            "• Be respectful in your appeal\n"
            "• Provide any relevant context\n"
            "• Wait for a response before sending follow-ups"
        ),
        inline=False,
    )
    embed.set_footer(text="Appeals are reviewed on a case-by-case basis")
    return embed


# -------------------- Ping --------------------

def latency_status(latency_ms: float) -> LatencyStatus:
    if latency_ms < 0:
        return LatencyStatus("🔴", "Error", 0xFF0000)
    if latency_ms < 100:
        return LatencyStatus("🟢", "Excellent", 0x00FF00)
    if latency_ms < 200:
        return LatencyStatus("🟡", "Good", 0xFFFF00)
    if latency_ms < 500:
        return LatencyStatus("🟠", "Fair", 0xFF8000)
    return LatencyStatus("🔴", "Poor", 0xFF0000)


def ping_embed(metrics: PingMetrics, invoker: discord.abc.User) -> discord.Embed:
    round_trip = latency_status(metrics.round_trip_latency)
    websocket = latency_status(metrics.websocket_latency)

    embed = discord.Embed(title="Ping Statistics", color=round_trip.color, timestamp=_now())
    embed.add_field(
        name="Round Trip Latency",
        value=f"{round_trip.emoji} {round_trip.status} ({metrics.round_trip_latency}ms)",
        inline=True,
    )
    embed.add_field(
        name="WebSocket Latency",
        value=f"{websocket.emoji} {websocket.status} ({metrics.websocket_latency}ms)",
        inline=True,
    )
    embed.add_field(name="Uptime", value=metrics.uptime, inline=True)
    _set_footer(embed, f"Request by {invoker}", _avatar_url(invoker))
    return embed


# -------------------- Infractions --------------------

def infractions_embed(
    target: discord.abc.User,
    infractions: Iterable[Infraction],
    total: int,
    type_filter: Optional[InfractionType] = None,
) -> discord.Embed:
    """List a member's most recent infractions, newest first."""
    label = f"{type_filter.value} infractions" if type_filter else "Infractions"
    embed = discord.Embed(
        title=f"{label} for {target}",
        description=f"Total: **{total}**",
        color=INFO_COLOR,
        timestamp=_now(),
    )
    for infraction in list(infractions)[:MAX_LISTED_INFRACTIONS]:
        emoji = INFRACTION_EMOJIS.get(infraction.type, "⚙️")
        embed.add_field(
            name=f"{emoji} {infraction.type.value} · {infraction.id}",
            value=(
                f"{infraction.reason}\n"
                f"By <@{infraction.moderator_id}> on <t:{int(infraction.created_at.timestamp())}:f>"
            ),
            inline=False,
        )
    if total > MAX_LISTED_INFRACTIONS:
        embed.set_footer(text=f"Showing the {MAX_LISTED_INFRACTIONS} most recent of {total}")
    return embed
