"""
Append-only infraction ledger.

Infractions are written once and never updated or deleted. Each row gets a
short random external ID. The ID is checked against the table before the
insert, and the table's PRIMARY KEY catches anything that check misses
(another process writing the same file). A collision on either path just
means a new ID is drawn; callers never see it.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

import aiosqlite

from modwarden.database.db_connection import ConnectionClosedError, ConnectionManager
from modwarden.database.db_perf_mon import DatabasePerformanceMonitor
from modwarden.datatypes.infraction_datatypes import Infraction, InfractionType
from modwarden.util.logger import get_logger

logger = get_logger("database_infractions")

ID_ALPHABET = string.ascii_uppercase + string.digits
ID_LENGTH = 8

_COLUMNS = "id, user_id, guild_id, moderator_id, type, reason, created_at"


class InfractionStoreError(Exception):
    """Raised when the underlying storage fails to read or write."""


def generate_infraction_id() -> str:
    """Return a random 8-character identifier drawn from A-Z and 0-9."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def _is_id_collision(error: aiosqlite.IntegrityError) -> bool:
    message = str(error)
    return "UNIQUE constraint failed" in message and "user_infractions.id" in message


def _coerce_type(value: Union[InfractionType, str]) -> InfractionType:
    if isinstance(value, InfractionType):
        return value
    try:
        return InfractionType(str(value).upper())
    except ValueError:
        raise ValueError(f"unknown infraction type: {value!r}") from None


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_infraction(row: aiosqlite.Row) -> Infraction:
    return Infraction(
        id=row["id"],
        user_id=row["user_id"],
        guild_id=row["guild_id"],
        moderator_id=row["moderator_id"],
        type=InfractionType(row["type"]),
        reason=row["reason"],
        created_at=_parse_timestamp(row["created_at"]),
    )


class InfractionStore:
    """Durable ledger of moderation actions, scoped by (user_id, guild_id).

    All IDs are stored as text so Discord snowflakes (ints) and plain
    strings compare equal once written.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        performance: Optional[DatabasePerformanceMonitor] = None,
        id_factory: Callable[[], str] = generate_infraction_id,
    ):
        """
        Args:
            connection: Open connection manager; its write semaphore serialises inserts
            performance: Monitor that receives query timings
            id_factory: Source of candidate IDs
        """
        self._connection = connection
        self._performance = performance or DatabasePerformanceMonitor()
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _id_exists(self, conn: aiosqlite.Connection, infraction_id: str) -> bool:
        cursor = await conn.execute("SELECT 1 FROM user_infractions WHERE id = ?", (infraction_id,))
        return await cursor.fetchone() is not None

    async def _unique_id(self, conn: aiosqlite.Connection) -> str:
        while True:
            candidate = self._id_factory()
            if not await self._id_exists(conn, candidate):
                return candidate
            logger.debug("[INFRACTIONS] Generated ID %s already exists; regenerating", candidate)

    async def add_infraction(
        self,
        user_id: Union[str, int],
        guild_id: Union[str, int],
        moderator_id: Union[str, int],
        type: Union[InfractionType, str],
        reason: str,
    ) -> str:
        """
        Record a new infraction and return its generated ID.

        The row is committed before this returns.

        Raises:
            ValueError: If an ID is empty, the reason is not a string, or the type is unknown
            InfractionStoreError: If the database write fails
        """
        infraction_type = _coerce_type(type)
        for name, value in (("user_id", user_id), ("guild_id", guild_id), ("moderator_id", moderator_id)):
            if value is None or str(value) == "":
                raise ValueError(f"{name} is required")
        if not isinstance(reason, str):
            raise ValueError("reason must be a string")

        with self._performance.timed("add_infraction"):
            while True:
                created_at = datetime.now(timezone.utc).isoformat(timespec="microseconds")
                try:
                    async with self._connection.transaction() as conn:
                        infraction_id = await self._unique_id(conn)
                        await conn.execute(
                            f"INSERT INTO user_infractions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                            (
                                infraction_id,
                                str(user_id),
                                str(guild_id),
                                str(moderator_id),
                                infraction_type.value,
                                reason,
                                created_at,
                            ),
                        )
                except aiosqlite.IntegrityError as exc:
                    if not _is_id_collision(exc):
                        raise InfractionStoreError(f"failed to add infraction: {exc}") from exc
                    logger.warning("[INFRACTIONS] ID %s taken by a concurrent writer; regenerating", infraction_id)
                    continue
                except (aiosqlite.Error, ConnectionClosedError) as exc:
                    raise InfractionStoreError(f"failed to add infraction: {exc}") from exc
                break

        logger.info(
            "[INFRACTIONS] Recorded %s %s for user %s in guild %s by %s",
            infraction_type.value, infraction_id, user_id, guild_id, moderator_id,
        )
        return infraction_id

    async def add_warning(
        self,
        user_id: Union[str, int],
        guild_id: Union[str, int],
        moderator_id: Union[str, int],
        reason: str,
    ) -> str:
        """Shorthand for ``add_infraction`` with type WARN."""
        return await self.add_infraction(user_id, guild_id, moderator_id, InfractionType.WARN, reason)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fetchall(self, query_name: str, sql: str, params: tuple) -> List[aiosqlite.Row]:
        with self._performance.timed(query_name):
            try:
                async with self._connection.read() as conn:
                    cursor = await conn.execute(sql, params)
                    return list(await cursor.fetchall())
            except (aiosqlite.Error, ConnectionClosedError) as exc:
                raise InfractionStoreError(f"{query_name} failed: {exc}") from exc

    @staticmethod
    def _scope_filter(user_id, guild_id, type) -> tuple[str, tuple]:
        clause = "user_id = ? AND guild_id = ?"
        params: tuple = (str(user_id), str(guild_id))
        if type is not None:
            clause += " AND type = ?"
            params += (_coerce_type(type).value,)
        return clause, params

    async def get_user_infractions(
        self,
        user_id: Union[str, int],
        guild_id: Union[str, int],
        type: Union[InfractionType, str, None] = None,
    ) -> List[Infraction]:
        """
        Return the user's infractions in a guild, newest first.

        Rows created in the same instant come back most recent insert first.
        ``type`` restricts the result to a single kind.
        """
        clause, params = self._scope_filter(user_id, guild_id, type)
        rows = await self._fetchall(
            "get_user_infractions",
            f"SELECT {_COLUMNS} FROM user_infractions WHERE {clause} ORDER BY created_at DESC, rowid DESC",
            params,
        )
        return [_row_to_infraction(row) for row in rows]

    async def get_infraction_count(
        self,
        user_id: Union[str, int],
        guild_id: Union[str, int],
        type: Union[InfractionType, str, None] = None,
    ) -> int:
        """Count the user's infractions in a guild, with the same filter as ``get_user_infractions``."""
        clause, params = self._scope_filter(user_id, guild_id, type)
        rows = await self._fetchall(
            "get_infraction_count",
            f"SELECT COUNT(*) AS count FROM user_infractions WHERE {clause}",
            params,
        )
        return rows[0]["count"] if rows else 0

    async def get_infraction_by_id(self, infraction_id: str) -> Optional[Infraction]:
        rows = await self._fetchall(
            "get_infraction_by_id",
            f"SELECT {_COLUMNS} FROM user_infractions WHERE id = ?",
            (infraction_id,),
        )
        return _row_to_infraction(rows[0]) if rows else None

    async def get_stats(self) -> Dict[str, int]:
        """
        Return ledger totals: ``{"total": n, "WARN": n, "MUTE": n, ...}``.

        Every infraction type is present, with 0 when it has no rows.
        """
        rows = await self._fetchall(
            "get_stats",
            "SELECT type, COUNT(*) AS count FROM user_infractions GROUP BY type",
            (),
        )
        stats = {infraction_type.value: 0 for infraction_type in InfractionType}
        for row in rows:
            stats[row["type"]] = row["count"]
        stats["total"] = sum(row["count"] for row in rows)
        return stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the underlying connection. Safe to call more than once."""
        await self._connection.close()
