"""
Database coordinator for ModWarden.

Ties together the connection manager, schema creation, the infraction
store, and query timing. One ``Database`` is created by ``main`` and
handed to whatever needs it; there is no module-level instance.

Lifecycle:
    1. ``await database.initialize()`` at startup
    2. use ``database.infractions``
    3. ``await database.close()`` on shutdown (also from signal handlers)
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import aiosqlite

from modwarden.database.db_connection import ConnectionManager
from modwarden.database.db_perf_mon import DatabasePerformanceMonitor
from modwarden.database.db_schema import SchemaManager
from modwarden.database.infractions import InfractionStore, InfractionStoreError
from modwarden.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/bot.db").resolve()


class Database:
    """
    Owns the SQLite connection and exposes the infraction store built on it.
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self.db_perf_mon = DatabasePerformanceMonitor()
        self._connection = ConnectionManager()
        self.infractions = InfractionStore(self._connection, self.db_perf_mon)

    @property
    def is_open(self) -> bool:
        return self._connection.is_open

    async def initialize(self) -> None:
        """
        Open the database file (creating ``data/`` if needed) and create the schema.

        Raises:
            InfractionStoreError: If the file cannot be opened or the schema cannot be created
        """
        if self._connection.is_open:
            logger.debug("[DATABASE] Already initialized, skipping")
            return

        try:
            await self._connection.open(self.db_path)
            async with self._connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)
        except aiosqlite.Error as exc:
            await self._connection.close()
            raise InfractionStoreError(f"database initialization failed: {exc}") from exc

        logger.info("[DATABASE] Database initialized at %s", self.db_path)

    async def backup(self, backup_path: Path) -> None:
        """
        Copy the live database to ``backup_path`` with SQLite's online backup.
        """
        backup_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self._connection.read() as conn:
                async with aiosqlite.connect(backup_path) as target:
                    await conn.backup(target)
        except aiosqlite.Error as exc:
            raise InfractionStoreError(f"backup to {backup_path} failed: {exc}") from exc
        logger.info("[DATABASE] Backed up to %s", backup_path)

    def get_db_performance_stats(self) -> Dict[str, Dict[str, float]]:
        return self.db_perf_mon.get_statistics()

    async def close(self) -> None:
        """
        Flush and close the database. A second call is a no-op.
        """
        if not self._connection.is_open:
            return
        await self.infractions.close()
        logger.info("[DATABASE] Database shutdown complete")
