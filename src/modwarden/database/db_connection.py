"""
Single long-lived aiosqlite connection with serialised writes.

One connection is opened for the whole bot lifecycle. Reads go straight to
it; writes go through ``transaction()``, which holds a semaphore so only
one coroutine writes at a time. That semaphore is also what makes the
infraction store's check-then-insert atomic within the process. ``close()``
waits for in-flight reads and writes before checkpointing the WAL.

Usage
-----
    manager = ConnectionManager()
    await manager.open(path)

    async with manager.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with manager.transaction() as conn:
        await conn.execute("INSERT ...")
        # commits on clean exit, rolls back on exception

    await manager.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from modwarden.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA cache_size = 10000",
    "PRAGMA temp_store = MEMORY",
]


class ConnectionClosedError(RuntimeError):
    """Raised when the connection is used before ``open()`` or after ``close()``."""


class ConnectionManager:
    """Owns the aiosqlite connection and the single-writer semaphore."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._active_reads = 0
        self._reads_idle = asyncio.Event()
        self._reads_idle.set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self, path: Path) -> None:
        """
        Open the database file, creating its directory, and apply pragmas.

        Args:
            path: Path to the SQLite database file.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] open() called but connection already exists; ignoring")
            return

        path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(path)
        self._conn.row_factory = aiosqlite.Row

        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()

        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """
        Flush the WAL into the main file and close the connection.

        Calling this on a closed manager is a no-op.
        """
        if self._conn is None:
            return

        conn, self._conn = self._conn, None
        # In-flight writes and reads finish before the checkpoint
        async with self._write_sem:
            await self._reads_idle.wait()
            try:
                await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                await conn.commit()
            except aiosqlite.Error:
                logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
            finally:
                await conn.close()
                logger.info("[DB CONNECTION] Connection closed")

    # ------------------------------------------------------------------
    # Connection access
    # ------------------------------------------------------------------

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw aiosqlite connection.

        Raises:
            ConnectionClosedError: If the connection is not open.
        """
        if self._conn is None:
            raise ConnectionClosedError("database connection is not open")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction: commits on clean exit, rolls back on error.

        Raises:
            ConnectionClosedError: If the connection is not open.
        """
        async with self._write_sem:
            conn = self.connection
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Read access. Readers never wait on each other or on writers; close() waits on them."""
        conn = self.connection
        self._active_reads += 1
        self._reads_idle.clear()
        try:
            yield conn
        finally:
            self._active_reads -= 1
            if not self._active_reads:
                self._reads_idle.set()
