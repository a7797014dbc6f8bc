"""
guard.py - Concurrency guard for state-mutating game operations.

All writes share one aiosqlite connection, so every write runs inside
``transaction()``, which serializes writers on that connection and wraps them
in ``BEGIN IMMEDIATE`` (SQLite's reserved write lock, which also excludes
other processes). Operations that mutate a single session additionally hold a
per-row lock for the whole read-compute-write (``run_locked``), and commit
with a conditional UPDATE whose predicate re-asserts the expected pre-state.

Every store round trip is bounded by ``timeout``; on expiry the operation
fails closed with ``Unavailable`` and the open transaction is rolled back.
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Tuple, TypeVar

import aiosqlite

from arena.errors import Unavailable

logger = logging.getLogger("storage")

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT = 5.0


class ConcurrencyGuard:
    """Row locks + immediate transactions over a shared connection."""

    def __init__(self, db: aiosqlite.Connection, timeout: float = DEFAULT_STORE_TIMEOUT):
        self._db = db
        self.timeout = timeout
        self._write_lock = asyncio.Lock()
        self._row_locks: Dict[Tuple[str, Any], asyncio.Lock] = {}
        self._row_waiters: Dict[Tuple[str, Any], int] = {}

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self):
        """Exclusive write transaction; commits on success, rolls back on any error."""
        async with self._write_lock:
            try:
                await self._db.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as e:
                raise Unavailable(f"Store is busy: {e}") from e
            try:
                yield self._db
            except BaseException:
                try:
                    await self._db.rollback()
                except Exception:
                    logger.exception("Rollback failed")
                raise
            else:
                await self._db.commit()

    @asynccontextmanager
    async def row_lock(self, table: str, row_id: Any):
        """Hold the in-process lock for exactly one row."""
        key = (table, row_id)
        lock = self._row_locks.get(key)
        if lock is None:
            lock = self._row_locks[key] = asyncio.Lock()
        self._row_waiters[key] = self._row_waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._row_waiters[key] -= 1
            if self._row_waiters[key] == 0:
                del self._row_waiters[key]
                del self._row_locks[key]

    # -------------------------------------------------------------------
    # Bounded execution
    # -------------------------------------------------------------------

    async def bounded(self, awaitable: Awaitable[T]) -> T:
        """Await a store call, failing closed with Unavailable on timeout."""
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError:
            logger.error("Store call exceeded %.1fs", self.timeout)
            raise Unavailable("Game store did not respond in time; re-query the session state")
        except sqlite3.OperationalError as e:
            logger.exception("Store call failed")
            raise Unavailable(f"Game store unavailable: {e}") from e

    async def run_locked(
        self, table: str, row_id: Any, fn: Callable[[aiosqlite.Connection], Awaitable[T]],
    ) -> T:
        """Run ``fn(db)`` under the row lock inside one immediate transaction."""

        async def _locked():
            async with self.row_lock(table, row_id):
                async with self.transaction() as db:
                    return await fn(db)

        return await self.bounded(_locked())

    async def run_write(self, fn: Callable[[aiosqlite.Connection], Awaitable[T]]) -> T:
        """Run ``fn(db)`` inside one immediate transaction (no row lock)."""

        async def _write():
            async with self.transaction() as db:
                return await fn(db)

        return await self.bounded(_write())
