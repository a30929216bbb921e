"""Connection and transaction handling.

Repositories never open connections themselves; they ask the ``Database``
for one. Inside ``Database.transaction()`` every repository call made from
the same task reuses the transaction's connection, so a service can compose
several repository calls into one atomic unit::

    async with database.transaction():
        await plans.deactivate(old_plan.id)
        plan_id = await plans.create(new_plan)
"""

import logging
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import AsyncIterator, Iterator

import aiosqlite

from ..exceptions import ConflictError, InfrastructureError
from .engine import get_db_path

logger = logging.getLogger(__name__)


@contextmanager
def classify_errors(action: str) -> Iterator[None]:
    """Translate driver errors into Conflict / Infrastructure errors."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        raise ConflictError(str(e)) from e
    except sqlite3.Error as e:
        logger.error("Database error during %s: %s", action, e)
        raise InfrastructureError(f"{action} failed", e) from e


class Database:
    """Handle on the SQLite database shared by all repositories."""

    def __init__(
        self,
        db_path: Path | None = None,
        read_timeout: float = 5.0,
        write_timeout: float = 10.0,
    ):
        self.db_path = db_path or get_db_path()
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self._current: ContextVar[aiosqlite.Connection | None] = ContextVar(
            f"fitup_tx_{id(self)}", default=None
        )

    async def _open(self, timeout: float) -> aiosqlite.Connection:
        # isolation_level=None: statements autocommit unless inside BEGIN
        conn = await aiosqlite.connect(self.db_path, timeout=timeout, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the active transaction's connection, or a fresh autocommit one."""
        current = self._current.get()
        if current is not None:
            with classify_errors("database operation"):
                yield current
            return

        with classify_errors("database operation"):
            conn = await self._open(self.read_timeout)
            try:
                yield conn
            finally:
                await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed repository calls in one transaction.

        Commits when the block exits normally and rolls back on any
        exception, cancellation included. Nested calls join the outer
        transaction.
        """
        current = self._current.get()
        if current is not None:
            yield current
            return

        with classify_errors("transaction"):
            conn = await self._open(self.write_timeout)
            token = self._current.set(conn)
            try:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException:
                    await conn.rollback()
                    raise
                await conn.commit()
            finally:
                self._current.reset(token)
                await conn.close()
