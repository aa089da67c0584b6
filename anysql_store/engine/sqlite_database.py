"""
SQLiteDatabase - RelationalDatabase backed by the stdlib sqlite3 driver.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Awaitable, Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from anysql_store.interfaces.relational import QueryResult, RelationalDatabase

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteDatabase(RelationalDatabase):
    """
    Async wrapper around a single sqlite3 connection.

    Every driver call runs on a one-thread executor, so the connection is
    only ever touched from that thread and statements execute in the order
    they were awaited. An asyncio.Lock hands the connection to one
    transaction at a time; plain queries wait while a transaction is open.
    """

    def __init__(self, path: str) -> None:
        """
        Initialize the database.

        Args:
            path: Database file path, or ":memory:" for a private in-memory database.
        """
        if not path or not path.strip():
            raise ValueError("path cannot be empty")

        self._path = path
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="anysql-sqlite")
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None
        self._closed = False

    def _check_reentry(self) -> None:
        # The transaction holding the lock would wait on itself forever
        if self._owner is not None and self._owner is asyncio.current_task():
            raise RuntimeError(
                "Database is held by a transaction in this task; use the transaction handle"
            )

    def _connect_sync(self) -> sqlite3.Connection:
        if self._connection is None:
            # isolation_level=None: BEGIN/COMMIT are issued explicitly
            conn = sqlite3.connect(self._path, isolation_level=None, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            self._connection = conn
            logger.debug(f"Opened SQLite database {self._path}")
        return self._connection

    def _execute_sync(self, sql: str, params: Sequence[Any]) -> QueryResult:
        conn = self._connect_sync()
        cursor = conn.execute(sql, tuple(params))
        try:
            rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
            affected = max(cursor.rowcount, 0)
        finally:
            cursor.close()
        return QueryResult(rows=rows, affected_rows=affected)

    def _close_sync(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    async def _execute(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        if self._closed:
            raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._execute_sync, sql, params)

    async def _create_table(self, name: str, definition: str, error_if_exists: bool) -> None:
        if_not_exists = "" if error_if_exists else "IF NOT EXISTS "
        await self._execute(f'CREATE TABLE {if_not_exists}"{name}" ({definition})')

    async def create_table(self, name: str, definition: str, error_if_exists: bool = False) -> None:
        self._check_reentry()
        async with self._lock:
            await self._create_table(name, definition, error_if_exists)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        self._check_reentry()
        async with self._lock:
            return await self._execute(sql, params)

    async def transaction(self, fn: Callable[[RelationalDatabase], Awaitable[T]]) -> T:
        self._check_reentry()
        async with self._lock:
            await self._execute("BEGIN")
            logger.debug("Transaction started")
            self._owner = asyncio.current_task()
            scope = _SQLiteTransaction(self)
            try:
                result = await fn(scope)
                await self._execute("COMMIT")
            except BaseException:
                await self._rollback()
                raise
            finally:
                scope._active = False
                self._owner = None
            logger.debug("Transaction committed")
            return result

    async def _rollback(self) -> None:
        try:
            await self._execute("ROLLBACK")
            logger.debug("Transaction rolled back")
        except Exception as e:
            # fn's exception is re-raised by the caller
            logger.warning(f"Rollback failed: {e}")

    async def close(self) -> None:
        if self._closed:
            return
        self._check_reentry()
        async with self._lock:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self._executor, self._close_sync)
            self._closed = True
        self._executor.shutdown(wait=True)
        logger.debug(f"Closed SQLite database {self._path}")


class _SQLiteTransaction(RelationalDatabase):
    """Handle given to a transaction callback; valid until the callback returns."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._database = database
        self._active = True

    def _check_active(self) -> None:
        if not self._active:
            raise sqlite3.ProgrammingError("Transaction is no longer active")

    async def create_table(self, name: str, definition: str, error_if_exists: bool = False) -> None:
        self._check_active()
        await self._database._create_table(name, definition, error_if_exists)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        self._check_active()
        return await self._database._execute(sql, params)

    async def transaction(self, fn: Callable[[RelationalDatabase], Awaitable[T]]) -> T:
        # SQLite has no nested BEGIN; join the open transaction
        self._check_active()
        return await fn(self)

    async def close(self) -> None:
        raise sqlite3.ProgrammingError("Cannot close the database from inside a transaction")
