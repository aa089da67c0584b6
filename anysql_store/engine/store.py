"""
Store - Main key-value store API.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, TypeVar

from anysql_store.engine.respiration import Respirator
from anysql_store.engine.sqlite_database import SQLiteDatabase
from anysql_store.interfaces.relational import RelationalDatabase
from anysql_store.models.exceptions import (
    AlreadyExistsError,
    NotFoundError,
    SomeMissingError,
    StoreClosedError,
)
from anysql_store.models.item import Item
from anysql_store.models.key_codec import decode_key, encode_key, normalize_key
from anysql_store.models.options import StoreOptions
from anysql_store.models.range_selector import (
    RangeSelector,
    check_selector_options,
    normalize_range,
)
from anysql_store.models.value_codec import decode_value, encode_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _SharedState:
    """
    State owned by the root store and shared by reference with its
    transaction contexts.
    """

    def __init__(self) -> None:
        self.initialized = False
        self.closed = False
        self.init_lock = asyncio.Lock()


class Store:
    """
    Key-value store on top of a relational database.

    Provides:
    - get(key), put(key, value), delete(key): point operations
    - get_many(keys), put_many(items), delete_many(keys): bulk operations
    - get_range(...), count_range(...), delete_range(...): ordered range operations
    - transaction(fn): run fn against a transaction-bound store

    Keys are sequences of components (None, bool, number, str, nested
    sequences) stored under an order-preserving binary encoding, so range
    scans come back in logical key order. Values are stored as opaque blobs.

    Storage:
    - One table with a BLOB "key" primary key and a nullable BLOB "value"
    - Created on first use
    """

    TABLE_DEFINITION = '"key" BLOB NOT NULL, "value" BLOB, PRIMARY KEY ("key")'

    def __init__(self, database: RelationalDatabase, options: StoreOptions | None = None) -> None:
        """
        Initialize the store.

        Args:
            database: Relational capability the pairs are stored in.
            options: Store configuration; defaults to StoreOptions().
        """
        self._database = database
        self._options = options or StoreOptions()
        self._table = self._options.table_name
        self._state = _SharedState()
        self._inside_transaction = False

    @classmethod
    def open(cls, path: str, options: StoreOptions | None = None) -> "Store":
        """
        Create a store backed by a SQLite database file.

        Args:
            path: Database file path, or ":memory:".
            options: Store configuration.
        """
        return cls(SQLiteDatabase(path), options)

    def _derive(self, database: RelationalDatabase) -> "Store":
        """Build a transaction context sharing this store's options and state."""
        child = type(self)(database, self._options)
        child._state = self._state
        child._inside_transaction = True
        return child

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def inside_transaction(self) -> bool:
        return self._inside_transaction

    async def _initialize(self) -> None:
        """
        Create the table on first use.

        Concurrent first calls are serialized on a lock so the table is
        only created once.
        """
        state = self._state
        if state.closed:
            raise StoreClosedError()
        if state.initialized:
            return
        if self._inside_transaction:
            raise RuntimeError("Cannot initialize the database inside a transaction")

        async with state.init_lock:
            if state.initialized:
                return
            await self._database.create_table(self._table, self.TABLE_DEFINITION, error_if_exists=False)
            state.initialized = True
            logger.debug(f"Initialized table {self._table}")

    def _decode_row(self, row: dict[str, Any], return_values: bool) -> Item:
        item = Item(key=decode_key(row["key"]))
        if return_values:
            item.value = self._decode_value(row["value"])
        return item

    @staticmethod
    def _decode_value(data: bytes | None) -> Any:
        return None if data is None else decode_value(data)

    def _normalize_selector(self, options: dict[str, Any]) -> RangeSelector:
        check_selector_options(options)
        return normalize_range(**options, default_limit=self._options.default_limit)

    async def get(self, key: Any, error_if_missing: bool = True) -> Any:
        """
        Retrieve the value stored under a key.

        Args:
            key: The key to look up.
            error_if_missing: Raise NotFoundError instead of returning None.

        Returns:
            The decoded value, or None if missing and error_if_missing is False.
        """
        key = normalize_key(key)
        encoded_key = encode_key(key)
        await self._initialize()

        sql = f'SELECT "value" FROM "{self._table}" WHERE "key" = ?'
        result = await self._database.query(sql, [encoded_key])
        if not result.rows:
            if error_if_missing:
                raise NotFoundError(key)
            return None
        return self._decode_value(result.rows[0]["value"])

    async def put(
        self,
        key: Any,
        value: Any,
        create_if_missing: bool = True,
        error_if_exists: bool = False,
    ) -> None:
        """
        Store a value under a key.

        Modes:
        - error_if_exists=True: strict insert, AlreadyExistsError on collision
        - create_if_missing=True (default): insert or replace
        - create_if_missing=False: update only, NotFoundError if the key is absent
        """
        key = normalize_key(key)
        encoded_key = encode_key(key)
        encoded_value = encode_value(value)
        await self._initialize()

        if error_if_exists:
            sql = f'INSERT OR IGNORE INTO "{self._table}" ("key", "value") VALUES (?, ?)'
            result = await self._database.query(sql, [encoded_key, encoded_value])
            if not result.affected_rows:
                raise AlreadyExistsError(key)
        elif create_if_missing:
            sql = f'REPLACE INTO "{self._table}" ("key", "value") VALUES (?, ?)'
            await self._database.query(sql, [encoded_key, encoded_value])
        else:
            sql = f'UPDATE "{self._table}" SET "value" = ? WHERE "key" = ?'
            result = await self._database.query(sql, [encoded_value, encoded_key])
            if not result.affected_rows:
                raise NotFoundError(key)

    async def delete(self, key: Any, error_if_missing: bool = True) -> bool:
        """
        Delete a key.

        Returns:
            True if a row was removed, False if the key was missing and
            error_if_missing is False.
        """
        key = normalize_key(key)
        encoded_key = encode_key(key)
        await self._initialize()

        sql = f'DELETE FROM "{self._table}" WHERE "key" = ?'
        result = await self._database.query(sql, [encoded_key])
        if not result.affected_rows and error_if_missing:
            raise NotFoundError(key)
        return bool(result.affected_rows)

    async def get_many(
        self,
        keys: Sequence[Any],
        error_if_missing: bool = True,
        return_values: bool = True,
    ) -> list[Item]:
        """
        Retrieve several keys at once.

        Keys are looked up batch_size at a time. Results follow the order of
        `keys`; missing keys are left out.

        Raises:
            SomeMissingError: If a key is missing and error_if_missing is True.
        """
        if not isinstance(keys, (list, tuple)):
            raise TypeError("Invalid keys (should be a list or tuple)")
        if not keys:
            if self._state.closed:
                raise StoreClosedError()
            return []
        keys = [normalize_key(key) for key in keys]
        encoded_keys = [encode_key(key) for key in keys]
        await self._initialize()

        respirator = Respirator(self._options.respiration_rate)
        columns = '"key", "value"' if return_values else '"key"'
        unique_keys = list(dict.fromkeys(encoded_keys))
        found: dict[bytes, dict[str, Any]] = {}

        batch_size = self._options.batch_size
        for i in range(0, len(unique_keys), batch_size):
            batch = unique_keys[i : i + batch_size]
            placeholders = ",".join("?" * len(batch))
            sql = f'SELECT {columns} FROM "{self._table}" WHERE "key" IN ({placeholders})'
            result = await self._database.query(sql, batch)
            for row in result.rows:
                found[bytes(row["key"])] = row
                await respirator.breathe()

        items = []
        missing = []
        for key, encoded_key in zip(keys, encoded_keys):
            row = found.get(encoded_key)
            if row is None:
                missing.append(key)
            else:
                # Decoded per position so repeated keys yield independent items
                items.append(self._decode_row(row, return_values))
            await respirator.breathe()

        if missing and error_if_missing:
            raise SomeMissingError(missing)
        return items

    async def put_many(
        self,
        items: Iterable[Item | tuple[Any, Any]],
        create_if_missing: bool = True,
        error_if_exists: bool = False,
    ) -> None:
        """
        Store several pairs in one transaction.

        Args:
            items: Item instances or (key, value) pairs.
            create_if_missing: See put().
            error_if_exists: See put().
        """
        pairs = [(item.key, item.value) if isinstance(item, Item) else tuple(item) for item in items]

        async def put_all(store: "Store") -> None:
            respirator = Respirator(self._options.respiration_rate)
            for key, value in pairs:
                await store.put(
                    key,
                    value,
                    create_if_missing=create_if_missing,
                    error_if_exists=error_if_exists,
                )
                await respirator.breathe()

        await self.transaction(put_all)

    async def delete_many(self, keys: Iterable[Any], error_if_missing: bool = True) -> int:
        """
        Delete several keys in one transaction.

        Returns:
            Number of rows removed.
        """
        keys = list(keys)

        async def delete_all(store: "Store") -> int:
            respirator = Respirator(self._options.respiration_rate)
            deleted = 0
            for key in keys:
                if await store.delete(key, error_if_missing=error_if_missing):
                    deleted += 1
                await respirator.breathe()
            return deleted

        return await self.transaction(delete_all)

    async def get_range(self, return_values: bool = True, **options: Any) -> list[Item]:
        """
        Retrieve the items in a key range.

        Options: prefix, start, start_after, end, end_before, reverse, limit.

        Returns:
            Items in ascending key order (descending if reverse).
        """
        selector = self._normalize_selector(options)
        await self._initialize()

        columns = '"key", "value"' if return_values else '"key"'
        order = "DESC" if selector.reverse else "ASC"
        sql = (
            f'SELECT {columns} FROM "{self._table}" WHERE {selector.where()}'
            f' ORDER BY "key" {order} LIMIT ?'
        )
        result = await self._database.query(sql, [*selector.params(), selector.limit])

        respirator = Respirator(self._options.respiration_rate)
        items = []
        for row in result.rows:
            items.append(self._decode_row(row, return_values))
            await respirator.breathe()
        return items

    async def count_range(self, **options: Any) -> int:
        """Count the keys in a range (same options as get_range())."""
        selector = self._normalize_selector(options)
        await self._initialize()

        sql = f'SELECT COUNT(*) AS "count" FROM "{self._table}" WHERE {selector.where()}'
        result = await self._database.query(sql, selector.params())
        if len(result.rows) != 1 or "count" not in result.rows[0]:
            raise RuntimeError(f"Invalid COUNT result: {result.rows!r}")
        return result.rows[0]["count"]

    async def delete_range(self, **options: Any) -> int:
        """
        Delete the keys in a range (same options as get_range()).

        Returns:
            Number of rows removed.
        """
        selector = self._normalize_selector(options)
        await self._initialize()

        sql = f'DELETE FROM "{self._table}" WHERE {selector.where()}'
        result = await self._database.query(sql, selector.params())
        return result.affected_rows

    find_and_delete = delete_range

    async def transaction(self, fn: Callable[["Store"], Awaitable[T]]) -> T:
        """
        Run fn inside a transaction.

        fn receives a store bound to the transaction. Changes commit when fn
        returns and roll back when it raises; the exception propagates. Inside
        a transaction, fn is simply called with the current context.

        Returns:
            Whatever fn returns.
        """
        if self._inside_transaction:
            return await fn(self)
        await self._initialize()

        async def run(database: RelationalDatabase) -> T:
            return await fn(self._derive(database))

        return await self._database.transaction(run)

    async def close(self) -> None:
        """Release the database connection. The store is unusable afterwards."""
        if self._inside_transaction:
            raise RuntimeError("Cannot close the store from inside a transaction")
        if self._state.closed:
            return
        self._state.closed = True
        await self._database.close()

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
