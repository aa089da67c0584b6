"""
RelationalDatabase abstract base class for the SQL capability the store runs on.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass
class QueryResult:
    """
    Outcome of a single statement.

    Attributes:
        rows: Result rows keyed by column name (empty for writes).
        affected_rows: Rows changed by an INSERT/UPDATE/DELETE (0 for reads).
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    affected_rows: int = 0


class RelationalDatabase(ABC):
    """
    Minimal relational capability: run SQL, scope transactions, close.

    Implementations:
    - SQLiteDatabase: stdlib sqlite3 driven from a worker thread
    """

    @abstractmethod
    async def create_table(self, name: str, definition: str, error_if_exists: bool = False) -> None:
        """
        Create a table.

        Args:
            name: Table name.
            definition: Column and constraint definitions, without parentheses.
            error_if_exists: Fail if the table already exists instead of
                leaving it untouched.
        """
        pass

    @abstractmethod
    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        Execute one statement with positional '?' parameters.

        Returns:
            QueryResult with rows for reads and affected_rows for writes.
        """
        pass

    @abstractmethod
    async def transaction(self, fn: Callable[["RelationalDatabase"], Awaitable[T]]) -> T:
        """
        Run fn inside a transaction.

        fn receives a RelationalDatabase bound to the transaction. The
        transaction commits when fn returns and rolls back when it raises;
        the exception raised by fn is propagated.

        Returns:
            Whatever fn returns.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
        pass
