"""
StoreOptions - tunables shared by a store and its transaction contexts.
"""

import logging
import os
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class StoreOptions:
    """
    Configuration for a Store.

    Attributes:
        table_name: Name of the table holding the key/value pairs.
        default_limit: Row cap applied to range reads without an explicit limit.
        batch_size: Number of keys per IN (...) clause in get_many().
        respiration_rate: Iterations between cooperative yields in long loops.
    """

    DEFAULT_TABLE_NAME = "pairs"
    DEFAULT_LIMIT = 50000
    DEFAULT_BATCH_SIZE = 500
    DEFAULT_RESPIRATION_RATE = 250

    table_name: str = DEFAULT_TABLE_NAME
    default_limit: int = DEFAULT_LIMIT
    batch_size: int = DEFAULT_BATCH_SIZE
    respiration_rate: int = DEFAULT_RESPIRATION_RATE

    def __post_init__(self) -> None:
        if not _IDENTIFIER.match(self.table_name):
            raise ValueError(f"table_name must be a plain SQL identifier, got {self.table_name!r}")
        if self.default_limit < 0:
            raise ValueError(f"default_limit must be >= 0, got {self.default_limit}")
        # SQLite caps bound parameters at 999 on older builds
        if not 0 < self.batch_size <= 999:
            raise ValueError(f"batch_size must be between 1 and 999, got {self.batch_size}")
        if self.respiration_rate <= 0:
            raise ValueError(f"respiration_rate must be positive, got {self.respiration_rate}")

    @classmethod
    def from_env(cls) -> "StoreOptions":
        """Build options from ANYSQL_STORE_* environment variables."""

        def _int(name: str, default: int) -> int:
            raw = os.environ.get(name)
            if raw is None:
                return default
            try:
                return int(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid integer {name}={raw!r}, using {default}")
                return default

        return cls(
            table_name=os.environ.get("ANYSQL_STORE_TABLE", cls.DEFAULT_TABLE_NAME),
            default_limit=_int("ANYSQL_STORE_DEFAULT_LIMIT", cls.DEFAULT_LIMIT),
            batch_size=_int("ANYSQL_STORE_BATCH_SIZE", cls.DEFAULT_BATCH_SIZE),
            respiration_rate=_int("ANYSQL_STORE_RESPIRATION_RATE", cls.DEFAULT_RESPIRATION_RATE),
        )
