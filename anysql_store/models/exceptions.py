"""
Custom exceptions for the key-value store.
"""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Kind of failure reported by the store."""

    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    SOME_MISSING = "some_missing"
    INVALID_KEY_COMPONENT = "invalid_key_component"
    INVALID_RANGE_OPTIONS = "invalid_range_options"
    UNSUPPORTED_VALUE_TYPE = "unsupported_value_type"
    CLOSED = "closed"


class StoreError(Exception):
    """Base class for every error raised by the store."""

    kind: ErrorKind


class NotFoundError(StoreError):
    """
    Raised when a point read, delete or update-only put targets a missing key.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Item not found (key={key!r})")


class AlreadyExistsError(StoreError):
    """Raised when a strict insert collides with an existing key."""

    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Item already exists (key={key!r})")


class SomeMissingError(StoreError):
    """Raised when a batch read finds fewer items than requested."""

    kind = ErrorKind.SOME_MISSING

    def __init__(self, missing: list[Any]):
        """
        Initialize the error.

        Args:
            missing: The requested keys that were not found, in request order.
        """
        self.missing = missing
        super().__init__(f"Some items not found ({len(missing)} missing)")


class InvalidKeyComponentError(StoreError, ValueError):
    """Raised when a key contains a component that cannot be encoded."""

    kind = ErrorKind.INVALID_KEY_COMPONENT


class InvalidRangeOptionsError(StoreError, ValueError):
    """Raised on conflicting or malformed range selector options."""

    kind = ErrorKind.INVALID_RANGE_OPTIONS


class UnsupportedValueTypeError(StoreError, TypeError):
    """Raised when a value cannot be encoded or a blob cannot be decoded."""

    kind = ErrorKind.UNSUPPORTED_VALUE_TYPE


class StoreClosedError(StoreError):
    """Raised when an operation is attempted on a closed store."""

    kind = ErrorKind.CLOSED

    def __init__(self) -> None:
        super().__init__("Store is closed")
