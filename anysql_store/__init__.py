"""
Key-value store on top of a relational database.

This package provides:
- Store.get / put / delete - point operations on composite keys
- Store.get_many / put_many / delete_many - bulk operations
- Store.get_range / count_range / delete_range - ordered range operations
- Store.transaction - transaction-scoped store contexts
- encode_key / decode_key - order-preserving key encoding
"""

from anysql_store.engine.sqlite_database import SQLiteDatabase
from anysql_store.engine.store import Store
from anysql_store.models.exceptions import (
    AlreadyExistsError,
    ErrorKind,
    InvalidKeyComponentError,
    InvalidRangeOptionsError,
    NotFoundError,
    SomeMissingError,
    StoreClosedError,
    StoreError,
    UnsupportedValueTypeError,
)
from anysql_store.models.item import Item
from anysql_store.models.key_codec import compare_keys, decode_key, encode_key
from anysql_store.models.options import StoreOptions
from anysql_store.models.value_codec import decode_value, encode_value

__all__ = [
    "AlreadyExistsError",
    "ErrorKind",
    "InvalidKeyComponentError",
    "InvalidRangeOptionsError",
    "Item",
    "NotFoundError",
    "SQLiteDatabase",
    "SomeMissingError",
    "Store",
    "StoreClosedError",
    "StoreError",
    "StoreOptions",
    "UnsupportedValueTypeError",
    "compare_keys",
    "decode_key",
    "decode_value",
    "encode_key",
    "encode_value",
]
