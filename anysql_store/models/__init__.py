"""
Data models for the key-value store.
"""

from anysql_store.models.exceptions import ErrorKind, StoreError
from anysql_store.models.item import Item
from anysql_store.models.options import StoreOptions
from anysql_store.models.range_selector import Bound, RangeSelector, normalize_range

__all__ = [
    "Bound",
    "ErrorKind",
    "Item",
    "RangeSelector",
    "StoreError",
    "StoreOptions",
    "normalize_range",
]
