"""
Abstract base classes for the capabilities the store depends on.
"""

from anysql_store.interfaces.relational import QueryResult, RelationalDatabase

__all__ = ["QueryResult", "RelationalDatabase"]
