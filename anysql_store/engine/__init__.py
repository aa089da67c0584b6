from anysql_store.engine.sqlite_database import SQLiteDatabase
from anysql_store.engine.store import Store

__all__ = ["SQLiteDatabase", "Store"]
