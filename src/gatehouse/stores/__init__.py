"""Built-in bucket store backends."""

from gatehouse.stores.memory import MemoryStore
from gatehouse.stores.sqlite_store import SQLiteStore

__all__ = ["MemoryStore", "SQLiteStore"]
