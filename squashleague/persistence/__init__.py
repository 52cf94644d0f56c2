from .memory import MemoryStore
from .migrations import apply_migrations
from .sql_store import SQLStore
from .sqlite import open_sqlite_store
from .store import Store

__all__ = [
    "Store",
    "MemoryStore",
    "SQLStore",
    "open_sqlite_store",
    "apply_migrations",
]
