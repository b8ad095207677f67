"""Status store implementations."""

from .base import StatusStore
from .sqlite_store import SQLiteStatusStore

__all__ = ["StatusStore", "SQLiteStatusStore"]
