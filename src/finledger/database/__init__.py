"""Database layer for finledger application."""

from finledger.database.base import Database
from finledger.database.factories import (
    create_database,
    create_memory_database,
    create_sqlite_database,
)

__all__ = ["Database", "create_database", "create_memory_database", "create_sqlite_database"]
