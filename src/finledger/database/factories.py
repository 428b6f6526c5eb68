"""Database factory functions for creating database instances."""

import logging
import os
from pathlib import Path
from typing import Optional

from finledger.database.sqlalchemy_db import SQLAlchemyDatabase

logger = logging.getLogger(__name__)

DB_PATH_ENV_VAR = "FINLEDGER_DB_PATH"
DEFAULT_DB_DIR = Path.home() / ".finledger"
DEFAULT_DB_FILE = "finledger.db"


def resolve_database_location(database_path: Optional[str] = None) -> str:
    """Pick the database location: argument, then FINLEDGER_DB_PATH, then the default file.

    The default directory is created when it is used. Explicit paths have
    '~' expanded; SQLAlchemy URLs are returned unchanged.
    """
    location = database_path or os.environ.get(DB_PATH_ENV_VAR)
    if not location:
        DEFAULT_DB_DIR.mkdir(parents=True, exist_ok=True)
        return str(DEFAULT_DB_DIR / DEFAULT_DB_FILE)
    if "://" in location:
        return location
    return str(Path(location).expanduser())


def create_database(location: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a database from a file path or a full SQLAlchemy URL.

    Args:
        location: SQLite file path, a URL such as 'postgresql://user@host/db',
            or None to use FINLEDGER_DB_PATH / ~/.finledger/finledger.db
    """
    location = resolve_database_location(location)
    if "://" in location:
        logger.debug(f"Opening database {location.split('@')[-1]}")
        return SQLAlchemyDatabase(location)
    return create_sqlite_database(location)


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks FINLEDGER_DB_PATH
            environment variable, then defaults to ~/.finledger/finledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = resolve_database_location()
    logger.debug(f"Opening SQLite database at {database_path}")
    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_memory_database() -> SQLAlchemyDatabase:
    """Create an in-memory SQLite database, mostly useful for dry runs and tests."""
    return SQLAlchemyDatabase("sqlite://")
