"""Builders for the configured Database."""

import logging
import os
from pathlib import Path
from typing import Optional

from invoicetrack.database.sqlalchemy_db import SQLAlchemyDatabase

logger = logging.getLogger(__name__)

DB_PATH_ENV = "INVOICETRACK_DB_PATH"


def default_database_path() -> Path:
    """Per-user database file, creating ~/.invoicetrack on first use."""
    data_dir = Path.home() / ".invoicetrack"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "invoicetrack.db"


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Pick the database file: explicit path, then INVOICETRACK_DB_PATH, then the default."""
    return database_path or os.environ.get(DB_PATH_ENV) or str(default_database_path())


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed database.

    Args:
        database_path: Path to the SQLite file (see resolve_database_path)

    Returns:
        SQLAlchemyDatabase with its schema created
    """
    path = resolve_database_path(database_path)
    logger.debug("Opening SQLite database at %s", path)
    return SQLAlchemyDatabase(f"sqlite:///{path}")
