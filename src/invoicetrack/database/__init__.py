"""Persistence for invoices, reminders, settings and templates."""

from invoicetrack.database.base import Database
from invoicetrack.database.factories import create_sqlite_database, resolve_database_path
from invoicetrack.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_sqlite_database", "resolve_database_path"]
