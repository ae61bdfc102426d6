"""Database layer for pharmapos application."""

from pharmapos.database.base import Database
from pharmapos.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
