"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from pharmapos.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks PHARMAPOS_DB_PATH
            environment variable, then defaults to ~/.pharmapos/pharmapos.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("PHARMAPOS_DB_PATH")

    if database_path is None:
        # Default to ~/.pharmapos/pharmapos.db
        home = Path.home()
        db_dir = home / ".pharmapos"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "pharmapos.db")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)
