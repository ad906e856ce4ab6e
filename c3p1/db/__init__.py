"""Database package for c3p1."""

from c3p1.db.database import DatabaseManager, get_db_manager, init_db_manager

__all__ = [
    "DatabaseManager",
    "get_db_manager",
    "init_db_manager",
]
