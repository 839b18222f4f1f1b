"""Database module for SQLite persistence.

Provides:
- Database connection management and schema initialization
- Content catalog and enrollment directory repositories
- Transactional progress store (progress rows, attempts, overrides, audit)
"""

from progression.db.catalog_repository import SqliteContentCatalog, SqliteEnrollmentDirectory
from progression.db.database import Database
from progression.db.progress_store import SqliteProgressStore

__all__ = [
    "Database",
    "SqliteContentCatalog",
    "SqliteEnrollmentDirectory",
    "SqliteProgressStore",
]
