"""Database module: SQLite-backed document store."""

from .models import Document
from .sqlite import Database, get_db, reset_db
from .store import SERVER_TIMESTAMP, Batch, DocumentStore

__all__ = [
    "Document",
    "Database",
    "get_db",
    "reset_db",
    "SERVER_TIMESTAMP",
    "Batch",
    "DocumentStore",
]
