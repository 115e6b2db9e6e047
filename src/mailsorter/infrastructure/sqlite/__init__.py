"""SQLite infrastructure for classified email storage."""

from mailsorter.infrastructure.sqlite.client import (
    SQLiteRecordStore,
    get_record_store,
)

__all__ = [
    "SQLiteRecordStore",
    "get_record_store",
]
