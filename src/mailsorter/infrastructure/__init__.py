# src/mailsorter/infrastructure/__init__.py
"""Infrastructure layer - IMAP, SQLite, LLM, and configuration."""

from mailsorter.infrastructure.settings import Settings, get_settings
from mailsorter.infrastructure.sqlite import SQLiteRecordStore, get_record_store

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # SQLite
    "SQLiteRecordStore",
    "get_record_store",
]
