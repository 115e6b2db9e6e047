"""SQLite client for classified email records."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from loguru import logger

from mailsorter.domain.entities.classified_record import UNCATEGORIZED, ClassifiedRecord
from mailsorter.domain.errors import StorageError

TABLE = "classified_emails"


def _is_message_id_conflict(exc: sqlite3.IntegrityError) -> bool:
    return f"UNIQUE constraint failed: {TABLE}.message_id" in str(exc)


class SQLiteRecordStore:
    """SQLite store for classified records, idempotent on message_id.

    A connection is opened per operation so the store can be shared by
    the ingestion worker threads.
    """

    def __init__(self, db_path: str | Path = "data/mailsorter.db"):
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript(f"""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS {TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id TEXT UNIQUE,
                    sender TEXT NOT NULL,
                    subject TEXT,
                    timestamp INTEGER NOT NULL,
                    category TEXT NOT NULL DEFAULT '{UNCATEGORIZED}'
                );
            """)
            logger.info(f"SQLite database initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def store(self, record: ClassifiedRecord) -> bool:
        """Insert a record. Returns False if its message_id was already stored."""
        try:
            with self._connection() as conn:
                conn.execute(
                    f"""INSERT INTO {TABLE} (message_id, sender, subject, timestamp, category)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        record.message_id or None,
                        record.sender,
                        record.subject,
                        record.timestamp,
                        record.category or UNCATEGORIZED,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if _is_message_id_conflict(e):
                logger.debug(f"Already ingested {record.message_id}, skipping")
                return False
            raise StorageError(f"Could not store record {record.message_id!r}: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Could not store record {record.message_id!r}: {e}") from e

        logger.debug(f"Stored {record.message_id!r} as {record.category}")
        return True

    def list_all(self) -> list[ClassifiedRecord]:
        """All records in insertion order."""
        try:
            with self._connection() as conn:
                rows = conn.execute(f"SELECT * FROM {TABLE} ORDER BY id ASC").fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Could not list records: {e}") from e

        return [
            ClassifiedRecord(
                id=row["id"],
                message_id=row["message_id"],
                sender=row["sender"],
                subject=row["subject"],
                timestamp=row["timestamp"],
                category=row["category"],
            )
            for row in rows
        ]

    def count(self) -> int:
        with self._connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {TABLE}").fetchone()[0]

    def health_check(self) -> dict[str, Any]:
        """Check the database is reachable."""
        try:
            return {"status": "healthy", "path": str(self.db_path), "records": self.count()}
        except sqlite3.Error as e:
            logger.error(f"SQLite health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}


# Singleton instance
_client: SQLiteRecordStore | None = None


def get_record_store(db_path: str | None = None) -> SQLiteRecordStore:
    """Get or create record store singleton."""
    global _client
    if _client is None:
        from mailsorter.infrastructure.settings import get_settings
        path = db_path or get_settings().sqlite_db_path
        _client = SQLiteRecordStore(db_path=path)
    return _client
