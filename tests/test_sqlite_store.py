"""Tests for mailsorter.infrastructure.sqlite.client."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from mailsorter.domain.entities.classified_record import ClassifiedRecord
from mailsorter.domain.errors import StorageError
from mailsorter.infrastructure.sqlite.client import SQLiteRecordStore


def _record(message_id: str | None = "<m1@example.com>", **overrides) -> ClassifiedRecord:
    fields = dict(
        sender="billing@x.com",
        subject="Invoice #100",
        timestamp=1_735_810_200,
        category="Finance",
        message_id=message_id,
    )
    fields.update(overrides)
    return ClassifiedRecord(**fields)


class TestStore:
    def test_store_and_list(self, store: SQLiteRecordStore):
        assert store.store(_record()) is True
        records = store.list_all()
        assert len(records) == 1
        r = records[0]
        assert r.id is not None
        assert r.message_id == "<m1@example.com>"
        assert r.sender == "billing@x.com"
        assert r.subject == "Invoice #100"
        assert r.timestamp == 1_735_810_200
        assert r.category == "Finance"

    def test_duplicate_message_id_is_noop(self, store: SQLiteRecordStore):
        assert store.store(_record(category="Finance")) is True
        assert store.store(_record(category="Work")) is False
        records = store.list_all()
        assert len(records) == 1
        assert records[0].category == "Finance"

    def test_missing_message_id_is_not_deduplicated(self, store: SQLiteRecordStore):
        assert store.store(_record(message_id=None)) is True
        assert store.store(_record(message_id="")) is True
        records = store.list_all()
        assert len(records) == 2
        assert all(r.message_id is None for r in records)

    def test_list_in_insertion_order(self, store: SQLiteRecordStore):
        for i in range(5):
            store.store(_record(message_id=f"<m{i}@example.com>", timestamp=100 - i))
        assert [r.message_id for r in store.list_all()] == [f"<m{i}@example.com>" for i in range(5)]

    def test_blank_category_defaults(self, store: SQLiteRecordStore):
        store.store(_record(category=""))
        assert store.list_all()[0].category == "Uncategorized"

    def test_other_constraint_violation_is_storage_error(self, store: SQLiteRecordStore):
        with pytest.raises(StorageError):
            store.store(_record(sender=None))
        assert store.list_all() == []

    def test_count_and_health(self, store: SQLiteRecordStore):
        store.store(_record())
        assert store.count() == 1
        health = store.health_check()
        assert health["status"] == "healthy"
        assert health["records"] == 1


class TestSchema:
    def test_schema_columns(self, tmp_path: Path):
        db = tmp_path / "nested" / "records.db"
        SQLiteRecordStore(db_path=db)
        with sqlite3.connect(db) as conn:
            cols = {row[1]: row for row in conn.execute("PRAGMA table_info(classified_emails)")}
        assert set(cols) == {"id", "message_id", "sender", "subject", "timestamp", "category"}
        assert cols["sender"][3] == 1  # NOT NULL
        assert cols["subject"][3] == 0
        assert cols["category"][4] == "'Uncategorized'"

    def test_reopen_keeps_records(self, tmp_path: Path):
        db = tmp_path / "records.db"
        SQLiteRecordStore(db_path=db).store(_record())
        assert len(SQLiteRecordStore(db_path=db).list_all()) == 1
