"""Shared test fixtures for the mailsorter test suite."""

from __future__ import annotations

import os
import threading
from datetime import date
from email.mime.text import MIMEText
from pathlib import Path
from typing import Sequence

import pytest

# Settings are required at import time of the API module
os.environ.setdefault("IMAP_USERNAME", "testuser@example.com")
os.environ.setdefault("IMAP_PASSWORD", "testpass")
os.environ.setdefault("GROQ_API_KEY", "test-groq-key")

from mailsorter.application.ports.mail_session import MessageRef, SearchCriteria  # noqa: E402
from mailsorter.application.use_cases.ingest_email import IngestEmailUseCase  # noqa: E402
from mailsorter.domain.errors import (  # noqa: E402
    CopyError,
    FlagError,
    FolderError,
    MailConnectionError,
    ProtocolError,
)
from mailsorter.infrastructure.sqlite.client import SQLiteRecordStore  # noqa: E402

CUTOFF = date(2024, 12, 29)


# ------------------------------------------------------------------
# Sample EML builders
# ------------------------------------------------------------------


def build_email(
    *,
    subject: str | None = "Test Subject",
    from_addr: str | None = "sender@example.com",
    to_addr: str = "recipient@example.com",
    body: str = "Hello, World!",
    message_id: str | None = "<test-001@example.com>",
    date_header: str | None = "Mon, 01 Jun 2025 12:00:00 +0000",
) -> bytes:
    """Build a simple plain-text email as raw bytes; None omits a header."""
    msg = MIMEText(body, "plain")
    if subject is not None:
        msg["Subject"] = subject
    if from_addr is not None:
        msg["From"] = from_addr
    msg["To"] = to_addr
    if message_id is not None:
        msg["Message-ID"] = message_id
    if date_header is not None:
        msg["Date"] = date_header
    return msg.as_bytes()


@pytest.fixture
def plain_eml_bytes() -> bytes:
    return build_email()


@pytest.fixture
def invoice_eml_bytes() -> bytes:
    return build_email(
        subject="Invoice #100",
        from_addr="billing@x.com",
        body="Your invoice is due.",
        message_id="<invoice-100@x.com>",
        date_header="Thu, 02 Jan 2025 09:30:00 +0000",
    )


# ------------------------------------------------------------------
# Fake ports
# ------------------------------------------------------------------


class FakeMailSession:
    """In-memory mailbox that records every command it receives."""

    def __init__(
        self,
        messages: dict[str, bytes] | None = None,
        *,
        existing_folders: Sequence[str] = (),
        fail_open: bool = False,
        fail_search: bool = False,
        fail_fetch: bool = False,
        fail_create: bool = False,
        fail_copy: bool = False,
        fail_flag: bool = False,
    ) -> None:
        self.messages = dict(messages or {})
        self.seen: set[str] = set()
        self.folders: set[str] = set(existing_folders)
        self.copies: list[tuple[str, str]] = []
        self.calls: list[str] = []
        self.search_criteria: list[SearchCriteria] = []
        self.closed = False
        self.fail_open = fail_open
        self.fail_search = fail_search
        self.fail_fetch = fail_fetch
        self.fail_create = fail_create
        self.fail_copy = fail_copy
        self.fail_flag = fail_flag
        self._lock = threading.Lock()

    def _record(self, call: str) -> None:
        with self._lock:
            self.calls.append(call)

    def open(self) -> "FakeMailSession":
        self._record("open")
        if self.fail_open:
            raise MailConnectionError("AUTHENTICATIONFAILED")
        return self

    def select_inbox(self) -> int:
        self._record("select")
        return len(self.messages)

    def search(self, criteria: SearchCriteria) -> list[MessageRef]:
        self._record("search")
        self.search_criteria.append(criteria)
        if self.fail_search:
            raise ProtocolError("SEARCH failed")
        return [ref for ref in self.messages if ref not in self.seen]

    def fetch_body(self, ref: MessageRef) -> bytes:
        self._record(f"fetch:{ref}")
        if self.fail_fetch:
            raise ProtocolError("FETCH failed")
        return self.messages.get(ref, b"")

    def ensure_folder(self, name: str) -> None:
        self._record(f"create:{name}")
        if self.fail_create:
            raise FolderError(f"Could not create folder {name}: NO [CANNOT]")
        with self._lock:
            self.folders.add(name)

    def copy_into(self, refs: Sequence[MessageRef], folder: str) -> None:
        self._record(f"copy:{','.join(refs)}:{folder}")
        if self.fail_copy or folder not in self.folders:
            raise CopyError(f"Failed to copy to {folder}")
        with self._lock:
            self.copies.extend((ref, folder) for ref in refs)

    def mark_seen(self, refs: Sequence[MessageRef]) -> None:
        self._record(f"seen:{','.join(refs)}")
        if self.fail_flag:
            raise FlagError("STORE failed")
        with self._lock:
            self.seen.update(refs)

    def close(self) -> None:
        self._record("close")
        self.closed = True


class FakeClassifier:
    """Returns a fixed label, or a per-subject label when given a mapping."""

    def __init__(self, label: str = "Finance", by_subject: dict[str, str] | None = None) -> None:
        self.label = label
        self.by_subject = by_subject or {}
        self.inputs: list[str] = []
        self._lock = threading.Lock()

    def classify(self, content: str) -> str:
        with self._lock:
            self.inputs.append(content)
        for subject, label in self.by_subject.items():
            if f"Subject: {subject}\n" in content:
                return label
        return self.label


@pytest.fixture
def store(tmp_path: Path) -> SQLiteRecordStore:
    return SQLiteRecordStore(db_path=tmp_path / "records.db")


@pytest.fixture
def make_use_case(store: SQLiteRecordStore):
    """Factory for a use case bound to a fake session."""

    def _make(session, classifier=None, record_store=None, max_workers: int = 4) -> IngestEmailUseCase:
        return IngestEmailUseCase(
            session_factory=lambda: session,
            classifier=classifier or FakeClassifier(),
            store=record_store or store,
            since=CUTOFF,
            max_workers=max_workers,
        )

    return _make
