"""Ingest unread emails: classify, persist, and mirror the category as a folder."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from mailsorter.application.agents.categorizer import EmailCategorizer
from mailsorter.application.labels import LabelSynchronizer
from mailsorter.application.ports.classifier import Classifier
from mailsorter.application.ports.mail_session import MailSession, MessageRef, SearchCriteria
from mailsorter.application.ports.record_store import RecordStore
from mailsorter.domain.entities.classified_record import ClassifiedRecord
from mailsorter.domain.entities.mail_message import MailMessage
from mailsorter.domain.errors import FlagError, LabelError, ParseError, StorageError
from mailsorter.infrastructure.email.providers.imap.client import ImapConfig, ImapMailSession
from mailsorter.infrastructure.email.providers.imap.mapper import classification_text, parse_message
from mailsorter.infrastructure.settings import Settings
from mailsorter.infrastructure.sqlite import get_record_store


class RunState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SEARCHING = "searching"
    NO_MATCHES = "no_matches"
    FETCHING = "fetching"
    PROCESSING = "processing"
    FLAGGING = "flagging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class IngestReport:
    """Tallies for one run. Only `processed` is part of the public result."""
    processed: int = 0
    matched: int = 0
    failed: int = 0
    label_failures: int = 0
    flag_failures: int = 0
    state: RunState = RunState.IDLE


@dataclass(frozen=True)
class MessageOutcome:
    ref: MessageRef
    persisted: bool
    inserted: bool = False
    category: Optional[str] = None
    label_failed: bool = False


class IngestEmailUseCase:
    """Ingest unseen emails with folder + flag state management.

    Flow:
    1. Open session, select INBOX, search UNSEEN SINCE cutoff
    2. Fetch each matching message (without marking it seen)
    3. Per message, on a bounded worker pool: parse → classify → persist → copy into category folder
    4. Mark seen each message whose record was persisted
    5. Close session on every path

    Parse/storage failures are contained to their message. Label and flag
    failures are logged and never reduce the processed count. Only session
    errors (connect, select, search, fetch) fail the run.
    """

    def __init__(
        self,
        session_factory: Callable[[], MailSession],
        classifier: Classifier,
        store: RecordStore,
        since: date,
        labeler: Optional[LabelSynchronizer] = None,
        max_workers: int = 4,
        max_body_chars: int = 4000,
    ) -> None:
        self.session_factory = session_factory
        self.classifier = classifier
        self.store = store
        self.labeler = labeler or LabelSynchronizer()
        self.criteria = SearchCriteria(since=since)
        self.max_workers = max(1, max_workers)
        self.max_body_chars = max_body_chars
        self.state = RunState.IDLE

    def _transition(self, report: IngestReport, state: RunState) -> None:
        logger.debug(f"Ingest run: {self.state.value} → {state.value}")
        self.state = state
        report.state = state

    def run(self) -> IngestReport:
        """Run one ingestion pass. Raises MailConnectionError/ProtocolError on run failure."""
        report = IngestReport()
        self.state = RunState.IDLE
        logger.info(f"Starting email fetch (since {self.criteria.since.isoformat()})")

        self._transition(report, RunState.CONNECTING)
        session = self.session_factory()
        try:
            try:
                session.open()
                self._ingest(session, report)
            finally:
                session.close()
        except Exception as e:
            self._transition(report, RunState.FAILED)
            logger.error(f"Ingest run failed: {e}")
            raise

        self._transition(report, RunState.DONE)
        logger.info(
            f"Ingest run complete: matched={report.matched}, processed={report.processed}, "
            f"failed={report.failed}, label_failures={report.label_failures}, "
            f"flag_failures={report.flag_failures}"
        )
        return report

    def _ingest(self, session: MailSession, report: IngestReport) -> None:
        self._transition(report, RunState.SEARCHING)
        session.select_inbox()
        refs = session.search(self.criteria)
        report.matched = len(refs)

        if not refs:
            self._transition(report, RunState.NO_MATCHES)
            logger.info("No unread emails")
            return

        self._transition(report, RunState.FETCHING)
        fetched: list[tuple[MessageRef, bytes]] = []
        for ref in refs:
            raw = session.fetch_body(ref)
            if not raw:
                logger.warning(f"No data returned for UID {ref}, skipping")
                report.failed += 1
                continue
            fetched.append((ref, raw))

        self._transition(report, RunState.PROCESSING)
        outcomes = self._process_all(session, fetched)

        self._transition(report, RunState.FLAGGING)
        for outcome in outcomes:
            if not outcome.persisted:
                report.failed += 1
                continue
            report.processed += 1
            if outcome.label_failed:
                report.label_failures += 1
            try:
                session.mark_seen([outcome.ref])
            except FlagError as e:
                report.flag_failures += 1
                logger.error(f"Failed to mark UID {outcome.ref} as seen: {e}")

    def _process_all(self, session: MailSession, fetched: list[tuple[MessageRef, bytes]]) -> list[MessageOutcome]:
        """Run the per-message pipeline concurrently; results keep fetch order."""
        if not fetched:
            return []

        results: dict[int, MessageOutcome] = {}
        workers = min(self.max_workers, len(fetched))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
            futures = {
                pool.submit(self._process_email, session, ref, raw): i
                for i, (ref, raw) in enumerate(fetched)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return [results[i] for i in range(len(fetched))]

    def _process_email(self, session: MailSession, ref: MessageRef, raw: bytes) -> MessageOutcome:
        try:
            msg = parse_message(raw)
            category = self.classifier.classify(classification_text(msg, self.max_body_chars))
            inserted = self.store.store(ClassifiedRecord.from_message(msg, category))
        except (ParseError, StorageError) as e:
            logger.error(f"Failed to process UID {ref}: {e}")
            return MessageOutcome(ref=ref, persisted=False)
        except Exception as e:
            logger.exception(f"Unexpected error processing UID {ref}: {e}")
            return MessageOutcome(ref=ref, persisted=False)

        if not inserted:
            # Seen flag raced with an earlier run; the folder copy happened then
            logger.info(f"UID {ref} already ingested ({msg.message_id}), marking seen only")
            return MessageOutcome(ref=ref, persisted=True, inserted=False, category=category)

        label_failed = not self._label(session, ref, msg, category)
        logger.info(f"Processed: Email \"{msg.subject[:50]}\" categorized as \"{category}\" (UID: {ref})")
        return MessageOutcome(ref=ref, persisted=True, inserted=True, category=category, label_failed=label_failed)

    def _label(self, session: MailSession, ref: MessageRef, msg: MailMessage, category: str) -> bool:
        try:
            self.labeler.apply_label(session, ref, category)
        except LabelError as e:
            logger.error(f"Error applying label \"{category}\" to \"{msg.subject[:50]}\": {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected error labeling UID {ref} as \"{category}\": {e}")
            return False
        return True


def build_ingest_use_case(settings: Settings, store: Optional[RecordStore] = None) -> IngestEmailUseCase:
    """Wire the use case to IMAP, the configured LLM and the SQLite store."""
    imap_cfg = ImapConfig.from_settings(settings)
    return IngestEmailUseCase(
        session_factory=lambda: ImapMailSession(imap_cfg),
        classifier=EmailCategorizer(settings),
        store=store or get_record_store(settings.sqlite_db_path),
        since=settings.imap_since,
        max_workers=settings.ingest_max_workers,
        max_body_chars=settings.classifier_max_body_chars,
    )
