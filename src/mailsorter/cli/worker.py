"""Email ingestion worker - polls the mailbox at a configurable interval."""

from __future__ import annotations

import signal
import time
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from mailsorter.application.use_cases.ingest_email import IngestEmailUseCase, build_ingest_use_case
from mailsorter.infrastructure import get_settings
from mailsorter.infrastructure.logging import configure_logging


@dataclass
class WorkerStats:
    """Track worker statistics."""
    total_processed: int = 0
    total_errors: int = 0
    last_poll: datetime | None = None
    polls_completed: int = 0


class EmailWorker:
    """
    Polling ingestion worker.

    Runs one ingestion pass per interval. A failed pass is logged and
    retried on the next tick; it never stops the worker.
    """

    def __init__(self, use_case: IngestEmailUseCase, poll_interval_minutes: int = 5):
        self.use_case = use_case
        self.poll_interval = poll_interval_minutes * 60  # Convert to seconds
        self.running = False
        self.stats = WorkerStats()

    def poll_once(self) -> None:
        """Run one ingestion pass and update stats."""
        self.stats.last_poll = datetime.now()
        logger.info(f"Starting poll cycle #{self.stats.polls_completed + 1}")

        try:
            report = self.use_case.run()
            self.stats.total_processed += report.processed
        except Exception as e:
            self.stats.total_errors += 1
            logger.error(f"Poll failed: {e}")

        self.stats.polls_completed += 1
        self._log_stats()

    def _log_stats(self) -> None:
        """Log current worker statistics."""
        logger.info(
            f"Worker stats: "
            f"polls={self.stats.polls_completed}, "
            f"processed={self.stats.total_processed}, "
            f"errors={self.stats.total_errors}"
        )

    def _handle_shutdown(self, signum, frame) -> None:
        """Handle graceful shutdown."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.running = False

    def run(self) -> int:
        """Run the worker loop."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

        logger.info(f"Poll interval: {self.poll_interval // 60} minutes")
        self.running = True

        # Initial poll
        self.poll_once()

        while self.running:
            logger.debug(f"Sleeping for {self.poll_interval} seconds...")

            # Sleep in small increments to respond to signals quickly
            sleep_remaining = self.poll_interval
            while sleep_remaining > 0 and self.running:
                sleep_time = min(sleep_remaining, 10)
                time.sleep(sleep_time)
                sleep_remaining -= sleep_time

            if self.running:
                self.poll_once()

        logger.info("Worker shutdown complete")
        self._log_stats()
        return 0


def main() -> int:
    """Entry point for the email worker."""
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("=" * 60)
    logger.info(f"{settings.app_name} Email Worker")
    logger.info("=" * 60)
    logger.info(f"Mailbox: {settings.imap_username} @ {settings.imap_address}")

    worker = EmailWorker(
        use_case=build_ingest_use_case(settings),
        poll_interval_minutes=settings.poll_interval_minutes,
    )
    return worker.run()


if __name__ == "__main__":
    raise SystemExit(main())
