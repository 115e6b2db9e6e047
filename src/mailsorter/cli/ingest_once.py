"""One-shot email ingestion: classify unseen mail and mirror categories as folders."""

from __future__ import annotations

import argparse
from datetime import date

from loguru import logger

from mailsorter.application.use_cases.ingest_email import build_ingest_use_case
from mailsorter.domain.errors import MailSorterError
from mailsorter.infrastructure import get_settings
from mailsorter.infrastructure.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ingest unseen emails once")
    parser.add_argument("--since", type=date.fromisoformat, default=None, help="Override cutoff date (YYYY-MM-DD)")
    parser.add_argument("--workers", type=int, default=None, help="Override number of concurrent message workers")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)

    overrides = {}
    if args.since:
        overrides["imap_since"] = args.since
    if args.workers:
        overrides["ingest_max_workers"] = args.workers
    if overrides:
        settings = settings.model_copy(update=overrides)

    uc = build_ingest_use_case(settings)

    print(f"Ingesting emails for: {settings.imap_username}")
    print(f"Unseen since: {settings.imap_since.isoformat()}")

    try:
        report = uc.run()
    except MailSorterError as e:
        logger.error(f"Ingestion failed: {e}")
        return 1

    print(f"Ingested {report.processed} of {report.matched} emails from {settings.imap_mailbox}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
