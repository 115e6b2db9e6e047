from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol, Sequence

# IMAP date months are fixed English abbreviations regardless of locale
_IMAP_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

MessageRef = str  # IMAP UID within the selected mailbox


def imap_date(d: date) -> str:
    """Render a date as IMAP ``DD-Mon-YYYY``."""
    return f"{d.day:02d}-{_IMAP_MONTHS[d.month - 1]}-{d.year}"


@dataclass(frozen=True)
class SearchCriteria:
    # Unseen messages received on/after `since`. Not a cursor: every run rescans the window.
    since: date
    unseen_only: bool = True

    def to_imap(self) -> list[str]:
        terms = ["UNSEEN"] if self.unseen_only else []
        terms += ["SINCE", imap_date(self.since)]
        return terms


class MailSession(Protocol):
    def open(self) -> "MailSession": ...
    def select_inbox(self) -> int: ...
    def search(self, criteria: SearchCriteria) -> list[MessageRef]: ...
    def fetch_body(self, ref: MessageRef) -> bytes: ...
    def ensure_folder(self, name: str) -> None: ...
    def copy_into(self, refs: Sequence[MessageRef], folder: str) -> None: ...
    def mark_seen(self, refs: Sequence[MessageRef]) -> None: ...
    def close(self) -> None: ...
