from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from mailsorter.domain.entities.mail_message import MailMessage

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class ClassifiedRecord:
    sender: str
    timestamp: int
    category: str = UNCATEGORIZED
    subject: Optional[str] = None
    message_id: Optional[str] = None

    # Assigned by the store on insert
    id: Optional[int] = None

    @classmethod
    def from_message(cls, msg: MailMessage, category: str) -> "ClassifiedRecord":
        return cls(
            sender=msg.sender,
            timestamp=msg.received_at,
            category=category or UNCATEGORIZED,
            subject=msg.subject,
            # Empty ids are stored as NULL so they never collide on the unique index
            message_id=msg.message_id or None,
        )
