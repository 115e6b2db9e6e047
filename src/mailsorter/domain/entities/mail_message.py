from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class MailMessage:
    sender: str
    subject: str
    text: str
    received_at: int  # unix seconds
    message_id: str  # may be empty; idempotency key when present
