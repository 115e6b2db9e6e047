from __future__ import annotations
import binascii
import time
from datetime import timezone
from email import policy
from email.errors import MessageError
from email.message import EmailMessage
from email.parser import BytesParser

from mailsorter.domain.entities.mail_message import MailMessage
from mailsorter.domain.errors import ParseError


def _as_text(msg: EmailMessage) -> str:
    # Prefer text/plain; fallback to raw HTML
    if msg.is_multipart():
        for p in msg.walk():
            if p.get_content_type() == "text/plain" and not p.is_attachment():
                return p.get_content().strip()
        for p in msg.walk():
            if p.get_content_type() == "text/html" and not p.is_attachment():
                return p.get_content().strip()
        return ""
    if msg.get_content_maintype() == "text":
        return msg.get_content().strip()
    return ""


def _timestamp(em: EmailMessage) -> int:
    # Date parsing can be messy; default to now if absent/unparseable
    try:
        dt = em.get("Date")
        parsed = dt.datetime if dt else None
    except (TypeError, ValueError, AttributeError):
        parsed = None
    if parsed is None:
        return int(time.time())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _header(em: EmailMessage, name: str) -> str:
    try:
        return str(em.get(name) or "").strip()
    except (TypeError, ValueError, IndexError):
        # Header present but undecodable; treat like a missing field
        return ""


def parse_message(rfc822_bytes: bytes) -> MailMessage:
    """Parse raw RFC822 bytes into a MailMessage.

    Missing Subject/From/Message-ID become empty strings and a missing Date
    becomes the current time. Only undecodable content raises ParseError.
    """
    if not isinstance(rfc822_bytes, (bytes, bytearray)):
        raise ParseError(f"Expected raw message bytes, got {type(rfc822_bytes).__name__}")

    try:
        em = BytesParser(policy=policy.default).parsebytes(bytes(rfc822_bytes))
        text = _as_text(em)
    except (LookupError, UnicodeError, binascii.Error, MessageError, ValueError) as e:
        raise ParseError(f"Malformed message encoding: {e}") from e

    return MailMessage(
        sender=_header(em, "From"),
        subject=_header(em, "Subject"),
        text=text,
        received_at=_timestamp(em),
        message_id=_header(em, "Message-ID"),
    )


def classification_text(msg: MailMessage, max_body_chars: int = 4000) -> str:
    """Render the classifier input for a message."""
    body = msg.text[:max_body_chars] if max_body_chars else msg.text
    return f"Subject: {msg.subject}\nFrom: {msg.sender}\nBody: {body}"
