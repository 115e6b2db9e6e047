"""Domain models and entities."""

from mailsorter.domain.entities.classified_record import UNCATEGORIZED, ClassifiedRecord
from mailsorter.domain.entities.mail_message import MailMessage
from mailsorter.domain.errors import (
    ClassificationError,
    CopyError,
    FlagError,
    FolderError,
    LabelError,
    MailConnectionError,
    MailSessionError,
    MailSorterError,
    ParseError,
    ProtocolError,
    StorageError,
)

__all__ = [
    "UNCATEGORIZED",
    "ClassifiedRecord",
    "MailMessage",
    "MailSorterError",
    "MailSessionError",
    "MailConnectionError",
    "ProtocolError",
    "FolderError",
    "CopyError",
    "FlagError",
    "ParseError",
    "ClassificationError",
    "StorageError",
    "LabelError",
]
