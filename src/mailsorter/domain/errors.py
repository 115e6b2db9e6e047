"""Error taxonomy for the ingestion pipeline.

Session-level errors (``MailConnectionError``, ``ProtocolError``) abort a run.
Everything else is contained to a single message or swallowed by the caller.
"""


class MailSorterError(Exception):
    """Base class for all mailsorter errors."""


class MailSessionError(MailSorterError):
    """Raised by the mail session manager."""


class MailConnectionError(MailSessionError):
    """Could not open or authenticate the mail session."""


class ProtocolError(MailSessionError):
    """The server refused a select/search/fetch command."""


class FolderError(MailSessionError):
    """Folder creation failed for a reason other than it already existing."""


class CopyError(MailSessionError):
    """Copying a message into a folder failed."""


class FlagError(MailSessionError):
    """Updating message flags failed."""


class ParseError(MailSorterError):
    """A raw message could not be decoded."""


class ClassificationError(MailSorterError):
    """The classification backend failed. Never leaves the categorizer."""


class StorageError(MailSorterError):
    """The record store rejected a write for a reason other than a duplicate."""


class LabelError(MailSorterError):
    """Mirroring a category onto the mailbox failed."""
