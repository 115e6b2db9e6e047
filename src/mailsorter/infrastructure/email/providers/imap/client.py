from __future__ import annotations
import base64
import imaplib
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from loguru import logger

from mailsorter.application.ports.mail_session import MessageRef, SearchCriteria
from mailsorter.domain.errors import (
    CopyError,
    FlagError,
    FolderError,
    MailConnectionError,
    ProtocolError,
)
from mailsorter.infrastructure.email.providers.imap.auth import (
    DEFAULT_IMAP_HOST,
    DEFAULT_IMAP_PORT,
    ImapAuthenticator,
    ImapCredentials,
)

SEEN_FLAG = "\\Seen"
ALREADY_EXISTS_MARKERS = ("[ALREADYEXISTS]", "ALREADY EXISTS")


@dataclass
class ImapConfig:
    username: str
    password: str
    host: str = DEFAULT_IMAP_HOST
    port: int = DEFAULT_IMAP_PORT
    mailbox: str = "INBOX"
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> "ImapConfig":
        return cls(
            username=settings.imap_username,
            password=settings.imap_password.get_secret_value(),
            host=settings.imap_host,
            port=settings.imap_port,
            mailbox=settings.imap_mailbox,
            timeout=settings.imap_timeout_seconds,
        )


def encode_mailbox_name(name: str) -> str:
    """Encode a mailbox name as IMAP modified UTF-7 (RFC 3501 section 5.1.3)."""
    out: list[str] = []
    pending: list[str] = []

    def flush() -> None:
        if pending:
            raw = "".join(pending).encode("utf-16-be")
            out.append("&" + base64.b64encode(raw).decode("ascii").rstrip("=").replace("/", ",") + "-")
            pending.clear()

    for ch in name:
        if 0x20 <= ord(ch) <= 0x7E:
            flush()
            out.append("&-" if ch == "&" else ch)
        else:
            pending.append(ch)
    flush()
    return "".join(out)


def _quote(mailbox: str) -> str:
    escaped = encode_mailbox_name(mailbox).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _response_text(data) -> str:
    parts = []
    for item in data or []:
        if isinstance(item, bytes):
            parts.append(item.decode(errors="replace"))
        elif item is not None:
            parts.append(str(item))
    return " ".join(parts)


class ImapMailSession:
    """One authenticated IMAP session for a single ingestion run.

    imaplib connections are not reentrant, so every command takes the
    session lock. Workers may share one session; their commands are
    serialized rather than interleaved.
    """

    def __init__(self, cfg: ImapConfig, authenticator: Optional[ImapAuthenticator] = None) -> None:
        self.cfg = cfg
        self._auth = authenticator or ImapAuthenticator(
            ImapCredentials(cfg.username, cfg.password, cfg.host, cfg.port),
            timeout=cfg.timeout,
        )
        self._conn: Optional[imaplib.IMAP4_SSL] = None
        self._lock = threading.RLock()

    def __enter__(self) -> "ImapMailSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _require(self) -> imaplib.IMAP4_SSL:
        if self._conn is None:
            raise MailConnectionError("IMAP session is not open")
        return self._conn

    def open(self) -> "ImapMailSession":
        with self._lock:
            if self._conn is None:
                logger.info(f"Connecting to IMAP {self.cfg.host}:{self.cfg.port} as {self.cfg.username}")
                self._conn = self._auth.login()
        return self

    def close(self) -> None:
        """Log out. Safe to call repeatedly and never raises."""
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is None:
                return
            try:
                conn.logout()
            except Exception as e:
                logger.debug(f"Ignoring error during IMAP logout: {e}")
            logger.debug("IMAP session closed")

    def select_inbox(self) -> int:
        """Select the configured mailbox read-write. Returns its message count."""
        with self._lock:
            conn = self._require()
            try:
                typ, data = conn.select(_quote(self.cfg.mailbox), readonly=False)
            except (imaplib.IMAP4.error, OSError) as e:
                raise ProtocolError(f"Failed to select {self.cfg.mailbox}: {e}") from e
            if typ != "OK":
                raise ProtocolError(f"Failed to select {self.cfg.mailbox}: {_response_text(data)}")

        try:
            return int(data[0]) if data and data[0] else 0
        except ValueError:
            return 0

    def search(self, criteria: SearchCriteria) -> list[MessageRef]:
        terms = criteria.to_imap()
        with self._lock:
            conn = self._require()
            try:
                typ, uids_data = conn.uid("SEARCH", None, *terms)
            except (imaplib.IMAP4.error, OSError) as e:
                raise ProtocolError(f"UID SEARCH {' '.join(terms)} failed: {e}") from e
            if typ != "OK":
                raise ProtocolError(f"UID SEARCH {' '.join(terms)} failed: {_response_text(uids_data)}")

        refs: list[MessageRef] = []
        if uids_data and uids_data[0]:
            refs = [x.decode() for x in uids_data[0].split()]

        logger.info(f"Found {len(refs)} messages in {self.cfg.mailbox} matching {' '.join(terms)}")
        return refs

    def fetch_body(self, ref: MessageRef) -> bytes:
        """Fetch the full RFC822 bytes without setting \\Seen.

        Returns empty bytes when the server has nothing for the UID,
        e.g. it was expunged after the search.
        """
        with self._lock:
            conn = self._require()
            try:
                typ, msg_data = conn.uid("FETCH", ref, "(BODY.PEEK[])")
            except (imaplib.IMAP4.error, OSError) as e:
                raise ProtocolError(f"UID FETCH {ref} failed: {e}") from e
            if typ != "OK":
                raise ProtocolError(f"UID FETCH {ref} failed: {_response_text(msg_data)}")

        for part in msg_data or []:
            if isinstance(part, tuple) and len(part) > 1:
                return part[1]
        return b""

    def ensure_folder(self, name: str) -> None:
        """Create folder; a server reporting it already exists is success."""
        with self._lock:
            conn = self._require()
            try:
                typ, data = conn.create(_quote(name))
            except (imaplib.IMAP4.error, OSError) as e:
                typ, data = "NO", [str(e).encode()]
            except (UnicodeError, ValueError) as e:
                raise FolderError(f"Could not create folder {name}: {e}") from e

            if typ == "OK":
                logger.info(f"Created folder: {name}")
                try:
                    conn.subscribe(_quote(name))
                except (imaplib.IMAP4.error, OSError) as e:
                    logger.warning(f"Could not subscribe to {name}: {e}")
                return

            text = _response_text(data)
            if any(marker in text.upper() for marker in ALREADY_EXISTS_MARKERS):
                logger.debug(f"Folder {name} already exists")
                return
            raise FolderError(f"Could not create folder {name}: {text}")

    def copy_into(self, refs: Sequence[MessageRef], folder: str) -> None:
        if not refs:
            return
        uid_set = ",".join(refs)
        with self._lock:
            conn = self._require()
            try:
                typ, data = conn.uid("COPY", uid_set, _quote(folder))
            except (imaplib.IMAP4.error, OSError, UnicodeError, ValueError) as e:
                raise CopyError(f"Failed to copy UID {uid_set} to {folder}: {e}") from e
            if typ != "OK":
                raise CopyError(f"Failed to copy UID {uid_set} to {folder}: {_response_text(data)}")

    def mark_seen(self, refs: Sequence[MessageRef]) -> None:
        if not refs:
            return
        uid_set = ",".join(refs)
        with self._lock:
            conn = self._require()
            try:
                typ, data = conn.uid("STORE", uid_set, "+FLAGS", f"({SEEN_FLAG})")
            except (imaplib.IMAP4.error, OSError) as e:
                raise FlagError(f"Failed to flag UID {uid_set} as seen: {e}") from e
            if typ != "OK":
                raise FlagError(f"Failed to flag UID {uid_set} as seen: {_response_text(data)}")
