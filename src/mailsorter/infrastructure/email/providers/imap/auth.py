from __future__ import annotations
from dataclasses import dataclass
import imaplib

from loguru import logger

from mailsorter.domain.errors import MailConnectionError

DEFAULT_IMAP_HOST = "imap.gmail.com"
DEFAULT_IMAP_PORT = 993


@dataclass(frozen=True)
class ImapCredentials:
    """
    Represents credentials for the single mailbox we ingest from.
    """
    username: str
    password: str
    host: str = DEFAULT_IMAP_HOST
    port: int = DEFAULT_IMAP_PORT


class ImapAuthenticator:
    """
    Responsible ONLY for establishing an authenticated IMAP connection.
    No folder logic, no fetching, no parsing.
    """

    def __init__(self, creds: ImapCredentials, timeout: float = 30.0) -> None:
        self.creds = creds
        self.timeout = timeout

    def login(self) -> imaplib.IMAP4_SSL:
        """
        Returns an authenticated IMAP4_SSL connection.
        The timeout applies to every socket operation on the connection.
        """
        try:
            conn = imaplib.IMAP4_SSL(
                host=self.creds.host,
                port=self.creds.port,
                timeout=self.timeout,
            )
        except (imaplib.IMAP4.error, OSError) as e:
            # Covers unreachable host, TLS handshake failures and timeouts
            raise MailConnectionError(f"Could not connect to {self.creds.host}:{self.creds.port}: {e}") from e

        try:
            conn.login(self.creds.username, self.creds.password)
        except (imaplib.IMAP4.error, OSError) as e:
            try:
                conn.shutdown()
            except OSError:
                logger.debug("Socket already closed after failed login")
            raise MailConnectionError(f"IMAP login failed for {self.creds.username}: {e}") from e

        logger.debug(f"Authenticated to {self.creds.host} as {self.creds.username}")
        return conn
