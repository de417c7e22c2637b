"""Gmail IMAP mail source adapter."""

from __future__ import annotations

import imaplib
import logging
import re
from email import message_from_bytes
from email.header import decode_header
from typing import TYPE_CHECKING, Any

from invoice_sorter.models import Attachment, MailMessage, MailThread

if TYPE_CHECKING:
    from email.message import Message
    from types import TracebackType

    from invoice_sorter.config import ImapConfig

logger = logging.getLogger(__name__)

_THREAD_ID_RE = re.compile(rb"X-GM-THRID (\d+)")


class ImapMailSource:
    """Search a Gmail mailbox over IMAP and label handled threads.

    Relies on Gmail's IMAP extensions: X-GM-RAW for search queries,
    X-GM-THRID for grouping messages into threads and X-GM-LABELS for
    labelling. Message ids on returned messages are IMAP UIDs.
    """

    def __init__(self, config: ImapConfig) -> None:
        self.config = config
        self._conn: imaplib.IMAP4_SSL | None = None

    def __enter__(self) -> ImapMailSource:
        conn = self._connect()
        self._conn = conn
        try:
            status, data = conn.select(_quote(self.config.folder))
            if status != "OK":
                msg = f"Cannot select folder {self.config.folder}: {data!r}"
                raise imaplib.IMAP4.error(msg)
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Log out, ignoring errors from an already broken connection."""
        if self._conn is None:
            return
        try:
            self._conn.logout()
        except Exception:
            logger.debug("Error during IMAP logout", exc_info=True)
        finally:
            self._conn = None

    def search(self, query: str) -> list[MailThread]:
        """Return every thread with at least one message matching a Gmail query.

        Each thread carries all of its messages in the selected folder, not
        only the ones that matched.
        """
        conn = self._connection()
        thread_ids: list[str] = []

        for uid in self._search_uids(conn, "X-GM-RAW", _quote(query)):
            thread_id = self._fetch_thread_id(conn, uid)
            if thread_id is None:
                logger.warning("No thread id for message UID %s, skipping", uid)
                continue
            if thread_id not in thread_ids:
                thread_ids.append(thread_id)

        threads = [self._fetch_thread(conn, thread_id) for thread_id in thread_ids]
        return [thread for thread in threads if thread.messages]

    def mark_handled(self, thread: MailThread, label: str) -> None:
        """Add the Gmail ``label`` to every message of ``thread``."""
        uids = [message.message_id for message in thread.messages]
        if not uids:
            return
        conn = self._connection()
        status, data = conn.uid(
            "STORE", ",".join(uids), "+X-GM-LABELS", f"({_quote(label)})"
        )
        if status != "OK":
            logger.warning("Failed to label thread %s: %r", thread.thread_id, data)
            return
        logger.info("Labelled thread %s with %s", thread.thread_id, label)

    def _connection(self) -> imaplib.IMAP4_SSL:
        if self._conn is None:
            msg = "ImapMailSource must be used as a context manager"
            raise RuntimeError(msg)
        return self._conn

    def _connect(self) -> imaplib.IMAP4_SSL:
        """Establish an IMAP4_SSL connection and authenticate."""
        conn = imaplib.IMAP4_SSL(self.config.host, self.config.port)
        conn.login(self.config.username, self.config.password)
        return conn

    def _fetch_thread(self, conn: imaplib.IMAP4_SSL, thread_id: str) -> MailThread:
        """Fetch every message of a Gmail thread, oldest UID first."""
        thread = MailThread(thread_id=thread_id)
        uids = self._search_uids(conn, "X-GM-THRID", thread_id)

        for uid in sorted(uids, key=int):
            raw_email = self._fetch_message(conn, uid)
            if raw_email is None:
                continue
            try:
                message = self._parse_message(message_from_bytes(raw_email), uid)
            except Exception:
                logger.warning("Failed to parse message UID %s", uid, exc_info=True)
                continue
            thread.messages.append(message)

        return thread

    @staticmethod
    def _search_uids(conn: imaplib.IMAP4_SSL, *criteria: str) -> list[str]:
        """Run a UID SEARCH and return the matching UIDs."""
        status, data = conn.uid("SEARCH", *criteria)
        if status != "OK":
            msg = f"IMAP search failed: {data!r}"
            raise imaplib.IMAP4.error(msg)
        raw = data[0] if data else None
        if not raw:
            return []
        return [uid.decode() for uid in raw.split()]

    @staticmethod
    def _fetch_thread_id(conn: imaplib.IMAP4_SSL, uid: str) -> str | None:
        """Fetch the Gmail thread id of a single UID."""
        _status, data = conn.uid("FETCH", uid, "(X-GM-THRID)")
        if not data or data[0] is None:
            return None
        part: Any = data[0]
        header = part[0] if isinstance(part, tuple) else part
        if not isinstance(header, bytes):
            return None
        match = _THREAD_ID_RE.search(header)
        return match.group(1).decode() if match else None

    @staticmethod
    def _fetch_message(conn: imaplib.IMAP4_SSL, uid: str) -> bytes | None:
        """Fetch the raw RFC822 bytes of a single UID."""
        _status, data = conn.uid("FETCH", uid, "(RFC822)")
        if not data or data[0] is None:
            return None
        part: Any = data[0]
        if not isinstance(part, tuple):
            return None
        return part[1]

    def _parse_message(self, msg: Message, uid: str) -> MailMessage:
        """Convert an email Message to a MailMessage."""
        return MailMessage(
            message_id=uid,
            subject=self._decode_header_value(msg.get("Subject", "")),
            sender=self._decode_header_value(msg.get("From", "")),
            attachments=self._extract_attachments(msg),
        )

    @staticmethod
    def _decode_header_value(value: str | None) -> str:
        """Decode an RFC 2047 encoded header value."""
        if not value:
            return ""
        parts = decode_header(value)
        decoded_parts: list[str] = []
        for data, charset in parts:
            if isinstance(data, bytes):
                decoded_parts.append(data.decode(charset or "utf-8", errors="replace"))
            else:
                decoded_parts.append(data)
        return "".join(decoded_parts)

    @classmethod
    def _extract_attachments(cls, msg: Message) -> list[Attachment]:
        """Walk the MIME tree and collect parts that are attachments."""
        attachments: list[Attachment] = []

        for part in msg.walk():
            if part.get_content_maintype() == "multipart":
                continue

            filename = part.get_filename()
            disposition = str(part.get("Content-Disposition", ""))
            if not filename and "attachment" not in disposition.lower():
                continue

            payload = part.get_payload(decode=True)
            if not isinstance(payload, bytes):
                continue

            attachments.append(
                Attachment(
                    name=cls._decode_header_value(filename) or "unnamed",
                    content_type=part.get_content_type(),
                    data=payload,
                )
            )

        return attachments


def _quote(value: str) -> str:
    """Quote an IMAP string argument unless it is a plain atom."""
    if value and re.fullmatch(r"[A-Za-z0-9_.\-]+", value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
