"""
Email Parser Module
Turns raw RFC 822 bytes into EmailRecord objects

PATTERN RECOGNITION: This follows the Parser pattern - unstructured bytes in,
a structured value object out. It never touches the network, so it can be
tested with hand-built messages and a constructed ThreadIndex.

Body selection rules:
- only the top-level part and its direct subparts are considered
- the LAST text/plain part becomes the plain body, the LAST text/html part
  becomes the HTML body
"""

import email
import logging
from datetime import timezone
from email.message import Message
from email.utils import parsedate_to_datetime
from typing import List, Optional, Tuple

from .email_data import Attachment, EmailRecord, Location
from .exceptions import MalformedDateError, MessageParseError
from .header_decoder import decode_words, header_text, unfold
from .thread_index import ThreadIndex
from ..utils.config import IndexingConfig
from ..utils.sanitization import sanitize_for_logging
from ..utils.security_validators import MAX_MIME_PARTS, sanitize_filename


logger = logging.getLogger(__name__)

ADDRESS_HEADERS = ("From", "To", "Cc", "Bcc")
BODY_TYPES = ("text/plain", "text/html")


def split_address_header(msg: Message, name: str) -> List[str]:
    """
    Split an address header on commas

    Each entry is trimmed; order and duplicates are kept. A missing header
    gives an empty list.

    Example:
        "a@x.com, b@y.com ,c@z.com" -> ["a@x.com", "b@y.com", "c@z.com"]
    """
    value = header_text(msg, name)
    if value is None:
        return []
    decoded = decode_words(unfold(value))
    return [entry.strip() for entry in decoded.split(",")]


def clean_message_id(value) -> Optional[str]:
    """Normalize a Message-ID style header value, None when absent or blank"""
    if value is None:
        return None
    cleaned = unfold(str(value)).strip()
    return cleaned or None


class EmailParser:
    """
    Parses raw message bytes into EmailRecord objects

    MAINTENANCE WISDOM: Keep parsing separate from I/O. The resolver hands
    us bytes and an index; we never select folders or fetch anything.
    """

    def __init__(
        self,
        extract_attachments: bool = False,
        max_attachment_bytes: int = 25 * 1024 * 1024,
        max_attachment_count: int = 10
    ):
        """
        Initialize email parser

        Args:
            extract_attachments: Collect non-body parts as Attachment objects
            max_attachment_bytes: Maximum bytes kept per attachment (0 = unlimited)
            max_attachment_count: Maximum number of attachments per message
        """
        self.extract_attachments = extract_attachments
        self.max_attachment_bytes = max_attachment_bytes
        self.max_attachment_count = max_attachment_count
        self.logger = logging.getLogger("EmailParser")

    @classmethod
    def from_config(cls, indexing: IndexingConfig) -> "EmailParser":
        return cls(
            extract_attachments=indexing.extract_attachments,
            max_attachment_bytes=indexing.max_attachment_bytes,
            max_attachment_count=indexing.max_attachment_count,
        )

    def parse(self, raw_email: bytes, index: Optional[ThreadIndex] = None) -> EmailRecord:
        """
        Parse raw message bytes

        Args:
            raw_email: Full RFC 822 message as fetched from the server
            index: Index used to resolve In-Reply-To into a parent location

        Returns:
            Parsed EmailRecord

        Raises:
            MalformedDateError: Date header missing or unparsable
            MessageParseError: input is not bytes
        """
        if not isinstance(raw_email, (bytes, bytearray)):
            raise MessageParseError(
                f"Raw message must be bytes, got {type(raw_email).__name__}"
            )

        msg = email.message_from_bytes(bytes(raw_email))

        timestamp = self._extract_date(msg)
        from_addrs, to_addrs, cc_addrs, bcc_addrs = (
            split_address_header(msg, name) for name in ADDRESS_HEADERS
        )
        subject = decode_words(unfold(header_text(msg, "Subject") or ""))
        plain_text, html = self._extract_bodies(msg)

        attachments: List[Attachment] = []
        if self.extract_attachments:
            attachments = self._extract_attachments(msg)

        message_id = clean_message_id(header_text(msg, "Message-ID"))
        in_reply_to = clean_message_id(header_text(msg, "In-Reply-To"))

        return EmailRecord(
            plain_text=plain_text,
            html=html,
            from_addrs=from_addrs,
            to_addrs=to_addrs,
            cc_addrs=cc_addrs,
            bcc_addrs=bcc_addrs,
            subject=subject,
            timestamp=timestamp,
            parent=self._resolve_parent(in_reply_to, index),
            attachments=attachments,
            message_id=message_id,
            in_reply_to=in_reply_to,
        )

    @staticmethod
    def _extract_date(msg: Message):
        """
        Parse the Date header into an aware datetime

        A "-0000" zone means "unknown local time"; it is read as UTC so the
        result is always timezone-aware.
        """
        raw = header_text(msg, "Date")
        if raw is None:
            raise MalformedDateError("Message has no Date header")

        date_str = unfold(raw).strip()
        try:
            parsed = parsedate_to_datetime(date_str)
        except (TypeError, ValueError, IndexError, OverflowError) as e:
            raise MalformedDateError(
                f"Unparsable Date header {sanitize_for_logging(date_str)!r}"
            ) from e

        if parsed is None:
            raise MalformedDateError(
                f"Unparsable Date header {sanitize_for_logging(date_str)!r}"
            )
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _candidate_parts(self, msg: Message) -> List[Message]:
        """Direct subparts followed by the top-level part itself"""
        subparts: List[Message] = []
        if msg.is_multipart():
            payload = msg.get_payload()
            if isinstance(payload, list):
                subparts = [part for part in payload if isinstance(part, Message)]

        if len(subparts) > MAX_MIME_PARTS:
            self.logger.warning(
                f"Message exceeds max MIME parts ({MAX_MIME_PARTS}). "
                f"Ignoring {len(subparts) - MAX_MIME_PARTS} trailing parts."
            )
            subparts = subparts[:MAX_MIME_PARTS]

        return subparts + [msg]

    def _extract_bodies(self, msg: Message) -> Tuple[str, str]:
        """
        Pick the plain-text and HTML bodies

        Later parts overwrite earlier ones, so the last matching part wins.
        """
        plain_text = ""
        html = ""

        for part in self._candidate_parts(msg):
            content_type = part.get_content_type()
            if content_type == "text/plain":
                plain_text = self._decode_part_payload(part)
            elif content_type == "text/html":
                html = self._decode_part_payload(part)

        return plain_text, html

    def _extract_attachments(self, msg: Message) -> List[Attachment]:
        """
        Collect direct subparts that are attachments

        Inline text/plain and text/html parts are bodies, multipart
        containers are skipped, and anything else needs a filename or an
        attachment disposition.
        """
        attachments: List[Attachment] = []

        for part in self._candidate_parts(msg)[:-1]:
            content_type = part.get_content_type()
            disposition = str(part.get("Content-Disposition", "")).lower()

            if part.is_multipart():
                continue
            if content_type in BODY_TYPES and "attachment" not in disposition:
                continue

            raw_filename = decode_words(part.get_filename() or "")
            if not raw_filename and "attachment" not in disposition:
                continue

            if len(attachments) >= self.max_attachment_count:
                self.logger.warning(
                    f"Max attachment count ({self.max_attachment_count}) reached. "
                    f"Skipping remaining attachments."
                )
                break

            payload = part.get_payload(decode=True) or b""
            filename = sanitize_filename(raw_filename)
            if self.max_attachment_bytes > 0 and len(payload) > self.max_attachment_bytes:
                self.logger.warning(
                    "Attachment %s exceeds max size (%d bytes); truncating",
                    sanitize_for_logging(filename),
                    len(payload),
                )
                payload = payload[:self.max_attachment_bytes]

            attachments.append(Attachment(
                filename=filename,
                mime_type=content_type,
                data=payload,
            ))

        return attachments

    def _resolve_parent(
        self,
        in_reply_to: Optional[str],
        index: Optional[ThreadIndex]
    ) -> Optional[Location]:
        """
        Look up the In-Reply-To target

        A reference to a message that is not indexed (deleted, never
        downloaded, sent from another store) leaves the parent empty.
        """
        if not in_reply_to or index is None:
            return None

        location = index.get(in_reply_to)
        if location is None:
            self.logger.debug(
                f"In-Reply-To {sanitize_for_logging(in_reply_to)} not in index"
            )
        return location

    @staticmethod
    def _decode_part_payload(part: Message) -> str:
        """
        Decode MIME part payload to string

        Args:
            part: MIME part

        Returns:
            Decoded string content
        """
        payload = part.get_payload(decode=True)
        if not payload:
            return ""
        return EmailParser._decode_bytes(payload, part.get_content_charset())

    @staticmethod
    def _decode_bytes(data: bytes, charset: Optional[str]) -> str:
        """
        Decode bytes to string with charset fallback

        Args:
            data: Bytes to decode
            charset: Charset name (can be None or invalid)

        Returns:
            Decoded string
        """
        encoding = charset or "utf-8"
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            return data.decode("utf-8", errors="replace")
