"""
IMAP Response Parsing
Turns the raw data lists returned by imaplib into typed results

imaplib hands back FETCH and LIST data as a list whose items are either
plain bytes or ``(head, literal)`` tuples, where ``head`` ends in ``{N}`` and
``literal`` holds exactly N bytes. Gluing the pieces back together gives a
byte stream in which every ``{N}`` marker is immediately followed by its
literal, which is what the reader below expects.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from .exceptions import FolderNameError, IMAPCommandError
from .folder_codec import decode_folder_name

# NIL is returned as None
Value = Union[None, bytes, list]

ATOM_STOP = frozenset(b' ()"\r\n')


class ResponseParseError(IMAPCommandError):
    """The server response does not follow the IMAP grammar"""


@dataclass
class Envelope:
    """
    The ENVELOPE fields the index and queries need

    Values are the raw bytes the server sent, or None for NIL.
    """
    date: Optional[bytes] = None
    subject: Optional[bytes] = None
    in_reply_to: Optional[bytes] = None
    message_id: Optional[bytes] = None

    @classmethod
    def from_list(cls, fields: list) -> "Envelope":
        """
        Build from the parsed ENVELOPE list

        RFC 3501 order: date, subject, from, sender, reply-to, to, cc, bcc,
        in-reply-to, message-id.
        """
        if not isinstance(fields, list) or len(fields) < 10:
            raise ResponseParseError(f"Malformed ENVELOPE: {fields!r}")

        def _text(value: Value) -> Optional[bytes]:
            return value if isinstance(value, bytes) else None

        return cls(
            date=_text(fields[0]),
            subject=_text(fields[1]),
            in_reply_to=_text(fields[8]),
            message_id=_text(fields[9]),
        )

    @property
    def message_id_text(self) -> Optional[str]:
        """Message-ID as text, None when absent or blank"""
        if not self.message_id:
            return None
        text = self.message_id.decode("utf-8", errors="replace").strip()
        return text or None


@dataclass
class FetchedMessage:
    """One FETCH response: sequence number plus whichever items came back"""
    seq: int
    uid: Optional[int] = None
    flags: Tuple[str, ...] = ()
    envelope: Optional[Envelope] = None
    body: Optional[bytes] = None

    @property
    def seen(self) -> bool:
        return any(flag.lower() == "\\seen" for flag in self.flags)


@dataclass
class FolderListing:
    """One LIST response line"""
    name: str
    delimiter: Optional[str] = None
    flags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def selectable(self) -> bool:
        return not any(flag.lower() == "\\noselect" for flag in self.flags)

    @property
    def display_name(self) -> str:
        """Decoded name, or the wire name when it is not valid modified UTF-7"""
        try:
            return decode_folder_name(self.name)
        except FolderNameError:
            return self.name


class _Reader:
    """Recursive-descent reader over a flattened response buffer"""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def skip_whitespace(self):
        while self.pos < len(self.data) and self.data[self.pos] in b" \r\n":
            self.pos += 1

    def at_end(self) -> bool:
        self.skip_whitespace()
        return self.pos >= len(self.data)

    def read_value(self) -> Value:
        self.skip_whitespace()
        if self.pos >= len(self.data):
            raise ResponseParseError("Unexpected end of response")

        ch = self.data[self.pos:self.pos + 1]
        if ch == b"(":
            return self.read_list()
        if ch == b'"':
            return self.read_quoted()
        if ch == b"{":
            return self.read_literal()

        atom = self.read_atom()
        if atom.upper() == b"NIL":
            return None
        return atom

    def read_list(self) -> list:
        self.pos += 1
        items = []
        while True:
            self.skip_whitespace()
            if self.pos >= len(self.data):
                raise ResponseParseError("Unterminated parenthesized list")
            if self.data[self.pos:self.pos + 1] == b")":
                self.pos += 1
                return items
            items.append(self.read_value())

    def read_quoted(self) -> bytes:
        self.pos += 1
        out = bytearray()
        while self.pos < len(self.data):
            ch = self.data[self.pos]
            if ch == 0x5C:  # backslash
                if self.pos + 1 >= len(self.data):
                    break
                out.append(self.data[self.pos + 1])
                self.pos += 2
                continue
            if ch == 0x22:  # closing quote
                self.pos += 1
                return bytes(out)
            out.append(ch)
            self.pos += 1
        raise ResponseParseError("Unterminated quoted string")

    def read_literal(self) -> bytes:
        end = self.data.find(b"}", self.pos)
        if end == -1:
            raise ResponseParseError("Unterminated literal size")
        try:
            size = int(self.data[self.pos + 1:end])
        except ValueError:
            raise ResponseParseError(
                f"Invalid literal size {self.data[self.pos:end + 1]!r}"
            )

        start = end + 1
        value = self.data[start:start + size]
        if len(value) != size:
            raise ResponseParseError(
                f"Literal truncated: expected {size} bytes, got {len(value)}"
            )
        self.pos = start + size
        return value

    def read_atom(self) -> bytes:
        # Section specs like BODY[HEADER.FIELDS (DATE)] contain spaces and
        # parens, so brackets are consumed as part of the atom.
        start = self.pos
        depth = 0
        while self.pos < len(self.data):
            ch = self.data[self.pos]
            if ch == 0x5B:  # [
                depth += 1
            elif ch == 0x5D:  # ]
                depth = max(depth - 1, 0)
            elif depth == 0 and ch in ATOM_STOP:
                break
            self.pos += 1

        if self.pos == start:
            raise ResponseParseError(
                f"Unexpected {self.data[self.pos:self.pos + 1]!r} at offset {self.pos}"
            )
        return self.data[start:self.pos]


def _flatten(item) -> bytes:
    if isinstance(item, tuple):
        return b"".join(part for part in item if isinstance(part, bytes))
    return item


def _join_response(data: Sequence) -> bytes:
    chunks = [_flatten(item) for item in data if item is not None]
    return b" ".join(chunk for chunk in chunks if chunk)


def _to_int(value: Value, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ResponseParseError(f"Expected a number for {what}, got {value!r}")


def _build_message(seq: int, attributes: list) -> FetchedMessage:
    if len(attributes) % 2:
        raise ResponseParseError(f"Odd number of FETCH attributes for message {seq}")

    message = FetchedMessage(seq=seq)
    for key, value in zip(attributes[::2], attributes[1::2]):
        if not isinstance(key, bytes):
            raise ResponseParseError(f"Invalid FETCH attribute name {key!r}")
        name = key.decode("ascii", errors="replace").upper()

        if name == "UID":
            message.uid = _to_int(value, "UID")
        elif name == "FLAGS":
            message.flags = tuple(
                flag.decode("ascii", errors="replace")
                for flag in (value or [])
                if isinstance(flag, bytes)
            )
        elif name == "ENVELOPE":
            message.envelope = Envelope.from_list(value)
        elif name in ("RFC822", "BODY[]"):
            message.body = value if value is not None else b""

    return message


def parse_fetch_response(data: Sequence) -> List[FetchedMessage]:
    """
    Parse the data list of a FETCH / UID FETCH command

    Args:
        data: Second element of imaplib's ``(status, data)`` result

    Returns:
        One FetchedMessage per untagged FETCH response, in server order
    """
    reader = _Reader(_join_response(data))
    messages = []

    while not reader.at_end():
        seq = _to_int(reader.read_atom(), "message sequence number")
        attributes = reader.read_value()
        if not isinstance(attributes, list):
            raise ResponseParseError(f"Expected attribute list for message {seq}")
        messages.append(_build_message(seq, attributes))

    return messages


def parse_list_response(data: Sequence) -> List[FolderListing]:
    """
    Parse the data list of a LIST command

    Each line looks like ``(\\HasNoChildren) "/" "INBOX"``; the name may
    also be an atom or a literal. Names are returned in wire form.
    """
    listings = []

    for item in data:
        if item is None:
            continue
        raw = _flatten(item)
        if not raw:
            continue

        reader = _Reader(raw)
        flags = reader.read_value()
        delimiter = reader.read_value()
        name = reader.read_value()
        if not isinstance(flags, list) or not isinstance(name, bytes):
            raise ResponseParseError(f"Malformed LIST response: {raw!r}")

        listings.append(FolderListing(
            name=name.decode("utf-8", errors="replace"),
            delimiter=delimiter.decode("ascii", errors="replace") if delimiter else None,
            flags=tuple(
                flag.decode("ascii", errors="replace")
                for flag in flags
                if isinstance(flag, bytes)
            ),
        ))

    return listings


def parse_search_response(data: Sequence) -> List[int]:
    """Parse SEARCH / UID SEARCH data into a list of numbers"""
    numbers = []
    for item in data:
        if not item:
            continue
        for token in _flatten(item).split():
            numbers.append(_to_int(token, "SEARCH result"))
    return numbers
