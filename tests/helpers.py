"""
Shared test fixtures: message builders and an in-memory session double

FakeConnection exposes the same surface as IMAPConnection (list_folders,
select_folder, ensure_folder, close_folder, uid_search, uid_fetch, fetch,
active_folder, selected_exists) so the enumerator, resolver and queries can
be exercised without a server.
"""

import email
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from mailthread.modules.exceptions import IMAPConnectionError, NoFolderSelectedError
from mailthread.modules.folder_codec import encode_folder_name
from mailthread.modules.header_decoder import header_text
from mailthread.modules.imap_response import Envelope, FetchedMessage, FolderListing
from mailthread.utils.config import Config, IndexingConfig, MailAccountConfig, SystemConfig


DEFAULT_DATE = "Mon, 02 Jun 2025 10:00:00 +0000"


def make_raw_email(
    subject: Optional[str] = "Hello",
    message_id: Optional[str] = None,
    in_reply_to: Optional[str] = None,
    date: Optional[str] = DEFAULT_DATE,
    from_addr: Optional[str] = "alice@example.com",
    to_addr: Optional[str] = "bob@example.com",
    body: str = "Hello there",
) -> bytes:
    """
    Return raw bytes for a single-part plain-text message

    Headers are written verbatim (no folding or re-encoding) so tests control
    exactly what the parser sees. Pass None to leave a header out.
    """
    headers = [
        ("Subject", subject),
        ("From", from_addr),
        ("To", to_addr),
        ("Date", date),
        ("Message-ID", message_id),
        ("In-Reply-To", in_reply_to),
    ]
    lines = [f"{name}: {value}" for name, value in headers if value is not None]
    lines += [
        "MIME-Version: 1.0",
        'Content-Type: text/plain; charset="utf-8"',
        "Content-Transfer-Encoding: 8bit",
        "",
        body,
    ]
    return "\r\n".join(lines).encode("utf-8")


def envelope_from_raw(raw: bytes) -> Envelope:
    """Build the Envelope a server would report for ``raw``"""
    msg = email.message_from_bytes(raw)

    def _field(name: str) -> Optional[bytes]:
        value = header_text(msg, name)
        return value.encode("utf-8") if value is not None else None

    return Envelope(
        date=_field("Date"),
        subject=_field("Subject"),
        in_reply_to=_field("In-Reply-To"),
        message_id=_field("Message-ID"),
    )


def make_config(**indexing) -> Config:
    """Config object built without reading any .env file"""
    config = Config.__new__(Config)
    config.account = MailAccountConfig(
        domain="imap.example.com",
        username="user@example.com",
        password="secret",
    )
    config.indexing = IndexingConfig(**indexing)
    config.system = SystemConfig(log_file="")
    return config


def _expand_message_set(message_set, available: Sequence[int]) -> List[int]:
    if isinstance(message_set, int):
        return [message_set]
    if not isinstance(message_set, str):
        return [int(i) for i in message_set]

    wanted: List[int] = []
    highest = max(available) if available else 0
    for token in message_set.split(","):
        if ":" in token:
            low, high = token.split(":")
            low_n = int(low)
            high_n = highest if high == "*" else int(high)
            wanted.extend(n for n in available if low_n <= n <= high_n)
        else:
            wanted.append(int(token))
    return wanted


class FakeConnection:
    """
    In-memory mail store

    Args:
        folders: display name -> list of (uid, raw message bytes)
        unselectable: folders whose selection is refused
        flags: (folder, uid) -> flags tuple
        fetch_errors: folder -> exception raised by uid_fetch in that folder
        noselect: folders listed with the \\Noselect flag
        raw_names: folders listed under their display name as is, without
            modified UTF-7 encoding
    """

    def __init__(
        self,
        folders: Dict[str, List[Tuple[int, bytes]]],
        unselectable: Iterable[str] = (),
        flags: Optional[Dict[Tuple[str, int], Tuple[str, ...]]] = None,
        fetch_errors: Optional[Dict[str, Exception]] = None,
        noselect: Iterable[str] = (),
        raw_names: Iterable[str] = (),
    ):
        self.folders = folders
        self.unselectable = set(unselectable)
        self.flags = flags or {}
        self.fetch_errors = fetch_errors or {}
        self.noselect = set(noselect)
        self.raw_names = set(raw_names)
        self.active_folder: Optional[str] = None
        self.selected_exists = 0
        self.connected = True

        self.select_calls: List[str] = []
        self.fetch_calls: List[Tuple[Optional[str], object, str]] = []
        self.close_calls = 0

    def list_folders(self, reference: str = '""', pattern: str = "*") -> List[FolderListing]:
        if not self.connected:
            raise IMAPConnectionError("Not connected to the IMAP server")
        return [
            FolderListing(
                name=name if name in self.raw_names else encode_folder_name(name),
                delimiter="/",
                flags=("\\Noselect",) if name in self.noselect else (),
            )
            for name in self.folders
        ]

    def select_folder(self, folder: str, readonly: bool = True) -> bool:
        self.select_calls.append(folder)
        if folder in self.unselectable or folder not in self.folders:
            self.active_folder = None
            self.selected_exists = 0
            return False
        self.active_folder = folder
        self.selected_exists = len(self.folders[folder])
        return True

    def ensure_folder(self, folder: str) -> bool:
        if self.active_folder == folder:
            return True
        return self.select_folder(folder)

    def close_folder(self):
        if self.active_folder is None:
            return
        self.close_calls += 1
        self.active_folder = None
        self.selected_exists = 0

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False
        self.active_folder = None

    def _messages(self) -> List[Tuple[int, bytes]]:
        if self.active_folder is None:
            raise NoFolderSelectedError("no folder selected")
        return self.folders[self.active_folder]

    def uid_search(self, criteria: str = "ALL") -> List[int]:
        return [uid for uid, _ in self._messages()]

    def search(self, criteria: str = "ALL") -> List[int]:
        return list(range(1, len(self._messages()) + 1))

    def _build(self, seq: int, uid: int, raw: bytes, items: str) -> FetchedMessage:
        message = FetchedMessage(seq=seq, uid=uid)
        if "ENVELOPE" in items:
            message.envelope = envelope_from_raw(raw)
        if "BODY" in items or "RFC822" in items:
            message.body = raw
        if "FLAGS" in items:
            message.flags = self.flags.get((self.active_folder, uid), ())
        return message

    def uid_fetch(self, message_set, items: str) -> List[FetchedMessage]:
        messages = self._messages()
        self.fetch_calls.append((self.active_folder, message_set, items))
        if self.active_folder in self.fetch_errors:
            raise self.fetch_errors[self.active_folder]

        wanted = set(_expand_message_set(message_set, [uid for uid, _ in messages]))
        return [
            self._build(seq, uid, raw, items)
            for seq, (uid, raw) in enumerate(messages, start=1)
            if uid in wanted
        ]

    def fetch(self, message_set, items: str) -> List[FetchedMessage]:
        messages = self._messages()
        self.fetch_calls.append((self.active_folder, message_set, items))

        wanted = set(_expand_message_set(message_set, range(1, len(messages) + 1)))
        return [
            self._build(seq, uid, raw, items)
            for seq, (uid, raw) in enumerate(messages, start=1)
            if seq in wanted
        ]
