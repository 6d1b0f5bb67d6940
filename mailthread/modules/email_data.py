"""
Email Data Model
Value objects produced by the parser and stored in the thread index
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Location:
    """
    Durable address of a message: folder display name plus its UID

    The UID only means something inside its folder, so the pair is what the
    resolver uses to re-fetch a message after the selection has moved on.
    """
    folder: str
    uid: int

    def __str__(self) -> str:
        return f"{self.folder}/{self.uid}"

    def log_context(self, message_id: Optional[str] = None) -> dict:
        """Fields attached to log records about this message"""
        context = {"folder": self.folder, "uid": self.uid}
        if message_id is not None:
            context["message_id"] = message_id
        return context


@dataclass
class Attachment:
    """A non-body MIME part"""
    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class EmailRecord:
    """
    Container for a parsed message

    Address lists keep header order and duplicates. ``parent`` is only set
    when the In-Reply-To target was present in the index at parse time.
    """
    plain_text: str
    html: str
    from_addrs: List[str]
    to_addrs: List[str]
    cc_addrs: List[str]
    bcc_addrs: List[str]
    subject: str
    timestamp: datetime
    parent: Optional[Location] = None
    attachments: List[Attachment] = field(default_factory=list)
    message_id: Optional[str] = None
    in_reply_to: Optional[str] = None
