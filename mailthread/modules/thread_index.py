"""
Thread Index
In-memory mapping from Message-ID to the folder/UID that holds the message
"""

import logging
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .email_data import Location
from .exceptions import DuplicateMessageIdError
from ..utils.sanitization import sanitize_for_logging


logger = logging.getLogger(__name__)


class DuplicatePolicy(Enum):
    """What to do when a Message-ID is seen at a second location"""
    LAST_WINS = "last_wins"
    FIRST_WINS = "first_wins"
    REJECT = "reject"


class ThreadIndex:
    """
    Message-ID -> Location map built by one enumeration pass

    Copies of a message (e.g. a mail filed in both INBOX and an archive
    folder) share a Message-ID, so duplicates are expected and resolved by
    ``duplicate_policy``. Re-adding the identical location is a no-op.
    Iteration follows insertion order.
    """

    def __init__(
        self,
        duplicate_policy: Union[DuplicatePolicy, str] = DuplicatePolicy.LAST_WINS
    ):
        self.duplicate_policy = DuplicatePolicy(duplicate_policy)
        self.duplicates = 0
        self._entries: Dict[str, Location] = {}

    def add(self, message_id: str, location: Location) -> bool:
        """
        Insert an entry

        Args:
            message_id: Message-ID as carried by the envelope
            location: Where the message lives

        Returns:
            True if the index now points at ``location``

        Raises:
            DuplicateMessageIdError: under the reject policy
        """
        existing = self._entries.get(message_id)
        if existing is None:
            self._entries[message_id] = location
            return True

        if existing == location:
            return True

        self.duplicates += 1
        logger.warning(
            "Duplicate Message-ID %s at %s (already at %s); policy=%s",
            sanitize_for_logging(message_id),
            sanitize_for_logging(str(location)),
            sanitize_for_logging(str(existing)),
            self.duplicate_policy.value,
            extra={"extra_fields": location.log_context(message_id)},
        )

        if self.duplicate_policy is DuplicatePolicy.REJECT:
            raise DuplicateMessageIdError(message_id, existing, location)
        if self.duplicate_policy is DuplicatePolicy.FIRST_WINS:
            return False

        self._entries[message_id] = location
        return True

    def get(self, message_id: Optional[str]) -> Optional[Location]:
        """Look up a Message-ID; a miss is a normal outcome and returns None"""
        if not message_id:
            return None
        return self._entries.get(message_id)

    def items(self) -> List[Tuple[str, Location]]:
        """Snapshot of (Message-ID, Location) pairs in index order"""
        return list(self._entries.items())

    def folders(self) -> List[str]:
        """Folders referenced by the index, in first-seen order"""
        seen: Dict[str, None] = {}
        for location in self._entries.values():
            seen.setdefault(location.folder, None)
        return list(seen)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return (
            f"ThreadIndex(entries={len(self._entries)}, "
            f"policy={self.duplicate_policy.value})"
        )
