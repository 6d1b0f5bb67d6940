"""
Thread Resolver
Finds messages through the index and follows In-Reply-To chains

Every lookup goes index -> Location -> (re)select folder -> UID FETCH ->
parse, so results stay correct no matter which folder was active before.
"""

import logging
from typing import List, Optional, Tuple

from .email_data import EmailRecord, Location
from .email_parser import EmailParser
from .exceptions import (
    FolderSelectError,
    IMAPCommandError,
    MessageNotFoundError,
    MessageParseError,
)
from .imap_connection import IMAPConnection
from .thread_index import ThreadIndex
from ..utils.sanitization import sanitize_for_logging


Match = Tuple[Location, EmailRecord]


class ThreadResolver:
    """
    Query side of the index

    ``find_by_subject`` is a linear scan with one full fetch per candidate.
    Fine for hundreds of messages, slow for tens of thousands.
    """

    BODY_ITEMS = "(UID BODY.PEEK[])"

    def __init__(
        self,
        connection: IMAPConnection,
        index: ThreadIndex,
        parser: Optional[EmailParser] = None
    ):
        self.connection = connection
        self.index = index
        self.parser = parser or EmailParser()
        self.logger = logging.getLogger("ThreadResolver")

    def fetch_record(self, location: Location) -> EmailRecord:
        """
        Fetch and parse the message at ``location``

        Raises:
            FolderSelectError: the folder could not be selected
            MessageNotFoundError: the UID no longer exists
            MalformedDateError: the message has no usable Date header
        """
        if not self.connection.ensure_folder(location.folder):
            raise FolderSelectError(location.folder)

        for message in self.connection.uid_fetch(location.uid, self.BODY_ITEMS):
            if message.uid == location.uid and message.body is not None:
                return self.parser.parse(message.body, self.index)

        raise MessageNotFoundError(f"No message at {location}")

    def find_by_subject(self, subject: str, folder: Optional[str] = None) -> Optional[Match]:
        """
        First indexed message whose decoded Subject equals ``subject``

        The comparison is exact and case-sensitive. Candidates are visited
        in index order; ones that cannot be fetched or parsed are logged and
        skipped.

        Args:
            subject: Subject to match
            folder: Only consider messages in this folder

        Returns:
            (location, record) or None when nothing matches
        """
        for message_id, location in self.index.items():
            if folder is not None and location.folder != folder:
                continue

            try:
                record = self.fetch_record(location)
            except (FolderSelectError, MessageNotFoundError, MessageParseError, IMAPCommandError) as e:
                self.logger.warning(
                    f"Skipping {sanitize_for_logging(message_id)} at "
                    f"{sanitize_for_logging(str(location))}: {e}",
                    extra={"extra_fields": location.log_context(message_id)},
                )
                continue

            if record.subject == subject:
                return location, record

        return None

    def find_by_message_id(self, message_id: str) -> Optional[Match]:
        """Fetch the message indexed under ``message_id``, None on a miss"""
        location = self.index.get(message_id)
        if location is None:
            return None
        return location, self.fetch_record(location)

    def walk_thread(self, location: Location) -> List[Match]:
        """
        Follow parent links from ``location`` towards the thread root

        Returns:
            The starting message first, then each ancestor found in the index
        """
        chain: List[Match] = []
        seen = set()
        current: Optional[Location] = location

        while current is not None:
            if current in seen:
                self.logger.warning(
                    f"Reply cycle detected at {sanitize_for_logging(str(current))}",
                    extra={"extra_fields": current.log_context()},
                )
                break
            seen.add(current)

            record = self.fetch_record(current)
            chain.append((current, record))
            current = record.parent

        return chain
