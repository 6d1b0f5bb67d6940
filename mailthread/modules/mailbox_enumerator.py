"""
Mailbox Enumerator
Walks every folder of the store and builds the Message-ID index

Only UID and ENVELOPE are fetched - one UID FETCH per folder - so indexing
cost grows with the number of messages but never with their size.
"""

import logging
from typing import Iterator, List, Optional

from .email_data import Location
from .exceptions import FolderNameError, IMAPCommandError
from .folder_codec import decode_folder_name
from .imap_connection import IMAPConnection
from .imap_response import FolderListing
from .thread_index import DuplicatePolicy, ThreadIndex
from ..utils.metrics import IndexMetrics
from ..utils.sanitization import sanitize_for_logging


class MailboxEnumerator:
    """
    Builds a ThreadIndex from every selectable folder

    A folder that cannot be selected or fetched is logged, recorded in
    ``failed_folders`` and skipped; the pass continues with the next one.
    Connection errors end the pass, and whatever was already indexed stays
    in the index that was passed in.
    """

    ENVELOPE_ITEMS = "(UID ENVELOPE)"

    def __init__(
        self,
        connection: IMAPConnection,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS
    ):
        """
        Args:
            connection: Connected session adapter
            duplicate_policy: Policy for indexes created by ``enumerate``
        """
        self.connection = connection
        self.duplicate_policy = DuplicatePolicy(duplicate_policy)
        self.metrics = IndexMetrics()
        self.logger = logging.getLogger("MailboxEnumerator")

    @property
    def failed_folders(self) -> List[str]:
        return self.metrics.failed_folders

    def stream_folder_names(self) -> Iterator[str]:
        """
        Yield every folder's display name in listing order

        The listing is re-read from the server on every call.
        """
        for listing in self.connection.list_folders('""', "*"):
            yield self._display_name(listing)

    def enumerate(self, index: Optional[ThreadIndex] = None) -> ThreadIndex:
        """
        Index every message in every folder

        Listings flagged \\Noselect are recorded as skipped without a SELECT.

        Args:
            index: Index to fill; a new one using ``duplicate_policy`` when None

        Returns:
            The filled index
        """
        if index is None:
            index = ThreadIndex(self.duplicate_policy)
        self.metrics = IndexMetrics()

        self.logger.info("Indexing pass started")
        try:
            for listing in self.connection.list_folders('""', "*"):
                folder = self._display_name(listing)
                self.metrics.record_folder_listed()
                if not listing.selectable:
                    self._skip_folder(folder, "it is marked \\Noselect")
                    continue
                self._index_folder(folder, index)
        finally:
            self._close_active_folder()

        summary = self.metrics.get_summary()
        self.logger.info(
            f"Index built: {len(index)} messages from "
            f"{summary['folders_indexed']}/{summary['folders_listed']} folders "
            f"({summary['folders_failed']} skipped, {summary['duplicates']} duplicates)",
            extra={"extra_fields": {
                key: summary[key]
                for key in ("folders_listed", "folders_indexed", "folders_failed",
                            "messages_indexed", "duplicates", "elapsed_seconds")
            }},
        )
        return index

    def _index_folder(self, folder: str, index: ThreadIndex):
        if not self.connection.select_folder(folder):
            self._skip_folder(folder, "it could not be selected")
            return

        if self.connection.selected_exists == 0:
            self.logger.debug(f"Folder {sanitize_for_logging(folder)} is empty")
            self.metrics.record_folder_indexed(folder, 0)
            return

        try:
            messages = self.connection.uid_fetch("1:*", self.ENVELOPE_ITEMS)
        except IMAPCommandError as e:
            self._skip_folder(folder, f"envelope fetch failed: {e}")
            return

        indexed = 0
        for message in messages:
            if message.uid is None or message.envelope is None:
                # Unsolicited FETCH (e.g. a flag update) rather than our data
                continue

            message_id = message.envelope.message_id_text
            if message_id is None:
                self.metrics.record_missing_id()
                continue

            duplicates_before = index.duplicates
            index.add(message_id, Location(folder, message.uid))
            if index.duplicates != duplicates_before:
                self.metrics.record_duplicate()
            indexed += 1

        self.metrics.record_folder_indexed(folder, indexed)
        self.logger.info(
            f"Indexed folder {sanitize_for_logging(folder)}: {indexed} messages",
            extra={"extra_fields": {"folder": folder, "messages": indexed}},
        )

    def _skip_folder(self, folder: str, reason: str):
        self.logger.warning(
            f"Skipping folder {sanitize_for_logging(folder)}: {reason}",
            extra={"extra_fields": {"folder": folder}},
        )
        self.metrics.record_folder_failed(folder)

    def _close_active_folder(self):
        try:
            self.connection.close_folder()
        except IMAPCommandError as e:
            self.logger.warning(f"CLOSE failed after indexing: {e}")

    def _display_name(self, listing: FolderListing) -> str:
        try:
            return decode_folder_name(listing.name)
        except FolderNameError as e:
            self.logger.warning(
                f"Keeping undecodable folder name {sanitize_for_logging(listing.name)}: {e}",
                extra={"extra_fields": {"folder": listing.name}},
            )
            # the session sends listed names back verbatim
            return listing.display_name
