"""
Mail Thread Client
Owns the IMAP session and the thread index for their whole lifetime
"""

import logging
from typing import List, Optional, Tuple

from mailthread.modules.email_data import EmailRecord, Location
from mailthread.modules.email_parser import EmailParser
from mailthread.modules.exceptions import FolderSelectError
from mailthread.modules.imap_connection import IMAPConnection
from mailthread.modules.mailbox_enumerator import MailboxEnumerator
from mailthread.modules import mailbox_queries
from mailthread.modules.thread_index import ThreadIndex
from mailthread.modules.thread_resolver import ThreadResolver
from mailthread.utils.config import Config


class MailThreadClient:
    """
    Top-level client

    Use as a context manager: the session is opened on entry and a LOGOUT
    is always sent on exit, whether the block finished or raised.

        with MailThreadClient(Config(".env")) as client:
            client.build_index()
            match = client.find_by_subject("Quarterly report")
    """

    def __init__(self, config: Config, connection: Optional[IMAPConnection] = None):
        """
        Args:
            config: Loaded configuration
            connection: Session adapter to use instead of a new IMAPConnection
        """
        self.config = config
        self.connection = connection or IMAPConnection(config.account)
        self.parser = EmailParser.from_config(config.indexing)
        self.index = ThreadIndex(config.indexing.duplicate_policy)
        self.logger = logging.getLogger("MailThreadClient")

    def __enter__(self) -> "MailThreadClient":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def open(self):
        """Connect and log in; the connection is released if login fails"""
        try:
            self.connection.connect()
        except BaseException:
            self.connection.disconnect()
            raise

    def close(self):
        """Log out from the store"""
        self.connection.disconnect()

    @property
    def resolver(self) -> ThreadResolver:
        return ThreadResolver(self.connection, self.index, self.parser)

    def list_folders(self) -> List[str]:
        """Display names of every folder, freshly listed"""
        return list(MailboxEnumerator(self.connection).stream_folder_names())

    def build_index(self) -> ThreadIndex:
        """
        Replace the index with a fresh enumeration of the store

        The new index is installed before the pass starts, so messages
        indexed before an error are kept.
        """
        self.index = ThreadIndex(self.config.indexing.duplicate_policy)
        enumerator = MailboxEnumerator(self.connection, self.index.duplicate_policy)
        enumerator.enumerate(self.index)
        return self.index

    def select_folder(self, folder: str):
        """Select ``folder`` for the sequence-number based queries"""
        if not self.connection.select_folder(folder):
            raise FolderSelectError(folder)

    def fetch_record(self, location: Location) -> EmailRecord:
        return self.resolver.fetch_record(location)

    def find_by_subject(
        self,
        subject: str,
        folder: Optional[str] = None
    ) -> Optional[Tuple[Location, EmailRecord]]:
        return self.resolver.find_by_subject(subject, folder=folder)

    def find_by_message_id(self, message_id: str) -> Optional[Tuple[Location, EmailRecord]]:
        return self.resolver.find_by_message_id(message_id)

    def thread_for_subject(self, subject: str) -> List[Tuple[Location, EmailRecord]]:
        """Thread ending at the message with ``subject``; empty when not found"""
        match = self.find_by_subject(subject)
        if match is None:
            return []
        return self.resolver.walk_thread(match[0])

    def first_message(self, folder: Optional[str] = None) -> Optional[Tuple[bool, str]]:
        if folder is not None:
            self.select_folder(folder)
        return mailbox_queries.first_message(self.connection)

    def most_recent(self, folder: Optional[str] = None, limit: Optional[int] = None) -> List[str]:
        if limit is None:
            limit = self.config.indexing.recent_limit
        return mailbox_queries.most_recent(self.connection, folder=folder, limit=limit)
