"""
Mailbox Queries
Two read-only queries that work straight on the session, without the index
"""

import logging
from typing import List, Optional, Tuple

from .exceptions import FolderSelectError, NoFolderSelectedError
from .header_decoder import decode_header_bytes
from .imap_connection import IMAPConnection


logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 100


def first_message(connection: IMAPConnection) -> Optional[Tuple[bool, str]]:
    """
    Seen flag and raw text of message 1 in the selected folder

    BODY.PEEK is used so reading the message does not mark it seen.

    Returns:
        (seen, raw_body) or None when the folder is empty

    Raises:
        NoFolderSelectedError: no folder is selected
    """
    if connection.active_folder is None:
        raise NoFolderSelectedError("first_message requires a selected folder")

    if connection.selected_exists == 0:
        return None

    for message in connection.fetch(1, "(FLAGS BODY.PEEK[])"):
        if message.seq == 1 and message.body is not None:
            return message.seen, message.body.decode("utf-8", errors="replace")

    return None


def most_recent(
    connection: IMAPConnection,
    folder: Optional[str] = None,
    limit: int = DEFAULT_RECENT_LIMIT
) -> List[str]:
    """
    Decoded subjects of the newest messages, newest first

    "Newest" means highest UID. Only envelopes are fetched.

    Args:
        connection: Connected session adapter
        folder: Folder to query; the selected folder when None
        limit: Maximum number of subjects

    Returns:
        Subjects ordered by descending UID
    """
    if folder is not None and not connection.ensure_folder(folder):
        raise FolderSelectError(folder)

    uids = sorted(connection.uid_search("ALL"))
    recent = uids[-limit:] if limit > 0 else []
    if not recent:
        return []

    by_uid = {
        message.uid: message
        for message in connection.uid_fetch(recent, "(UID ENVELOPE)")
        if message.uid is not None and message.envelope is not None
    }

    missing = [uid for uid in recent if uid not in by_uid]
    if missing:
        logger.debug(f"{len(missing)} UIDs vanished between SEARCH and FETCH")

    return [
        decode_header_bytes(by_uid[uid].envelope.subject)
        for uid in reversed(recent)
        if uid in by_uid
    ]
