"""
Exception hierarchy for the mail threading client

Connection errors are fatal to the session. Everything else is scoped to a
single folder or message and the caller decides whether to continue.
"""


class MailThreadError(Exception):
    """Base class for all errors raised by mailthread"""


class IMAPConnectionError(MailThreadError):
    """Login failed or the transport to the mail store was lost"""


class IMAPCommandError(IMAPConnectionError):
    """The server rejected a command or sent a response we cannot parse"""


class FolderSelectError(MailThreadError):
    """A folder could not be selected"""

    def __init__(self, folder: str):
        super().__init__(f"Could not select folder {folder!r}")
        self.folder = folder


class NoFolderSelectedError(MailThreadError):
    """A folder-scoped operation was attempted with no folder selected"""


class MessageNotFoundError(MailThreadError):
    """A targeted fetch did not return the requested message"""


class MessageParseError(MailThreadError):
    """Raw message bytes could not be turned into an EmailRecord"""


class MalformedDateError(MessageParseError):
    """The Date header is missing or cannot be parsed"""


class DuplicateMessageIdError(MailThreadError):
    """Two locations claim the same Message-ID under the reject policy"""

    def __init__(self, message_id: str, existing, duplicate):
        super().__init__(
            f"Message-ID {message_id!r} already indexed at {existing}; "
            f"refusing {duplicate}"
        )
        self.message_id = message_id
        self.existing = existing
        self.duplicate = duplicate


class FolderNameError(MailThreadError, ValueError):
    """A folder name is not valid modified UTF-7"""
