"""
IMAP Connection Module
Session adapter around imaplib: login, folder selection, search and fetch

PATTERN RECOGNITION: This follows the Adapter pattern - it wraps Python's
imaplib so the enumerator and resolver only see typed results
(FolderListing, FetchedMessage, lists of ints) and a small exception
hierarchy instead of ``(status, data)`` tuples.

Folder selection is exclusive connection state. ``active_folder`` records
which folder is selected (display form) and every folder-scoped command
checks it, so callers never rely on a selection someone else made.
"""

import imaplib
import logging
import ssl
from typing import Callable, Dict, Iterable, List, Optional, Union

from .exceptions import (
    IMAPCommandError,
    IMAPConnectionError,
    NoFolderSelectedError,
)
from .folder_codec import encode_folder_name
from .imap_response import (
    FetchedMessage,
    FolderListing,
    parse_fetch_response,
    parse_list_response,
    parse_search_response,
)
from ..utils.config import MailAccountConfig
from ..utils.sanitization import sanitize_for_logging, redact_email
from ..utils.security_validators import create_secure_ssl_context


def quote_mailbox(wire_name: str) -> str:
    """Quote a wire-form mailbox name for use as a command argument"""
    escaped = wire_name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_message_set(ids: Union[str, int, Iterable[int]]) -> str:
    """Render UIDs or sequence numbers as an IMAP message set"""
    if isinstance(ids, str):
        return ids
    if isinstance(ids, int):
        return str(ids)
    return ",".join(str(i) for i in ids)


class IMAPConnection:
    """
    Manages one authenticated IMAP session

    MAINTENANCE WISDOM: Keep connection management separate from parsing.
    The enumerator, resolver and queries can then be tested against a fake
    session with the same surface.
    """

    def __init__(self, config: MailAccountConfig):
        """
        Initialize IMAP connection manager

        Args:
            config: Mail store host, credentials and TLS settings
        """
        self.config = config
        self.connection: Optional[imaplib.IMAP4] = None
        self.active_folder: Optional[str] = None
        self.selected_exists = 0
        # display name -> exact wire name from the last LIST
        self.wire_names: Dict[str, str] = {}
        self.logger = logging.getLogger(f"IMAPConnection.{config.domain}")

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def connect(self) -> None:
        """
        Open the TLS connection and log in

        SECURITY STORY: TLS 1.2+ is enforced, and a timeout keeps a dead
        server from hanging the client forever.

        Raises:
            IMAPConnectionError: transport or authentication failure
        """
        self.logger.info(
            f"Connecting to {self.config.domain}:{self.config.imap_port} "
            f"(SSL={self.config.use_ssl})"
        )

        context = create_secure_ssl_context()
        if not self.config.verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            self.logger.warning("SSL verification disabled - use only for testing!")

        try:
            if self.config.use_ssl:
                self.connection = imaplib.IMAP4_SSL(
                    self.config.domain,
                    self.config.imap_port,
                    ssl_context=context,
                    timeout=self.config.timeout
                )
            else:
                self.connection = imaplib.IMAP4(
                    self.config.domain,
                    self.config.imap_port,
                    timeout=self.config.timeout
                )
                self.connection.starttls(ssl_context=context)

            self.connection.login(self.config.username, self.config.password)

        except imaplib.IMAP4.error as e:
            self.logger.error(f"IMAP login failed: {e}")
            tip = self._get_auth_tip(str(e))
            if tip:
                self.logger.warning(tip)
            self.disconnect()
            raise IMAPConnectionError(f"IMAP login failed: {e}") from e
        except OSError as e:
            self.logger.error(f"Could not connect to {self.config.domain}: {e}")
            self.disconnect()
            raise IMAPConnectionError(
                f"Could not connect to {self.config.domain}:{self.config.imap_port}: {e}"
            ) from e

        self.logger.info(
            f"Successfully connected as {redact_email(self.config.username)}",
            extra={"extra_fields": {"server": self.config.domain, "username": self.config.username}},
        )

    def disconnect(self):
        """
        Log out and drop the connection

        Safe to call more than once and on a half-open connection.
        """
        self.active_folder = None
        self.selected_exists = 0

        if not self.connection:
            return

        try:
            self.connection.logout()
            self.logger.info("Disconnected from IMAP server")
        except Exception:
            # Connection may already be closed
            self.logger.debug("Connection was already closed or logout failed")
        finally:
            self.connection = None

    def _execute(self, label: str, method: Callable, *args) -> list:
        """
        Run an imaplib call and return its data on OK

        Raises:
            IMAPConnectionError: the transport failed
            IMAPCommandError: the server answered NO/BAD
        """
        try:
            status, data = method(*args)
        except imaplib.IMAP4.abort as e:
            raise IMAPConnectionError(f"Connection lost during {label}: {e}") from e
        except imaplib.IMAP4.error as e:
            raise IMAPCommandError(f"{label} failed: {e}") from e
        except OSError as e:
            raise IMAPConnectionError(f"Transport error during {label}: {e}") from e

        if status != "OK":
            detail = b" ".join(d for d in (data or []) if isinstance(d, bytes))
            raise IMAPCommandError(
                f"{label} failed: {status} {detail.decode('utf-8', errors='replace')}".strip()
            )
        return data or []

    def _require_connection(self) -> imaplib.IMAP4:
        if self.connection is None:
            raise IMAPConnectionError("Not connected to the IMAP server")
        return self.connection

    def _require_folder(self, label: str) -> imaplib.IMAP4:
        connection = self._require_connection()
        if self.active_folder is None:
            raise NoFolderSelectedError(f"{label} requires a selected folder")
        return connection

    def list_folders(self, reference: str = '""', pattern: str = "*") -> List[FolderListing]:
        """
        List mailboxes

        Returns:
            FolderListing entries with wire-form names, in server order
        """
        connection = self._require_connection()
        data = self._execute("LIST", connection.list, reference, pattern)
        listings = parse_list_response(data)
        for listing in listings:
            self.wire_names[listing.display_name] = listing.name
        return listings

    def select_folder(self, folder: str, readonly: bool = True) -> bool:
        """
        Select a folder, making it the active one

        A refused selection (non-existent or \\Noselect mailbox) is reported
        as False so that callers iterating folders can carry on. Transport
        failures still raise.

        Args:
            folder: Folder display name
            readonly: Use EXAMINE so that flags are never changed

        Returns:
            True if folder selected successfully
        """
        connection = self._require_connection()
        safe_folder = sanitize_for_logging(folder)
        wire_name = self.wire_name(folder)

        try:
            data = self._execute("SELECT", connection.select, quote_mailbox(wire_name), readonly)
        except IMAPCommandError as e:
            self.active_folder = None
            self.selected_exists = 0
            self.logger.warning(f"Could not select folder {safe_folder}: {e}")
            return False
        except IMAPConnectionError:
            self.active_folder = None
            self.selected_exists = 0
            raise

        self.active_folder = folder
        try:
            self.selected_exists = int(data[0]) if data and data[0] else 0
        except (TypeError, ValueError):
            self.selected_exists = 0

        self.logger.debug(f"Selected folder: {safe_folder} ({self.selected_exists} messages)")
        return True

    def wire_name(self, folder: str) -> str:
        """
        Wire form of a display name

        Names seen in a LIST are sent back exactly as the server wrote them,
        which keeps folders whose names are not valid modified UTF-7
        selectable.
        """
        return self.wire_names.get(folder) or encode_folder_name(folder)

    def ensure_folder(self, folder: str) -> bool:
        """Select ``folder`` unless it is already the active one"""
        if self.active_folder == folder:
            return True
        return self.select_folder(folder)

    def close_folder(self):
        """
        CLOSE the active folder (no expunge on a read-only selection)

        Does nothing when no folder is selected.
        """
        if self.active_folder is None or self.connection is None:
            return

        try:
            self._execute("CLOSE", self.connection.close)
        finally:
            self.active_folder = None
            self.selected_exists = 0

    def search(self, criteria: str = "ALL") -> List[int]:
        """Sequence numbers matching ``criteria`` in the active folder"""
        connection = self._require_folder("SEARCH")
        data = self._execute("SEARCH", connection.search, None, criteria)
        return parse_search_response(data)

    def uid_search(self, criteria: str = "ALL") -> List[int]:
        """UIDs matching ``criteria`` in the active folder"""
        connection = self._require_folder("UID SEARCH")
        data = self._execute("UID SEARCH", connection.uid, "SEARCH", criteria)
        return parse_search_response(data)

    def fetch(self, message_set, items: str) -> List[FetchedMessage]:
        """FETCH by sequence number in the active folder"""
        connection = self._require_folder("FETCH")
        data = self._execute("FETCH", connection.fetch, format_message_set(message_set), items)
        return parse_fetch_response(data)

    def uid_fetch(self, message_set, items: str) -> List[FetchedMessage]:
        """FETCH by UID in the active folder"""
        connection = self._require_folder("UID FETCH")
        data = self._execute(
            "UID FETCH", connection.uid, "FETCH", format_message_set(message_set), items
        )
        return parse_fetch_response(data)

    def _get_auth_tip(self, error_msg: str) -> Optional[str]:
        """
        Get actionable tip based on error and provider

        INDUSTRY CONTEXT: Major providers refuse plain account passwords
        over IMAP and expect an app-specific password instead.

        Args:
            error_msg: Error message from IMAP server

        Returns:
            User-friendly tip or None
        """
        msg_lower = error_msg.lower()
        server_lower = self.config.domain.lower()

        auth_keywords = [
            "authentication failed", "login failed", "invalid credentials",
            "logon failure", "authenticate"
        ]
        if not any(k in msg_lower for k in auth_keywords):
            return None

        if "outlook" in server_lower or "office365" in server_lower:
            return (
                "Personal Outlook/Hotmail accounts no longer support passwords. "
                "Use an App Password or OAuth."
            )

        if "gmail" in server_lower:
            return (
                "Gmail requires 2-Step Verification enabled and an App Password "
                "to use IMAP."
            )

        return (
            "Check USERNAME and PASSWORD. If using 2FA, you likely need "
            "an App Password."
        )
