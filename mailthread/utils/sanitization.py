"""
Sanitization Utility Module
Provides functions to sanitize untrusted mail data for safe logging and display.
"""

import re
import unicodedata
from typing import Optional

ANSI_ESCAPE_PATTERN = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')


def sanitize_for_logging(text: Optional[str], max_length: int = 255) -> str:
    """
    Sanitize text for safe logging to prevent Log Injection (CRLF) and terminal manipulation.

    Subjects, folder names and message ids all come from the remote store,
    so they are passed through here before reaching a log line.

    Args:
        text: The input string to sanitize.
        max_length: Maximum allowed length for the log entry (truncates if longer).

    Returns:
        Sanitized string safe for logging.
    """
    if not text:
        return ""

    # Bound the work done on huge inputs before normalizing
    if len(text) > max_length * 4:
        text = text[:max_length * 4]

    text = unicodedata.normalize('NFKC', text)

    text = text.replace('\n', '\\n').replace('\r', '\\r')

    text = ANSI_ESCAPE_PATTERN.sub('', text)

    # Remaining control characters (tab is kept)
    text = "".join(ch for ch in text if ch == '\t' or ord(ch) >= 32)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def redact_email(address: Optional[str]) -> str:
    """
    Redact the local part of an account address for log output

    Example:
        >>> redact_email("alice@example.com")
        'a***@example.com'
    """
    if not address:
        return ""

    local, sep, domain = address.partition("@")
    if not sep:
        return sanitize_for_logging(local[:1] + "***")

    return sanitize_for_logging(f"{local[:1]}***@{domain}")
