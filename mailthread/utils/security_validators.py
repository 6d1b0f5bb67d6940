"""
Security Validators Module
Centralizes security constants and helpers used while talking to the mail store

SECURITY STORY: These validators protect the client from hostile input:
- MAX_MIME_PARTS: caps how many direct subparts a single message may expose
- sanitize_filename: attachment names come straight from untrusted headers
- create_secure_ssl_context: credentials only travel over TLS 1.2+
"""

import re
import ssl
import logging

# Limits applied while parsing untrusted messages
MAX_MIME_PARTS = 100  # CWE-674: Uncontrolled Recursion / MIME bombs

# Filename sanitization patterns to prevent path traversal (CWE-22)
FILENAME_SANITIZE_PATTERN = re.compile(r"[^\w\s\-_\.]")
FILENAME_COLLAPSE_DOTS_PATTERN = re.compile(r"\.{2,}")

# Windows reserved filenames that cannot be used regardless of extension
WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    "COM1", "COM2", "COM3", "COM4", "COM5", "COM6", "COM7", "COM8", "COM9",
    "LPT1", "LPT2", "LPT3", "LPT4", "LPT5", "LPT6", "LPT7", "LPT8", "LPT9"
}

logger = logging.getLogger(__name__)


def sanitize_filename(filename: str) -> str:
    """
    Sanitize an attachment filename to prevent path traversal (CWE-22)

    Only alphanumerics, spaces, hyphens, underscores and single dots survive.

    Args:
        filename: Filename as declared by the MIME part

    Returns:
        Sanitized filename safe for filesystem operations

    Example:
        >>> sanitize_filename("../../etc/passwd")
        'passwd'
        >>> sanitize_filename("report.pdf")
        'report.pdf'
    """
    if not filename:
        return "unnamed_attachment"

    # Drop any path components first
    filename = filename.split("/")[-1].split("\\")[-1]

    sanitized = FILENAME_SANITIZE_PATTERN.sub("", filename)
    sanitized = FILENAME_COLLAPSE_DOTS_PATTERN.sub(".", sanitized)
    sanitized = sanitized.strip(". ")

    if not sanitized:
        return "unnamed_attachment"

    # CON.txt is as invalid as CON on Windows
    base_name = sanitized.split('.')[0].strip().upper()
    if base_name in WINDOWS_RESERVED_NAMES:
        sanitized = "_" + sanitized

    return sanitized[:255]


def create_secure_ssl_context() -> ssl.SSLContext:
    """
    Create an SSL context with TLS 1.2+ and certificate/hostname checking

    Returns:
        Configured SSL context
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED

    context.load_default_certs()

    logger.debug("Created secure SSL context with TLS 1.2+ enforcement")
    return context
