"""
Header Word Decoder
Decodes RFC 2047 encoded words in Subject and address headers
"""

import re
from email.errors import HeaderParseError
from email.header import decode_header
from email.message import Message
from typing import Optional

# =?charset?B|Q?payload?=
ENCODED_WORD_PATTERN = re.compile(r"=\?[^?\s]+\?[BbQq]\?[^?\s]*\?=")

# CRLF followed by whitespace marks a folded header line
FOLDING_PATTERN = re.compile(r"\r?\n(?=[ \t])")


def has_encoded_words(raw: str) -> bool:
    return bool(ENCODED_WORD_PATTERN.search(raw))


def unfold(value: str) -> str:
    """Undo RFC 5322 header folding, keeping the whitespace after each break"""
    return FOLDING_PATTERN.sub("", value)


def header_text(msg: Message, name: str) -> Optional[str]:
    """
    First value of header ``name`` as text, None when absent

    Raw 8-bit header bytes (RFC 6532 mail) are read as UTF-8 instead of
    the compat32 placeholder characters.
    """
    for key, value in msg.raw_items():
        if key.lower() != name.lower():
            continue
        if not isinstance(value, str):
            return str(value)
        # compat32 keeps undecodable bytes as lone surrogates
        return value.encode("utf-8", "surrogateescape").decode("utf-8", errors="replace")
    return None


def decode_words(raw: Optional[str]) -> str:
    """
    Decode RFC 2047 encoded words, passing everything else through

    Values with no encoded-word token come back exactly as given. Literal
    text around a token is kept as written. Tokens with an unknown charset
    or a broken payload leave the whole value as literal text.

    Args:
        raw: Raw header value (a compat32 ``Header`` is accepted too)

    Returns:
        Decoded display text

    Example:
        >>> decode_words("=?utf-8?q?caf=C3=A9?= menu")
        'café menu'
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    if not raw or not has_encoded_words(raw):
        return raw

    try:
        chunks = []
        for chunk, charset in decode_header(raw):
            if isinstance(chunk, bytes):
                # literal runs come back as raw-unicode-escape bytes
                chunk = chunk.decode(charset or "raw-unicode-escape", errors="replace")
            chunks.append(chunk)
    except (HeaderParseError, LookupError, UnicodeDecodeError, ValueError):
        return raw
    return "".join(chunks)


def decode_header_bytes(raw: Optional[bytes]) -> str:
    """
    Decode a raw envelope field (bytes or NIL) to display text

    Bytes that are not valid UTF-8 are replaced rather than rejected.
    """
    if raw is None:
        return ""
    return decode_words(unfold(raw.decode("utf-8", errors="replace")))
