"""
Folder Name Codec
Converts folder names between display form and IMAP modified UTF-7

RFC 3501 section 5.1.3: printable US-ASCII stands for itself except "&",
which is written "&-". Every other run of characters is encoded as UTF-16BE,
base64'd with "," instead of "/" and no padding, and wrapped in "&" ... "-".
"""

import base64
import binascii

from .exceptions import FolderNameError


def _encode_run(chars: str) -> str:
    try:
        raw = chars.encode("utf-16-be")
    except UnicodeEncodeError as e:
        raise FolderNameError(f"Folder name contains unencodable characters: {e}") from e
    encoded = base64.b64encode(raw).rstrip(b"=").decode("ascii")
    return "&" + encoded.replace("/", ",") + "-"


def _decode_run(chunk: str) -> str:
    b64 = chunk.replace(",", "/")
    b64 += "=" * (-len(b64) % 4)
    try:
        raw = base64.b64decode(b64, validate=True)
        return raw.decode("utf-16-be")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise FolderNameError(f"Invalid modified base64 run '&{chunk}-': {e}") from e


def encode_folder_name(display: str) -> str:
    """
    Encode a display folder name into its wire form

    Example:
        >>> encode_folder_name("Entwürfe")
        'Entw&APw-rfe'
    """
    out = []
    pending = []

    for ch in display:
        if 0x20 <= ord(ch) <= 0x7E:
            if pending:
                out.append(_encode_run("".join(pending)))
                pending = []
            out.append("&-" if ch == "&" else ch)
        else:
            pending.append(ch)

    if pending:
        out.append(_encode_run("".join(pending)))

    return "".join(out)


def decode_folder_name(wire: str) -> str:
    """
    Decode a wire folder name into display form

    Characters outside "&...-" runs are passed through untouched, so servers
    that already send UTF-8 names decode to themselves.

    Raises:
        FolderNameError: an "&" run is unterminated or not valid base64/UTF-16
    """
    out = []
    pos = 0

    while pos < len(wire):
        ch = wire[pos]
        if ch != "&":
            out.append(ch)
            pos += 1
            continue

        end = wire.find("-", pos + 1)
        if end == -1:
            raise FolderNameError(f"Unterminated shift sequence in folder name {wire!r}")

        chunk = wire[pos + 1:end]
        out.append(_decode_run(chunk) if chunk else "&")
        pos = end + 1

    return "".join(out)
