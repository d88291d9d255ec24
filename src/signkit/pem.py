"""
PEM Armor

Wraps DER bytes in BEGIN/END markers. The labels used by signkit
(ED25519 PRIVATE KEY, ECDSA PRIVATE KEY, ...) are not all known to
OpenSSL, so the armor is handled here and only DER reaches cryptography.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import DecodeError

LINE_WIDTH = 64

_BLOCK_RE = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class PemBlock:
    """A decoded PEM block."""
    label: str
    data: bytes


def encode(label: str, data: bytes) -> str:
    """Encode DER bytes as a PEM block with a trailing newline."""
    body = base64.b64encode(data).decode("ascii")
    lines = [body[i:i + LINE_WIDTH] for i in range(0, len(body), LINE_WIDTH)]
    return "".join([
        f"-----BEGIN {label}-----\n",
        "".join(line + "\n" for line in lines),
        f"-----END {label}-----\n",
    ])


def decode(text, labels: Optional[Iterable[str]] = None) -> PemBlock:
    """
    Decode the first PEM block in text.

    Args:
        text: PEM text (str or bytes). Text around the block is ignored.
        labels: Accepted block labels. None accepts any label.

    Raises:
        DecodeError: No block found, label not accepted, or bad base64.
    """
    if isinstance(text, bytes):
        text = text.decode("ascii", errors="replace")
    if not isinstance(text, str):
        raise DecodeError(f"PEM input must be text, got {type(text).__name__}")

    match = _BLOCK_RE.search(text)
    if match is None:
        raise DecodeError("No PEM block found")

    label, body = match.group(1), match.group(2)
    if labels is not None:
        accepted = tuple(labels)
        if label not in accepted:
            raise DecodeError(
                f"Unexpected PEM block {label!r}, expected one of {list(accepted)}"
            )

    # RFC 1421 style headers (Proc-Type: ...) precede a blank line
    if ":" in body.split("\n", 1)[0]:
        _, _, body = body.partition("\n\n")

    try:
        data = base64.b64decode("".join(body.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 in PEM block: {e}") from e

    if not data:
        raise DecodeError("Empty PEM block")
    return PemBlock(label=label, data=data)
