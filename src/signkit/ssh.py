"""
SSH Public Key Encoding

Parses and formats authorized_keys lines and the RFC 4251 wire
primitives (string, mpint) inside the base64 key blob.
"""

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import DecodeError, KeyTypeMismatchError

KEY_TYPES = (
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
    "ssh-dss",
    "ssh-rsa",
)


@dataclass(frozen=True)
class AuthorizedKey:
    """One parsed authorized_keys entry."""
    key_type: str
    blob: bytes
    comment: Optional[str] = None

    def to_line(self) -> str:
        return format_authorized_key(self.key_type, self.blob, self.comment)


def format_authorized_key(key_type: str, blob: bytes, comment: Optional[str] = None) -> str:
    """Format `<key-type> <base64> [comment]` with a trailing newline."""
    line = f"{key_type} {base64.b64encode(blob).decode('ascii')}"
    if comment:
        line = f"{line} {comment}"
    return line + "\n"


def parse_authorized_key(text, key_types: Optional[Iterable[str]] = None) -> AuthorizedKey:
    """
    Parse the first key entry of an authorized_keys text.

    Leading options (from="...", no-pty, ...) and comment lines are
    skipped. When key_types is given, a well-formed key of any other
    type raises KeyTypeMismatchError.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not isinstance(text, str):
        raise DecodeError(f"SSH key must be text, got {type(text).__name__}")

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        for index, field in enumerate(fields[:-1]):
            if field not in KEY_TYPES:
                continue
            blob = _b64decode(fields[index + 1])
            embedded = WireReader(blob).read_string()
            if embedded.decode("ascii", errors="replace") != field:
                raise DecodeError(
                    f"SSH key type {field!r} does not match blob type {embedded!r}"
                )
            comment = " ".join(fields[index + 2:]) or None
            key = AuthorizedKey(key_type=field, blob=blob, comment=comment)
            if key_types is not None and field not in tuple(key_types):
                raise KeyTypeMismatchError(
                    f"SSH key is {field}, expected one of {list(key_types)}"
                )
            return key

    raise DecodeError("No SSH public key found")


def key_type_of_blob(blob: bytes) -> str:
    return WireReader(blob).read_string().decode("ascii", errors="replace")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 in SSH key: {e}") from e


def encode_string(data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + data


def encode_mpint(value: int) -> bytes:
    """Two's complement, big-endian, minimal length (RFC 4251 section 5)."""
    if value == 0:
        return encode_string(b"")
    length = (value.bit_length() + 8) // 8
    return encode_string(value.to_bytes(length, "big", signed=True))


class WireReader:
    """Sequential reader over an SSH wire blob."""

    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    def read_string(self) -> bytes:
        if self._offset + 4 > len(self._data):
            raise DecodeError("Truncated SSH wire data")
        (length,) = struct.unpack_from(">I", self._data, self._offset)
        start = self._offset + 4
        end = start + length
        if end > len(self._data):
            raise DecodeError("Truncated SSH wire data")
        self._offset = end
        return self._data[start:end]

    def read_mpint(self) -> int:
        return int.from_bytes(self.read_string(), "big", signed=True)

    def finish(self) -> None:
        """Raise if bytes remain after the last field."""
        if self._offset != len(self._data):
            raise DecodeError("Trailing data in SSH wire blob")
