"""
Shared Signature Vocabulary

The algorithm modules are independent concrete types. What they share is
the message convention, the (r, s) signature value used by DSA and ECDSA,
and the sign/verify protocol.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Union

from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from .errors import DecodeError

Message = Union[bytes, str]


class SignatureAlgorithm(Enum):
    """Supported key algorithms."""
    ED25519 = "ed25519"
    ECDSA = "ecdsa"
    DSA = "dsa"
    RSA = "rsa"


@dataclass(frozen=True)
class Signature:
    """
    An (r, s) signature as produced by DSA and ECDSA.

    A pure value: it only means something next to the message and
    public key it is verified against.
    """
    r: int
    s: int

    def to_der(self) -> bytes:
        """Encode as DER SEQUENCE { r INTEGER, s INTEGER }."""
        return encode_dss_signature(self.r, self.s)

    @classmethod
    def from_der(cls, data: bytes) -> "Signature":
        try:
            r, s = decode_dss_signature(data)
        except ValueError as e:
            raise DecodeError(f"Malformed DER signature: {e}") from e
        return cls(r=r, s=s)


class Signer(Protocol):
    def sign(self, message: Message) -> Any: ...


class Verifier(Protocol):
    def verify(self, message: Message, signature: Any) -> bool: ...


def to_bytes(message: Message) -> bytes:
    """Messages may be given as text; text is signed as UTF-8."""
    if isinstance(message, str):
        return message.encode("utf-8")
    if isinstance(message, (bytes, bytearray)):
        return bytes(message)
    raise TypeError(f"Message must be str or bytes, got {type(message).__name__}")
