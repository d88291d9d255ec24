"""
Ed25519 Keys and Signatures

Key generation, deterministic signing and verification, and conversion to
PEM (PKCS8 / PKIX) and SSH authorized_keys text.

Example:
    key_pair = KeyPair()
    key_pair.generate()
    signature = key_pair.sign("message")
    key_pair.verify("message", signature)  # True
"""

from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from . import pem, ssh
from .errors import (
    DecodeError,
    GenerationError,
    KeyNotSetError,
    KeyPairMismatchError,
    KeyTypeMismatchError,
)
from .keyio import algorithm_name, load_private_der, load_public_der, load_ssh_public
from .log import get_logger
from .signature import Message, to_bytes

logger = get_logger(__name__)

PRIVATE_KEY_LABEL = "ED25519 PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"
SSH_KEY_TYPE = "ssh-ed25519"

SEED_SIZE = 32
PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = SEED_SIZE + PUBLIC_KEY_SIZE
SIGNATURE_SIZE = 64

_RAW = (serialization.Encoding.Raw, serialization.PublicFormat.Raw)


def _raw_public(key: ed25519.Ed25519PublicKey) -> bytes:
    return key.public_bytes(*_RAW)


class PublicKey:
    """Ed25519 public key. A value type, safe to share for verification."""

    def __init__(self, key: Optional[ed25519.Ed25519PublicKey] = None):
        self._key: Optional[ed25519.Ed25519PublicKey] = None
        if key is not None:
            self.set(key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        if self._key is None or other._key is None:
            return self._key is other._key
        return self.get_raw() == other.get_raw()

    def __hash__(self) -> int:
        return hash(self.get_raw()) if self._key is not None else 0

    def __repr__(self) -> str:
        if self._key is None:
            return "PublicKey(unset)"
        return f"PublicKey(ed25519, {self.get_raw().hex()[:16]}...)"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    def _require(self) -> ed25519.Ed25519PublicKey:
        if self._key is None:
            raise KeyNotSetError("Ed25519 public key is not set")
        return self._key

    def verify(self, message: Message, signature: bytes) -> bool:
        """
        Verify a signature over message.

        Returns False for a wrong key, an altered message or a malformed
        signature; never raises for bad input.
        """
        key = self._require()
        if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_SIZE:
            logger.debug("signature_rejected", algorithm="ed25519", reason="malformed")
            return False
        try:
            key.verify(bytes(signature), to_bytes(message))
            return True
        except InvalidSignature:
            logger.debug("signature_rejected", algorithm="ed25519", reason="mismatch")
            return False

    def get(self) -> ed25519.Ed25519PublicKey:
        return self._require()

    def set(self, key: ed25519.Ed25519PublicKey) -> None:
        if not isinstance(key, ed25519.Ed25519PublicKey):
            raise KeyTypeMismatchError(
                f"Expected an Ed25519 public key, got {algorithm_name(key)}"
            )
        self._key = key

    def get_raw(self) -> bytes:
        """The 32-byte encoded public point."""
        return _raw_public(self._require())

    def set_raw(self, data: bytes) -> None:
        if len(data) != PUBLIC_KEY_SIZE:
            raise DecodeError(f"Ed25519 public key must be {PUBLIC_KEY_SIZE} bytes")
        try:
            self._key = ed25519.Ed25519PublicKey.from_public_bytes(bytes(data))
        except ValueError as e:
            raise DecodeError(f"Invalid Ed25519 public key: {e}") from e

    def get_pem_pkix(self) -> str:
        """PEM-encoded PKIX (SubjectPublicKeyInfo) public key."""
        der = self._require().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return pem.encode(PUBLIC_KEY_LABEL, der)

    def set_pem_pkix(self, pem_pkix: str) -> None:
        block = pem.decode(pem_pkix, labels=(PUBLIC_KEY_LABEL,))
        self.set(load_public_der(block.data))
        logger.debug("key_imported", algorithm="ed25519", format="pkix")

    def get_ssh(self, comment: Optional[str] = None) -> str:
        """Single-line authorized_keys form: `ssh-ed25519 <base64> [comment]`."""
        return ssh.format_authorized_key(SSH_KEY_TYPE, self.get_ssh_public_key(), comment)

    def set_ssh(self, ssh_key: str) -> None:
        entry = ssh.parse_authorized_key(ssh_key, key_types=(SSH_KEY_TYPE,))
        self.set_ssh_public_key(entry.blob)

    def get_ssh_public_key(self) -> bytes:
        """The SSH wire-format key blob."""
        line = self._require().public_bytes(
            serialization.Encoding.OpenSSH,
            serialization.PublicFormat.OpenSSH,
        )
        return ssh.parse_authorized_key(line).blob

    def set_ssh_public_key(self, blob: bytes) -> None:
        key_type = ssh.key_type_of_blob(blob)
        if key_type != SSH_KEY_TYPE:
            raise KeyTypeMismatchError(f"SSH key is {key_type}, expected {SSH_KEY_TYPE}")
        self.set(load_ssh_public(ssh.format_authorized_key(key_type, blob).strip()))
        logger.debug("key_imported", algorithm="ed25519", format="ssh")


class PrivateKey:
    """Ed25519 private key."""

    def __init__(self, key: Optional[ed25519.Ed25519PrivateKey] = None):
        self._key: Optional[ed25519.Ed25519PrivateKey] = None
        if key is not None:
            self.set(key)

    def __repr__(self) -> str:
        return "PrivateKey(ed25519)" if self._key is not None else "PrivateKey(unset)"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    def _require(self) -> ed25519.Ed25519PrivateKey:
        if self._key is None:
            raise KeyNotSetError("Ed25519 private key is not set")
        return self._key

    def sign(self, message: Message) -> bytes:
        """Deterministic 64-byte signature over the message bytes."""
        return self._require().sign(to_bytes(message))

    def verify(self, message: Message, signature: bytes) -> bool:
        return self.get_public_key().verify(message, signature)

    def get(self) -> ed25519.Ed25519PrivateKey:
        return self._require()

    def set(self, key: ed25519.Ed25519PrivateKey) -> None:
        if not isinstance(key, ed25519.Ed25519PrivateKey):
            raise KeyTypeMismatchError(
                f"Expected an Ed25519 private key, got {algorithm_name(key)}"
            )
        self._key = key

    def set_default(self) -> None:
        """Replace the key with a freshly generated one."""
        try:
            key = ed25519.Ed25519PrivateKey.generate()
        except Exception as e:
            raise GenerationError(f"Ed25519 key generation failed: {e}") from e
        self._key = key
        logger.debug("key_generated", algorithm="ed25519")

    def get_raw(self) -> bytes:
        """64 bytes: the 32-byte seed followed by the 32-byte public key."""
        key = self._require()
        seed = key.private_bytes(
            serialization.Encoding.Raw,
            serialization.PrivateFormat.Raw,
            serialization.NoEncryption(),
        )
        return seed + _raw_public(key.public_key())

    def set_raw(self, data: bytes) -> None:
        """Accept a 32-byte seed or the 64-byte seed+public form."""
        data = bytes(data)
        if len(data) not in (SEED_SIZE, PRIVATE_KEY_SIZE):
            raise DecodeError(
                f"Ed25519 private key must be {SEED_SIZE} or {PRIVATE_KEY_SIZE} bytes"
            )
        key = ed25519.Ed25519PrivateKey.from_private_bytes(data[:SEED_SIZE])
        if len(data) == PRIVATE_KEY_SIZE and _raw_public(key.public_key()) != data[SEED_SIZE:]:
            raise DecodeError("Ed25519 private key public half does not match its seed")
        self._key = key

    def get_pem_pkcs8(self) -> str:
        der = self._require().private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        return pem.encode(PRIVATE_KEY_LABEL, der)

    def set_pem_pkcs8(self, pem_pkcs8: str) -> None:
        """Load a PKCS8 key. On failure the current key is left untouched."""
        block = pem.decode(pem_pkcs8, labels=(PRIVATE_KEY_LABEL, "PRIVATE KEY"))
        self.set(load_private_der(block.data))
        logger.debug("key_imported", algorithm="ed25519", format="pkcs8")

    def get_public_key(self) -> PublicKey:
        return PublicKey(self._require().public_key())


class KeyPair:
    """An Ed25519 private key and its public key."""

    def __init__(self):
        self._private_key = PrivateKey()
        self._public_key = PublicKey()

    def generate(self) -> None:
        private_key = PrivateKey()
        private_key.set_default()
        self._private_key = private_key
        self._public_key = private_key.get_public_key()

    def sign(self, message: Message) -> bytes:
        return self._private_key.sign(message)

    def verify(self, message: Message, signature: bytes) -> bool:
        return self._public_key.verify(message, signature)

    def get_key_pair(self) -> Tuple[PrivateKey, PublicKey]:
        return self._private_key, self._public_key

    def set_key_pair(self, private_key: PrivateKey, public_key: PublicKey) -> None:
        """Replace both keys; the public key must belong to the private key."""
        if private_key.get_public_key() != public_key:
            raise KeyPairMismatchError("Public key does not match the Ed25519 private key")
        self._private_key = private_key
        self._public_key = public_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key


def generate() -> KeyPair:
    key_pair = KeyPair()
    key_pair.generate()
    return key_pair


def sign(key: PrivateKey, message: Message) -> bytes:
    return key.sign(message)


def verify(key: PublicKey, message: Message, signature: bytes) -> bool:
    return key.verify(message, signature)


def export_private(key: PrivateKey) -> str:
    return key.get_pem_pkcs8()


def import_private(text: str) -> PrivateKey:
    key = PrivateKey()
    key.set_pem_pkcs8(text)
    return key


def export_public(key: PublicKey) -> str:
    return key.get_pem_pkix()


def import_public(text: str) -> PublicKey:
    key = PublicKey()
    key.set_pem_pkix(text)
    return key


def export_ssh(key: PublicKey, comment: Optional[str] = None) -> str:
    return key.get_ssh(comment)


def import_ssh(text: str) -> PublicKey:
    key = PublicKey()
    key.set_ssh(text)
    return key
