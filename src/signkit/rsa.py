"""
RSA Keys

Encryption (PKCS#1 v1.5 and OAEP with SHA-256), PSS signatures with
SHA-256, and conversion to PKCS#1, PKCS#8, PKIX and SSH text.
"""

from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from . import pem, ssh
from .config import get_settings
from .errors import (
    DecodeError,
    DecryptionError,
    EncryptionError,
    GenerationError,
    KeyNotSetError,
    KeyPairMismatchError,
    KeyTypeMismatchError,
)
from .keyio import algorithm_name, load_private_der, load_public_der, load_ssh_public
from .log import get_logger
from .signature import Message, to_bytes

logger = get_logger(__name__)

PKCS1_PRIVATE_KEY_LABEL = "RSA PRIVATE KEY"
PKCS1_PUBLIC_KEY_LABEL = "RSA PUBLIC KEY"
PKCS8_PRIVATE_KEY_LABEL = "PRIVATE KEY"
PKIX_PUBLIC_KEY_LABEL = "PUBLIC KEY"
SSH_KEY_TYPE = "ssh-rsa"

PUBLIC_EXPONENT = 65537
MIN_BITS = 2048


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=padding.PSS.MAX_LENGTH,
    )


class PublicKey:
    """RSA public key (n, e)."""

    def __init__(self, key: Optional[rsa.RSAPublicKey] = None):
        self._key: Optional[rsa.RSAPublicKey] = None
        if key is not None:
            self.set(key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        if self._key is None or other._key is None:
            return self._key is other._key
        return self._key.public_numbers() == other._key.public_numbers()

    def __hash__(self) -> int:
        return hash(self._key.public_numbers().n) if self._key is not None else 0

    def __repr__(self) -> str:
        if self._key is None:
            return "PublicKey(unset)"
        return f"PublicKey(rsa, {self._key.key_size})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    @property
    def key_size(self) -> int:
        return self._require().key_size

    def _require(self) -> rsa.RSAPublicKey:
        if self._key is None:
            raise KeyNotSetError("RSA public key is not set")
        return self._key

    def encrypt_pkcs1v15(self, plaintext: Message) -> bytes:
        return self._encrypt(plaintext, padding.PKCS1v15(), "PKCS#1 v1.5")

    def encrypt_oaep(self, plaintext: Message) -> bytes:
        return self._encrypt(plaintext, _oaep(), "OAEP")

    def _encrypt(self, plaintext: Message, pad, scheme: str) -> bytes:
        key = self._require()
        data = to_bytes(plaintext)
        try:
            return key.encrypt(data, pad)
        except ValueError as e:
            raise EncryptionError(
                f"{scheme} encryption failed for a {len(data)}-byte plaintext: {e}"
            ) from e

    def verify(self, message: Message, signature: bytes) -> bool:
        """Verify a PSS/SHA-256 signature; False on any failure."""
        key = self._require()
        if not isinstance(signature, (bytes, bytearray)):
            return False
        try:
            key.verify(bytes(signature), to_bytes(message), _pss(), hashes.SHA256())
            return True
        except InvalidSignature:
            logger.debug("signature_rejected", algorithm="rsa", reason="mismatch")
            return False

    def get(self) -> rsa.RSAPublicKey:
        return self._require()

    def set(self, key: rsa.RSAPublicKey) -> None:
        if not isinstance(key, rsa.RSAPublicKey):
            raise KeyTypeMismatchError(f"Expected an RSA public key, got {algorithm_name(key)}")
        self._key = key

    def get_pem_pkcs1(self) -> str:
        der = self._require().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.PKCS1,
        )
        return pem.encode(PKCS1_PUBLIC_KEY_LABEL, der)

    def set_pem_pkcs1(self, pem_pkcs1: str) -> None:
        block = pem.decode(pem_pkcs1, labels=(PKCS1_PUBLIC_KEY_LABEL,))
        # cryptography picks the PKCS#1 parser from the RSA PUBLIC KEY label
        armored = pem.encode(PKCS1_PUBLIC_KEY_LABEL, block.data).encode("ascii")
        try:
            key = serialization.load_pem_public_key(armored)
        except ValueError as e:
            raise DecodeError(f"Malformed RSA PKCS#1 public key: {e}") from e
        self.set(key)
        logger.debug("key_imported", algorithm="rsa", format="pkcs1")

    def get_pem_pkix(self) -> str:
        der = self._require().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return pem.encode(PKIX_PUBLIC_KEY_LABEL, der)

    def set_pem_pkix(self, pem_pkix: str) -> None:
        block = pem.decode(pem_pkix, labels=(PKIX_PUBLIC_KEY_LABEL,))
        self.set(load_public_der(block.data))
        logger.debug("key_imported", algorithm="rsa", format="pkix")

    def get_ssh(self, comment: Optional[str] = None) -> str:
        return ssh.format_authorized_key(SSH_KEY_TYPE, self.get_ssh_public_key(), comment)

    def set_ssh(self, ssh_key: str) -> None:
        entry = ssh.parse_authorized_key(ssh_key, key_types=(SSH_KEY_TYPE,))
        self.set_ssh_public_key(entry.blob)

    def get_ssh_public_key(self) -> bytes:
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
        logger.debug("key_imported", algorithm="rsa", format="ssh")


class PrivateKey:
    """RSA private key."""

    def __init__(self, key: Optional[rsa.RSAPrivateKey] = None):
        self._key: Optional[rsa.RSAPrivateKey] = None
        if key is not None:
            self.set(key)

    def __repr__(self) -> str:
        if self._key is None:
            return "PrivateKey(unset)"
        return f"PrivateKey(rsa, {self._key.key_size})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    def _require(self) -> rsa.RSAPrivateKey:
        if self._key is None:
            raise KeyNotSetError("RSA private key is not set")
        return self._key

    def encrypt_pkcs1v15(self, plaintext: Message) -> bytes:
        return self.get_public_key().encrypt_pkcs1v15(plaintext)

    def decrypt_pkcs1v15(self, ciphertext: bytes) -> bytes:
        try:
            return self._require().decrypt(ciphertext, padding.PKCS1v15())
        except ValueError as e:
            raise DecryptionError(f"PKCS#1 v1.5 decryption failed: {e}") from e

    def encrypt_oaep(self, plaintext: Message) -> bytes:
        return self.get_public_key().encrypt_oaep(plaintext)

    def decrypt_oaep(self, ciphertext: bytes) -> bytes:
        try:
            return self._require().decrypt(ciphertext, _oaep())
        except ValueError as e:
            raise DecryptionError(f"OAEP decryption failed: {e}") from e

    def sign(self, message: Message) -> bytes:
        """PSS/SHA-256 signature with a random salt."""
        return self._require().sign(to_bytes(message), _pss(), hashes.SHA256())

    def verify(self, message: Message, signature: bytes) -> bool:
        return self.get_public_key().verify(message, signature)

    def get(self) -> rsa.RSAPrivateKey:
        return self._require()

    def set(self, key: rsa.RSAPrivateKey) -> None:
        if not isinstance(key, rsa.RSAPrivateKey):
            raise KeyTypeMismatchError(f"Expected an RSA private key, got {algorithm_name(key)}")
        self._key = key

    def set_bits(self, bits: int) -> None:
        """Replace the key with a new one of the given modulus size."""
        if bits < MIN_BITS:
            raise GenerationError(f"RSA keys must be at least {MIN_BITS} bits, got {bits}")
        try:
            key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=bits)
        except ValueError as e:
            raise GenerationError(f"RSA key generation failed: {e}") from e
        self._key = key
        logger.debug("key_generated", algorithm="rsa", bits=bits)

    def get_pem_pkcs1(self) -> str:
        der = self._require().private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )
        return pem.encode(PKCS1_PRIVATE_KEY_LABEL, der)

    def set_pem_pkcs1(self, pem_pkcs1: str) -> None:
        block = pem.decode(pem_pkcs1, labels=(PKCS1_PRIVATE_KEY_LABEL,))
        self.set(load_private_der(block.data))
        logger.debug("key_imported", algorithm="rsa", format="pkcs1")

    def get_pem_pkcs8(self) -> str:
        der = self._require().private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        return pem.encode(PKCS8_PRIVATE_KEY_LABEL, der)

    def set_pem_pkcs8(self, pem_pkcs8: str) -> None:
        block = pem.decode(pem_pkcs8, labels=(PKCS8_PRIVATE_KEY_LABEL,))
        self.set(load_private_der(block.data))
        logger.debug("key_imported", algorithm="rsa", format="pkcs8")

    def get_public_key(self) -> PublicKey:
        return PublicKey(self._require().public_key())


class KeyPair:
    """An RSA private key and its public key."""

    def __init__(self):
        self._private_key = PrivateKey()
        self._public_key = PublicKey()

    def generate(self, bits: Optional[int] = None) -> None:
        """Generate a new pair (default size from SIGNKIT_RSA_BITS)."""
        private_key = PrivateKey()
        private_key.set_bits(bits if bits is not None else get_settings().rsa_bits)
        self._private_key = private_key
        self._public_key = private_key.get_public_key()

    def encrypt_pkcs1v15(self, plaintext: Message) -> bytes:
        return self._public_key.encrypt_pkcs1v15(plaintext)

    def decrypt_pkcs1v15(self, ciphertext: bytes) -> bytes:
        return self._private_key.decrypt_pkcs1v15(ciphertext)

    def encrypt_oaep(self, plaintext: Message) -> bytes:
        return self._public_key.encrypt_oaep(plaintext)

    def decrypt_oaep(self, ciphertext: bytes) -> bytes:
        return self._private_key.decrypt_oaep(ciphertext)

    def sign(self, message: Message) -> bytes:
        return self._private_key.sign(message)

    def verify(self, message: Message, signature: bytes) -> bool:
        return self._public_key.verify(message, signature)

    def get_key_pair(self) -> Tuple[PrivateKey, PublicKey]:
        return self._private_key, self._public_key

    def set_key_pair(self, private_key: PrivateKey, public_key: PublicKey) -> None:
        if private_key.get_public_key() != public_key:
            raise KeyPairMismatchError("Public key does not match the RSA private key")
        self._private_key = private_key
        self._public_key = public_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key


def generate(bits: Optional[int] = None) -> KeyPair:
    key_pair = KeyPair()
    key_pair.generate(bits)
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
