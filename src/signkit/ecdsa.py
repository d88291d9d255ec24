"""
ECDSA Keys and Signatures

ECDSA over the NIST curves P-256, P-384 and P-521. Messages are hashed
with SHA-256 and signed with a fresh random nonce from the OpenSSL CSPRNG,
so two signatures of the same message differ and both verify.

Keys convert to SEC1 PEM (ECDSA PRIVATE KEY), PKIX PEM and SSH
authorized_keys text. The curve is preserved by every format; importers
reject keys on a curve other than the one the caller expects.

Example:
    key_pair = KeyPair()
    key_pair.generate("P-384")
    signature = key_pair.sign("message")
    key_pair.verify("message", signature)  # True
"""

from typing import Dict, Optional, Tuple, Type, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from . import pem, ssh
from .config import get_settings
from .errors import (
    CurveMismatchError,
    GenerationError,
    KeyNotSetError,
    KeyPairMismatchError,
    KeyTypeMismatchError,
)
from .keyio import algorithm_name, load_private_der, load_public_der, load_ssh_public
from .log import get_logger
from .signature import Message, Signature, to_bytes

logger = get_logger(__name__)

PRIVATE_KEY_LABEL = "ECDSA PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"

CurveLike = Union[str, ec.EllipticCurve, Type[ec.EllipticCurve]]

CURVES: Dict[str, Type[ec.EllipticCurve]] = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}

CURVE_ALIASES = {
    "p256": "P-256",
    "secp256r1": "P-256",
    "prime256v1": "P-256",
    "nistp256": "P-256",
    "p384": "P-384",
    "secp384r1": "P-384",
    "nistp384": "P-384",
    "p521": "P-521",
    "secp521r1": "P-521",
    "nistp521": "P-521",
}

SSH_KEY_TYPES = {
    "P-256": "ecdsa-sha2-nistp256",
    "P-384": "ecdsa-sha2-nistp384",
    "P-521": "ecdsa-sha2-nistp521",
}

# Group orders, for range-checking r and s before verification
CURVE_ORDERS = {
    "P-256": 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    "P-384": int(
        "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFC7634D81F4372DDF"
        "581A0DB248B0A77AECEC196ACCC52973", 16,
    ),
    "P-521": int(
        "01FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF"
        "FA51868783BF2F966B7FCC0148F709A5D03BB5C9B8899C47AEBB6FB71E91386409", 16,
    ),
}


def curve_name(curve: CurveLike) -> str:
    """
    Normalize a curve selection to its NIST name (P-256, P-384, P-521).

    Accepts a name or alias, a cryptography curve class, or an instance.

    Raises:
        CurveMismatchError: The curve is not one of the supported curves.
    """
    if isinstance(curve, str):
        key = curve.strip()
        if key.upper() in CURVES:
            return key.upper()
        name = CURVE_ALIASES.get(key.lower().replace("-", "").replace("_", ""))
        if name is None:
            raise CurveMismatchError(" | ".join(CURVES), curve)
        return name

    name = getattr(curve, "name", None)
    if isinstance(name, str):
        for nist_name, curve_type in CURVES.items():
            if curve_type.name == name:
                return nist_name
    raise CurveMismatchError(" | ".join(CURVES), str(name or curve))


def _check_curve(actual: str, expected: Optional[CurveLike]) -> None:
    if expected is not None and curve_name(expected) != actual:
        raise CurveMismatchError(curve_name(expected), actual)


class PublicKey:
    """ECDSA public key (a curve point). Safe to share for verification."""

    def __init__(self, key: Optional[ec.EllipticCurvePublicKey] = None):
        self._key: Optional[ec.EllipticCurvePublicKey] = None
        if key is not None:
            self.set(key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        if self._key is None or other._key is None:
            return self._key is other._key
        return self._key.public_numbers() == other._key.public_numbers()

    def __hash__(self) -> int:
        if self._key is None:
            return 0
        numbers = self._key.public_numbers()
        return hash((self.curve, numbers.x, numbers.y))

    def __repr__(self) -> str:
        if self._key is None:
            return "PublicKey(unset)"
        return f"PublicKey(ecdsa, {self.curve})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    @property
    def curve(self) -> str:
        return curve_name(self._require().curve)

    def _require(self) -> ec.EllipticCurvePublicKey:
        if self._key is None:
            raise KeyNotSetError("ECDSA public key is not set")
        return self._key

    def verify(self, message: Message, signature: Signature) -> bool:
        """
        Verify an (r, s) signature over the SHA-256 hash of message.

        Returns False on any failure, including r or s outside [1, n-1].
        """
        key = self._require()
        r = getattr(signature, "r", None)
        s = getattr(signature, "s", None)
        order = CURVE_ORDERS[self.curve]
        if not (isinstance(r, int) and isinstance(s, int) and 0 < r < order and 0 < s < order):
            logger.debug("signature_rejected", algorithm="ecdsa", reason="out_of_range")
            return False
        try:
            key.verify(Signature(r, s).to_der(), to_bytes(message), ec.ECDSA(hashes.SHA256()))
            return True
        except InvalidSignature:
            logger.debug("signature_rejected", algorithm="ecdsa", reason="mismatch")
            return False

    def get(self) -> ec.EllipticCurvePublicKey:
        return self._require()

    def set(self, key: ec.EllipticCurvePublicKey) -> None:
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise KeyTypeMismatchError(
                f"Expected an ECDSA public key, got {algorithm_name(key)}"
            )
        curve_name(key.curve)
        self._key = key

    def get_pem_pkix(self) -> str:
        der = self._require().public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return pem.encode(PUBLIC_KEY_LABEL, der)

    def set_pem_pkix(self, pem_pkix: str, curve: Optional[CurveLike] = None) -> None:
        """
        Load a PKIX public key.

        Args:
            pem_pkix: PEM text with a PUBLIC KEY block.
            curve: Expected curve. When given, a key on another curve
                raises CurveMismatchError.
        """
        block = pem.decode(pem_pkix, labels=(PUBLIC_KEY_LABEL,))
        self._load(load_public_der(block.data), curve)
        logger.debug("key_imported", algorithm="ecdsa", format="pkix", curve=self.curve)

    def get_ssh(self, comment: Optional[str] = None) -> str:
        """authorized_keys form, e.g. `ecdsa-sha2-nistp384 <base64> [comment]`."""
        return ssh.format_authorized_key(
            SSH_KEY_TYPES[self.curve], self.get_ssh_public_key(), comment
        )

    def set_ssh(self, ssh_key: str, curve: Optional[CurveLike] = None) -> None:
        entry = ssh.parse_authorized_key(ssh_key, key_types=SSH_KEY_TYPES.values())
        self.set_ssh_public_key(entry.blob, curve)

    def get_ssh_public_key(self) -> bytes:
        line = self._require().public_bytes(
            serialization.Encoding.OpenSSH,
            serialization.PublicFormat.OpenSSH,
        )
        return ssh.parse_authorized_key(line).blob

    def set_ssh_public_key(self, blob: bytes, curve: Optional[CurveLike] = None) -> None:
        key_type = ssh.key_type_of_blob(blob)
        if key_type not in SSH_KEY_TYPES.values():
            raise KeyTypeMismatchError(f"SSH key is {key_type}, expected an ECDSA key")
        key = load_ssh_public(ssh.format_authorized_key(key_type, blob).strip())
        self._load(key, curve)
        logger.debug("key_imported", algorithm="ecdsa", format="ssh", curve=self.curve)

    def _load(self, key, curve: Optional[CurveLike]) -> None:
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise KeyTypeMismatchError(
                f"Expected an ECDSA public key, got {algorithm_name(key)}"
            )
        _check_curve(curve_name(key.curve), curve)
        self._key = key


class PrivateKey:
    """ECDSA private key: a scalar plus its curve."""

    def __init__(self, key: Optional[ec.EllipticCurvePrivateKey] = None):
        self._key: Optional[ec.EllipticCurvePrivateKey] = None
        if key is not None:
            self.set(key)

    def __repr__(self) -> str:
        if self._key is None:
            return "PrivateKey(unset)"
        return f"PrivateKey(ecdsa, {self.curve})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    def _require(self) -> ec.EllipticCurvePrivateKey:
        if self._key is None:
            raise KeyNotSetError("ECDSA private key is not set")
        return self._key

    def sign(self, message: Message) -> Signature:
        """
        Sign the SHA-256 hash of message.

        Each call draws a new nonce from the CSPRNG; signatures of the
        same message differ between calls.
        """
        der = self._require().sign(to_bytes(message), ec.ECDSA(hashes.SHA256()))
        return Signature.from_der(der)

    def verify(self, message: Message, signature: Signature) -> bool:
        return self.get_public_key().verify(message, signature)

    def get(self) -> ec.EllipticCurvePrivateKey:
        return self._require()

    def set(self, key: ec.EllipticCurvePrivateKey) -> None:
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise KeyTypeMismatchError(
                f"Expected an ECDSA private key, got {algorithm_name(key)}"
            )
        curve_name(key.curve)
        self._key = key

    @property
    def curve(self) -> str:
        return curve_name(self._require().curve)

    def get_curve(self) -> str:
        return self.curve

    def set_curve(self, curve: CurveLike) -> None:
        """Replace the key with a new one generated on curve."""
        name = curve_name(curve)
        try:
            key = ec.generate_private_key(CURVES[name]())
        except Exception as e:
            raise GenerationError(f"ECDSA key generation on {name} failed: {e}") from e
        self._key = key
        logger.debug("key_generated", algorithm="ecdsa", curve=name)

    def get_pem_ec(self) -> str:
        """PEM-encoded SEC1 private key under the ECDSA PRIVATE KEY label."""
        der = self._require().private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )
        return pem.encode(PRIVATE_KEY_LABEL, der)

    def set_pem_ec(self, pem_ec: str, curve: Optional[CurveLike] = None) -> None:
        """
        Load a SEC1 private key. On failure the current key is left untouched.

        Raises:
            DecodeError: Malformed PEM or DER.
            KeyTypeMismatchError: The key is not an EC key.
            CurveMismatchError: The key is not on the expected curve.
        """
        block = pem.decode(pem_ec, labels=(PRIVATE_KEY_LABEL, "EC PRIVATE KEY"))
        key = load_private_der(block.data)
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise KeyTypeMismatchError(
                f"Expected an ECDSA private key, got {algorithm_name(key)}"
            )
        _check_curve(curve_name(key.curve), curve)
        self._key = key
        logger.debug("key_imported", algorithm="ecdsa", format="sec1", curve=self.curve)

    def get_public_key(self) -> PublicKey:
        return PublicKey(self._require().public_key())


class KeyPair:
    """An ECDSA private key and its public key."""

    def __init__(self):
        self._private_key = PrivateKey()
        self._public_key = PublicKey()

    def generate(self, curve: Optional[CurveLike] = None) -> None:
        """Generate a new pair on curve (default from SIGNKIT_ECDSA_CURVE)."""
        private_key = PrivateKey()
        private_key.set_curve(curve if curve is not None else get_settings().ecdsa_curve)
        self._private_key = private_key
        self._public_key = private_key.get_public_key()

    def sign(self, message: Message) -> Signature:
        return self._private_key.sign(message)

    def verify(self, message: Message, signature: Signature) -> bool:
        return self._public_key.verify(message, signature)

    def get_key_pair(self) -> Tuple[PrivateKey, PublicKey]:
        return self._private_key, self._public_key

    def set_key_pair(self, private_key: PrivateKey, public_key: PublicKey) -> None:
        if private_key.get_public_key() != public_key:
            raise KeyPairMismatchError("Public key does not match the ECDSA private key")
        self._private_key = private_key
        self._public_key = public_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key


def generate(curve: Optional[CurveLike] = None) -> KeyPair:
    key_pair = KeyPair()
    key_pair.generate(curve)
    return key_pair


def sign(key: PrivateKey, message: Message) -> Signature:
    return key.sign(message)


def verify(key: PublicKey, message: Message, signature: Signature) -> bool:
    return key.verify(message, signature)


def export_private(key: PrivateKey) -> str:
    return key.get_pem_ec()


def import_private(text: str, curve: Optional[CurveLike] = None) -> PrivateKey:
    key = PrivateKey()
    key.set_pem_ec(text, curve)
    return key


def export_public(key: PublicKey) -> str:
    return key.get_pem_pkix()


def import_public(text: str, curve: Optional[CurveLike] = None) -> PublicKey:
    key = PublicKey()
    key.set_pem_pkix(text, curve)
    return key


def export_ssh(key: PublicKey, comment: Optional[str] = None) -> str:
    return key.get_ssh(comment)


def import_ssh(text: str, curve: Optional[CurveLike] = None) -> PublicKey:
    key = PublicKey()
    key.set_ssh(text, curve)
    return key
