"""
DSA Keys and Signatures (deprecated)

DSA is kept for compatibility with existing keys. Creating DSA key
objects emits a DeprecationWarning, and the 1024-bit L1024N160 domain
additionally emits WeakParametersWarning.

Key generation is two-staged: domain parameters (P, Q, G) are generated
for the requested (L, N) first, then the private exponent X and public
value Y are drawn inside that domain. The domain travels with the key
through every serialized form:

    DSA PRIVATE KEY  DER SEQUENCE { SEQUENCE { SEQUENCE { P, Q, G }, Y }, X }
    PUBLIC KEY       DER SEQUENCE { SEQUENCE { P, Q, G }, Y }
    ssh-dss          string "ssh-dss", mpint P, Q, G, Y

Messages are hashed with SHA-256 and signed with a fresh random nonce.
"""

import warnings
from enum import Enum
from typing import Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa
from pyasn1.codec.der import decoder, encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import namedtype, univ

from . import pem, primes, ssh
from .config import get_settings
from .errors import (
    DecodeError,
    KeyNotSetError,
    KeyPairMismatchError,
    KeyTypeMismatchError,
    ParameterGenerationError,
    SignkitError,
)
from .keyio import algorithm_name, load_private_der, load_public_der
from .log import get_logger
from .signature import Message, Signature, to_bytes

logger = get_logger(__name__)

PRIVATE_KEY_LABEL = "DSA PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"
SSH_KEY_TYPE = "ssh-dss"

# Candidate Q values tried before giving up on a domain
MAX_Q_ATTEMPTS = 4096


class WeakParametersWarning(UserWarning):
    """Emitted when generating keys with a cryptographically weak domain."""
    pass


class ParameterSizes(Enum):
    """(L, N) bit lengths of P and Q."""
    L1024N160 = (1024, 160)
    L2048N224 = (2048, 224)
    L2048N256 = (2048, 256)
    L3072N256 = (3072, 256)

    @property
    def l_bits(self) -> int:
        return self.value[0]

    @property
    def n_bits(self) -> int:
        return self.value[1]

    @classmethod
    def from_name(cls, name: str) -> "ParameterSizes":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ParameterGenerationError(
                f"Unknown DSA parameter sizes {name!r}, expected one of "
                f"{[s.name for s in cls]}"
            )


# Domains OpenSSL generates itself; it picks N from L
_NATIVE_SIZES = (ParameterSizes.L1024N160, ParameterSizes.L2048N256, ParameterSizes.L3072N256)


def _warn_deprecated(stacklevel: int = 3) -> None:
    warnings.warn(
        "DSA is deprecated; use Ed25519 or ECDSA for new keys",
        DeprecationWarning,
        stacklevel=stacklevel,
    )


class _Parameters(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("p", univ.Integer()),
        namedtype.NamedType("q", univ.Integer()),
        namedtype.NamedType("g", univ.Integer()),
    )


class _PublicKeyRecord(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("parameters", _Parameters()),
        namedtype.NamedType("y", univ.Integer()),
    )


class _PrivateKeyRecord(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("public_key", _PublicKeyRecord()),
        namedtype.NamedType("x", univ.Integer()),
    )


def _public_record(numbers: dsa.DSAPublicNumbers) -> _PublicKeyRecord:
    domain = numbers.parameter_numbers
    parameters = _Parameters()
    parameters["p"] = domain.p
    parameters["q"] = domain.q
    parameters["g"] = domain.g

    record = _PublicKeyRecord()
    record["parameters"] = parameters
    record["y"] = numbers.y
    return record


def _public_numbers(record) -> dsa.DSAPublicNumbers:
    parameters = record["parameters"]
    return dsa.DSAPublicNumbers(
        y=int(record["y"]),
        parameter_numbers=dsa.DSAParameterNumbers(
            p=int(parameters["p"]),
            q=int(parameters["q"]),
            g=int(parameters["g"]),
        ),
    )


def _decode_record(data: bytes, template):
    try:
        record, rest = decoder.decode(data, asn1Spec=template)
    except (PyAsn1Error, ValueError, TypeError) as e:
        raise DecodeError(f"Malformed DSA ASN.1 structure: {e}") from e
    if rest:
        raise DecodeError("Trailing data after DSA ASN.1 structure")
    return record


def generate_parameters(sizes: ParameterSizes) -> dsa.DSAParameterNumbers:
    """
    Generate a (P, Q, G) domain with exactly the requested bit lengths.

    Raises:
        ParameterGenerationError: Generation failed or produced a domain
            of the wrong size.
    """
    if not isinstance(sizes, ParameterSizes):
        raise ParameterGenerationError(f"Invalid DSA parameter sizes: {sizes!r}")

    try:
        if sizes in _NATIVE_SIZES:
            numbers = dsa.generate_parameters(key_size=sizes.l_bits).parameter_numbers()
        else:
            p, q, g = _generate_domain(sizes.l_bits, sizes.n_bits)
            numbers = dsa.DSAParameterNumbers(p=p, q=q, g=g)
    except SignkitError:
        raise
    except Exception as e:
        raise ParameterGenerationError(f"DSA parameter generation failed: {e}") from e

    if numbers.p.bit_length() != sizes.l_bits or numbers.q.bit_length() != sizes.n_bits:
        raise ParameterGenerationError(
            f"Generated domain is L{numbers.p.bit_length()}N{numbers.q.bit_length()}, "
            f"requested {sizes.name}"
        )
    return numbers


def _generate_domain(l_bits: int, n_bits: int) -> Tuple[int, int, int]:
    """Probable-prime search for Q of n_bits and P = k*Q + 1 of l_bits."""
    for _ in range(MAX_Q_ATTEMPTS):
        q = primes.random_odd(n_bits)
        if not primes.is_probable_prime(q):
            continue

        for _ in range(4 * l_bits):
            p = primes.random_odd(l_bits)
            p -= (p % (2 * q)) - 1  # p = 1 mod 2q
            if p.bit_length() != l_bits or not primes.is_probable_prime(p):
                continue

            h = 2
            while True:
                g = pow(h, (p - 1) // q, p)
                if g != 1:
                    return p, q, g
                h += 1

    raise ParameterGenerationError(f"No DSA domain found for L{l_bits}N{n_bits}")


class PublicKey:
    """DSA public key: Y plus its (P, Q, G) domain."""

    def __init__(self, key: Optional[dsa.DSAPublicKey] = None):
        _warn_deprecated()
        self._key: Optional[dsa.DSAPublicKey] = None
        if key is not None:
            self.set(key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        if self._key is None or other._key is None:
            return self._key is other._key
        return self._key.public_numbers() == other._key.public_numbers()

    def __hash__(self) -> int:
        return hash(self._key.public_numbers().y) if self._key is not None else 0

    def __repr__(self) -> str:
        if self._key is None:
            return "PublicKey(unset)"
        return f"PublicKey(dsa, {self.sizes_name})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    @property
    def parameters(self) -> dsa.DSAParameterNumbers:
        return self._require().public_numbers().parameter_numbers

    @property
    def sizes_name(self) -> str:
        domain = self.parameters
        return f"L{domain.p.bit_length()}N{domain.q.bit_length()}"

    def _require(self) -> dsa.DSAPublicKey:
        if self._key is None:
            raise KeyNotSetError("DSA public key is not set")
        return self._key

    def verify(self, message: Message, signature: Signature) -> bool:
        """Verify (r, s) over SHA-256(message); False on any failure."""
        key = self._require()
        r = getattr(signature, "r", None)
        s = getattr(signature, "s", None)
        q = self.parameters.q
        if not (isinstance(r, int) and isinstance(s, int) and 0 < r < q and 0 < s < q):
            logger.debug("signature_rejected", algorithm="dsa", reason="out_of_range")
            return False
        try:
            key.verify(Signature(r, s).to_der(), to_bytes(message), hashes.SHA256())
            return True
        except InvalidSignature:
            logger.debug("signature_rejected", algorithm="dsa", reason="mismatch")
            return False

    def get(self) -> dsa.DSAPublicKey:
        return self._require()

    def set(self, key: dsa.DSAPublicKey) -> None:
        if not isinstance(key, dsa.DSAPublicKey):
            raise KeyTypeMismatchError(f"Expected a DSA public key, got {algorithm_name(key)}")
        self._key = key

    def get_pem_asn1(self) -> str:
        record = _public_record(self._require().public_numbers())
        return pem.encode(PUBLIC_KEY_LABEL, encoder.encode(record))

    def set_pem_asn1(self, pem_asn1: str) -> None:
        """
        Load a DSA public key.

        The raw ASN.1 structure is expected; a standard PKIX block holding a
        DSA key is accepted too. Any other algorithm raises
        KeyTypeMismatchError.
        """
        block = pem.decode(pem_asn1, labels=(PUBLIC_KEY_LABEL,))
        try:
            numbers = _public_numbers(_decode_record(block.data, _PublicKeyRecord()))
        except DecodeError as raw_error:
            try:
                key = load_public_der(block.data)
            except DecodeError:
                raise raw_error
            self.set(key)
        else:
            self._key = _build_public(numbers)
        logger.debug("key_imported", algorithm="dsa", format="asn1")

    def get_ssh(self, comment: Optional[str] = None) -> str:
        return ssh.format_authorized_key(SSH_KEY_TYPE, self.get_ssh_public_key(), comment)

    def set_ssh(self, ssh_key: str) -> None:
        entry = ssh.parse_authorized_key(ssh_key, key_types=(SSH_KEY_TYPE,))
        self.set_ssh_public_key(entry.blob)

    def get_ssh_public_key(self) -> bytes:
        numbers = self._require().public_numbers()
        domain = numbers.parameter_numbers
        return b"".join([
            ssh.encode_string(SSH_KEY_TYPE.encode("ascii")),
            ssh.encode_mpint(domain.p),
            ssh.encode_mpint(domain.q),
            ssh.encode_mpint(domain.g),
            ssh.encode_mpint(numbers.y),
        ])

    def set_ssh_public_key(self, blob: bytes) -> None:
        reader = ssh.WireReader(blob)
        key_type = reader.read_string().decode("ascii", errors="replace")
        if key_type != SSH_KEY_TYPE:
            raise KeyTypeMismatchError(f"SSH key is {key_type}, expected {SSH_KEY_TYPE}")
        p, q, g, y = (reader.read_mpint() for _ in range(4))
        reader.finish()
        self._key = _build_public(
            dsa.DSAPublicNumbers(y=y, parameter_numbers=dsa.DSAParameterNumbers(p=p, q=q, g=g))
        )
        logger.debug("key_imported", algorithm="dsa", format="ssh")


def _build_public(numbers: dsa.DSAPublicNumbers) -> dsa.DSAPublicKey:
    try:
        return numbers.public_key()
    except (ValueError, OverflowError) as e:
        raise DecodeError(f"Invalid DSA public key: {e}") from e


class PrivateKey:
    """DSA private key: X, Y and the (P, Q, G) domain."""

    def __init__(self, key: Optional[dsa.DSAPrivateKey] = None):
        _warn_deprecated()
        self._key: Optional[dsa.DSAPrivateKey] = None
        if key is not None:
            self.set(key)

    def __repr__(self) -> str:
        if self._key is None:
            return "PrivateKey(unset)"
        return f"PrivateKey(dsa, {self.get_public_key().sizes_name})"

    @property
    def is_set(self) -> bool:
        return self._key is not None

    @property
    def parameters(self) -> dsa.DSAParameterNumbers:
        return self._require().parameters().parameter_numbers()

    def _require(self) -> dsa.DSAPrivateKey:
        if self._key is None:
            raise KeyNotSetError("DSA private key is not set")
        return self._key

    def sign(self, message: Message) -> Signature:
        """Sign SHA-256(message) with a fresh random nonce."""
        der = self._require().sign(to_bytes(message), hashes.SHA256())
        return Signature.from_der(der)

    def verify(self, message: Message, signature: Signature) -> bool:
        return self.get_public_key().verify(message, signature)

    def get(self) -> dsa.DSAPrivateKey:
        return self._require()

    def set(self, key: dsa.DSAPrivateKey) -> None:
        if not isinstance(key, dsa.DSAPrivateKey):
            raise KeyTypeMismatchError(f"Expected a DSA private key, got {algorithm_name(key)}")
        self._key = key

    def set_sizes(self, sizes: ParameterSizes) -> None:
        """
        Generate a domain for sizes, then a key inside it.

        Raises:
            ParameterGenerationError: The domain could not be generated.
        """
        if isinstance(sizes, str):
            sizes = ParameterSizes.from_name(sizes)
        if sizes is ParameterSizes.L1024N160:
            warnings.warn(
                "DSA L1024N160 is cryptographically weak; use it only for legacy interop",
                WeakParametersWarning,
                stacklevel=2,
            )
            logger.warning("weak_dsa_parameters", sizes=sizes.name)

        domain = generate_parameters(sizes)
        try:
            key = domain.parameters().generate_private_key()
        except ValueError as e:
            raise ParameterGenerationError(f"DSA key generation failed: {e}") from e
        self._key = key
        logger.debug("key_generated", algorithm="dsa", sizes=sizes.name)

    def set_parameters(self, parameters: dsa.DSAParameterNumbers) -> None:
        """Generate a new key inside an existing domain."""
        try:
            self._key = parameters.parameters().generate_private_key()
        except (ValueError, OverflowError) as e:
            raise ParameterGenerationError(f"Invalid DSA domain: {e}") from e

    def get_pem_asn1(self) -> str:
        numbers = self._require().private_numbers()
        record = _PrivateKeyRecord()
        record["public_key"] = _public_record(numbers.public_numbers)
        record["x"] = numbers.x
        return pem.encode(PRIVATE_KEY_LABEL, encoder.encode(record))

    def set_pem_asn1(self, pem_asn1: str) -> None:
        """
        Load a DSA private key. On failure the current key is left untouched.

        The raw ASN.1 structure is expected; OpenSSL's traditional and PKCS8
        DSA encodings are accepted too.
        """
        block = pem.decode(pem_asn1, labels=(PRIVATE_KEY_LABEL, "PRIVATE KEY"))
        try:
            record = _decode_record(block.data, _PrivateKeyRecord())
        except DecodeError as raw_error:
            try:
                key = load_private_der(block.data)
            except DecodeError:
                raise raw_error
            self.set(key)
        else:
            numbers = dsa.DSAPrivateNumbers(
                x=int(record["x"]),
                public_numbers=_public_numbers(record["public_key"]),
            )
            try:
                self._key = numbers.private_key()
            except (ValueError, OverflowError) as e:
                raise DecodeError(f"Invalid DSA private key: {e}") from e
        logger.debug("key_imported", algorithm="dsa", format="asn1")

    def get_public_key(self) -> PublicKey:
        return PublicKey(self._require().public_key())


class KeyPair:
    """A DSA private key and its public key."""

    def __init__(self):
        self._private_key = PrivateKey()
        self._public_key = PublicKey()

    def generate(self, sizes: Optional[ParameterSizes] = None) -> None:
        """Generate a new pair (default sizes from SIGNKIT_DSA_SIZES)."""
        private_key = PrivateKey()
        private_key.set_sizes(sizes if sizes is not None else get_settings().dsa_sizes)
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
            raise KeyPairMismatchError("Public key does not match the DSA private key")
        self._private_key = private_key
        self._public_key = public_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key


def generate(sizes: Optional[ParameterSizes] = None) -> KeyPair:
    key_pair = KeyPair()
    key_pair.generate(sizes)
    return key_pair


def sign(key: PrivateKey, message: Message) -> Signature:
    return key.sign(message)


def verify(key: PublicKey, message: Message, signature: Signature) -> bool:
    return key.verify(message, signature)


def export_private(key: PrivateKey) -> str:
    return key.get_pem_asn1()


def import_private(text: str) -> PrivateKey:
    key = PrivateKey()
    key.set_pem_asn1(text)
    return key


def export_public(key: PublicKey) -> str:
    return key.get_pem_asn1()


def import_public(text: str) -> PublicKey:
    key = PublicKey()
    key.set_pem_asn1(text)
    return key


def export_ssh(key: PublicKey, comment: Optional[str] = None) -> str:
    return key.get_ssh(comment)


def import_ssh(text: str) -> PublicKey:
    key = PublicKey()
    key.set_ssh(text)
    return key
