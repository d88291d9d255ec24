"""
DER Key Loading

Thin wrappers over cryptography's DER loaders that translate library
exceptions into DecodeError, so importers only have to check the key type.
"""

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .errors import DecodeError, KeyTypeMismatchError


def load_private_der(data: bytes):
    """Load an unencrypted PKCS8 or traditional OpenSSL private key."""
    try:
        return serialization.load_der_private_key(data, password=None)
    except UnsupportedAlgorithm as e:
        raise KeyTypeMismatchError(f"Unsupported private key algorithm: {e}") from e
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Malformed private key DER: {e}") from e


def load_public_der(data: bytes):
    """Load a PKIX (SubjectPublicKeyInfo) public key."""
    try:
        return serialization.load_der_public_key(data)
    except UnsupportedAlgorithm as e:
        raise KeyTypeMismatchError(f"Unsupported public key algorithm: {e}") from e
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Malformed public key DER: {e}") from e


def load_ssh_public(line: str):
    """Load an OpenSSH public key line (already type-checked by the caller)."""
    try:
        return serialization.load_ssh_public_key(line.encode("ascii"))
    except UnsupportedAlgorithm as e:
        raise KeyTypeMismatchError(f"Unsupported SSH key algorithm: {e}") from e
    except (ValueError, TypeError) as e:
        raise DecodeError(f"Malformed SSH public key: {e}") from e


def algorithm_name(key) -> str:
    """Short algorithm name of a cryptography key object, for error messages."""
    name = type(key).__name__
    for suffix in ("PrivateKey", "PublicKey"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    return name.lstrip("_") or "unknown"
