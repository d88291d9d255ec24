"""
signkit - Asymmetric Keys and Digital Signatures

One module per algorithm family, each with the same shape:
- ed25519 - deterministic Ed25519 signatures
- ecdsa   - ECDSA over P-256 / P-384 / P-521
- dsa     - legacy DSA (deprecated)
- rsa     - RSA encryption and PSS signatures

Every module provides PrivateKey, PublicKey and KeyPair classes plus
generate / sign / verify / export_* / import_* functions.
"""

from . import dsa, ecdsa, ed25519, rsa
from .errors import (
    SignkitError,
    GenerationError,
    ParameterGenerationError,
    DecodeError,
    KeyTypeMismatchError,
    CurveMismatchError,
    KeyNotSetError,
    KeyPairMismatchError,
    DecryptionError,
    EncryptionError,
)
from .signature import Signature, SignatureAlgorithm

__version__ = "0.1.0"

__all__ = [
    "dsa",
    "ecdsa",
    "ed25519",
    "rsa",
    "Signature",
    "SignatureAlgorithm",
    "SignkitError",
    "GenerationError",
    "ParameterGenerationError",
    "DecodeError",
    "KeyTypeMismatchError",
    "CurveMismatchError",
    "KeyNotSetError",
    "KeyPairMismatchError",
    "DecryptionError",
    "EncryptionError",
]
