"""
Error Taxonomy

Every failure raised by the key modules derives from SignkitError.
Verification never raises for a bad signature; it returns False.
"""


class SignkitError(Exception):
    """Base class for all signkit errors."""
    pass


class GenerationError(SignkitError):
    """Raised when key generation fails."""
    pass


class ParameterGenerationError(GenerationError):
    """Raised when DSA domain parameters cannot be generated."""
    pass


class DecodeError(SignkitError, ValueError):
    """Raised when PEM, DER or SSH input is malformed."""
    pass


class KeyTypeMismatchError(SignkitError, TypeError):
    """Raised when decoded key material belongs to another algorithm."""
    pass


class CurveMismatchError(KeyTypeMismatchError):
    """Raised when an ECDSA key is on an unexpected or unsupported curve."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Expected curve {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class KeyNotSetError(SignkitError, RuntimeError):
    """Raised when a key object is used before it holds key material."""
    pass


class KeyPairMismatchError(SignkitError, ValueError):
    """Raised when a public key is not the public half of a private key."""
    pass


class DecryptionError(SignkitError):
    """Raised when RSA decryption fails."""
    pass


class EncryptionError(SignkitError):
    """Raised when RSA encryption fails, e.g. the plaintext is too long."""
    pass
