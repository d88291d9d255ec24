"""
Configuration

Defaults for key generation and the command line, read from the
environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Environment-driven defaults."""
    ecdsa_curve: str = "P-256"
    dsa_sizes: str = "L2048N256"
    rsa_bits: int = 3072
    log_level: str = "WARNING"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ecdsa_curve=os.environ.get("SIGNKIT_ECDSA_CURVE", "P-256"),
            dsa_sizes=os.environ.get("SIGNKIT_DSA_SIZES", "L2048N256"),
            rsa_bits=int(os.environ.get("SIGNKIT_RSA_BITS", "3072")),
            log_level=os.environ.get("SIGNKIT_LOG_LEVEL", "WARNING").upper(),
            log_json=os.environ.get("SIGNKIT_LOG_JSON", "").lower() in _TRUE_VALUES,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the cached settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
