"""
Pytest Configuration and Fixtures
"""

import os
import sys
import warnings

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from signkit import dsa, ecdsa, ed25519, rsa  # noqa: E402
from signkit.config import reset_settings  # noqa: E402


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Each test reads a fresh environment."""
    for name in list(os.environ):
        if name.startswith("SIGNKIT_"):
            monkeypatch.delenv(name)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def ed25519_key_pair():
    return ed25519.generate()


@pytest.fixture
def ecdsa_key_pair():
    return ecdsa.generate("P-384")


@pytest.fixture(scope="session")
def dsa_key_pair():
    """DSA domain generation is slow; share one L1024N160 pair."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return dsa.generate(dsa.ParameterSizes.L1024N160)


@pytest.fixture(scope="session")
def rsa_key_pair():
    return rsa.generate(2048)
