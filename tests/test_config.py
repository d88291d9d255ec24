"""
Tests for Configuration and Logging Setup
"""

import os
import subprocess
import sys

import pytest

from signkit.config import Settings, get_settings, reset_settings
from signkit.log import configure_logging, get_logger, reset_logging

SRC = os.path.join(os.path.dirname(os.path.dirname(__file__)), "src")


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        """Without environment variables the defaults apply."""
        settings = get_settings()
        assert settings == Settings()
        assert settings.ecdsa_curve == "P-256"
        assert settings.dsa_sizes == "L2048N256"
        assert settings.rsa_bits == 3072
        assert settings.log_level == "WARNING"
        assert settings.log_json is False

    def test_environment_overrides(self, monkeypatch):
        """SIGNKIT_* variables override the defaults."""
        monkeypatch.setenv("SIGNKIT_ECDSA_CURVE", "P-384")
        monkeypatch.setenv("SIGNKIT_DSA_SIZES", "L3072N256")
        monkeypatch.setenv("SIGNKIT_RSA_BITS", "4096")
        monkeypatch.setenv("SIGNKIT_LOG_LEVEL", "debug")
        monkeypatch.setenv("SIGNKIT_LOG_JSON", "true")

        settings = get_settings()
        assert settings.ecdsa_curve == "P-384"
        assert settings.dsa_sizes == "L3072N256"
        assert settings.rsa_bits == 4096
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_cached_until_reset(self, monkeypatch):
        """Settings are read once and re-read after reset."""
        first = get_settings()
        monkeypatch.setenv("SIGNKIT_RSA_BITS", "4096")
        assert get_settings() is first

        reset_settings()
        assert get_settings().rsa_bits == 4096


class TestLogging:
    """Test structlog configuration."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        reset_logging()

    def test_library_is_silent_by_default(self):
        """Key operations print nothing unless logging is configured."""
        script = (
            "from signkit import ecdsa, ed25519\n"
            "key_pair = ed25519.generate()\n"
            "ed25519.import_public(ed25519.export_public(key_pair.public_key))\n"
            "key_pair.verify('m', b'x' * 64)\n"
            "ec_pair = ecdsa.generate('P-256')\n"
            "ecdsa.import_ssh(ecdsa.export_ssh(ec_pair.public_key))\n"
        )
        env = dict(os.environ, PYTHONPATH=SRC)
        result = subprocess.run(
            [sys.executable, "-c", script],
            capture_output=True,
            text=True,
            env=env,
            check=True,
        )

        assert result.stdout == ""
        assert result.stderr == ""

    def test_json_output(self, capsys):
        """JSON mode writes one JSON event per line to stderr."""
        configure_logging("INFO", json=True)
        get_logger("signkit.tests").info("key_generated", algorithm="ed25519")

        err = capsys.readouterr().err
        assert '"event": "key_generated"' in err
        assert '"algorithm": "ed25519"' in err
        assert '"level": "info"' in err

    def test_level_filtering(self, capsys):
        """Events below the configured level are dropped."""
        configure_logging("WARNING")
        get_logger("signkit.tests").info("hidden_event")
        get_logger("signkit.tests").warning("shown_event")

        err = capsys.readouterr().err
        assert "hidden_event" not in err
        assert "shown_event" in err

    def test_reset_silences_output(self, capsys):
        """After reset_logging nothing is rendered."""
        configure_logging("DEBUG")
        reset_logging()
        get_logger("signkit.tests").warning("after_reset")

        captured = capsys.readouterr()
        assert "after_reset" not in captured.err
        assert "after_reset" not in captured.out

    def test_unknown_level(self):
        """An unknown level name is refused."""
        with pytest.raises(ValueError):
            configure_logging("LOUD")
