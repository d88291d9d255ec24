"""
Tests for PEM Armor, SSH Encoding and Signature Values
"""

import base64

import pytest

from signkit import pem, ssh
from signkit.errors import DecodeError, KeyTypeMismatchError
from signkit.signature import Signature, to_bytes


class TestPem:
    """Test PEM encode/decode."""

    def test_encode_layout(self):
        """Lines wrap at 64 columns and the block ends with a newline."""
        text = pem.encode("TEST BLOCK", bytes(range(100)))
        lines = text.splitlines()

        assert lines[0] == "-----BEGIN TEST BLOCK-----"
        assert lines[-1] == "-----END TEST BLOCK-----"
        assert all(len(line) <= pem.LINE_WIDTH for line in lines[1:-1])
        assert len(lines[1]) == pem.LINE_WIDTH
        assert text.endswith("\n")

    def test_decode(self):
        """Decoding returns the label and bytes."""
        block = pem.decode(pem.encode("TEST BLOCK", b"payload"))
        assert block.label == "TEST BLOCK"
        assert block.data == b"payload"

    def test_surrounding_text_and_crlf(self):
        """Text around the block and CRLF line endings are tolerated."""
        text = "comment\r\n" + pem.encode("KEY", b"abc").replace("\n", "\r\n") + "trailer"
        assert pem.decode(text).data == b"abc"

    def test_bytes_input(self):
        """PEM may be passed as bytes."""
        assert pem.decode(pem.encode("KEY", b"abc").encode("ascii")).data == b"abc"

    def test_rfc1421_headers_skipped(self):
        """Proc-Type style headers are not part of the body."""
        text = (
            "-----BEGIN KEY-----\n"
            "Proc-Type: 4,ENCRYPTED\n"
            "\n"
            f"{base64.b64encode(b'abc').decode()}\n"
            "-----END KEY-----\n"
        )
        assert pem.decode(text).data == b"abc"

    def test_label_filter(self):
        """A block with an unexpected label is refused."""
        with pytest.raises(DecodeError):
            pem.decode(pem.encode("KEY", b"abc"), labels=("OTHER KEY",))

    @pytest.mark.parametrize("text", [
        "",
        "no armor here",
        "-----BEGIN KEY-----\nYWJj\n-----END OTHER-----\n",
        "-----BEGIN KEY-----\n!!!!\n-----END KEY-----\n",
        "-----BEGIN KEY-----\n-----END KEY-----\n",
    ])
    def test_malformed(self, text):
        """Missing blocks, mismatched markers, bad base64 and empty bodies fail."""
        with pytest.raises(DecodeError):
            pem.decode(text)

    def test_non_text(self):
        """Only str and bytes are accepted."""
        with pytest.raises(DecodeError):
            pem.decode(None)


class TestSsh:
    """Test authorized_keys parsing and wire primitives."""

    BLOB = ssh.encode_string(b"ssh-ed25519") + ssh.encode_string(b"\x01" * 32)

    def line(self, comment=None):
        return ssh.format_authorized_key("ssh-ed25519", self.BLOB, comment)

    def test_format(self):
        """A formatted key is type, base64 blob and comment."""
        assert self.line("user@host") == (
            f"ssh-ed25519 {base64.b64encode(self.BLOB).decode()} user@host\n"
        )
        assert not self.line().rstrip("\n").endswith(" ")

    def test_parse(self):
        """Parsing recovers type, blob and comment."""
        key = ssh.parse_authorized_key(self.line("user@host"))
        assert key.key_type == "ssh-ed25519"
        assert key.blob == self.BLOB
        assert key.comment == "user@host"
        assert key.to_line() == self.line("user@host")

    def test_parse_skips_options_and_comments(self):
        """Comment lines and leading options are skipped."""
        text = "# deploy keys\n\n" + 'from="10.0.0.1",no-pty ' + self.line("a b")
        key = ssh.parse_authorized_key(text)
        assert key.blob == self.BLOB
        assert key.comment == "a b"

    def test_expected_type(self):
        """A key of another type raises KeyTypeMismatchError."""
        with pytest.raises(KeyTypeMismatchError):
            ssh.parse_authorized_key(self.line(), key_types=("ssh-rsa",))

    def test_blob_type_must_match(self):
        """The declared type must match the type inside the blob."""
        line = f"ssh-rsa {base64.b64encode(self.BLOB).decode()}"
        with pytest.raises(DecodeError):
            ssh.parse_authorized_key(line)

    @pytest.mark.parametrize("text", [
        "",
        "# only a comment",
        "ssh-ed25519",
        "ssh-ed25519 not*base64",
        "ssh-ed25519 AAAA",
    ])
    def test_malformed(self, text):
        """Missing, truncated and non-base64 keys fail."""
        with pytest.raises(DecodeError):
            ssh.parse_authorized_key(text)

    @pytest.mark.parametrize("value,encoded", [
        (0, b"\x00\x00\x00\x00"),
        (0x80, b"\x00\x00\x00\x02\x00\x80"),
        (0x7F, b"\x00\x00\x00\x01\x7f"),
        (0x123456789, b"\x00\x00\x00\x05\x01\x23\x45\x67\x89"),
    ])
    def test_mpint(self, value, encoded):
        """mpints are minimal two's complement with a sign byte when needed."""
        assert ssh.encode_mpint(value) == encoded
        assert ssh.WireReader(encoded).read_mpint() == value

    def test_wire_reader(self):
        """Reads fields in order and checks for leftovers."""
        reader = ssh.WireReader(ssh.encode_string(b"a") + ssh.encode_string(b"bc") + b"x")
        assert reader.read_string() == b"a"
        assert reader.read_string() == b"bc"
        with pytest.raises(DecodeError):
            reader.finish()
        with pytest.raises(DecodeError):
            reader.read_string()


class TestSignature:
    """Test the shared (r, s) value and message coercion."""

    def test_der_round_trip(self):
        """DER encoding preserves r and s."""
        signature = Signature(r=12345, s=2 ** 200 + 1)
        assert Signature.from_der(signature.to_der()) == signature

    def test_malformed_der(self):
        """Junk DER is a decode error."""
        with pytest.raises(DecodeError):
            Signature.from_der(b"\x01\x02")

    def test_frozen(self):
        """Signatures are immutable values."""
        signature = Signature(1, 2)
        with pytest.raises(AttributeError):
            signature.r = 3

    def test_to_bytes(self):
        """Text is encoded as UTF-8; bytes pass through."""
        assert to_bytes("héllo") == "héllo".encode("utf-8")
        assert to_bytes(b"\xff") == b"\xff"
        assert to_bytes(bytearray(b"ab")) == b"ab"

    @pytest.mark.parametrize("message", [5, None, ["a"], 3.0])
    def test_to_bytes_rejects_other_types(self, message):
        """Only str, bytes and bytearray are messages."""
        with pytest.raises(TypeError):
            to_bytes(message)
