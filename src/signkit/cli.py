"""
signkit CLI

Commands:
  keygen   - Generate a key pair and write PEM and SSH files
  sign     - Sign a message with a private key
  verify   - Verify a signature with a PEM or SSH public key
  convert  - Print the SSH form of a PEM public key
"""

import argparse
import base64
import sys
import warnings
from pathlib import Path

from . import dsa, ecdsa, ed25519, rsa
from .config import get_settings
from .errors import SignkitError
from .log import configure_logging, get_logger
from .signature import Signature, SignatureAlgorithm

logger = get_logger(__name__)

MODULES = {
    SignatureAlgorithm.ED25519: ed25519,
    SignatureAlgorithm.ECDSA: ecdsa,
    SignatureAlgorithm.DSA: dsa,
    SignatureAlgorithm.RSA: rsa,
}


def _algorithm(name: str) -> SignatureAlgorithm:
    try:
        return SignatureAlgorithm(name.lower())
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"unknown algorithm {name!r}, choose from {[a.value for a in SignatureAlgorithm]}"
        )


def _read_message(args) -> bytes:
    if args.input:
        return Path(args.input).read_bytes()
    return args.message.encode("utf-8")


def _encode_signature(signature) -> str:
    if isinstance(signature, Signature):
        signature = signature.to_der()
    return base64.b64encode(signature).decode("ascii")


def _decode_signature(algorithm: SignatureAlgorithm, value: str):
    raw = base64.b64decode(value)
    if algorithm in (SignatureAlgorithm.ECDSA, SignatureAlgorithm.DSA):
        return Signature.from_der(raw)
    return raw


def _load_public(algorithm: SignatureAlgorithm, text: str):
    module = MODULES[algorithm]
    if "-----BEGIN" in text:
        if algorithm is SignatureAlgorithm.RSA and "RSA PUBLIC KEY" in text:
            key = rsa.PublicKey()
            key.set_pem_pkcs1(text)
            return key
        return module.import_public(text)
    return module.import_ssh(text)


def cmd_keygen(args):
    """Generate a key pair."""
    settings = get_settings()
    algorithm = args.algorithm

    if algorithm is SignatureAlgorithm.ED25519:
        key_pair = ed25519.generate()
    elif algorithm is SignatureAlgorithm.ECDSA:
        key_pair = ecdsa.generate(args.curve or settings.ecdsa_curve)
    elif algorithm is SignatureAlgorithm.DSA:
        key_pair = dsa.generate(dsa.ParameterSizes.from_name(args.sizes or settings.dsa_sizes))
    else:
        key_pair = rsa.generate(args.bits or settings.rsa_bits)

    module = MODULES[algorithm]
    private_key, public_key = key_pair.get_key_pair()
    prefix = Path(args.out)

    private_path = prefix.with_name(prefix.name + ".pem")
    private_path.write_text(module.export_private(private_key))
    private_path.chmod(0o600)
    prefix.with_name(prefix.name + ".pub.pem").write_text(module.export_public(public_key))
    prefix.with_name(prefix.name + ".pub.ssh").write_text(
        module.export_ssh(public_key, args.comment)
    )

    logger.info("keygen_complete", algorithm=algorithm.value, out=str(prefix))
    print(f"Generated {algorithm.value} key pair")
    print(f"  Private: {private_path}")
    print(f"  Public:  {prefix.name}.pub.pem, {prefix.name}.pub.ssh")


def cmd_sign(args):
    """Sign a message."""
    module = MODULES[args.algorithm]
    private_key = module.import_private(Path(args.key).read_text())
    signature = module.sign(private_key, _read_message(args))
    print(_encode_signature(signature))


def cmd_verify(args):
    """Verify a signature."""
    public_key = _load_public(args.algorithm, Path(args.key).read_text())
    try:
        signature = _decode_signature(args.algorithm, args.signature)
    except (SignkitError, ValueError):
        print("Signature Invalid: malformed signature")
        sys.exit(1)

    if MODULES[args.algorithm].verify(public_key, _read_message(args), signature):
        print("Signature Valid")
    else:
        print("Signature Invalid")
        sys.exit(1)


def cmd_convert(args):
    """Convert a PEM public key to SSH authorized_keys form."""
    module = MODULES[args.algorithm]
    public_key = _load_public(args.algorithm, Path(args.key).read_text())
    sys.stdout.write(module.export_ssh(public_key, args.comment))


def _add_message_arguments(parser):
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--message", help="Message text (signed as UTF-8)")
    group.add_argument("--input", help="File whose bytes are the message")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signkit",
        description="Asymmetric key and signature tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Render logs as JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen_parser = subparsers.add_parser("keygen", help="Generate a key pair")
    keygen_parser.add_argument("algorithm", type=_algorithm)
    keygen_parser.add_argument("--out", required=True, help="Output path prefix")
    keygen_parser.add_argument("--curve", help="ECDSA curve (P-256, P-384, P-521)")
    keygen_parser.add_argument("--sizes", help="DSA sizes (e.g. L2048N256)")
    keygen_parser.add_argument("--bits", type=int, help="RSA modulus size")
    keygen_parser.add_argument("--comment", help="SSH key comment")
    keygen_parser.set_defaults(func=cmd_keygen)

    sign_parser = subparsers.add_parser("sign", help="Sign a message")
    sign_parser.add_argument("algorithm", type=_algorithm)
    sign_parser.add_argument("--key", required=True, help="PEM private key file")
    _add_message_arguments(sign_parser)
    sign_parser.set_defaults(func=cmd_sign)

    verify_parser = subparsers.add_parser("verify", help="Verify a signature")
    verify_parser.add_argument("algorithm", type=_algorithm)
    verify_parser.add_argument("--key", required=True, help="PEM or SSH public key file")
    verify_parser.add_argument("--signature", required=True, help="Base64 signature")
    _add_message_arguments(verify_parser)
    verify_parser.set_defaults(func=cmd_verify)

    convert_parser = subparsers.add_parser("convert", help="PEM public key to SSH")
    convert_parser.add_argument("algorithm", type=_algorithm)
    convert_parser.add_argument("--key", required=True, help="PEM public key file")
    convert_parser.add_argument("--comment", help="SSH key comment")
    convert_parser.set_defaults(func=cmd_convert)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, args.json_logs or settings.log_json)
    warnings.simplefilter("default", DeprecationWarning)

    try:
        args.func(args)
    except SignkitError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
