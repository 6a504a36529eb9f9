#!/usr/bin/env python3
"""
Thumbprint Bundle Command Line Interface

Usage:
    thumbprint-bundle verify --bundle <file> --public-key <file> [--cert <file> ...]
    thumbprint-bundle thumbprint --cert <file> [--cert <file> ...]
    thumbprint-bundle convert <conversion> <value>
    thumbprint-bundle keygen --private-out <file> --public-out <file>
    thumbprint-bundle sign --private-key <file> --cert <file> [...] [--output <file>]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .allowlist import AllowListMatcher
from .config import VerifierConfig
from .errors import BundleError
from .fingerprint import (
    compute_fingerprints,
    hex_to_x5t,
    hex_to_x5t_s256,
    load_certificate_der,
    x5t_s256_to_hex,
    x5t_to_hex,
)
from .logging_config import audit_log, configure_logging, start_run
from .models import BundleSchema
from .signing import DEFAULT_KEY_SIZE, BundleSigner, build_claims, generate_signing_key
from .verifier import BundleVerifier

logger = logging.getLogger(__name__)

CONVERSIONS = {
    "x5t-to-hex": x5t_to_hex,
    "hex-to-x5t": hex_to_x5t,
    "x5t-s256-to-hex": x5t_s256_to_hex,
    "hex-to-x5t-s256": hex_to_x5t_s256,
}


def read_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def read_bytes(path: str) -> bytes:
    with open(path, 'rb') as f:
        return f.read()


def write_text(path: str, data: str):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(data)


def cmd_verify(args) -> int:
    """Verify a bundle and check certificates against it."""
    try:
        config = VerifierConfig.from_env().with_overrides(
            issuer=args.issuer,
            audience=args.audience,
            clock_skew_seconds=args.clock_skew,
        )
    except BundleError as e:
        print(f"✗ {e.code.value}: {e.message}", file=sys.stderr)
        return 2

    token = read_text(args.bundle).strip()
    public_key_pem = read_text(args.public_key)

    result = BundleVerifier(config).verify(token, public_key_pem)

    if not result.is_valid():
        audit_log.bundle_rejected(result.failure, result.reason, source=args.bundle)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(f"✗ Bundle rejected: {result.failure.value}: {result.reason}")
        return 1

    claims = result.claims
    schema = claims.bundle_schema.value if claims.bundle_schema else None
    audit_log.bundle_verified(claims.version, len(claims.thumbprints), schema, claims.expires_at)

    matcher = AllowListMatcher(claims)
    decisions = []
    for cert_path in args.cert or []:
        name = Path(cert_path).name
        try:
            fingerprints = compute_fingerprints(load_certificate_der(read_bytes(cert_path)))
        except BundleError as e:
            logger.warning("Certificate %s could not be decoded: %s", cert_path, e.message)
            decisions.append({"certificate": name, "allowed": False, "error": e.code.value})
            continue

        allowed = matcher.matches(fingerprints)
        audit_log.certificate_decision(name, allowed, fingerprints.hex_thumbprint)
        decisions.append({"certificate": name, "allowed": allowed, **fingerprints.to_dict()})

    if args.json:
        output = result.to_dict()
        output["certificates"] = decisions
        print(json.dumps(output, indent=2))
    else:
        print(f"Bundle verified. version={claims.version}, entries={len(claims.thumbprints)}")
        for decision in decisions:
            if "error" in decision:
                print(f"  {decision['certificate']}: BLOCKED ({decision['error']})")
            else:
                print(f"  {decision['certificate']}: {'ALLOWED' if decision['allowed'] else 'BLOCKED'}")

    return 0 if all(d["allowed"] for d in decisions) else 1


def cmd_thumbprint(args) -> int:
    """Print the fingerprints of certificates."""
    status = 0
    for cert_path in args.cert:
        try:
            fingerprints = compute_fingerprints(load_certificate_der(read_bytes(cert_path)))
        except BundleError as e:
            print(f"{cert_path}: {e.code.value}: {e.message}", file=sys.stderr)
            status = 1
            continue

        if args.json:
            print(json.dumps({"certificate": cert_path, **fingerprints.to_dict()}))
        else:
            print(cert_path)
            print(f"  thumbprint: {fingerprints.hex_thumbprint}")
            print(f"  x5t:        {fingerprints.x5t}")
            print(f"  x5t#S256:   {fingerprints.x5t_s256}")
    return status


def cmd_convert(args) -> int:
    """Convert between hex thumbprints and x5t encodings."""
    try:
        print(CONVERSIONS[args.conversion](args.value))
    except BundleError as e:
        print(f"✗ {e.code.value}: {e.message}", file=sys.stderr)
        return 1
    return 0


def cmd_keygen(args) -> int:
    """Generate an RSA key pair for signing bundles."""
    try:
        private_pem, public_pem = generate_signing_key(args.key_size)
    except BundleError as e:
        print(f"✗ {e.code.value}: {e.message}", file=sys.stderr)
        return 2

    write_text(args.private_out, private_pem)
    write_text(args.public_out, public_pem)
    print(f"Private key saved to: {args.private_out}", file=sys.stderr)
    print(f"Public key saved to: {args.public_out}", file=sys.stderr)
    return 0


def cmd_sign(args) -> int:
    """Issue a bundle listing the given certificates."""
    try:
        config = VerifierConfig.from_env().with_overrides(issuer=args.issuer, audience=args.audience)
        signer = BundleSigner(read_text(args.private_key), key_id=args.key_id)
        claims = build_claims(
            [load_certificate_der(read_bytes(path)) for path in args.cert],
            schema=BundleSchema.LEGACY if args.legacy else BundleSchema.CURRENT,
            version=args.version,
            lifetime_seconds=args.lifetime_days * 86400,
            issuer=config.issuer,
            audience=config.audience,
        )
    except BundleError as e:
        print(f"✗ {e.code.value}: {e.message}", file=sys.stderr)
        return 1

    token = signer.sign(claims)
    if args.output:
        write_text(args.output, token + "\n")
        print(f"Bundle saved to: {args.output}", file=sys.stderr)
    else:
        print(token)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thumbprint-bundle",
        description="Signed code-signing thumbprint bundles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  thumbprint-bundle verify -b thumbprints.bundle.jwt -k jwt-public.pem -c CodeSign.crt
  thumbprint-bundle thumbprint -c CodeSign.crt
  thumbprint-bundle convert x5t-to-hex <x5t>
  thumbprint-bundle keygen --private-out jwt-private.pem --public-out jwt-public.pem
  thumbprint-bundle sign -k jwt-private.pem -c CodeSign.crt -o thumbprints.bundle.jwt
        """
    )
    parser.add_argument(
        "--log-level", type=str.upper, default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)"
    )
    parser.add_argument("--log-format", choices=["json", "text"], default="json", help="Log format")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify a bundle")
    verify_parser.add_argument("-b", "--bundle", required=True, help="Bundle token file")
    verify_parser.add_argument("-k", "--public-key", required=True, help="PEM public key file")
    verify_parser.add_argument("-c", "--cert", action="append", help="Certificate to check (repeatable)")
    verify_parser.add_argument("--issuer", help="Expected issuer")
    verify_parser.add_argument("--audience", help="Expected audience")
    verify_parser.add_argument("--clock-skew", type=int, help="Clock skew in seconds")
    verify_parser.add_argument("--json", action="store_true", help="JSON output")

    # thumbprint
    thumb_parser = subparsers.add_parser("thumbprint", help="Compute certificate fingerprints")
    thumb_parser.add_argument("-c", "--cert", action="append", required=True, help="Certificate file (repeatable)")
    thumb_parser.add_argument("--json", action="store_true", help="JSON output")

    # convert
    convert_parser = subparsers.add_parser("convert", help="Convert thumbprint encodings")
    convert_parser.add_argument("conversion", choices=sorted(CONVERSIONS))
    convert_parser.add_argument("value")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate RSA signing key pair")
    keygen_parser.add_argument("--private-out", required=True, help="Output file for private key")
    keygen_parser.add_argument("--public-out", required=True, help="Output file for public key")
    keygen_parser.add_argument("--key-size", type=int, default=DEFAULT_KEY_SIZE, help="RSA key size in bits")

    # sign
    sign_parser = subparsers.add_parser("sign", help="Issue a signed bundle")
    sign_parser.add_argument("-k", "--private-key", required=True, help="PEM private key file")
    sign_parser.add_argument("-c", "--cert", action="append", required=True, help="Certificate to list (repeatable)")
    sign_parser.add_argument("--legacy", action="store_true", help="List hex SHA-1 thumbprints")
    sign_parser.add_argument("--version", default="1", help="Bundle version tag")
    sign_parser.add_argument("--lifetime-days", type=int, default=90, help="Validity in days")
    sign_parser.add_argument("--key-id", help="Key identifier for the header")
    sign_parser.add_argument("--issuer", help="Issuer claim")
    sign_parser.add_argument("--audience", help="Audience claim")
    sign_parser.add_argument("-o", "--output", help="Output file for the bundle")

    return parser


COMMANDS = {
    "verify": cmd_verify,
    "thumbprint": cmd_thumbprint,
    "convert": cmd_convert,
    "keygen": cmd_keygen,
    "sign": cmd_sign,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 2

    configure_logging(args.log_level, json_format=args.log_format == "json")
    start_run()

    try:
        return COMMANDS[args.command](args)
    except (OSError, UnicodeDecodeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
