"""
Test material: RSA keys, self-signed certificates and hand-built tokens.

Everything is generated at run time and cached for the session.
"""

import datetime
import json
from functools import lru_cache
from typing import Any, Dict, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.x509.oid import NameOID

from thumbprint_bundle import (
    DEFAULT_AUDIENCE,
    DEFAULT_ISSUER,
    b64url_encode,
    compute_fingerprints,
)

NOW = 1_760_000_000


@lru_cache(maxsize=None)
def rsa_key(name: str = "signing") -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def private_pem(key) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode('ascii')


def public_pem(key) -> str:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode('ascii')


@lru_cache(maxsize=None)
def ec_public_pem() -> str:
    return public_pem(ec.generate_private_key(ec.SECP256R1()))


@lru_cache(maxsize=None)
def certificate(common_name: str) -> bytes:
    """Self-signed code-signing style certificate, DER encoded."""
    key = rsa_key(f"cert:{common_name}")
    name = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Software Inc."),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    not_before = datetime.datetime(2025, 1, 1, tzinfo=datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + datetime.timedelta(days=3 * 365))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


def certificate_pem(common_name: str) -> bytes:
    cert = x509.load_der_x509_certificate(certificate(common_name))
    return cert.public_bytes(serialization.Encoding.PEM)


def current_entry(der: bytes) -> Dict[str, str]:
    fp = compute_fingerprints(der)
    return {"x5t": fp.x5t, "x5t#S256": fp.x5t_s256}


def legacy_entry(der: bytes) -> str:
    return compute_fingerprints(der).hex_thumbprint


def claims_dict(**overrides) -> Dict[str, Any]:
    claims = {
        "iss": DEFAULT_ISSUER,
        "aud": DEFAULT_AUDIENCE,
        "iat": NOW - 3600,
        "nbf": NOW - 3600,
        "exp": NOW + 86400,
        "ver": "2025.1",
        "thumbprints": [current_entry(certificate("CodeSign A")), current_entry(certificate("CodeSign B"))],
    }
    claims.update(overrides)
    return claims


def encode_segment(obj: Any) -> str:
    if isinstance(obj, bytes):
        return b64url_encode(obj)
    return b64url_encode(json.dumps(obj, separators=(',', ':')).encode('utf-8'))


def sign_input(signing_input: str, key: Optional[rsa.RSAPrivateKey] = None) -> bytes:
    key = key or rsa_key()
    return key.sign(signing_input.encode('ascii'), padding.PKCS1v15(), hashes.SHA256())


def make_token(
    claims: Any = None,
    header: Any = None,
    key: Optional[rsa.RSAPrivateKey] = None
) -> str:
    """Build and sign a token; header and claims may be any JSON or raw bytes."""
    header = {"alg": "RS256", "typ": "JWT"} if header is None else header
    claims = claims_dict() if claims is None else claims
    signing_input = f"{encode_segment(header)}.{encode_segment(claims)}"
    return f"{signing_input}.{b64url_encode(sign_input(signing_input, key))}"
