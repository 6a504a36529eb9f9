"""
Thumbprint Bundle Signing

Issues bundles in the format the verifier accepts: compact JWS, RS256 only.
"""

import json
import time
from typing import Iterable, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm as UnsupportedKeyAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import DEFAULT_AUDIENCE, DEFAULT_ISSUER, SUPPORTED_ALGORITHM
from .encoding import b64url_encode
from .errors import InvalidArgument
from .fingerprint import compute_fingerprints
from .models import BundleSchema, LegacyThumbprint, ThumbprintBundleClaims, ThumbprintEntry

DEFAULT_KEY_SIZE = 3072
DEFAULT_LIFETIME_SECONDS = 90 * 86400


def generate_signing_key(key_size: int = DEFAULT_KEY_SIZE) -> Tuple[str, str]:
    """
    Generate an RSA key pair for signing bundles.

    Returns:
        Tuple of (private_key_pem, public_key_pem)
    """
    if key_size < 2048:
        raise InvalidArgument("RSA key size must be at least 2048 bits", {"key_size": key_size})

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem.decode('ascii'), public_pem.decode('ascii')


def build_claims(
    certificates: Iterable[bytes],
    schema: BundleSchema = BundleSchema.CURRENT,
    version: str = "1",
    issued_at: Optional[int] = None,
    lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE
) -> ThumbprintBundleClaims:
    """
    Build bundle claims listing the given DER certificates, in order.

    Raises:
        CertificateDecodeError: If a certificate cannot be parsed
    """
    if lifetime_seconds <= 0:
        raise InvalidArgument("lifetime_seconds must be positive")

    issued_at = int(time.time()) if issued_at is None else issued_at

    records = []
    for der in certificates:
        fp = compute_fingerprints(der)
        if schema == BundleSchema.LEGACY:
            records.append(LegacyThumbprint(thumbprint=fp.hex_thumbprint))
        else:
            records.append(ThumbprintEntry(x5t=fp.x5t, x5t_s256=fp.x5t_s256))

    return ThumbprintBundleClaims(
        issuer=issuer,
        audience=audience,
        issued_at=issued_at,
        not_before=issued_at,
        expires_at=issued_at + lifetime_seconds,
        version=version,
        thumbprints=records,
    )


class BundleSigner:
    """Signs bundle claims with an RSA private key."""

    def __init__(self, private_key_pem: str, key_id: Optional[str] = None):
        try:
            key = serialization.load_pem_private_key(private_key_pem.encode('utf-8'), password=None)
        except (ValueError, TypeError, UnsupportedKeyAlgorithm) as e:
            raise InvalidArgument(f"Private key could not be loaded: {e}") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise InvalidArgument("Bundles can only be signed with an RSA key")
        self._key = key
        self.key_id = key_id

    def header(self) -> dict:
        header = {"alg": SUPPORTED_ALGORITHM, "typ": "JWT"}
        if self.key_id:
            header["kid"] = self.key_id
        return header

    def sign(self, claims: ThumbprintBundleClaims) -> str:
        """Return the compact token for these claims."""
        header_b64 = b64url_encode(_compact_json(self.header()))
        payload_b64 = b64url_encode(_compact_json(claims.to_dict()))
        signing_input = f"{header_b64}.{payload_b64}"
        signature = self._key.sign(signing_input.encode('ascii'), padding.PKCS1v15(), hashes.SHA256())
        return f"{signing_input}.{b64url_encode(signature)}"

    def public_key_pem(self) -> str:
        return self._key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode('ascii')


def _compact_json(obj: dict) -> bytes:
    return json.dumps(obj, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
