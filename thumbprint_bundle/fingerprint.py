"""
Certificate Fingerprints

A certificate is identified by digests of its DER encoding, rendered two ways:
- legacy: uppercase hex SHA-1 (the Windows "thumbprint")
- current: base64url SHA-1 (x5t) and base64url SHA-256 (x5t#S256)
"""

from dataclasses import dataclass
from typing import Dict

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding

from .encoding import b64url_decode, b64url_encode, hex_decode, hex_encode
from .errors import CertificateDecodeError, MalformedEncoding

SHA1_DIGEST_SIZE = 20
SHA256_DIGEST_SIZE = 32

PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


@dataclass(frozen=True)
class CertificateFingerprints:
    """All fingerprint encodings of one certificate."""
    hex_thumbprint: str
    x5t: str
    x5t_s256: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "thumbprint": self.hex_thumbprint,
            "x5t": self.x5t,
            "x5t#S256": self.x5t_s256,
        }


def _parse_der(certificate_der: bytes) -> x509.Certificate:
    if not isinstance(certificate_der, (bytes, bytearray, memoryview)):
        raise CertificateDecodeError("certificate must be DER bytes")
    if not certificate_der:
        raise CertificateDecodeError("certificate is empty")
    try:
        return x509.load_der_x509_certificate(bytes(certificate_der))
    except ValueError as e:
        raise CertificateDecodeError(f"not a DER X.509 certificate: {e}") from e


def sha1_digest_of(certificate_der: bytes) -> bytes:
    """SHA-1 digest of the certificate's DER encoding (20 bytes)."""
    return _parse_der(certificate_der).fingerprint(hashes.SHA1())


def sha256_digest_of(certificate_der: bytes) -> bytes:
    """SHA-256 digest of the certificate's DER encoding (32 bytes)."""
    return _parse_der(certificate_der).fingerprint(hashes.SHA256())


def compute_x5t(certificate_der: bytes) -> str:
    return b64url_encode(sha1_digest_of(certificate_der))


def compute_x5t_s256(certificate_der: bytes) -> str:
    return b64url_encode(sha256_digest_of(certificate_der))


def compute_hex_thumbprint(certificate_der: bytes) -> str:
    """Legacy thumbprint: uppercase hex SHA-1, as shown by Windows."""
    return hex_encode(sha1_digest_of(certificate_der))


def compute_fingerprints(certificate_der: bytes) -> CertificateFingerprints:
    """Compute every encoding with a single parse of the certificate."""
    cert = _parse_der(certificate_der)
    sha1 = cert.fingerprint(hashes.SHA1())
    sha256 = cert.fingerprint(hashes.SHA256())
    return CertificateFingerprints(
        hex_thumbprint=hex_encode(sha1),
        x5t=b64url_encode(sha1),
        x5t_s256=b64url_encode(sha256),
    )


def load_certificate_der(data: bytes) -> bytes:
    """
    Accept a certificate file's contents in PEM or DER form and return DER.

    Raises:
        CertificateDecodeError: If the data is neither.
    """
    if not data:
        raise CertificateDecodeError("certificate is empty")

    if PEM_MARKER in data:
        try:
            cert = x509.load_pem_x509_certificate(data)
        except ValueError as e:
            raise CertificateDecodeError(f"not a PEM X.509 certificate: {e}") from e
        return cert.public_bytes(Encoding.DER)

    return _parse_der(data).public_bytes(Encoding.DER)


# Conversions between Windows hex thumbprints and JOSE encodings

def _digest_from_b64url(value: str, size: int, name: str) -> bytes:
    digest = b64url_decode(value)
    if len(digest) != size:
        raise MalformedEncoding(
            f"{name} must encode {size} bytes",
            {"value": value, "length": len(digest)}
        )
    return digest


def _digest_from_hex(value: str, size: int, name: str) -> bytes:
    digest = hex_decode(value)
    if len(digest) != size:
        raise MalformedEncoding(
            f"{name} must encode {size} bytes",
            {"value": value, "length": len(digest)}
        )
    return digest


def x5t_to_hex(x5t: str) -> str:
    """x5t (base64url SHA-1) to the Windows hex thumbprint."""
    return hex_encode(_digest_from_b64url(x5t, SHA1_DIGEST_SIZE, "x5t"))


def hex_to_x5t(thumbprint: str) -> str:
    """Windows hex thumbprint (spaces/colons allowed) to x5t."""
    return b64url_encode(_digest_from_hex(thumbprint, SHA1_DIGEST_SIZE, "SHA-1 thumbprint"))


def x5t_s256_to_hex(x5t_s256: str) -> str:
    return hex_encode(_digest_from_b64url(x5t_s256, SHA256_DIGEST_SIZE, "x5t#S256"))


def hex_to_x5t_s256(thumbprint: str) -> str:
    return b64url_encode(_digest_from_hex(thumbprint, SHA256_DIGEST_SIZE, "SHA-256 thumbprint"))
