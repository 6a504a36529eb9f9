"""
Certificate allow-list matching.

Decides whether a certificate is trusted by a verified bundle:
- current schema: some entry matches both x5t and x5t#S256
- legacy schema: some entry equals the uppercase hex SHA-1 thumbprint

A partial match (only one of x5t / x5t#S256) never allows.
"""

from typing import FrozenSet, Tuple

from .encoding import constant_time_compare
from .fingerprint import CertificateFingerprints, compute_fingerprints
from .models import BundleSchema, LegacyThumbprint, ThumbprintBundleClaims, ThumbprintEntry


class AllowListMatcher:
    """
    Allow-list built once from verified claims.

    Useful when many certificates are checked against the same bundle.
    """

    def __init__(self, claims: ThumbprintBundleClaims):
        self.schema = claims.bundle_schema
        self._entries: FrozenSet[Tuple[str, str]] = frozenset(
            (record.x5t, record.x5t_s256)
            for record in claims.thumbprints
            if isinstance(record, ThumbprintEntry) and record.is_complete()
        )
        self._thumbprints: FrozenSet[str] = frozenset(
            record.thumbprint
            for record in claims.thumbprints
            if isinstance(record, LegacyThumbprint)
        )

    def is_allowed(self, certificate_der: bytes) -> bool:
        """
        Raises:
            CertificateDecodeError: If the certificate cannot be parsed
        """
        return self.matches(compute_fingerprints(certificate_der))

    def matches(self, fingerprints: CertificateFingerprints) -> bool:
        if self.schema == BundleSchema.CURRENT:
            return any(
                constant_time_compare(x5t, fingerprints.x5t)
                and constant_time_compare(x5t_s256, fingerprints.x5t_s256)
                for x5t, x5t_s256 in self._entries
            )
        if self.schema == BundleSchema.LEGACY:
            return any(
                constant_time_compare(thumbprint, fingerprints.hex_thumbprint)
                for thumbprint in self._thumbprints
            )
        return False


def is_certificate_allowed(certificate_der: bytes, claims: ThumbprintBundleClaims) -> bool:
    """Check one DER certificate against verified bundle claims."""
    return AllowListMatcher(claims).is_allowed(certificate_der)
