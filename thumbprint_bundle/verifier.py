"""
Thumbprint Bundle Verification Algorithm

A bundle is a compact JWS (header.payload.signature) signed with RS256.
Verification steps:
1. Reject empty token or key
2. Require exactly three segments
3. Decode the header and require alg == RS256
4. Rebuild the signing input from the literal header and payload text
5. Verify the RSASSA-PKCS1-v1_5/SHA-256 signature with the supplied key
6. Decode the payload into claims (lenient)
7. Apply the claims policy (issuer, audience, time window)

No claim is read before step 5 succeeds. Every failure is returned as a
VerificationResult carrying one FailureCode; nothing is retried.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm as UnsupportedKeyAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import (
    DEFAULT_AUDIENCE,
    DEFAULT_CLOCK_SKEW_SECONDS,
    DEFAULT_CONFIG,
    DEFAULT_ISSUER,
    SUPPORTED_ALGORITHM,
    VerifierConfig,
)
from .encoding import b64url_decode
from .errors import (
    BundleError,
    FailureCode,
    InvalidArgument,
    MalformedEncoding,
    MalformedToken,
    SignatureInvalid,
    UnsupportedAlgorithm,
    error_for,
)
from .models import ThumbprintBundleClaims, parse_claims
from .policy import ClaimsPolicy


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a bundle: verified claims or one failure."""
    claims: Optional[ThumbprintBundleClaims] = None
    failure: Optional[FailureCode] = None
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def is_valid(self) -> bool:
        return self.failure is None and self.claims is not None

    @classmethod
    def success(cls, claims: ThumbprintBundleClaims) -> 'VerificationResult':
        return cls(claims=claims)

    @classmethod
    def failure_from(cls, error: BundleError) -> 'VerificationResult':
        return cls(failure=error.code, reason=error.message, details=error.details or None)

    def unwrap(self) -> ThumbprintBundleClaims:
        """
        Return the verified claims.

        Raises:
            BundleError: The subclass matching the failure code
        """
        if not self.is_valid():
            raise error_for(self.failure, self.reason or "", self.details)
        return self.claims

    def is_certificate_allowed(self, certificate_der: bytes) -> bool:
        """Allow-list check against this result's verified claims."""
        from .allowlist import is_certificate_allowed
        return is_certificate_allowed(certificate_der, self.unwrap())

    def to_dict(self) -> Dict[str, Any]:
        if self.is_valid():
            return {"valid": True, "claims": self.claims.to_dict()}
        d: Dict[str, Any] = {"valid": False, "failure": self.failure.value, "reason": self.reason}
        if self.details:
            d["details"] = self.details
        return d


def _load_json_object(segment: bytes, what: str) -> Any:
    try:
        return json.loads(segment.decode('utf-8'))
    except ValueError as e:
        raise MalformedToken(f"{what} is not valid JSON: {e}") from e


def _load_rsa_public_key(public_key_pem: str) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
    except (ValueError, TypeError, UnsupportedKeyAlgorithm) as e:
        raise SignatureInvalid(f"Public key could not be loaded: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise SignatureInvalid(
            "Public key is not an RSA key",
            {"key_type": type(key).__name__}
        )
    return key


class BundleVerifier:
    """
    Verifies thumbprint bundles against one configuration.

    Stateless; a single instance may be shared across threads.
    """

    def __init__(self, config: Optional[VerifierConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.policy = ClaimsPolicy(self.config)

    def verify(
        self,
        token: str,
        public_key_pem: str,
        now: Optional[int] = None
    ) -> VerificationResult:
        """
        Verify a bundle token.

        Args:
            token: Compact JWS text
            public_key_pem: PEM-encoded RSA public key
            now: Verification time in epoch seconds (default: now)

        Returns:
            VerificationResult with claims on success, a FailureCode otherwise
        """
        try:
            claims = self._verify(token, public_key_pem, int(time.time()) if now is None else now)
        except BundleError as e:
            return VerificationResult.failure_from(e)
        return VerificationResult.success(claims)

    def _verify(self, token: str, public_key_pem: str, now: int) -> ThumbprintBundleClaims:
        # Step 1: Required inputs
        if not isinstance(token, str) or not token.strip():
            raise InvalidArgument("Bundle token cannot be empty")
        if not isinstance(public_key_pem, str) or not public_key_pem.strip():
            raise InvalidArgument("Public key PEM cannot be empty")

        # Step 2: Structure
        parts = token.split('.')
        if len(parts) != 3:
            raise MalformedToken("Invalid JWT format", {"segments": len(parts)})
        header_b64, payload_b64, signature_b64 = parts

        # Step 3: Algorithm, checked before any signature work
        header = _load_json_object(b64url_decode(header_b64), "header")
        if not isinstance(header, dict):
            raise MalformedToken("header must be a JSON object")
        alg = header.get("alg")
        if alg != SUPPORTED_ALGORITHM:
            raise UnsupportedAlgorithm(
                f"Unsupported JWT algorithm: {alg}",
                {"alg": alg, "expected": SUPPORTED_ALGORITHM}
            )

        # Steps 4-5: Signature over the literal header.payload text
        self._verify_signature(f"{header_b64}.{payload_b64}", signature_b64, public_key_pem)

        # Step 6: Claims
        claims = parse_claims(_load_json_object(b64url_decode(payload_b64), "payload"))

        # Step 7: Policy
        return self.policy.check(claims, now)

    def _verify_signature(self, signing_input: str, signature_b64: str, public_key_pem: str) -> None:
        try:
            signature = b64url_decode(signature_b64)
        except MalformedEncoding as e:
            raise SignatureInvalid(f"Signature is not valid base64url: {e.message}") from e

        key = _load_rsa_public_key(public_key_pem)

        try:
            data = signing_input.encode('utf-8')
            key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        except (InvalidSignature, UnicodeEncodeError) as e:
            raise SignatureInvalid("JWT signature validation failed.") from e


def verify_bundle(
    token: str,
    public_key_pem: str,
    expected_issuer: str = DEFAULT_ISSUER,
    expected_audience: str = DEFAULT_AUDIENCE,
    now: Optional[int] = None,
    clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS
) -> VerificationResult:
    """
    Convenience function to verify a bundle.

    The result is valid only after signature, issuer, audience and time
    checks all pass; otherwise it names the first failing check.
    """
    try:
        config = VerifierConfig(
            issuer=expected_issuer,
            audience=expected_audience,
            clock_skew_seconds=clock_skew_seconds,
        )
    except BundleError as e:
        return VerificationResult.failure_from(e)
    return BundleVerifier(config).verify(token, public_key_pem, now=now)
