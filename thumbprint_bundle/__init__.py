"""
Thumbprint Bundle Verifier

Version: 1.0.0

A thumbprint bundle is a signed manifest (an RS256 JWT) listing the
fingerprints of code-signing certificates a client should trust. It lets
trusted certificates rotate without shipping a new binary.

Verification is all-or-nothing: a bundle's claims are usable only after its
signature, issuer, audience and validity window all check out.

Usage:
    from thumbprint_bundle import BundleVerifier, VerifierConfig

    verifier = BundleVerifier(VerifierConfig())
    result = verifier.verify(token, public_key_pem)

    if result.is_valid():
        allowed = result.is_certificate_allowed(certificate_der)
    else:
        # result.failure names the first failing check
        print(result.failure.value, result.reason)
"""

__version__ = "1.0.0"

# Errors
from .errors import (
    FailureCategory,
    FailureCode,
    BundleError,
    InvalidArgument,
    MalformedToken,
    MalformedEncoding,
    UnsupportedAlgorithm,
    SignatureInvalid,
    IssuerInvalid,
    AudienceInvalid,
    TokenExpired,
    TokenNotYetValid,
    IssuedInFuture,
    CertificateDecodeError,
)

# Configuration
from .config import (
    DEFAULT_ISSUER,
    DEFAULT_AUDIENCE,
    DEFAULT_CLOCK_SKEW_SECONDS,
    SUPPORTED_ALGORITHM,
    VerifierConfig,
)

# Encoding
from .encoding import (
    b64url_encode,
    b64url_decode,
    hex_encode,
    hex_decode,
    normalize_hex,
)

# Fingerprints
from .fingerprint import (
    CertificateFingerprints,
    sha1_digest_of,
    sha256_digest_of,
    compute_x5t,
    compute_x5t_s256,
    compute_hex_thumbprint,
    compute_fingerprints,
    load_certificate_der,
    x5t_to_hex,
    hex_to_x5t,
    x5t_s256_to_hex,
    hex_to_x5t_s256,
)

# Claims
from .models import (
    BundleSchema,
    LegacyThumbprint,
    ThumbprintEntry,
    ThumbprintBundleClaims,
    parse_claims,
)

# Verification
from .policy import check_policy, ClaimsPolicy
from .verifier import BundleVerifier, VerificationResult, verify_bundle
from .allowlist import AllowListMatcher, is_certificate_allowed

# Signing
from .signing import BundleSigner, build_claims, generate_signing_key


__all__ = [
    "__version__",

    # Errors
    "FailureCategory",
    "FailureCode",
    "BundleError",
    "InvalidArgument",
    "MalformedToken",
    "MalformedEncoding",
    "UnsupportedAlgorithm",
    "SignatureInvalid",
    "IssuerInvalid",
    "AudienceInvalid",
    "TokenExpired",
    "TokenNotYetValid",
    "IssuedInFuture",
    "CertificateDecodeError",

    # Configuration
    "DEFAULT_ISSUER",
    "DEFAULT_AUDIENCE",
    "DEFAULT_CLOCK_SKEW_SECONDS",
    "SUPPORTED_ALGORITHM",
    "VerifierConfig",

    # Encoding
    "b64url_encode",
    "b64url_decode",
    "hex_encode",
    "hex_decode",
    "normalize_hex",

    # Fingerprints
    "CertificateFingerprints",
    "sha1_digest_of",
    "sha256_digest_of",
    "compute_x5t",
    "compute_x5t_s256",
    "compute_hex_thumbprint",
    "compute_fingerprints",
    "load_certificate_der",
    "x5t_to_hex",
    "hex_to_x5t",
    "x5t_s256_to_hex",
    "hex_to_x5t_s256",

    # Claims
    "BundleSchema",
    "LegacyThumbprint",
    "ThumbprintEntry",
    "ThumbprintBundleClaims",
    "parse_claims",

    # Verification
    "check_policy",
    "ClaimsPolicy",
    "BundleVerifier",
    "VerificationResult",
    "verify_bundle",
    "AllowListMatcher",
    "is_certificate_allowed",

    # Signing
    "BundleSigner",
    "build_claims",
    "generate_signing_key",
]
