"""
Thumbprint Bundle Failure Taxonomy

Every check in the verifier fails with exactly one code so that callers can
tell tampering (integrity) apart from clock or deployment problems (validity).
"""

from enum import Enum
from typing import Any, Dict, Optional


class FailureCategory(str, Enum):
    """Coarse grouping used to pick an operator response."""
    INPUT = "input"
    INTEGRITY = "integrity"
    VALIDITY = "validity"


class FailureCode(str, Enum):
    """Failure codes for bundle verification and fingerprinting."""
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    MALFORMED_ENCODING = "MALFORMED_ENCODING"
    UNSUPPORTED_ALGORITHM = "UNSUPPORTED_ALGORITHM"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    ISSUER_INVALID = "ISSUER_INVALID"
    AUDIENCE_INVALID = "AUDIENCE_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_NOT_YET_VALID = "TOKEN_NOT_YET_VALID"
    ISSUED_IN_FUTURE = "ISSUED_IN_FUTURE"
    CERTIFICATE_DECODE_ERROR = "CERTIFICATE_DECODE_ERROR"

    @property
    def category(self) -> FailureCategory:
        return _CATEGORIES[self]


_CATEGORIES = {
    FailureCode.INVALID_ARGUMENT: FailureCategory.INPUT,
    FailureCode.CERTIFICATE_DECODE_ERROR: FailureCategory.INPUT,
    FailureCode.MALFORMED_TOKEN: FailureCategory.INTEGRITY,
    FailureCode.MALFORMED_ENCODING: FailureCategory.INTEGRITY,
    FailureCode.UNSUPPORTED_ALGORITHM: FailureCategory.INTEGRITY,
    FailureCode.SIGNATURE_INVALID: FailureCategory.INTEGRITY,
    FailureCode.ISSUER_INVALID: FailureCategory.VALIDITY,
    FailureCode.AUDIENCE_INVALID: FailureCategory.VALIDITY,
    FailureCode.TOKEN_EXPIRED: FailureCategory.VALIDITY,
    FailureCode.TOKEN_NOT_YET_VALID: FailureCategory.VALIDITY,
    FailureCode.ISSUED_IN_FUTURE: FailureCategory.VALIDITY,
}


class BundleError(Exception):
    """Base class for all typed bundle failures."""

    code: FailureCode = FailureCode.INVALID_ARGUMENT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"{self.code.value}: {message}")


class InvalidArgument(BundleError):
    code = FailureCode.INVALID_ARGUMENT


class MalformedToken(BundleError):
    code = FailureCode.MALFORMED_TOKEN


class MalformedEncoding(BundleError):
    code = FailureCode.MALFORMED_ENCODING


class UnsupportedAlgorithm(BundleError):
    code = FailureCode.UNSUPPORTED_ALGORITHM


class SignatureInvalid(BundleError):
    code = FailureCode.SIGNATURE_INVALID


class IssuerInvalid(BundleError):
    code = FailureCode.ISSUER_INVALID


class AudienceInvalid(BundleError):
    code = FailureCode.AUDIENCE_INVALID


class TokenExpired(BundleError):
    code = FailureCode.TOKEN_EXPIRED


class TokenNotYetValid(BundleError):
    code = FailureCode.TOKEN_NOT_YET_VALID


class IssuedInFuture(BundleError):
    code = FailureCode.ISSUED_IN_FUTURE


class CertificateDecodeError(BundleError):
    code = FailureCode.CERTIFICATE_DECODE_ERROR


ERROR_TYPES = {cls.code: cls for cls in (
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
)}


def error_for(code: FailureCode, message: str, details: Optional[Dict[str, Any]] = None) -> BundleError:
    """Build the exception subclass that matches a failure code."""
    return ERROR_TYPES[code](message, details)
