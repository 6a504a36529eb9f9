"""
Claims policy checks.

Run after the signature has been verified. Checks execute in a fixed order
and the first failing check is reported:
1. issuer
2. audience
3. expiry
4. not-before
5. issued-at
"""

from typing import Optional

from .config import (
    DEFAULT_AUDIENCE,
    DEFAULT_CLOCK_SKEW_SECONDS,
    DEFAULT_CONFIG,
    DEFAULT_ISSUER,
    VerifierConfig,
)
from .errors import (
    AudienceInvalid,
    InvalidArgument,
    IssuedInFuture,
    IssuerInvalid,
    TokenExpired,
    TokenNotYetValid,
)
from .models import ThumbprintBundleClaims


def check_policy(
    claims: ThumbprintBundleClaims,
    expected_issuer: str = DEFAULT_ISSUER,
    expected_audience: str = DEFAULT_AUDIENCE,
    now: Optional[int] = None,
    clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS
) -> ThumbprintBundleClaims:
    """
    Validate issuer, audience and the validity window of a bundle.

    Args:
        claims: Claims from a token whose signature already verified
        expected_issuer: Exact (case-sensitive) issuer
        expected_audience: Exact (case-sensitive) audience
        now: Current time in epoch seconds
        clock_skew_seconds: Tolerance applied to every time check

    Returns:
        The same claims object, unchanged

    Raises:
        IssuerInvalid, AudienceInvalid, TokenExpired, TokenNotYetValid,
        IssuedInFuture: First failing check
        InvalidArgument: If now is missing or the skew is negative
    """
    if now is None:
        raise InvalidArgument("now is required")
    if clock_skew_seconds < 0:
        raise InvalidArgument("clock_skew_seconds cannot be negative")

    if claims.issuer != expected_issuer:
        raise IssuerInvalid(
            f"Invalid issuer: {claims.issuer}",
            {"expected": expected_issuer, "observed": claims.issuer}
        )

    if claims.audience != expected_audience:
        raise AudienceInvalid(
            f"Invalid audience: {claims.audience}",
            {"expected": expected_audience, "observed": claims.audience}
        )

    if claims.expires_at <= now - clock_skew_seconds:
        raise TokenExpired(
            "Bundle has expired",
            {"exp": claims.expires_at, "now": now, "clock_skew_seconds": clock_skew_seconds}
        )

    if claims.not_before > now + clock_skew_seconds:
        raise TokenNotYetValid(
            "Bundle is not yet valid",
            {"nbf": claims.not_before, "now": now, "clock_skew_seconds": clock_skew_seconds}
        )

    if claims.issued_at > now + clock_skew_seconds:
        raise IssuedInFuture(
            "Bundle iat is in the future",
            {"iat": claims.issued_at, "now": now, "clock_skew_seconds": clock_skew_seconds}
        )

    return claims


class ClaimsPolicy:
    """check_policy bound to a VerifierConfig."""

    def __init__(self, config: Optional[VerifierConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def check(self, claims: ThumbprintBundleClaims, now: int) -> ThumbprintBundleClaims:
        return check_policy(
            claims,
            expected_issuer=self.config.issuer,
            expected_audience=self.config.audience,
            now=now,
            clock_skew_seconds=self.config.clock_skew_seconds,
        )
