"""
Configuration module for thumbprint bundle verification.

Protocol defaults live here as module constants. Existing bundles are issued
against these values, so the library never changes them implicitly; the
environment is only consulted through VerifierConfig.from_env().
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from .errors import InvalidArgument

# ============================================================
# Protocol Constants
# ============================================================

DEFAULT_ISSUER = "https://devolutions.net/productinfo/codesign-thumbprints"
DEFAULT_AUDIENCE = "urn:devolutions:update-clients"

# RSASSA-PKCS1-v1_5 with SHA-256
SUPPORTED_ALGORITHM = "RS256"

DEFAULT_CLOCK_SKEW_SECONDS = 120

# ============================================================
# Environment Overrides
# ============================================================

ENV_ISSUER = "THUMBPRINT_BUNDLE_ISSUER"
ENV_AUDIENCE = "THUMBPRINT_BUNDLE_AUDIENCE"
ENV_CLOCK_SKEW = "THUMBPRINT_BUNDLE_CLOCK_SKEW"


@dataclass(frozen=True)
class VerifierConfig:
    """Expected claim values and clock tolerance for one verifier."""
    issuer: str = DEFAULT_ISSUER
    audience: str = DEFAULT_AUDIENCE
    clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS

    def __post_init__(self):
        if isinstance(self.clock_skew_seconds, bool) or not isinstance(self.clock_skew_seconds, int):
            raise InvalidArgument("clock_skew_seconds must be an integer")
        if self.clock_skew_seconds < 0:
            raise InvalidArgument(
                "clock_skew_seconds cannot be negative",
                {"clock_skew_seconds": self.clock_skew_seconds}
            )

    def with_overrides(
        self,
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        clock_skew_seconds: Optional[int] = None
    ) -> 'VerifierConfig':
        """Return a copy with every non-None override applied."""
        changes = {}
        if issuer is not None:
            changes["issuer"] = issuer
        if audience is not None:
            changes["audience"] = audience
        if clock_skew_seconds is not None:
            changes["clock_skew_seconds"] = clock_skew_seconds
        return replace(self, **changes) if changes else self

    @classmethod
    def from_env(cls) -> 'VerifierConfig':
        """
        Build a config from THUMBPRINT_BUNDLE_* environment variables.

        Unset variables keep the protocol defaults.
        """
        skew = os.getenv(ENV_CLOCK_SKEW)
        if skew is not None and skew.strip():
            try:
                skew_seconds = int(skew)
            except ValueError:
                raise InvalidArgument(f"{ENV_CLOCK_SKEW} must be an integer", {"value": skew})
        else:
            skew_seconds = DEFAULT_CLOCK_SKEW_SECONDS

        return cls(
            issuer=os.getenv(ENV_ISSUER) or DEFAULT_ISSUER,
            audience=os.getenv(ENV_AUDIENCE) or DEFAULT_AUDIENCE,
            clock_skew_seconds=skew_seconds,
        )


DEFAULT_CONFIG = VerifierConfig()
