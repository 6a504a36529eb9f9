"""
Thumbprint bundle payload models.

The payload schema evolved once: early bundles listed uppercase hex SHA-1
thumbprints, current bundles list {x5t, x5t#S256} pairs. A bundle uses one
shape or the other, never both.

Models are strict: a claim present with the wrong JSON type is rejected
rather than coerced. Token payloads are read through the wire names only;
Python code may also construct models by field name.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .errors import MalformedToken

# Validation context marking data decoded from a token payload
WIRE_CONTEXT = {"wire": True}

CLAIM_WIRE_NAMES = frozenset({"iss", "aud", "iat", "nbf", "exp", "ver", "thumbprints"})
ENTRY_WIRE_NAMES = frozenset({"x5t", "x5t#s256"})


class BundleSchema(str, Enum):
    LEGACY = "legacy"
    CURRENT = "current"


class LegacyThumbprint(BaseModel):
    """Legacy entry: hex SHA-1 thumbprint, held uppercase."""
    model_config = ConfigDict(frozen=True, strict=True)

    thumbprint: str

    @field_validator("thumbprint")
    @classmethod
    def uppercase_thumbprint(cls, value: str) -> str:
        return value.upper()


class ThumbprintEntry(BaseModel):
    """Current entry: base64url SHA-1 and SHA-256 of the certificate."""
    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    x5t: str = ""
    x5t_s256: str = Field(default="", validation_alias="x5t#s256", serialization_alias="x5t#S256")

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any, info: ValidationInfo) -> Any:
        return _normalize_keys(data, info, ENTRY_WIRE_NAMES)

    def is_complete(self) -> bool:
        return bool(self.x5t) and bool(self.x5t_s256)


FingerprintRecord = Union[LegacyThumbprint, ThumbprintEntry]


class ThumbprintBundleClaims(BaseModel):
    """
    Claims carried by a thumbprint bundle.

    Parsing is lenient about absence: missing claims default to empty or
    zero and are rejected later by the policy checks (a missing exp reads
    as expired).
    """
    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    issuer: str = Field(default="", alias="iss")
    audience: str = Field(default="", alias="aud")
    issued_at: int = Field(default=0, alias="iat")
    not_before: int = Field(default=0, alias="nbf")
    expires_at: int = Field(default=0, alias="exp")
    version: str = Field(default="", alias="ver")
    thumbprints: Tuple[FingerprintRecord, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any, info: ValidationInfo) -> Any:
        return _normalize_keys(data, info, CLAIM_WIRE_NAMES)

    @field_validator("thumbprints", mode="before")
    @classmethod
    def sniff_thumbprints(cls, value: Any, info: ValidationInfo) -> Tuple[FingerprintRecord, ...]:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            raise ValueError("thumbprints must be a list")

        if all(isinstance(item, LegacyThumbprint) for item in value):
            return tuple(value)
        if all(isinstance(item, ThumbprintEntry) for item in value):
            return tuple(value)
        if all(isinstance(item, str) for item in value):
            return tuple(LegacyThumbprint(thumbprint=item) for item in value)
        if all(isinstance(item, dict) for item in value):
            return tuple(ThumbprintEntry.model_validate(item, context=info.context) for item in value)
        raise ValueError("thumbprints must be all strings (legacy) or all objects (current)")

    @property
    def bundle_schema(self) -> Optional[BundleSchema]:
        """Schema of the thumbprint list, or None when the list is empty."""
        if not self.thumbprints:
            return None
        if isinstance(self.thumbprints[0], ThumbprintEntry):
            return BundleSchema.CURRENT
        return BundleSchema.LEGACY

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the wire claim names."""
        thumbprints: List[Any] = []
        for record in self.thumbprints:
            if isinstance(record, ThumbprintEntry):
                thumbprints.append(record.model_dump(by_alias=True))
            else:
                thumbprints.append(record.thumbprint)
        return {
            "iss": self.issuer,
            "aud": self.audience,
            "iat": self.issued_at,
            "nbf": self.not_before,
            "exp": self.expires_at,
            "ver": self.version,
            "thumbprints": thumbprints,
        }


def _normalize_keys(data: Any, info: ValidationInfo, wire_names: FrozenSet[str]) -> Any:
    # Names match case-insensitively; payloads never populate by field name
    if not isinstance(data, dict):
        return data
    lowered = {k.lower() if isinstance(k, str) else k: v for k, v in data.items()}
    if info.context and info.context.get("wire"):
        return {k: v for k, v in lowered.items() if k in wire_names}
    return lowered


def parse_claims(payload: Any) -> ThumbprintBundleClaims:
    """
    Build claims from a decoded JSON payload.

    Raises:
        MalformedToken: If the payload is not an object, a claim has the
            wrong JSON type or the thumbprint list mixes schemas.
    """
    if not isinstance(payload, dict):
        raise MalformedToken("payload must be a JSON object", {"type": type(payload).__name__})
    try:
        return ThumbprintBundleClaims.model_validate(payload, context=WIRE_CONTEXT)
    except ValidationError as e:
        raise MalformedToken(
            "payload claims are invalid",
            {"errors": [err.get("msg") for err in e.errors()]}
        ) from e
