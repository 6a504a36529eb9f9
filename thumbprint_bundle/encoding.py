"""
Encoding helpers for bundle tokens and thumbprints.

Base64url is strict: only the URL-safe alphabet, optional but correct
padding, and canonical trailing bits. Hex is produced uppercase with no
separators and parsed leniently (case, whitespace and ':' are accepted).
"""

import base64
import binascii
import hmac
import re
from typing import Union

from .errors import MalformedEncoding

B64URL_PATTERN = re.compile(r'^[A-Za-z0-9_-]*$')
HEX_PATTERN = re.compile(r'^[A-F0-9]*$')
HEX_SEPARATORS = re.compile(r'[\s:]')


def b64url_encode(b: bytes) -> str:
    """URL-safe base64 encode bytes to string (no padding)."""
    return base64.urlsafe_b64encode(b).rstrip(b'=').decode('ascii')


def b64url_decode(s: str) -> bytes:
    """
    URL-safe base64 decode string to bytes.

    Raises:
        MalformedEncoding: On characters outside the alphabet, wrong padding,
            an impossible length or non-zero trailing bits.
    """
    if not isinstance(s, str):
        raise MalformedEncoding("base64url value must be a string")

    stripped = s.rstrip('=')
    pad_count = len(s) - len(stripped)
    if pad_count and (pad_count > 2 or len(s) % 4 != 0):
        raise MalformedEncoding("invalid base64url padding", {"value": s})

    if not B64URL_PATTERN.match(stripped):
        raise MalformedEncoding("invalid base64url character", {"value": s})

    if len(stripped) % 4 == 1:
        raise MalformedEncoding("invalid base64url length", {"length": len(stripped)})

    padded = stripped + '=' * (-len(stripped) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode('ascii'))
    except (binascii.Error, ValueError) as e:
        raise MalformedEncoding(f"invalid base64url: {e}", {"value": s}) from e

    # Distinct texts must never decode to the same bytes
    if b64url_encode(decoded) != stripped:
        raise MalformedEncoding("non-canonical base64url encoding", {"value": s})

    return decoded


def hex_encode(b: bytes) -> str:
    """Uppercase hex with no separators."""
    return binascii.hexlify(b).decode('ascii').upper()


def normalize_hex(s: str) -> str:
    """
    Canonical form of a hex string.

    Strips whitespace and ':' separators and uppercases.

    Raises:
        MalformedEncoding: On odd length or non-hex characters.
    """
    if not isinstance(s, str):
        raise MalformedEncoding("hex value must be a string")

    value = HEX_SEPARATORS.sub('', s).upper()
    if not HEX_PATTERN.match(value):
        raise MalformedEncoding("invalid hex character", {"value": s})
    if len(value) % 2:
        raise MalformedEncoding("hex value has odd length", {"length": len(value)})
    return value


def hex_decode(s: str) -> bytes:
    """Decode hex text (separators and case tolerated) to bytes."""
    return binascii.unhexlify(normalize_hex(s))


def constant_time_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """
    Compare two strings/bytes in constant time to prevent timing attacks.
    """
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)
