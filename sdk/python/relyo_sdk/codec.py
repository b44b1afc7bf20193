"""Canonical byte and string encodings used throughout the SDK.

Hex is the wire encoding for keys, signatures, addresses, and hashes. All
hex produced here is lowercase and unprefixed; hex accepted here may carry
an optional ``0x`` prefix. BLAKE3 is the primary hash function of the
RAINSONET protocol, SHA-256 is kept for interoperability helpers.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re

from blake3 import blake3

from relyo_sdk.exceptions import FormatError

_HEX_RE = re.compile(r"[0-9a-fA-F]*")
_UINT_RE = re.compile(r"[0-9]+")

ADDRESS_LENGTH = 32
HASH_LENGTH = 32


# ---------------------------------------------------------------------------
# Hex
# ---------------------------------------------------------------------------


def strip_hex_prefix(value: str) -> str:
    """Return *value* without a leading ``0x``."""
    return value[2:] if value.startswith("0x") else value


def bytes_to_hex(data: bytes) -> str:
    """Encode *data* as lowercase hex, two digits per byte, no prefix."""
    return bytes(data).hex()


def hex_to_bytes(value: str) -> bytes:
    """Decode a hex string, with or without ``0x`` prefix.

    Raises:
        FormatError: If the string has odd length or non-hex characters.
    """
    if not isinstance(value, str):
        raise FormatError(f"hex value must be a string, got {type(value).__name__}")
    clean = strip_hex_prefix(value)
    if len(clean) % 2 != 0:
        raise FormatError("invalid hex string length")
    if not _HEX_RE.fullmatch(clean):
        raise FormatError("invalid hex characters")
    try:
        return bytes.fromhex(clean)
    except ValueError as exc:
        raise FormatError(f"invalid hex string: {exc}") from exc


def is_valid_hex(value: str) -> bool:
    """Return ``True`` if *value* decodes to a whole number of bytes."""
    if not isinstance(value, str):
        return False
    clean = strip_hex_prefix(value)
    return len(clean) % 2 == 0 and bool(_HEX_RE.fullmatch(clean))


def is_valid_address(value: str) -> bool:
    """Return ``True`` if *value* is hex that decodes to exactly 32 bytes."""
    return is_valid_hex(value) and len(strip_hex_prefix(value)) == ADDRESS_LENGTH * 2


def normalize_address(value: str) -> str:
    """Return the canonical form of an address: lowercase, unprefixed.

    Raises:
        FormatError: If *value* is not a valid address.
    """
    if not is_valid_address(value):
        raise FormatError(f"invalid address: {value!r}")
    return strip_hex_prefix(value).lower()


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def is_valid_amount(value: str | int) -> bool:
    """Return ``True`` for a non-negative integer or decimal digit string."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, str) and bool(_UINT_RE.fullmatch(value))


def format_amount(wei: str | int, decimals: int = 18, precision: int = 4) -> str:
    """Format a wei amount as ``whole.fraction``, truncated to *precision* digits."""
    if not is_valid_amount(wei):
        raise FormatError(f"invalid amount: {wei!r}")
    whole, remainder = divmod(int(wei), 10**decimals)
    fraction = str(remainder).rjust(decimals, "0")[:precision]
    return f"{whole}.{fraction}"


def truncate_address(address: str, chars: int = 8) -> str:
    """Shorten an address for display as ``head...tail``."""
    clean = strip_hex_prefix(address)
    if len(clean) <= chars * 2:
        return address
    return f"{clean[:chars]}...{clean[-chars:]}"


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def hash_blake3(data: bytes) -> bytes:
    """Return the 32-byte BLAKE3 digest of *data*."""
    return blake3(data).digest()


def hash_sha256(data: bytes) -> bytes:
    """Return the 32-byte SHA-256 digest of *data*."""
    return hashlib.sha256(data).digest()


def concat_and_hash(*parts: bytes) -> bytes:
    """Concatenate *parts* in argument order and BLAKE3-hash the result.

    Order is significant: callers must pass fields in their canonical order.
    """
    hasher = blake3()
    for part in parts:
        hasher.update(part)
    return hasher.digest()


# ---------------------------------------------------------------------------
# Base64
# ---------------------------------------------------------------------------


def to_base64(data: bytes) -> str:
    """Encode *data* as standard padded base64."""
    return base64.b64encode(data).decode("ascii")


def from_base64(value: str) -> bytes:
    """Decode standard base64.

    Raises:
        FormatError: If *value* is not valid base64.
    """
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FormatError(f"invalid base64: {exc}") from exc
