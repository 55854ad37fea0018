"""
Hashing and byte-field encoding helpers for voter records.

The credential construction hashes with keccak256 so that tags and helpers
match the digests computed by the ledger-side registry. Byte fields travel
as lowercase ``0x``-prefixed hex strings of exactly 32 bytes.
"""

from typing import Optional, Union

from eth_utils import decode_hex, encode_hex, is_0x_prefixed, keccak

from .constants import HASH_LENGTH, HEX_FIELD_LENGTH, HEX_PREFIX
from .exceptions import MalformedRecord


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte keccak256 digest of ``data``."""
    return keccak(primitive=bytes(data))


def xor_bytes(left: bytes, right: bytes) -> bytes:
    """
    Byte-wise exclusive-or of two equal-length byte strings.

    Raises
    ------
    ValueError
        If the operands differ in length.
    """
    if len(left) != len(right):
        raise ValueError(
            f"XOR operands must have equal length, got {len(left)} and {len(right)}"
        )
    return bytes(a ^ b for a, b in zip(left, right))


def to_hex32(value: bytes, field_name: str = "value") -> str:
    """
    Encode a 32-byte value as a ``0x``-prefixed lowercase hex string.

    Raises
    ------
    MalformedRecord
        If ``value`` is not exactly 32 bytes.
    """
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_LENGTH:
        raise MalformedRecord(
            f"{field_name} must be {HASH_LENGTH} bytes", field_name=field_name
        )
    return encode_hex(bytes(value))


def from_hex32(
    value: str, field_name: str = "value", identifier: Optional[str] = None
) -> bytes:
    """
    Decode a ``0x``-prefixed 64-character hex string into 32 bytes.

    Upper-case digits are accepted on read; writers always emit lower case.

    Raises
    ------
    MalformedRecord
        If the string is missing the prefix, has the wrong length or is not hex.
    """
    if not isinstance(value, str) or not is_0x_prefixed(value):
        raise MalformedRecord(
            f"{field_name} must be a {HEX_PREFIX}-prefixed hex string",
            identifier=identifier,
            field_name=field_name,
        )

    if len(value) != len(HEX_PREFIX) + HEX_FIELD_LENGTH:
        raise MalformedRecord(
            f"{field_name} must encode exactly {HASH_LENGTH} bytes",
            identifier=identifier,
            field_name=field_name,
        )

    try:
        return decode_hex(value)
    except ValueError as e:
        raise MalformedRecord(
            f"{field_name} is not valid hex: {e}",
            identifier=identifier,
            field_name=field_name,
        ) from e


def encode_template(template: bytes) -> str:
    """Encode a template of any length as ``0x`` hex for the dev map file."""
    return encode_hex(bytes(template))


def decode_template(value: Union[str, int]) -> bytes:
    """
    Decode a dev map template value.

    ``0x``-prefixed values are hex. Any other string, or a bare integer, is a
    legacy fingerprint stored as text and is returned as its UTF-8 bytes,
    the same bytes that were hashed when the record was made.

    Raises
    ------
    ValueError
        If ``value`` is empty, not a string or integer, or invalid hex.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError(f"template must be a string, got {type(value).__name__}")
    if not value:
        raise ValueError("template must not be empty")
    if is_0x_prefixed(value):
        template = decode_hex(value)
        if not template:
            raise ValueError("template must not be empty")
        return template
    return value.encode("utf-8")
