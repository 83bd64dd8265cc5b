"""
Field encoding for identifiers and circuit inputs.

Credential ids and achievement codes become BN254 scalar field elements by
hashing: SHA-256 over the UTF-8 bytes, digest read big-endian, reduced mod p.
Issuer, holder and verifier must agree on this byte-for-byte, otherwise the
hashes disclosed in a proof never match the recorded ones.
"""

from __future__ import annotations

import hashlib
from typing import Union

from .config import BN254_SCALAR_FIELD
from .exceptions import InputEncodingError

FieldInput = Union[str, bytes, bytearray]


def encode_to_field(value: FieldInput) -> int:
    """
    Map an identifier to a canonical field element.

    Args:
        value: Identifier as text (UTF-8 encoded) or raw bytes

    Returns:
        Integer in [0, BN254_SCALAR_FIELD)

    Raises:
        InputEncodingError: If the value is not text/bytes or is not
            UTF-8 encodable (e.g. lone surrogates)

    Example:
        >>> h = encode_to_field("cred-001")
        >>> 0 <= h < BN254_SCALAR_FIELD
        True
    """
    if isinstance(value, str):
        try:
            data = value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InputEncodingError(f"identifier is not UTF-8 encodable: {exc}") from exc
    elif isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    else:
        raise InputEncodingError(
            f"identifier must be str or bytes, got {type(value).__name__}"
        )

    digest = hashlib.sha256(data).digest()
    return int.from_bytes(digest, "big") % BN254_SCALAR_FIELD


def is_valid_field_element(value) -> bool:
    """True for an int, or a canonical decimal string, in [0, p)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 <= value < BN254_SCALAR_FIELD
    if isinstance(value, str):
        try:
            parse_field_element(value)
        except InputEncodingError:
            return False
        return True
    return False


def field_element_to_string(value: int) -> str:
    """Decimal string form used in circuit inputs and public signals."""
    if not is_valid_field_element(value):
        raise InputEncodingError("value is not a field element")
    return str(value)


def parse_field_element(text: str) -> int:
    """
    Parse a canonical decimal string into a field element.

    Canonical means digits only, no sign, no leading zeros (except "0"),
    so each element has exactly one textual form.

    Raises:
        InputEncodingError: If the string is malformed or out of range
    """
    if not isinstance(text, str):
        raise InputEncodingError(f"field element must be a decimal string, got {type(text).__name__}")
    if not text or not text.isascii() or not text.isdigit():
        raise InputEncodingError(f"not a decimal field element: {text!r}")
    if len(text) > 1 and text[0] == "0":
        raise InputEncodingError(f"non-canonical field element: {text!r}")
    value = int(text)
    if value >= BN254_SCALAR_FIELD:
        raise InputEncodingError("field element out of range")
    return value
