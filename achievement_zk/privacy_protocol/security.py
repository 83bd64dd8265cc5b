"""
⚠️ DRAFT — requires crypto review before production use

Security utilities for cryptographic operations.
"""

import hmac

from .config import BN254_SCALAR_FIELD


def _validate_field_order():
    """
    Validate BN254_SCALAR_FIELD is reasonable.

    Raises:
        ValueError: If the field order is invalid
    """
    if BN254_SCALAR_FIELD <= 0:
        raise ValueError(f"Invalid BN254_SCALAR_FIELD: {BN254_SCALAR_FIELD}")

    if BN254_SCALAR_FIELD < 2**128:
        raise ValueError(f"BN254_SCALAR_FIELD too small (< 2^128): {BN254_SCALAR_FIELD}")


# Validate field order on module import (fail fast)
_validate_field_order()


# ============================================================================
# CONSTANT-TIME OPERATIONS
# ============================================================================


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Constant-time comparison to prevent timing attacks.

    Args:
        a: First byte string
        b: Second byte string

    Returns:
        True if a == b, False otherwise
    """
    return hmac.compare_digest(a, b)


def field_element_bytes(value: int) -> bytes:
    """Fixed-width 32-byte big-endian encoding of a field element."""
    return value.to_bytes(32, "big")


def field_elements_equal(a: int, b: int) -> bool:
    """
    Compare two field elements without an early exit on the first
    differing byte.

    Both values must already be in [0, p).
    """
    return constant_time_compare(field_element_bytes(a), field_element_bytes(b))
