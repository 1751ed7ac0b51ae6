"""
Input Validation - Bounds and format checks for external inputs.

Guards the engine against:
- Integer overflows (ids and amounts are 128-bit unsigned on the wire)
- Oversized or malformed identities and denoms
"""

import re
from typing import Any, Optional, Tuple

from auctionhouse.core.errors import Overflow

# =============================================================================
# Constants
# =============================================================================

MAX_UINT64 = 2**64 - 1
MAX_UINT128 = 2**128 - 1

MAX_ADDRESS_LENGTH = 128
MAX_TOKEN_ID_LENGTH = 256
MAX_STRING_LENGTH = 1024

# Denoms: letter first, then letters, digits and '/', ':', '.', '_', '-'
DENOM_PATTERN = r"^[a-zA-Z][a-zA-Z0-9/:._-]{1,127}$"


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = 0,
    max_val: int = MAX_UINT128,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any) -> Tuple[bool, str]:
    """Validate a coin amount."""
    return validate_integer(amount, "amount", 0, MAX_UINT128)


def validate_millis(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a millisecond timestamp or duration."""
    return validate_integer(value, name, 0, MAX_UINT64)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_STRING_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_address(value: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate an account or collection address (non-empty, bounded)."""
    valid, err = validate_string(value, name, MAX_ADDRESS_LENGTH)
    if not valid:
        return False, err
    if not value.strip():
        return False, f"{name} must not be empty"
    return True, ""


def validate_token_id(value: Any) -> Tuple[bool, str]:
    """Validate a non-fungible token id."""
    valid, err = validate_string(value, "token_id", MAX_TOKEN_ID_LENGTH)
    if not valid:
        return False, err
    if not value:
        return False, "token_id must not be empty"
    return True, ""


def validate_denom(value: Any) -> Tuple[bool, str]:
    """Validate a coin denom."""
    return validate_string(value, "denom", 128, DENOM_PATTERN)


# =============================================================================
# Checked Arithmetic
# =============================================================================


def checked_add(a: int, b: int, max_val: int = MAX_UINT128) -> int:
    """Add two unsigned integers, raising Overflow past max_val."""
    result = a + b
    if result > max_val:
        raise Overflow()
    return result


__all__ = [
    "validate_integer",
    "validate_amount",
    "validate_millis",
    "validate_string",
    "validate_address",
    "validate_token_id",
    "validate_denom",
    "checked_add",
    "MAX_UINT64",
    "MAX_UINT128",
]
