"""Shared type definitions for controller identities and amounts.

Identities (owners, operators, pools, factories, treasuries) are Ethereum
addresses. They are compared case-insensitively, so everything the controller
stores is normalized to lowercase.
"""

import string
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from controller.errors import InvalidConfiguration

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def validate_uint256(value: Any) -> str:
    """Validate that a value is a valid uint256 decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        Valid uint256 as decimal string

    Raises:
        ValueError: If value is not a valid non-negative integer within uint256 range
    """
    if isinstance(value, int):
        if not is_uint(value, 256):
            raise ValueError(f"Uint256 out of range: {value}")
        return str(value)

    if not isinstance(value, str):
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")

    try:
        int_value = int(value)
    except ValueError as err:
        raise ValueError(f"Uint256 must be a decimal integer string: '{value}'") from err

    if not is_uint(int_value, 256):
        raise ValueError(f"Uint256 out of range: {value}")

    return value


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer as decimal string (validated)
Uint256 = Annotated[
    str,
    BeforeValidator(validate_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]

# Calldata: whole bytes only
Calldata = Annotated[str, Field(pattern=r"^0x([a-fA-F0-9]{2})*$")]


def is_uint(value: object, bits: int) -> bool:
    """Check that value is a (non-bool) int fitting in an unsigned `bits`-bit word."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value < 2**bits


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address.

    Args:
        address: String to validate

    Returns:
        True if valid Ethereum address format
    """
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    return all(char in string.hexdigits for char in address[2:])


def normalize_address(address: str) -> str:
    """Normalize an Ethereum address to lowercase with a 0x prefix.

    Does not validate. Use to_identity() when the input comes from a caller.
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    return addr


def to_identity(address: str, name: str = "identity") -> str:
    """Validate and normalize an address supplied to the controller.

    Args:
        address: Address as given by the caller (any case)
        name: What the address stands for, used in the error message

    Returns:
        Lowercase address

    Raises:
        InvalidConfiguration: If address is not 0x + 40 hex chars
    """
    if not is_valid_address(address):
        raise InvalidConfiguration(f"Invalid {name} address: {address!r}")
    return address.lower()


def is_zero_address(address: str) -> bool:
    """True for the zero address (any case)."""
    return normalize_address(address) == ZERO_ADDRESS
