"""
Input validation utilities for security.
"""
import re
from typing import Tuple

from web3 import Web3

BYTES32_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_valid_address(address: str) -> Tuple[bool, str]:
    """Validate an EVM account address.

    Args:
        address: 0x-prefixed address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address:
        return False, "Address is required"

    if not isinstance(address, str):
        return False, "Address must be a string"

    if not Web3.is_address(address):
        return False, "Invalid address format"

    # Mixed case means the sender claims a checksum, so it has to be right
    hex_part = address[2:]
    is_mixed_case = hex_part != hex_part.lower() and hex_part != hex_part.upper()
    if is_mixed_case and not Web3.is_checksum_address(address):
        return False, "Invalid address checksum"

    return True, ""


def is_valid_bytes32(value: str, label: str = "Value") -> Tuple[bool, str]:
    """Validate a 0x-prefixed 32 byte hex string (secret or secret hash).

    Args:
        value: Hex string to validate
        label: Name used in the error message

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value:
        return False, f"{label} is required"

    if not isinstance(value, str):
        return False, f"{label} must be a string"

    if not BYTES32_PATTERN.match(value):
        return False, f"{label} must be 0x followed by 64 hex characters"

    return True, ""


def is_valid_amount(amount_wei: int) -> Tuple[bool, str]:
    """Validate a wei amount.

    Args:
        amount_wei: Amount in wei

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(amount_wei, int) or isinstance(amount_wei, bool):
        return False, "Amount must be an integer number of wei"

    if amount_wei < 0:
        return False, "Amount cannot be negative"

    if amount_wei >= 2 ** 256:
        return False, "Amount exceeds uint256"

    return True, ""
