"""Utility modules for Chain Roulette."""
from .formatting import (
    format_ether,
    format_percentage,
    format_timestamp,
    format_address_link,
)
from .validation import is_valid_address, is_valid_bytes32, is_valid_amount

__all__ = [
    "format_ether",
    "format_percentage",
    "format_timestamp",
    "format_address_link",
    "is_valid_address",
    "is_valid_bytes32",
    "is_valid_amount",
]
