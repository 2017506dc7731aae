"""
Formatting utilities for display.
"""
from datetime import datetime, timezone
from typing import Optional

from web3 import Web3


def format_ether(amount_wei: int, symbol: str = "PC") -> str:
    """Format a wei amount as ether for display."""
    amount = Web3.from_wei(amount_wei, "ether")
    if amount >= 1000:
        return f"{amount:,.2f} {symbol}"
    elif amount >= 1:
        return f"{amount:.4f} {symbol}"
    else:
        return f"{amount:.6f} {symbol}"


def format_percentage(value: float) -> str:
    """Format percentage for display."""
    return f"{value * 100:.1f}%"


def format_timestamp(timestamp: Optional[int]) -> str:
    """Format a block timestamp for display."""
    if not timestamp:
        return "N/A"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_address_link(address: str, network: str, explorers: dict) -> str:
    """Format an explorer link for an address."""
    base_url = explorers.get(network)
    if not base_url:
        return "Local network (no explorer)"
    return f"{base_url}/address/{address}"

