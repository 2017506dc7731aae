"""
Validation and formatting helpers.
"""
from web3 import Web3

from config import EXPLORERS
from utils import (
    format_address_link,
    format_ether,
    format_percentage,
    format_timestamp,
    is_valid_address,
    is_valid_amount,
    is_valid_bytes32,
)

ADDRESS = Web3.to_checksum_address("0x" + "ab" * 20)


def test_valid_addresses():
    assert is_valid_address(ADDRESS) == (True, "")
    assert is_valid_address(ADDRESS.lower()) == (True, "")


def test_uppercase_address_skips_checksum():
    assert is_valid_address("0x" + ADDRESS[2:].upper()) == (True, "")


def test_invalid_addresses():
    assert is_valid_address("")[0] is False
    assert is_valid_address("0x1234")[0] is False
    assert is_valid_address(None)[0] is False

    bad_checksum = ADDRESS[:2] + ADDRESS[2:].swapcase()
    if bad_checksum != bad_checksum.lower() and not Web3.is_checksum_address(bad_checksum):
        assert is_valid_address(bad_checksum) == (False, "Invalid address checksum")


def test_bytes32():
    assert is_valid_bytes32("0x" + "0f" * 32)[0] is True
    assert is_valid_bytes32("0f" * 32)[0] is False
    assert is_valid_bytes32("0x" + "0f" * 31)[0] is False
    ok, error = is_valid_bytes32("", "Secret")
    assert not ok
    assert error == "Secret is required"


def test_amounts():
    assert is_valid_amount(0)[0] is True
    assert is_valid_amount(10 ** 18)[0] is True
    assert is_valid_amount(-1)[0] is False
    assert is_valid_amount(2 ** 256)[0] is False
    assert is_valid_amount(True)[0] is False
    assert is_valid_amount(1.5)[0] is False


def test_format_ether():
    assert format_ether(Web3.to_wei(0.1, "ether")) == "0.100000 PC"
    assert format_ether(Web3.to_wei(100, "ether")) == "100.0000 PC"
    assert format_ether(Web3.to_wei(12345, "ether"), symbol="ETH") == "12,345.00 ETH"


def test_format_misc():
    assert format_percentage(0.385) == "38.5%"
    assert format_timestamp(0) == "N/A"
    assert format_timestamp(1_700_000_000) == "2023-11-14 22:13:20 UTC"


def test_explorer_links():
    assert format_address_link(ADDRESS, "sepolia", EXPLORERS) == f"https://sepolia.etherscan.io/address/{ADDRESS}"
    assert format_address_link(ADDRESS, "localnet", EXPLORERS) == "Local network (no explorer)"
