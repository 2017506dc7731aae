"""
Commitment and random draw derivation.

All hashes are keccak256 over Solidity-packed encodings so a draw can be
re-derived off-chain by anyone holding the block data and the revealed secret.
"""
import logging
import secrets

from web3 import Web3

logger = logging.getLogger(__name__)

DRAW_MODULUS = 1000
ZERO_HASH = b"\x00" * 32


def to_bytes32(value) -> bytes:
    """Coerce a 0x-hex string, bytes or int into a 32 byte word."""
    if isinstance(value, int):
        if value < 0 or value >= 2 ** 256:
            raise ValueError(f"Value out of uint256 range: {value}")
        return value.to_bytes(32, "big")
    if isinstance(value, str):
        value = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    value = bytes(value)
    if len(value) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(value)}")
    return value


def generate_secret() -> bytes:
    """Generate a fresh 32 byte player secret."""
    return secrets.token_bytes(32)


def hash_secret(secret) -> bytes:
    """keccak256(secret). This is what a player submits with a commit."""
    return bytes(Web3.keccak(to_bytes32(secret)))


def compute_commitment(secret_hash, player: str, timestamp: int, nonce: int) -> bytes:
    """Bind a secret hash to the player, the commit timestamp and the ledger nonce."""
    return bytes(Web3.solidity_keccak(
        ["bytes32", "address", "uint256", "uint256"],
        [to_bytes32(secret_hash), Web3.to_checksum_address(player), timestamp, nonce],
    ))


def reveal_draw(
    prevrandao: int,
    commit_blockhash: bytes,
    secret,
    player: str,
    commit_hash: bytes,
    timestamp: int,
) -> int:
    """Draw for a commit-reveal spin.

    Mixes the beacon at reveal time with the hash of the commit block, which
    was unknown when the player picked their secret.
    """
    digest = Web3.solidity_keccak(
        ["uint256", "bytes32", "bytes32", "address", "bytes32", "uint256"],
        [
            prevrandao,
            to_bytes32(commit_blockhash),
            to_bytes32(secret),
            Web3.to_checksum_address(player),
            to_bytes32(commit_hash),
            timestamp,
        ],
    )
    return int.from_bytes(digest, "big") % DRAW_MODULUS


def quick_draw(
    prevrandao: int,
    timestamp: int,
    player: str,
    nonce: int,
    previous_blockhash: bytes,
    contract_balance: int,
) -> int:
    """Draw for a single transaction spin.

    Every input is known to the submitter or fixed by the block producer, so
    this draw is only suitable for negligible stakes.
    """
    digest = Web3.solidity_keccak(
        ["uint256", "uint256", "address", "uint256", "bytes32", "uint256"],
        [
            prevrandao,
            timestamp,
            Web3.to_checksum_address(player),
            nonce,
            to_bytes32(previous_blockhash),
            contract_balance,
        ],
    )
    return int.from_bytes(digest, "big") % DRAW_MODULUS


def verify_reveal_draw(
    random_number: int,
    prevrandao: int,
    commit_blockhash: bytes,
    secret,
    player: str,
    commit_hash: bytes,
    timestamp: int,
) -> bool:
    """Check a published commit-reveal result against its inputs."""
    expected = reveal_draw(prevrandao, commit_blockhash, secret, player, commit_hash, timestamp)
    if expected != random_number:
        logger.warning(f"[VERIFY] Draw mismatch for {player}: published {random_number}, derived {expected}")
        return False
    return True
