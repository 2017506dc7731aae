"""Game logic module for the spin ledger."""
from .chain import LocalChain, Block, Message, Receipt, BLOCKHASH_LOOKBACK
from .ledger import SpinLedger, deploy_ledger, COOLDOWN_PERIOD, REVEAL_DELAY
from .prizes import (
    SPIN_COST,
    MAX_PRIZE,
    PRIZE_TIERS,
    TIER_ORDER,
    tier_for_draw,
    prize_for_draw,
    tier_probabilities,
    expected_payout,
    get_tier_table,
)
from .randomness import (
    ZERO_HASH,
    DRAW_MODULUS,
    generate_secret,
    hash_secret,
    compute_commitment,
    reveal_draw,
    quick_draw,
    verify_reveal_draw,
)
from .state import CommitStatus, HouseStats, PlayerStats, CommitDetails
from .exceptions import LedgerError, ChainError

__all__ = [
    "LocalChain",
    "Block",
    "Message",
    "Receipt",
    "BLOCKHASH_LOOKBACK",
    "SpinLedger",
    "deploy_ledger",
    "COOLDOWN_PERIOD",
    "REVEAL_DELAY",
    "SPIN_COST",
    "MAX_PRIZE",
    "PRIZE_TIERS",
    "TIER_ORDER",
    "tier_for_draw",
    "prize_for_draw",
    "tier_probabilities",
    "expected_payout",
    "get_tier_table",
    "DRAW_MODULUS",
    "ZERO_HASH",
    "generate_secret",
    "hash_secret",
    "compute_commitment",
    "reveal_draw",
    "quick_draw",
    "verify_reveal_draw",
    "CommitStatus",
    "HouseStats",
    "PlayerStats",
    "CommitDetails",
    "LedgerError",
    "ChainError",
]
