"""
Prize tier table for the spin wheel.

Cutoffs are cumulative out of DRAW_MODULUS. The table is fixed; changing it
means deploying a new ledger.
"""
import logging
from typing import Dict, List, Tuple

from web3 import Web3

from .randomness import DRAW_MODULUS

logger = logging.getLogger(__name__)

SPIN_COST = Web3.to_wei(0.1, "ether")
MAX_PRIZE = Web3.to_wei(1, "ether")

# Tier configuration (draw < cutoff lands in the tier)
PRIZE_TIERS = {
    "Miss": {
        "cutoff": 600,  # 60%
        "prize": 0,
    },
    "Half Back": {
        "cutoff": 900,  # 30%
        "prize": Web3.to_wei(0.05, "ether"),
    },
    "Money Back": {
        "cutoff": 950,  # 5%
        "prize": Web3.to_wei(0.1, "ether"),
    },
    "Double": {
        "cutoff": 980,  # 3%
        "prize": Web3.to_wei(0.2, "ether"),
    },
    "Big Win": {
        "cutoff": 995,  # 1.5%
        "prize": Web3.to_wei(0.5, "ether"),
    },
    "Jackpot": {
        "cutoff": DRAW_MODULUS,  # 0.5%
        "prize": MAX_PRIZE,
    },
}

# Lowest to highest
TIER_ORDER = ["Miss", "Half Back", "Money Back", "Double", "Big Win", "Jackpot"]


def tier_for_draw(draw: int) -> str:
    """Get the tier name for a draw in [0, DRAW_MODULUS)."""
    if not 0 <= draw < DRAW_MODULUS:
        raise ValueError(f"Draw out of range: {draw}")

    for tier_name in TIER_ORDER:
        if draw < PRIZE_TIERS[tier_name]["cutoff"]:
            return tier_name
    return TIER_ORDER[-1]


def prize_for_draw(draw: int) -> int:
    """Prize in wei for a draw."""
    return PRIZE_TIERS[tier_for_draw(draw)]["prize"]


def tier_probabilities() -> Dict[str, float]:
    """Probability of each tier under a uniform draw."""
    probabilities = {}
    previous_cutoff = 0
    for tier_name in TIER_ORDER:
        cutoff = PRIZE_TIERS[tier_name]["cutoff"]
        probabilities[tier_name] = (cutoff - previous_cutoff) / DRAW_MODULUS
        previous_cutoff = cutoff
    return probabilities


def expected_payout() -> Tuple[int, float]:
    """Expected prize per spin.

    Returns:
        Tuple of (expected_prize_wei, return_to_player)
    """
    expected = 0
    previous_cutoff = 0
    for tier_name in TIER_ORDER:
        tier = PRIZE_TIERS[tier_name]
        expected += (tier["cutoff"] - previous_cutoff) * tier["prize"]
        previous_cutoff = tier["cutoff"]
    expected_wei = expected // DRAW_MODULUS
    return expected_wei, expected_wei / SPIN_COST


def get_tier_table() -> List[dict]:
    """Tier table for display, lowest tier first."""
    probabilities = tier_probabilities()
    return [
        {
            "name": tier_name,
            "cutoff": PRIZE_TIERS[tier_name]["cutoff"],
            "prize": PRIZE_TIERS[tier_name]["prize"],
            "probability": probabilities[tier_name],
        }
        for tier_name in TIER_ORDER
    ]
