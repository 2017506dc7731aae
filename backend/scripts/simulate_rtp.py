"""
Monte Carlo check of the prize table.

Runs quick spins from a pool of dev accounts against a freshly deployed
ledger and compares observed tier frequencies and return-to-player with the
theoretical values from the tier table.

Usage:
    python scripts/simulate_rtp.py [--spins 5000] [--players 20]
"""

import argparse
import logging
import os
import sys
from collections import Counter
from typing import Dict

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from web3 import Web3

import config
from game import (
    LocalChain,
    deploy_ledger,
    SPIN_COST,
    TIER_ORDER,
    tier_for_draw,
    tier_probabilities,
    expected_payout,
)
from utils import format_ether, format_percentage

logger = logging.getLogger(__name__)


def simulate(spins: int, players: int, seed: str = "rtp-simulation") -> Dict:
    """Run quick spins round-robin across players.

    The cooldown is honored by advancing chain time once every player has
    spun in the current round.
    """
    chain = LocalChain(seed=seed, account_count=players + 1)
    owner = chain.accounts[0]
    ledger = deploy_ledger(
        chain,
        owner,
        funding=Web3.to_wei(100, "ether"),
        cooldown=config.COOLDOWN_SECONDS,
    )

    tiers = Counter()
    total_paid = 0
    player_accounts = chain.accounts[1:]

    for i in range(spins):
        if i and i % players == 0:
            chain.increase_time(config.COOLDOWN_SECONDS)
        player = player_accounts[i % players]
        receipt = chain.transact(player, ledger.quick_spin, value=SPIN_COST)
        result = receipt.find("SpinResult")
        tiers[tier_for_draw(result.random_number)] += 1
        total_paid += receipt.return_value

    return {
        "spins": spins,
        "tiers": tiers,
        "total_wagered": spins * SPIN_COST,
        "total_paid": total_paid,
        "house_balance": ledger.house_balance,
    }


def report(result: Dict):
    probabilities = tier_probabilities()
    expected_wei, expected_rtp = expected_payout()
    spins = result["spins"]

    logger.info("=" * 60)
    logger.info(f"{'Tier':<12} {'Observed':>10} {'Expected':>10}")
    logger.info("-" * 60)
    for tier_name in TIER_ORDER:
        observed = result["tiers"][tier_name] / spins
        logger.info(f"{tier_name:<12} {format_percentage(observed):>10} {format_percentage(probabilities[tier_name]):>10}")
    logger.info("-" * 60)

    observed_rtp = result["total_paid"] / result["total_wagered"]
    logger.info(f"Wagered:        {format_ether(result['total_wagered'])}")
    logger.info(f"Paid out:       {format_ether(result['total_paid'])}")
    logger.info(f"Observed RTP:   {format_percentage(observed_rtp)}")
    logger.info(f"Expected RTP:   {format_percentage(expected_rtp)} ({format_ether(expected_wei)} per spin)")
    logger.info(f"House balance:  {format_ether(result['house_balance'])}")


def main():
    parser = argparse.ArgumentParser(description="Simulate quick spins and report return-to-player")
    parser.add_argument("--spins", type=int, default=5000)
    parser.add_argument("--players", type=int, default=20)
    args = parser.parse_args()

    logging.basicConfig(level=config.LOG_LEVEL)
    # Per-spin ledger logs drown the report
    logging.getLogger("game").setLevel(logging.WARNING)

    report(simulate(args.spins, args.players))


if __name__ == "__main__":
    main()
