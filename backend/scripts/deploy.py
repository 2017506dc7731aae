"""
Deploy the spin ledger onto a fresh local chain.

Steps:
1. Start a local chain with funded dev accounts
2. Deploy the ledger from the first account (it becomes the owner)
3. Fund the house pool with INITIAL_HOUSE_FUNDING_ETHER
4. Print the ledger stats and write deployment-<network>.json

Usage:
    python scripts/deploy.py [--funding 100] [--output-dir .]
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from web3 import Web3

import config
from game import LocalChain, deploy_ledger, SPIN_COST, MAX_PRIZE
from utils import format_ether, format_address_link

logger = logging.getLogger(__name__)


def build_deployment_record(chain: LocalChain, ledger) -> dict:
    """Deployment metadata written next to the script output."""
    stats = chain.call(ledger.get_stats)
    return {
        "network": config.NETWORK_NAME,
        "chain_id": chain.chain_id,
        "contract_address": ledger.address,
        "deployer": ledger.owner,
        "deployed_at": datetime.utcnow().isoformat(),
        "block_number": chain.latest_block.number,
        "spin_cost": str(SPIN_COST),
        "max_prize": str(MAX_PRIZE),
        "cooldown": ledger.cooldown,
        "reveal_delay": ledger.reveal_delay,
        "house_balance": str(stats.house_balance),
    }


def deploy(funding_ether: float, output_dir: str = ".") -> dict:
    """Deploy, fund and record. Returns the deployment record."""
    chain = LocalChain(
        chain_id=config.CHAIN_ID,
        seed=config.CHAIN_SEED,
        account_count=config.DEV_ACCOUNT_COUNT,
        account_balance=Web3.to_wei(config.DEV_ACCOUNT_BALANCE_ETHER, "ether"),
    )
    deployer = chain.accounts[0]
    logger.info(f"Deploying with account {deployer}")
    logger.info(f"Account balance: {format_ether(chain.balance_of(deployer))}")

    ledger = deploy_ledger(
        chain,
        deployer,
        funding=Web3.to_wei(funding_ether, "ether"),
        cooldown=config.COOLDOWN_SECONDS,
        reveal_delay=config.REVEAL_DELAY_BLOCKS,
    )

    stats = chain.call(ledger.get_stats)
    logger.info("=" * 60)
    logger.info("LEDGER STATS")
    logger.info("=" * 60)
    logger.info(f"Contract address:  {ledger.address}")
    logger.info(f"Contract balance:  {format_ether(stats.contract_balance)}")
    logger.info(f"House balance:     {format_ether(stats.house_balance)}")
    logger.info(f"Spin cost:         {format_ether(stats.spin_cost)}")
    logger.info(f"Paused:            {stats.paused}")
    logger.info(f"Explorer:          {format_address_link(ledger.address, config.NETWORK_NAME, config.EXPLORERS)}")

    record = build_deployment_record(chain, ledger)
    path = os.path.join(output_dir, f"deployment-{config.NETWORK_NAME}.json")
    with open(path, "w") as f:
        json.dump(record, f, indent=2)
    logger.info(f"Deployment info saved to {path}")

    return record


def main():
    parser = argparse.ArgumentParser(description="Deploy the spin ledger")
    parser.add_argument(
        "--funding",
        type=float,
        default=config.INITIAL_HOUSE_FUNDING_ETHER,
        help="House funding in ether",
    )
    parser.add_argument("--output-dir", default=".", help="Where to write the deployment file")
    args = parser.parse_args()

    logging.basicConfig(level=config.LOG_LEVEL)
    deploy(args.funding, args.output_dir)


if __name__ == "__main__":
    main()
