"""
Chain Roulette runtime configuration.

Values come from the environment (or a .env file). Game economics (spin cost,
prize tiers, cutoffs) are fixed in game/prizes.py and are not configurable.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# NETWORK
# =============================================================================

NETWORK_NAME = os.getenv("NETWORK_NAME", "localnet")
CHAIN_ID = int(os.getenv("CHAIN_ID", "31337"))
CHAIN_SEED = os.getenv("CHAIN_SEED") or None  # Unset = fresh random beacon each start

DEV_ACCOUNT_COUNT = int(os.getenv("DEV_ACCOUNT_COUNT", "10"))
DEV_ACCOUNT_BALANCE_ETHER = int(os.getenv("DEV_ACCOUNT_BALANCE_ETHER", "10000"))

# =============================================================================
# LEDGER
# =============================================================================

COOLDOWN_SECONDS = int(os.getenv("COOLDOWN_SECONDS", "30"))
REVEAL_DELAY_BLOCKS = int(os.getenv("REVEAL_DELAY_BLOCKS", "2"))

# House funding sent by the deployer right after deployment
INITIAL_HOUSE_FUNDING_ETHER = int(os.getenv("INITIAL_HOUSE_FUNDING_ETHER", "100"))

# =============================================================================
# STORAGE & API
# =============================================================================

DB_PATH = os.getenv("DB_PATH", "roulette.db")

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Explorer links per network (local networks have none)
EXPLORERS = {
    "pushTestnet": "https://donut.push.network",
    "pushMainnet": "https://scan.push.org",
    "sepolia": "https://sepolia.etherscan.io",
}
