"""
Data models for the off-chain spin history.
"""
from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime
from enum import Enum


class SpinMode(Enum):
    """How the spin's randomness was obtained."""
    COMMIT_REVEAL = "commit_reveal"  # Two transactions, secret + delayed beacon
    QUICK = "quick"                  # Single transaction, weaker entropy


@dataclass
class SpinRecord:
    """A resolved spin as seen in its SpinResult event."""
    player: str
    mode: SpinMode
    bet_amount: int  # wei
    prize: int  # wei, tier prize (paid or not)
    random_number: int
    paid: bool
    block_number: int
    timestamp: int  # Block timestamp (unix seconds)
    contract_address: Optional[str] = None  # Ledger deployment that produced the spin

    # Commit-reveal proof data (None for quick spins)
    commit_block: Optional[int] = None
    commit_hash: Optional[str] = None
    secret: Optional[str] = None
    prevrandao: Optional[int] = None  # Beacon of the reveal block
    commit_blockhash: Optional[str] = None  # As seen by the reveal (zero outside the lookback)

    spin_id: Optional[int] = None
    recorded_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class EventRecord:
    """One ledger event from a mined transaction."""
    name: str
    block_number: int
    payload: dict
    address: Optional[str] = None

    event_id: Optional[int] = None
    recorded_at: datetime = field(default_factory=datetime.utcnow)
