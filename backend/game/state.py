"""
Ledger state and read-only views.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class CommitStatus(Enum):
    """Commit-reveal state of a player (no record means NONE)."""
    COMMITTED = "committed"
    REVEALED = "revealed"


@dataclass
class PendingCommit:
    """A player's latest commit. Replaced, never deleted, by the next commit."""
    commit_hash: bytes
    block_number: int
    bet_amount: int
    timestamp: int  # Block timestamp at commit, part of the commitment
    nonce: int  # Ledger nonce at commit, part of the commitment
    status: CommitStatus = CommitStatus.COMMITTED

    @property
    def revealed(self) -> bool:
        return self.status == CommitStatus.REVEALED


@dataclass
class LedgerState:
    """Everything a reverted transaction must roll back."""
    owner: str
    house_balance: int = 0
    nonce: int = 0
    paused: bool = False

    commits: Dict[str, PendingCommit] = field(default_factory=dict)
    last_spin_time: Dict[str, int] = field(default_factory=dict)
    total_spins: Dict[str, int] = field(default_factory=dict)
    total_winnings: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class HouseStats:
    contract_balance: int
    house_balance: int
    spin_cost: int
    paused: bool


@dataclass(frozen=True)
class PlayerStats:
    total_spins: int
    total_winnings: int
    last_spin_time: int
    can_spin_again_at: int


@dataclass(frozen=True)
class CommitDetails:
    commit_hash: Optional[bytes]
    block_number: int
    bet_amount: int
    revealed: bool
    reveal_block: int  # First block at which a reveal is accepted
