"""
Ledger events.

Events are appended to the chain log by the emitting call and disappear with
it if the transaction reverts.
"""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class LedgerEvent:
    """Base event. `name` matches the event names of the deployed contract."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, bytes):
                payload[key] = "0x" + value.hex()
        return payload


@dataclass(frozen=True)
class SpinCommitted(LedgerEvent):
    player: str
    commit_hash: bytes
    block_number: int
    timestamp: int


@dataclass(frozen=True)
class SpinResult(LedgerEvent):
    player: str
    bet_amount: int
    prize: int
    random_number: int
    timestamp: int
    paid: bool


@dataclass(frozen=True)
class FundsDeposited(LedgerEvent):
    sender: str
    amount: int


@dataclass(frozen=True)
class FundsWithdrawn(LedgerEvent):
    recipient: str
    amount: int


@dataclass(frozen=True)
class Paused(LedgerEvent):
    account: str


@dataclass(frozen=True)
class Unpaused(LedgerEvent):
    account: str


@dataclass(frozen=True)
class OwnershipTransferred(LedgerEvent):
    previous_owner: str
    new_owner: str
