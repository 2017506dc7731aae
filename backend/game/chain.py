"""
Local execution environment for the spin ledger.

Plays the part of an EVM dev node with automine: every transaction is mined
into its own block, state changes are atomic per transaction, and value
transfers to addresses with a receive hook behave like low-level calls
(a reverting recipient makes the transfer return False).
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from web3 import Web3

from .events import LedgerEvent
from .exceptions import ChainError, InsufficientFunds
from .randomness import ZERO_HASH

logger = logging.getLogger(__name__)

BLOCKHASH_LOOKBACK = 256
DEFAULT_CHAIN_ID = 31337
DEFAULT_ACCOUNT_BALANCE = Web3.to_wei(10_000, "ether")


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int
    prevrandao: int
    hash: bytes
    parent_hash: bytes


@dataclass(frozen=True)
class Message:
    """Caller identity and attached value of a call."""
    sender: str
    value: int = 0


@dataclass(frozen=True)
class LogEntry:
    address: str
    block_number: int
    event: LedgerEvent


@dataclass
class Receipt:
    """Result of a mined transaction."""
    block_number: int
    sender: str
    to: str
    value: int
    return_value: Any = None
    events: List[LedgerEvent] = field(default_factory=list)

    def find(self, name: str) -> Optional[LedgerEvent]:
        """First event with the given name, or None."""
        for event in self.events:
            if event.name == name:
                return event
        return None

    def find_all(self, name: str) -> List[LedgerEvent]:
        return [event for event in self.events if event.name == name]


class LocalChain:
    """In-process chain with funded dev accounts and controllable time."""

    def __init__(
        self,
        chain_id: int = DEFAULT_CHAIN_ID,
        seed: Optional[bytes] = None,
        clock: Callable[[], float] = time.time,
        account_count: int = 10,
        account_balance: int = DEFAULT_ACCOUNT_BALANCE,
    ):
        self.chain_id = chain_id
        if isinstance(seed, str):
            seed = seed.encode()
        self._seed = seed if seed is not None else secrets.token_bytes(32)
        self._clock = clock
        self._time_offset = 0
        self._lock = threading.RLock()
        self._pending: Optional[Block] = None
        self._deploy_count = 0

        self.balances: Dict[str, int] = {}
        self.logs: List[LogEntry] = []
        self._contracts: Dict[str, Any] = {}
        self._receivers: Dict[str, Callable[[Message], Any]] = {}

        self.blocks: List[Block] = [self._build_block(0, int(clock()), ZERO_HASH)]

        self.accounts = [self._derive_address(f"account:{i}") for i in range(account_count)]
        for account in self.accounts:
            self.balances[account] = account_balance

        logger.info(f"[CHAIN] Local chain {chain_id} started with {account_count} dev accounts")

    # === Blocks ===

    def _derive_address(self, label: str) -> str:
        return Web3.to_checksum_address(Web3.keccak(self._seed + label.encode())[-20:])

    def _build_block(self, number: int, timestamp: int, parent_hash: bytes) -> Block:
        prevrandao = int.from_bytes(Web3.keccak(self._seed + number.to_bytes(32, "big")), "big")
        block_hash = Web3.solidity_keccak(
            ["bytes32", "uint256", "uint256", "uint256"],
            [parent_hash, number, timestamp, prevrandao],
        )
        return Block(
            number=number,
            timestamp=timestamp,
            prevrandao=prevrandao,
            hash=bytes(block_hash),
            parent_hash=parent_hash,
        )

    def _next_block(self) -> Block:
        latest = self.blocks[-1]
        timestamp = max(latest.timestamp + 1, int(self._clock()) + self._time_offset)
        return self._build_block(latest.number + 1, timestamp, latest.hash)

    @property
    def latest_block(self) -> Block:
        return self.blocks[-1]

    @property
    def block(self) -> Block:
        """Block the current call executes in (the pending block during a transaction)."""
        return self._pending or self.blocks[-1]

    def blockhash(self, number: int) -> bytes:
        """Hash of a recent block; zero for the current block and anything older than the lookback."""
        current = self.block.number
        if 0 <= number and current - BLOCKHASH_LOOKBACK <= number < current and number < len(self.blocks):
            return self.blocks[number].hash
        return ZERO_HASH

    def mine(self, blocks: int = 1) -> Block:
        """Mine empty blocks."""
        with self._lock:
            for _ in range(blocks):
                self.blocks.append(self._next_block())
            return self.blocks[-1]

    def increase_time(self, seconds: int):
        """Make the next block at least `seconds` later than the latest one."""
        with self._lock:
            drift = self.blocks[-1].timestamp - int(self._clock())
            self._time_offset = max(self._time_offset, drift) + seconds
            logger.info(f"[CHAIN] Time advanced by {seconds}s")

    # === Balances ===

    def balance_of(self, address: str) -> int:
        return self.balances.get(Web3.to_checksum_address(address), 0)

    def set_balance(self, address: str, amount: int):
        with self._lock:
            self.balances[Web3.to_checksum_address(address)] = amount

    def set_receiver(self, address: str, hook: Optional[Callable[[Message], Any]]):
        """Install a receive hook on an address (None removes it).

        The hook runs whenever value is sent to the address; raising from it
        rejects the transfer.
        """
        address = Web3.to_checksum_address(address)
        with self._lock:
            if hook is None:
                self._receivers.pop(address, None)
            else:
                self._receivers[address] = hook

    def _move_value(self, sender: str, recipient: str, value: int):
        if value < 0:
            raise ChainError(f"Negative value: {value}", address=sender)
        if value == 0:
            return
        available = self.balances.get(sender, 0)
        if available < value:
            raise InsufficientFunds(sender, value, available)
        self.balances[sender] = available - value
        self.balances[recipient] = self.balances.get(recipient, 0) + value

    # === Snapshots ===

    def _snapshot(self):
        contract_states = {address: contract.snapshot() for address, contract in self._contracts.items()}
        return dict(self.balances), len(self.logs), contract_states

    def _restore(self, snapshot):
        balances, log_count, contract_states = snapshot
        self.balances = balances
        del self.logs[log_count:]
        for address, state in contract_states.items():
            self._contracts[address].restore(state)

    # === Contracts ===

    def deploy(self, sender: str, factory: Callable[..., Any], **kwargs) -> Any:
        """Deploy a contract; the factory receives env, address and owner."""
        sender = Web3.to_checksum_address(sender)
        with self._lock:
            self._deploy_count += 1
            address = self._derive_address(f"contract:{sender}:{self._deploy_count}")
            contract = factory(env=self, address=address, owner=sender, **kwargs)
            self._contracts[address] = contract
            self._receivers[address] = contract.receive
            self.blocks.append(self._next_block())
            logger.info(f"[CHAIN] Deployed {type(contract).__name__} at {address} (block {self.latest_block.number})")
            return contract

    def emit(self, address: str, event: LedgerEvent):
        self.logs.append(LogEntry(address=address, block_number=self.block.number, event=event))
        logger.debug(f"[CHAIN] {event.name} {event.to_dict()}")

    def get_logs(self, name: Optional[str] = None, address: Optional[str] = None) -> List[LogEntry]:
        return [
            entry for entry in self.logs
            if (name is None or entry.event.name == name)
            and (address is None or entry.address == address)
        ]

    def call_contract(self, sender: str, fn: Callable[..., Any], *args, value: int = 0) -> Any:
        """Message call into a deployed contract method.

        Everything the call changed is rolled back if it raises.
        """
        contract = getattr(fn, "__self__", None)
        if contract is None or self._contracts.get(getattr(contract, "address", None)) is not contract:
            raise ChainError(f"{fn!r} is not a method of a deployed contract")

        sender = Web3.to_checksum_address(sender)
        with self._lock:
            snapshot = self._snapshot()
            try:
                self._move_value(sender, contract.address, value)
                return fn(Message(sender=sender, value=value), *args)
            except Exception:
                self._restore(snapshot)
                raise

    def send_value(self, sender: str, recipient: str, amount: int) -> bool:
        """Low-level value transfer. Returns False if the recipient reverts."""
        sender = Web3.to_checksum_address(sender)
        recipient = Web3.to_checksum_address(recipient)
        with self._lock:
            snapshot = self._snapshot()
            try:
                self._move_value(sender, recipient, amount)
                hook = self._receivers.get(recipient)
                if hook is not None:
                    hook(Message(sender=sender, value=amount))
            except Exception as e:
                self._restore(snapshot)
                logger.warning(f"[CHAIN] Transfer of {amount} wei to {recipient} reverted: {e}")
                return False
            return True

    # === Transactions ===

    def _begin_block(self):
        if self._pending is not None:
            raise ChainError("Transaction already in progress; use call_contract for nested calls")
        self._pending = self._next_block()

    def _seal_block(self, log_start: int) -> List[LedgerEvent]:
        block = self._pending
        self._pending = None
        self.blocks.append(block)
        return [entry.event for entry in self.logs[log_start:]]

    def transact(self, sender: str, fn: Callable[..., Any], *args, value: int = 0) -> Receipt:
        """Submit a transaction calling a contract method and mine it.

        Raises whatever the call raised; a failed transaction is not mined.
        """
        sender = Web3.to_checksum_address(sender)
        with self._lock:
            self._begin_block()
            log_start = len(self.logs)
            try:
                result = self.call_contract(sender, fn, *args, value=value)
            except Exception:
                self._pending = None
                raise
            events = self._seal_block(log_start)
            return Receipt(
                block_number=self.latest_block.number,
                sender=sender,
                to=fn.__self__.address,
                value=value,
                return_value=result,
                events=events,
            )

    def send_transaction(self, sender: str, to: str, value: int) -> Receipt:
        """Plain value transfer with no call data."""
        sender = Web3.to_checksum_address(sender)
        to = Web3.to_checksum_address(to)
        with self._lock:
            self._begin_block()
            log_start = len(self.logs)
            snapshot = self._snapshot()
            try:
                self._move_value(sender, to, value)
                hook = self._receivers.get(to)
                if hook is not None:
                    hook(Message(sender=sender, value=value))
            except Exception:
                self._restore(snapshot)
                self._pending = None
                raise
            events = self._seal_block(log_start)
            return Receipt(
                block_number=self.latest_block.number,
                sender=sender,
                to=to,
                value=value,
                events=events,
            )

    def call(self, fn: Callable[..., Any], *args) -> Any:
        """Read-only call against the latest block."""
        with self._lock:
            return fn(*args)
