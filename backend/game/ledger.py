"""
Spin ledger: pooled house bankroll, commit-reveal and quick spins.

The ledger only trusts its environment for block data, balances and value
transfers. Every public operation takes the calling Message explicitly and
mutates `self.state` only; the environment snapshots and restores that state
around each call so a raised LedgerError reverts everything the call did.
"""
import copy
import functools
import logging
import threading

from web3 import Web3

from .events import (
    FundsDeposited,
    FundsWithdrawn,
    OwnershipTransferred,
    Paused,
    SpinCommitted,
    SpinResult,
    Unpaused,
)
from .exceptions import (
    AlreadyRevealed,
    CommitAlreadyPending,
    CooldownNotExpired,
    EnforcedPause,
    ExpectedPause,
    IncorrectBetAmount,
    InsufficientBalance,
    InsufficientHouseBalance,
    InvalidAmount,
    InvalidSecret,
    NoCommitFound,
    ReentrantCall,
    RevealTooEarly,
    TransferFailed,
    Unauthorized,
)
from .prizes import MAX_PRIZE, SPIN_COST, prize_for_draw, tier_for_draw
from .randomness import compute_commitment, hash_secret, quick_draw, reveal_draw, to_bytes32
from .state import CommitDetails, CommitStatus, HouseStats, LedgerState, PendingCommit, PlayerStats

logger = logging.getLogger(__name__)

COOLDOWN_PERIOD = 30  # seconds, measured from the start of the previous spin
REVEAL_DELAY = 2  # blocks between commit and earliest reveal


def only_owner(method):
    @functools.wraps(method)
    def wrapper(self, msg, *args, **kwargs):
        if msg.sender != self.state.owner:
            raise Unauthorized(msg.sender)
        return method(self, msg, *args, **kwargs)
    return wrapper


def when_not_paused(method):
    @functools.wraps(method)
    def wrapper(self, msg, *args, **kwargs):
        if self.state.paused:
            raise EnforcedPause()
        return method(self, msg, *args, **kwargs)
    return wrapper


def when_paused(method):
    @functools.wraps(method)
    def wrapper(self, msg, *args, **kwargs):
        if not self.state.paused:
            raise ExpectedPause()
        return method(self, msg, *args, **kwargs)
    return wrapper


def non_reentrant(method):
    """Refuse to enter while another guarded call on the same ledger is running."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self._guard.acquire(blocking=False):
            raise ReentrantCall()
        try:
            return method(self, *args, **kwargs)
        finally:
            self._guard.release()
    return wrapper


class SpinLedger:
    """The game contract.

    Args:
        env: Execution environment (block data, balances, transfers, event log)
        address: Address holding the ledger's funds
        owner: Initial owner
        cooldown: Seconds a player waits between spins
        reveal_delay: Blocks between a commit and its earliest reveal
    """

    SPIN_COST = SPIN_COST
    MAX_PRIZE = MAX_PRIZE

    def __init__(self, env, address: str, owner: str, cooldown: int = COOLDOWN_PERIOD, reveal_delay: int = REVEAL_DELAY):
        self.env = env
        self.address = Web3.to_checksum_address(address)
        self.cooldown = cooldown
        self.reveal_delay = reveal_delay
        self.state = LedgerState(owner=Web3.to_checksum_address(owner))
        self._guard = threading.Lock()

    # === Environment hooks ===

    def snapshot(self) -> LedgerState:
        return copy.deepcopy(self.state)

    def restore(self, snapshot: LedgerState):
        self.state = snapshot

    def _emit(self, event):
        self.env.emit(self.address, event)

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def house_balance(self) -> int:
        return self.state.house_balance

    @property
    def nonce(self) -> int:
        return self.state.nonce

    @property
    def paused(self) -> bool:
        return self.state.paused

    # === House treasury ===

    @only_owner
    def deposit_funds(self, msg):
        """Add the attached value to the house pool."""
        if msg.value == 0:
            raise InvalidAmount()
        self._credit_house(msg)

    def receive(self, msg):
        """Bare value transfer. Counted exactly like a deposit so the pool tracks the held balance."""
        self._credit_house(msg)

    def _credit_house(self, msg):
        self.state.house_balance += msg.value
        self._emit(FundsDeposited(sender=msg.sender, amount=msg.value))
        logger.info(f"[TREASURY] Deposit of {msg.value} wei from {msg.sender}, house balance {self.state.house_balance}")

    @only_owner
    @non_reentrant
    def withdraw_funds(self, msg, amount: int):
        if amount < 0:
            raise InvalidAmount(f"Invalid withdrawal amount: {amount}")
        if amount > self.state.house_balance:
            raise InsufficientBalance(amount, self.state.house_balance)

        self.state.house_balance -= amount
        if not self.env.send_value(self.address, msg.sender, amount):
            raise TransferFailed(msg.sender, amount)

        self._emit(FundsWithdrawn(recipient=msg.sender, amount=amount))
        logger.info(f"[TREASURY] Withdrew {amount} wei to {msg.sender}, house balance {self.state.house_balance}")

    @only_owner
    @when_paused
    @non_reentrant
    def emergency_withdraw(self, msg):
        """Drain everything the ledger holds, including funds outside the pool."""
        amount = self.env.balance_of(self.address)
        self.state.house_balance = 0
        if not self.env.send_value(self.address, msg.sender, amount):
            raise TransferFailed(msg.sender, amount)

        self._emit(FundsWithdrawn(recipient=msg.sender, amount=amount))
        logger.warning(f"[TREASURY] Emergency withdrawal of {amount} wei to {msg.sender}")

    # === Pause & ownership ===

    @only_owner
    @when_not_paused
    def pause(self, msg):
        self.state.paused = True
        self._emit(Paused(account=msg.sender))
        logger.warning(f"[ADMIN] Ledger paused by {msg.sender}")

    @only_owner
    @when_paused
    def unpause(self, msg):
        self.state.paused = False
        self._emit(Unpaused(account=msg.sender))
        logger.info(f"[ADMIN] Ledger unpaused by {msg.sender}")

    @only_owner
    def transfer_ownership(self, msg, new_owner: str):
        new_owner = Web3.to_checksum_address(new_owner)
        previous = self.state.owner
        self.state.owner = new_owner
        self._emit(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))
        logger.info(f"[ADMIN] Ownership transferred from {previous} to {new_owner}")

    # === Admission control ===

    def _admit(self, msg, check_pending_commit: bool):
        """Checks shared by both spin protocols, then books the wager."""
        player = msg.sender
        now = self.env.block.timestamp

        if msg.value != SPIN_COST:
            raise IncorrectBetAmount(msg.value, SPIN_COST)

        if self.state.house_balance < MAX_PRIZE:
            raise InsufficientHouseBalance(MAX_PRIZE, self.state.house_balance)

        last_spin = self.state.last_spin_time.get(player, 0)
        if last_spin and now < last_spin + self.cooldown:
            raise CooldownNotExpired(last_spin + self.cooldown - now)

        if check_pending_commit:
            commit = self.state.commits.get(player)
            if commit is not None and commit.block_number > 0 and not commit.revealed:
                raise CommitAlreadyPending(commit.block_number)

        self.state.house_balance += msg.value
        self.state.last_spin_time[player] = now

    # === Commit-reveal ===

    @non_reentrant
    @when_not_paused
    def commit_spin(self, msg, secret_hash) -> bytes:
        """Commit to keccak256(secret). Returns the stored commitment."""
        secret_hash = to_bytes32(secret_hash)
        self._admit(msg, check_pending_commit=True)

        block = self.env.block
        self.state.nonce += 1
        commit_hash = compute_commitment(secret_hash, msg.sender, block.timestamp, self.state.nonce)

        self.state.commits[msg.sender] = PendingCommit(
            commit_hash=commit_hash,
            block_number=block.number,
            bet_amount=msg.value,
            timestamp=block.timestamp,
            nonce=self.state.nonce,
        )
        self._emit(SpinCommitted(
            player=msg.sender,
            commit_hash=commit_hash,
            block_number=block.number,
            timestamp=block.timestamp,
        ))
        logger.info(f"[COMMIT] {msg.sender} committed at block {block.number} ({commit_hash.hex()[:16]}...)")
        return commit_hash

    @non_reentrant
    @when_not_paused
    def reveal_spin(self, msg, secret) -> int:
        """Reveal the committed secret and resolve the spin. Returns the prize paid."""
        player = msg.sender
        commit = self.state.commits.get(player)
        if commit is None or commit.block_number == 0:
            raise NoCommitFound()
        if commit.revealed:
            raise AlreadyRevealed()

        block = self.env.block
        reveal_block = commit.block_number + self.reveal_delay
        if block.number < reveal_block:
            raise RevealTooEarly(reveal_block - block.number)

        secret = to_bytes32(secret)
        expected = compute_commitment(hash_secret(secret), player, commit.timestamp, commit.nonce)
        if expected != commit.commit_hash:
            raise InvalidSecret()

        commit.status = CommitStatus.REVEALED
        draw = reveal_draw(
            block.prevrandao,
            self.env.blockhash(commit.block_number),
            secret,
            player,
            commit.commit_hash,
            block.timestamp,
        )
        logger.info(f"[REVEAL] {player} revealed commit from block {commit.block_number}, draw {draw}")
        return self._settle(player, commit.bet_amount, draw)

    # === Quick spin ===

    @non_reentrant
    @when_not_paused
    def quick_spin(self, msg) -> int:
        """Single transaction spin. Returns the prize paid."""
        self._admit(msg, check_pending_commit=False)

        block = self.env.block
        self.state.nonce += 1
        draw = quick_draw(
            block.prevrandao,
            block.timestamp,
            msg.sender,
            self.state.nonce,
            self.env.blockhash(block.number - 1),
            self.env.balance_of(self.address),
        )
        logger.info(f"[QUICK] {msg.sender} spun at block {block.number}, draw {draw}")
        return self._settle(msg.sender, msg.value, draw)

    # === Payout ===

    def _settle(self, player: str, bet_amount: int, draw: int) -> int:
        """Resolve a draw and pay it out best-effort. The spin counts either way."""
        prize = prize_for_draw(draw)
        paid = False

        if prize > 0:
            if self.state.house_balance < prize:
                raise InsufficientHouseBalance(prize, self.state.house_balance)

            self.state.house_balance -= prize
            self.state.total_winnings[player] = self.state.total_winnings.get(player, 0) + prize

            # A reverted transfer may replace self.state; only re-read it afterwards
            paid = self.env.send_value(self.address, player, prize)
            if not paid:
                self.state.house_balance += prize
                self.state.total_winnings[player] -= prize
                logger.warning(f"[PAYOUT] Transfer of {prize} wei to {player} failed, prize withheld")

        self.state.total_spins[player] = self.state.total_spins.get(player, 0) + 1
        self._emit(SpinResult(
            player=player,
            bet_amount=bet_amount,
            prize=prize,
            random_number=draw,
            timestamp=self.env.block.timestamp,
            paid=paid,
        ))
        logger.info(f"[SPIN] {player} landed {tier_for_draw(draw)} (draw {draw}), prize {prize} wei, paid={paid}")
        return prize if paid else 0

    # === Views ===

    def get_stats(self) -> HouseStats:
        return HouseStats(
            contract_balance=self.env.balance_of(self.address),
            house_balance=self.state.house_balance,
            spin_cost=SPIN_COST,
            paused=self.state.paused,
        )

    def get_player_stats(self, player: str) -> PlayerStats:
        player = Web3.to_checksum_address(player)
        last_spin = self.state.last_spin_time.get(player, 0)
        return PlayerStats(
            total_spins=self.state.total_spins.get(player, 0),
            total_winnings=self.state.total_winnings.get(player, 0),
            last_spin_time=last_spin,
            can_spin_again_at=last_spin + self.cooldown if last_spin else 0,
        )

    def has_pending_commit(self, player: str) -> bool:
        commit = self.state.commits.get(Web3.to_checksum_address(player))
        return commit is not None and commit.block_number > 0 and not commit.revealed

    def get_commit_details(self, player: str) -> CommitDetails:
        commit = self.state.commits.get(Web3.to_checksum_address(player))
        if commit is None:
            return CommitDetails(commit_hash=None, block_number=0, bet_amount=0, revealed=False, reveal_block=0)
        return CommitDetails(
            commit_hash=commit.commit_hash,
            block_number=commit.block_number,
            bet_amount=commit.bet_amount,
            revealed=commit.revealed,
            reveal_block=commit.block_number + self.reveal_delay,
        )


def deploy_ledger(
    chain,
    deployer: str,
    funding: int = 0,
    cooldown: int = COOLDOWN_PERIOD,
    reveal_delay: int = REVEAL_DELAY,
) -> SpinLedger:
    """Deploy a ledger owned by `deployer` and optionally seed the house pool."""
    ledger = chain.deploy(deployer, SpinLedger, cooldown=cooldown, reveal_delay=reveal_delay)
    if funding:
        chain.transact(deployer, ledger.deposit_funds, value=funding)
    logger.info(f"[DEPLOY] Ledger at {ledger.address}, owner {ledger.owner}, house balance {ledger.house_balance}")
    return ledger
