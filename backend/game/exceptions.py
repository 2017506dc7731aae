"""
Errors raised by the spin ledger and the local chain.

Every LedgerError aborts the transaction that raised it; the chain restores
balances, ledger state and events from the snapshot taken before the call.
"""
from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger reverts.

    `context` carries the diagnostic values (amounts, blocks, seconds) so
    callers can render them without parsing the message.
    """

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class Unauthorized(LedgerError):
    """Caller is not the ledger owner."""

    def __init__(self, caller: str):
        super().__init__(f"Account {caller} is not the owner", caller=caller)


class EnforcedPause(LedgerError):
    """Operation requires the ledger to be active."""

    def __init__(self):
        super().__init__("Ledger is paused")


class ExpectedPause(LedgerError):
    """Operation requires the ledger to be paused."""

    def __init__(self):
        super().__init__("Ledger is not paused")


class ReentrantCall(LedgerError):
    """A guarded entry point was entered while another guarded call was running."""

    def __init__(self):
        super().__init__("Reentrant call")


class InvalidAmount(LedgerError):
    def __init__(self, message: str = "Must deposit something"):
        super().__init__(message)


class InsufficientBalance(LedgerError):
    """Owner withdrawal larger than the house balance."""

    def __init__(self, requested: int, available: int):
        super().__init__(
            "Insufficient balance",
            requested=requested,
            available=available,
        )


class InsufficientHouseBalance(LedgerError):
    """House pool cannot cover the largest possible prize."""

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient house balance: required {required} wei, available {available} wei",
            required=required,
            available=available,
        )


class IncorrectBetAmount(LedgerError):
    def __init__(self, sent: int, required: int):
        super().__init__(
            f"Incorrect bet amount: sent {sent} wei, required {required} wei",
            sent=sent,
            required=required,
        )


class CooldownNotExpired(LedgerError):
    def __init__(self, remaining: int):
        super().__init__(
            f"Cooldown not expired: wait {remaining} more seconds",
            remaining=remaining,
        )


class CommitAlreadyPending(LedgerError):
    def __init__(self, block_number: int):
        super().__init__(
            f"Previous commit from block {block_number} has not been revealed",
            block_number=block_number,
        )


class NoCommitFound(LedgerError):
    def __init__(self):
        super().__init__("No commit found")


class AlreadyRevealed(LedgerError):
    def __init__(self):
        super().__init__("Commit already revealed")


class RevealTooEarly(LedgerError):
    def __init__(self, blocks_remaining: int):
        super().__init__(
            f"Reveal too early: wait {blocks_remaining} more blocks",
            blocks_remaining=blocks_remaining,
        )


class InvalidSecret(LedgerError):
    """Revealed secret does not match the stored commitment."""

    def __init__(self):
        super().__init__("Secret does not match commitment")


class TransferFailed(LedgerError):
    def __init__(self, recipient: str, amount: int):
        super().__init__(
            f"Transfer of {amount} wei to {recipient} failed",
            recipient=recipient,
            amount=amount,
        )


class ChainError(Exception):
    """Execution environment failure (not a ledger revert)."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class InsufficientFunds(ChainError):
    """Sender cannot cover the value attached to a transaction."""

    def __init__(self, address: str, required: int, available: int):
        super().__init__(
            f"Sender {address} has {available} wei, needs {required} wei",
            address=address,
        )
        self.required = required
        self.available = available
