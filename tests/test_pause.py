"""
Pause control and emergency withdrawal.
"""
import pytest
from web3 import Web3

from game import hash_secret
from game.exceptions import EnforcedPause, ExpectedPause, Unauthorized
from tests.conftest import HOUSE_FUNDING, SECRET

SPIN_COST = Web3.to_wei(0.1, "ether")


def test_pause_blocks_spins(chain, ledger, owner, player):
    receipt = chain.transact(owner, ledger.pause)
    assert receipt.find("Paused").account == owner
    assert chain.call(ledger.get_stats).paused is True

    with pytest.raises(EnforcedPause):
        chain.transact(player, ledger.quick_spin, value=SPIN_COST)
    with pytest.raises(EnforcedPause):
        chain.transact(player, ledger.commit_spin, hash_secret(SECRET), value=SPIN_COST)


def test_pause_blocks_reveal(chain, ledger, owner, player, committed):
    chain.transact(owner, ledger.pause)

    with pytest.raises(EnforcedPause):
        chain.transact(player, ledger.reveal_spin, SECRET)

    chain.transact(owner, ledger.unpause)
    chain.transact(player, ledger.reveal_spin, SECRET)
    assert not chain.call(ledger.has_pending_commit, player)


def test_pause_state_guards(chain, ledger, owner):
    with pytest.raises(ExpectedPause):
        chain.transact(owner, ledger.unpause)

    chain.transact(owner, ledger.pause)
    with pytest.raises(EnforcedPause):
        chain.transact(owner, ledger.pause)


def test_only_owner_pauses(chain, ledger, owner, player):
    with pytest.raises(Unauthorized):
        chain.transact(player, ledger.pause)

    chain.transact(owner, ledger.pause)
    with pytest.raises(Unauthorized):
        chain.transact(player, ledger.unpause)
    with pytest.raises(Unauthorized):
        chain.transact(player, ledger.emergency_withdraw)


def test_treasury_works_while_paused(chain, ledger, owner):
    chain.transact(owner, ledger.pause)

    chain.transact(owner, ledger.deposit_funds, value=Web3.to_wei(1, "ether"))
    chain.transact(owner, ledger.withdraw_funds, Web3.to_wei(2, "ether"))
    assert ledger.house_balance == HOUSE_FUNDING - Web3.to_wei(1, "ether")


def test_emergency_withdraw_requires_pause(chain, ledger, owner):
    with pytest.raises(ExpectedPause):
        chain.transact(owner, ledger.emergency_withdraw)
    assert ledger.house_balance == HOUSE_FUNDING


def test_pause_emergency_unpause(chain, ledger, owner, player):
    chain.send_transaction(player, ledger.address, Web3.to_wei(3, "ether"))
    held = chain.balance_of(ledger.address)
    owner_before = chain.balance_of(owner)

    chain.transact(owner, ledger.pause)
    receipt = chain.transact(owner, ledger.emergency_withdraw)

    assert receipt.find("FundsWithdrawn").amount == held
    assert chain.balance_of(owner) == owner_before + held
    assert chain.balance_of(ledger.address) == 0
    assert ledger.house_balance == 0

    chain.transact(owner, ledger.unpause)
    assert ledger.paused is False

    # Empty house refuses spins until refunded
    chain.transact(owner, ledger.deposit_funds, value=Web3.to_wei(10, "ether"))
    chain.transact(player, ledger.quick_spin, value=SPIN_COST)
    assert chain.call(ledger.get_player_stats, player).total_spins == 1


def test_views_available_while_paused(chain, ledger, owner, player):
    chain.transact(owner, ledger.pause)
    assert chain.call(ledger.get_player_stats, player).total_spins == 0
    assert chain.call(ledger.get_commit_details, player).commit_hash is None
    assert chain.call(ledger.has_pending_commit, player) is False
