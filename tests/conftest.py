"""
Shared fixtures: a deterministic local chain with a deployed, funded ledger.
"""
import pytest
from web3 import Web3

from game import LocalChain, deploy_ledger, hash_secret, REVEAL_DELAY

START_TIME = 1_700_000_000
HOUSE_FUNDING = Web3.to_wei(100, "ether")
SECRET = b"\x11" * 32


@pytest.fixture
def chain():
    # Frozen wall clock: block timestamps advance one second per block
    return LocalChain(seed=b"test-seed", clock=lambda: START_TIME)


@pytest.fixture
def owner(chain):
    return chain.accounts[0]


@pytest.fixture
def player(chain):
    return chain.accounts[1]


@pytest.fixture
def other_player(chain):
    return chain.accounts[2]


@pytest.fixture
def ledger(chain, owner):
    return deploy_ledger(chain, owner, funding=HOUSE_FUNDING)


@pytest.fixture
def fixed_draw(monkeypatch):
    """Force every spin to land on the given draw."""
    def _fix(draw: int):
        monkeypatch.setattr("game.ledger.quick_draw", lambda *args: draw)
        monkeypatch.setattr("game.ledger.reveal_draw", lambda *args: draw)
    return _fix


@pytest.fixture
def committed(chain, ledger, player):
    """Player has committed SECRET and waited out the reveal delay."""
    receipt = chain.transact(player, ledger.commit_spin, hash_secret(SECRET), value=ledger.SPIN_COST)
    chain.mine(REVEAL_DELAY - 1)
    return receipt
