"""
HTTP API against an in-process chain.
"""
import pytest
from fastapi.testclient import TestClient
from web3 import Web3

from api import create_app
from database import Database, SpinMode, SpinRecord
from game import LocalChain, deploy_ledger, hash_secret
from security import AuditLogger
from tests.conftest import HOUSE_FUNDING, SECRET

SPIN_COST = Web3.to_wei(0.1, "ether")
SECRET_HEX = "0x" + SECRET.hex()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "api.db")


@pytest.fixture
def client(db_path, chain, ledger):
    app = create_app(chain=chain, ledger=ledger, db=Database(db_path), audit=AuditLogger(db_path))
    return TestClient(app)


def commit(client, player):
    return client.post("/api/spin/commit", json={
        "sender": player,
        "value": SPIN_COST,
        "secret_hash": "0x" + hash_secret(SECRET).hex(),
    })


class TestReads:

    def test_root_and_health(self, client, ledger):
        assert client.get("/").json()["contract_address"] == ledger.address
        assert client.get("/health").json()["status"] == "healthy"

    def test_stats(self, client, ledger, owner):
        data = client.get("/api/stats").json()
        assert data["house_balance"] == HOUSE_FUNDING
        assert data["contract_balance"] == HOUSE_FUNDING
        assert data["spin_cost"] == SPIN_COST
        assert data["owner"] == owner
        assert data["paused"] is False

    def test_tiers(self, client):
        data = client.get("/api/tiers").json()
        assert len(data["tiers"]) == 6
        assert data["return_to_player"] == pytest.approx(0.385)

    def test_player_lowercase_address(self, client, player):
        response = client.get(f"/api/player/{player.lower()}")
        assert response.status_code == 200
        assert response.json()["address"] == player
        assert response.json()["total_spins"] == 0

    def test_invalid_address(self, client):
        assert client.get("/api/player/0x1234").status_code == 400

    def test_dev_accounts(self, client, chain):
        accounts = client.get("/api/dev/accounts").json()
        assert [account["address"] for account in accounts] == chain.accounts


class TestSpins:

    def test_commit_reveal_flow(self, client, chain, player):
        response = commit(client, player)
        assert response.status_code == 200
        commit_block = response.json()["block_number"]
        assert response.json()["reveal_block"] == commit_block + 2

        pending = client.get(f"/api/player/{player}/commit").json()
        assert pending["has_pending_commit"] is True
        assert pending["commit_hash"] == response.json()["commit_hash"]

        early = client.post("/api/spin/reveal", json={"sender": player, "secret": SECRET_HEX})
        assert early.status_code == 400
        assert early.json()["detail"]["error"] == "RevealTooEarly"
        assert early.json()["detail"]["blocks_remaining"] == 1

        assert client.post("/api/dev/mine", json={"blocks": 1}).status_code == 200

        reveal = client.post("/api/spin/reveal", json={"sender": player, "secret": SECRET_HEX})
        assert reveal.status_code == 200
        spin = reveal.json()
        assert spin["player"] == player
        assert 0 <= spin["random_number"] < 1000

        history = client.get(f"/api/player/{player}/spins").json()
        assert len(history) == 1
        assert history[0]["mode"] == "commit_reveal"
        assert history[0]["commit_block"] == commit_block
        assert history[0]["secret"] == SECRET_HEX
        assert history[0]["time_display"].endswith("UTC")

        verify = client.get(f"/api/spin/verify/{history[0]['spin_id']}").json()
        assert verify["verifiable"] is True
        assert verify["is_fair"] is True

    def test_wrong_secret_is_audited(self, client, chain, player):
        commit(client, player)
        chain.mine(2)

        response = client.post("/api/spin/reveal", json={"sender": player, "secret": "0x" + "22" * 32})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidSecret"

        events = client.app.state.audit.get_recent_events()
        assert events[0]["event_type"] == "secret_mismatch"
        assert events[0]["address"] == player

    def test_quick_spin(self, client, player):
        response = client.post("/api/spin/quick", json={"sender": player, "value": SPIN_COST})
        assert response.status_code == 200

        recent = client.get("/api/spins/recent").json()
        assert recent[0]["mode"] == "quick"
        assert recent[0]["random_number"] == response.json()["random_number"]

        verify = client.get(f"/api/spin/verify/{recent[0]['spin_id']}").json()
        assert verify["verifiable"] is False

        results = client.get("/api/events", params={"name": "SpinResult"}).json()
        assert results[0]["payload"]["player"] == player

    def test_quick_spin_wrong_amount(self, client, player):
        response = client.post("/api/spin/quick", json={"sender": player, "value": 1})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "IncorrectBetAmount"
        assert detail["required"] == SPIN_COST

    def test_cooldown_over_http(self, client, player):
        client.post("/api/spin/quick", json={"sender": player, "value": SPIN_COST})
        response = client.post("/api/spin/quick", json={"sender": player, "value": SPIN_COST})
        assert response.json()["detail"]["error"] == "CooldownNotExpired"

        client.post("/api/dev/increase-time", json={"seconds": 30})
        assert client.post("/api/spin/quick", json={"sender": player, "value": SPIN_COST}).status_code == 200

    def test_unknown_spin(self, client):
        assert client.get("/api/spin/verify/999").status_code == 404

    def test_verify_after_restart(self, client, chain, player, db_path):
        commit(client, player)
        chain.mine(2)
        assert client.post("/api/spin/reveal", json={"sender": player, "secret": SECRET_HEX}).status_code == 200
        spin_id = client.get("/api/spins/recent").json()[0]["spin_id"]

        # Fresh chain and deployment on the same history file
        new_chain = LocalChain(seed=b"restarted", clock=lambda: 1_700_000_000)
        new_ledger = deploy_ledger(new_chain, new_chain.accounts[0], funding=HOUSE_FUNDING)
        restarted = TestClient(create_app(
            chain=new_chain,
            ledger=new_ledger,
            db=Database(db_path),
            audit=AuditLogger(db_path),
        ))

        response = restarted.get(f"/api/spin/verify/{spin_id}")
        assert response.status_code == 200
        assert response.json()["is_fair"] is True
        assert response.json()["contract_address"] == client.app.state.ledger.address

        assert restarted.get("/api/spins/recent").json() == []
        assert restarted.get("/api/events", params={"name": "SpinResult"}).json() == []

    def test_verify_without_block_data(self, client, player, db_path):
        spin_id = Database(db_path).save_spin(SpinRecord(
            player=player,
            mode=SpinMode.COMMIT_REVEAL,
            bet_amount=SPIN_COST,
            prize=0,
            random_number=1,
            paid=False,
            block_number=5,
            timestamp=1_700_000_005,
            commit_block=3,
            commit_hash="0x" + "aa" * 32,
            secret=SECRET_HEX,
        ))
        assert client.get(f"/api/spin/verify/{spin_id}").status_code == 409


class TestAdmin:

    def test_non_owner_rejected(self, client, player):
        response = client.post("/api/admin/pause", json={"sender": player})
        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "Unauthorized"

        events = client.app.state.audit.get_recent_events()
        assert events[0]["event_type"] == "unauthorized_access"

    def test_deposit_and_withdraw(self, client, ledger, owner):
        assert client.post("/api/admin/deposit", json={"sender": owner, "value": SPIN_COST}).status_code == 200
        assert ledger.house_balance == HOUSE_FUNDING + SPIN_COST

        too_much = client.post("/api/admin/withdraw", json={"sender": owner, "amount": HOUSE_FUNDING * 2})
        assert too_much.status_code == 400
        assert too_much.json()["detail"]["message"] == "Insufficient balance"

        response = client.post("/api/admin/withdraw", json={"sender": owner, "amount": SPIN_COST})
        assert response.status_code == 200
        assert response.json()["events"][0]["name"] == "FundsWithdrawn"
        assert ledger.house_balance == HOUSE_FUNDING

    def test_pause_emergency_unpause(self, client, ledger, owner, player):
        assert client.post("/api/admin/pause", json={"sender": owner}).status_code == 200

        paused = client.post("/api/spin/quick", json={"sender": player, "value": SPIN_COST})
        assert paused.json()["detail"]["error"] == "EnforcedPause"

        assert client.post("/api/admin/emergency-withdraw", json={"sender": owner}).status_code == 200
        assert client.get("/api/stats").json()["contract_balance"] == 0

        assert client.post("/api/admin/unpause", json={"sender": owner}).status_code == 200
        assert ledger.paused is False

        audit = client.get("/api/admin/audit", params={"sender": owner}).json()
        assert audit["summary"]["total_critical"] == 1

    def test_audit_requires_owner(self, client, player):
        assert client.get("/api/admin/audit", params={"sender": player}).status_code == 403

    def test_bare_transfer(self, client, ledger, player):
        response = client.post("/api/transfer", json={"sender": player, "value": Web3.to_wei(1, "ether")})
        assert response.status_code == 200
        assert response.json()["events"][0]["name"] == "FundsDeposited"
        assert ledger.house_balance == HOUSE_FUNDING + Web3.to_wei(1, "ether")
