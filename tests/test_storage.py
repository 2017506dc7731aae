"""
Spin history, event log and audit trail persistence.
"""
import pytest
from web3 import Web3

from database import Database, EventRecord, SpinMode, SpinRecord
from security import AuditEventType, AuditLogger, AuditSeverity

PLAYER = Web3.to_checksum_address("0x" + "12" * 20)
OTHER = Web3.to_checksum_address("0x" + "34" * 20)
LEDGER = Web3.to_checksum_address("0x" + "56" * 20)
OTHER_LEDGER = Web3.to_checksum_address("0x" + "78" * 20)


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "roulette.db"))


@pytest.fixture
def audit(tmp_path):
    return AuditLogger(str(tmp_path / "roulette.db"))


def make_spin(player=PLAYER, block_number=10, **overrides) -> SpinRecord:
    values = dict(
        player=player,
        mode=SpinMode.QUICK,
        bet_amount=Web3.to_wei(0.1, "ether"),
        prize=Web3.to_wei(1, "ether"),
        random_number=999,
        paid=True,
        block_number=block_number,
        timestamp=1_700_000_000 + block_number,
    )
    values.update(overrides)
    return SpinRecord(**values)


class TestSpins:

    def test_save_and_get(self, db):
        spin = make_spin(
            mode=SpinMode.COMMIT_REVEAL,
            commit_block=8,
            commit_hash="0x" + "aa" * 32,
            secret="0x" + "bb" * 32,
        )
        spin_id = db.save_spin(spin)

        stored = db.get_spin(spin_id)
        assert stored.spin_id == spin_id
        assert stored.mode == SpinMode.COMMIT_REVEAL
        assert stored.prize == Web3.to_wei(1, "ether")
        assert stored.paid is True
        assert stored.commit_block == 8
        assert stored.commit_hash == "0x" + "aa" * 32
        assert stored.secret == "0x" + "bb" * 32

    def test_missing_spin(self, db):
        assert db.get_spin(42) is None

    def test_player_spins_newest_first(self, db):
        for block in (10, 12, 11):
            db.save_spin(make_spin(block_number=block))
        db.save_spin(make_spin(player=OTHER, block_number=13))

        spins = db.get_player_spins(PLAYER)
        assert [spin.block_number for spin in spins] == [12, 11, 10]
        assert db.get_player_spins(PLAYER, limit=1)[0].block_number == 12
        assert [spin.player for spin in db.get_recent_spins(2)] == [OTHER, PLAYER]

    def test_history_scoped_to_deployment(self, db):
        db.save_spin(make_spin(block_number=50, contract_address=LEDGER))
        db.save_spin(make_spin(block_number=3, contract_address=OTHER_LEDGER))

        assert [spin.block_number for spin in db.get_recent_spins(contract_address=OTHER_LEDGER)] == [3]
        assert [spin.block_number for spin in db.get_player_spins(PLAYER, contract_address=LEDGER)] == [50]
        assert len(db.get_recent_spins()) == 2

    def test_proof_data_round_trip(self, db):
        prevrandao = 2 ** 255 + 7
        spin_id = db.save_spin(make_spin(
            mode=SpinMode.COMMIT_REVEAL,
            prevrandao=prevrandao,
            commit_blockhash="0x" + "cc" * 32,
        ))

        stored = db.get_spin(spin_id)
        assert stored.prevrandao == prevrandao
        assert stored.commit_blockhash == "0x" + "cc" * 32
        assert db.get_spin(db.save_spin(make_spin())).prevrandao is None


class TestEvents:

    def test_filter_by_ledger(self, db):
        db.save_events([
            EventRecord(name="Paused", block_number=2, payload={}, address=LEDGER),
            EventRecord(name="Paused", block_number=9, payload={}, address=OTHER_LEDGER),
        ])
        assert [event.block_number for event in db.get_events("Paused", address=LEDGER)] == [2]

    def test_save_and_filter(self, db):
        db.save_events([
            EventRecord(name="FundsDeposited", block_number=1, payload={"sender": PLAYER, "amount": 5}),
            EventRecord(name="Paused", block_number=2, payload={"account": PLAYER}),
        ])

        events = db.get_events()
        assert [event.name for event in events] == ["Paused", "FundsDeposited"]
        deposits = db.get_events("FundsDeposited")
        assert len(deposits) == 1
        assert deposits[0].payload == {"sender": PLAYER, "amount": 5}

    def test_empty_batch(self, db):
        db.save_events([])
        assert db.get_events() == []


class TestAudit:

    def test_log_and_query(self, audit):
        audit.log(AuditEventType.ADMIN_ACTION, address=PLAYER, details="pause")
        audit.log(AuditEventType.SECRET_MISMATCH, AuditSeverity.WARNING, PLAYER, "127.0.0.1", "bad secret")

        events = audit.get_recent_events()
        assert [event["event_type"] for event in events] == ["secret_mismatch", "admin_action"]

        warnings = audit.get_recent_events(severity=AuditSeverity.WARNING)
        assert len(warnings) == 1
        assert warnings[0]["ip_address"] == "127.0.0.1"

    def test_security_summary(self, audit):
        for _ in range(6):
            audit.log(AuditEventType.RATE_LIMIT_EXCEEDED, AuditSeverity.WARNING, OTHER)
        audit.log(AuditEventType.TRANSFER_FAILED, AuditSeverity.CRITICAL, PLAYER)

        summary = audit.get_security_summary()
        assert summary["total_critical"] == 1
        assert summary["total_warnings"] == 6
        assert summary["top_events"]["rate_limit_exceeded"] == 6
        assert summary["suspicious_addresses"][0][0] == OTHER
