"""
Database repository for the spin history and ledger event log.
SQLite, one connection per operation.
"""
import json
import sqlite3
import logging
from typing import Optional, List
from datetime import datetime
from .models import SpinRecord, EventRecord, SpinMode

logger = logging.getLogger(__name__)


class Database:
    """Database repository."""

    def __init__(self, db_path: str = "roulette.db"):
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        # Resolved spins (one row per SpinResult event)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS spins (
                spin_id INTEGER PRIMARY KEY AUTOINCREMENT,
                player TEXT NOT NULL,
                mode TEXT NOT NULL,
                bet_amount TEXT NOT NULL,
                prize TEXT NOT NULL,
                random_number INTEGER NOT NULL,
                paid INTEGER NOT NULL,
                block_number INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                contract_address TEXT,
                commit_block INTEGER,
                commit_hash TEXT,
                secret TEXT,
                prevrandao TEXT,
                commit_blockhash TEXT,
                recorded_at TEXT NOT NULL
            )
        """)

        # Append-only event log
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS events (
                event_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                address TEXT,
                block_number INTEGER NOT NULL,
                payload TEXT NOT NULL,
                recorded_at TEXT NOT NULL
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_spins_player ON spins(player)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_spins_block ON spins(block_number)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_spins_contract ON spins(contract_address)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_events_name ON events(name)")

        conn.commit()
        conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    # === Spin Operations ===

    def save_spin(self, spin: SpinRecord) -> int:
        """Save a resolved spin. Returns spin_id."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        # Wei amounts overflow SQLite integers, store them as text
        cursor.execute("""
            INSERT INTO spins (
                player, mode, bet_amount, prize, random_number, paid,
                block_number, timestamp, contract_address, commit_block, commit_hash,
                secret, prevrandao, commit_blockhash, recorded_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            spin.player, spin.mode.value, str(spin.bet_amount), str(spin.prize),
            spin.random_number, int(spin.paid), spin.block_number, spin.timestamp,
            spin.contract_address, spin.commit_block, spin.commit_hash, spin.secret,
            str(spin.prevrandao) if spin.prevrandao is not None else None,
            spin.commit_blockhash, spin.recorded_at.isoformat()
        ))
        spin_id = cursor.lastrowid

        conn.commit()
        conn.close()
        return spin_id

    def get_spin(self, spin_id: int) -> Optional[SpinRecord]:
        """Get spin by ID."""
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM spins WHERE spin_id = ?", (spin_id,))
        row = cursor.fetchone()
        conn.close()

        if not row:
            return None

        return self._row_to_spin(row)

    def get_player_spins(
        self, player: str, limit: int = 10, contract_address: Optional[str] = None
    ) -> List[SpinRecord]:
        """Get recent spins for a player, optionally for one ledger deployment."""
        conn = self._connect()
        cursor = conn.cursor()

        query = "SELECT * FROM spins WHERE player = ?"
        params = [player]

        if contract_address:
            query += " AND contract_address = ?"
            params.append(contract_address)

        query += " ORDER BY block_number DESC, spin_id DESC LIMIT ?"
        params.append(limit)

        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_spin(row) for row in rows]

    def get_recent_spins(self, limit: int = 10, contract_address: Optional[str] = None) -> List[SpinRecord]:
        """Get recent spins (all players) for public display."""
        conn = self._connect()
        cursor = conn.cursor()

        query = "SELECT * FROM spins"
        params = []

        # Block numbers only order spins within one deployment
        if contract_address:
            query += " WHERE contract_address = ?"
            params.append(contract_address)

        query += " ORDER BY block_number DESC, spin_id DESC LIMIT ?"
        params.append(limit)

        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_spin(row) for row in rows]

    def _row_to_spin(self, row: sqlite3.Row) -> SpinRecord:
        """Convert database row to SpinRecord object."""
        return SpinRecord(
            spin_id=row["spin_id"],
            player=row["player"],
            mode=SpinMode(row["mode"]),
            bet_amount=int(row["bet_amount"]),
            prize=int(row["prize"]),
            random_number=row["random_number"],
            paid=bool(row["paid"]),
            block_number=row["block_number"],
            timestamp=row["timestamp"],
            contract_address=row["contract_address"],
            commit_block=row["commit_block"],
            commit_hash=row["commit_hash"],
            secret=row["secret"],
            prevrandao=int(row["prevrandao"]) if row["prevrandao"] is not None else None,
            commit_blockhash=row["commit_blockhash"],
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )

    # === Event Operations ===

    def save_events(self, events: List[EventRecord]):
        """Append events from one transaction in a single commit."""
        if not events:
            return

        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.executemany("""
            INSERT INTO events (name, address, block_number, payload, recorded_at)
            VALUES (?, ?, ?, ?, ?)
        """, [
            (
                event.name, event.address, event.block_number,
                json.dumps(event.payload, default=str), event.recorded_at.isoformat()
            )
            for event in events
        ])

        conn.commit()
        conn.close()

    def get_events(
        self, name: Optional[str] = None, limit: int = 50, address: Optional[str] = None
    ) -> List[EventRecord]:
        """Get most recent events, optionally filtered by event name and emitting ledger."""
        conn = self._connect()
        cursor = conn.cursor()

        query = "SELECT * FROM events WHERE 1=1"
        params = []

        if name:
            query += " AND name = ?"
            params.append(name)

        if address:
            query += " AND address = ?"
            params.append(address)

        query += " ORDER BY event_id DESC LIMIT ?"
        params.append(limit)

        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: sqlite3.Row) -> EventRecord:
        return EventRecord(
            event_id=row["event_id"],
            name=row["name"],
            address=row["address"],
            block_number=row["block_number"],
            payload=json.loads(row["payload"]),
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )
