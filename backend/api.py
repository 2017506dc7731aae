"""
FastAPI web backend for Chain Roulette.
Hosts the spin ledger on a local dev chain and records spin history to SQLite.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from web3 import Web3

import config
from database import Database, SpinRecord, EventRecord, SpinMode
from game import (
    LocalChain,
    SpinLedger,
    deploy_ledger,
    SPIN_COST,
    MAX_PRIZE,
    BLOCKHASH_LOOKBACK,
    ZERO_HASH,
    tier_for_draw,
    get_tier_table,
    expected_payout,
    verify_reveal_draw,
)
from game.exceptions import (
    LedgerError,
    ChainError,
    Unauthorized,
    CooldownNotExpired,
    InvalidSecret,
    ReentrantCall,
    TransferFailed,
)
from security import AuditLogger, AuditEventType, AuditSeverity
from utils import format_ether, format_timestamp, is_valid_address, is_valid_bytes32, is_valid_amount

logger = logging.getLogger(__name__)


# ===== MODELS =====

class ValueRequest(BaseModel):
    """Transaction carrying value (deposit, bare transfer, quick spin)."""
    sender: str
    value: int  # wei


class SenderRequest(BaseModel):
    sender: str


class CommitSpinRequest(BaseModel):
    sender: str
    value: int  # wei, must equal the spin cost
    secret_hash: str  # keccak256(secret), 0x-prefixed


class RevealSpinRequest(BaseModel):
    sender: str
    secret: str  # 0x-prefixed 32 byte secret


class WithdrawRequest(BaseModel):
    sender: str
    amount: int  # wei


class MineRequest(BaseModel):
    blocks: int = 1


class IncreaseTimeRequest(BaseModel):
    seconds: int


class StatsResponse(BaseModel):
    contract_address: str
    owner: str
    contract_balance: int
    house_balance: int
    house_balance_display: str
    spin_cost: int
    max_prize: int
    paused: bool
    block_number: int


class PlayerResponse(BaseModel):
    address: str
    total_spins: int
    total_winnings: int
    last_spin_time: int
    can_spin_again_at: int
    has_pending_commit: bool


class CommitDetailsResponse(BaseModel):
    address: str
    commit_hash: Optional[str]
    block_number: int
    bet_amount: int
    revealed: bool
    reveal_block: int
    has_pending_commit: bool


class CommitResponse(BaseModel):
    block_number: int
    commit_hash: str
    reveal_block: int


class SpinResponse(BaseModel):
    block_number: int
    player: str
    random_number: int
    tier: str
    prize: int
    prize_display: str
    paid: bool


class TxResponse(BaseModel):
    block_number: int
    events: List[dict]


class SpinHistoryResponse(BaseModel):
    spin_id: int
    player: str
    mode: str
    bet_amount: int
    prize: int
    tier: str
    random_number: int
    paid: bool
    block_number: int
    timestamp: int
    time_display: str
    contract_address: Optional[str]
    commit_block: Optional[int]
    commit_hash: Optional[str]
    secret: Optional[str]


def _hex(value: Optional[bytes]) -> Optional[str]:
    return "0x" + value.hex() if value is not None else None


def _spin_response(spin: SpinRecord) -> SpinHistoryResponse:
    return SpinHistoryResponse(
        spin_id=spin.spin_id,
        player=spin.player,
        mode=spin.mode.value,
        bet_amount=spin.bet_amount,
        prize=spin.prize,
        tier=tier_for_draw(spin.random_number),
        random_number=spin.random_number,
        paid=spin.paid,
        block_number=spin.block_number,
        timestamp=spin.timestamp,
        time_display=format_timestamp(spin.timestamp),
        contract_address=spin.contract_address,
        commit_block=spin.commit_block,
        commit_hash=spin.commit_hash,
        secret=spin.secret,
    )


def require_address(address: str) -> str:
    """Validate an address and return it checksummed."""
    is_valid, error = is_valid_address(address)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)
    return Web3.to_checksum_address(address)


def require_amount(amount: int):
    is_valid, error = is_valid_amount(amount)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)


def require_bytes32(value: str, label: str):
    is_valid, error = is_valid_bytes32(value, label)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)


def create_chain() -> LocalChain:
    """Local dev chain built from configuration."""
    return LocalChain(
        chain_id=config.CHAIN_ID,
        seed=config.CHAIN_SEED,
        account_count=config.DEV_ACCOUNT_COUNT,
        account_balance=Web3.to_wei(config.DEV_ACCOUNT_BALANCE_ETHER, "ether"),
    )


def create_app(
    chain: Optional[LocalChain] = None,
    ledger: Optional[SpinLedger] = None,
    db: Optional[Database] = None,
    audit: Optional[AuditLogger] = None,
) -> FastAPI:
    """Build the API around a chain and a deployed ledger.

    Missing pieces are created from configuration: a fresh dev chain, a ledger
    deployed by the first dev account and funded with the initial house
    funding, and the SQLite history at DB_PATH.
    """
    if chain is None:
        chain = create_chain()
    if ledger is None:
        ledger = deploy_ledger(
            chain,
            chain.accounts[0],
            funding=Web3.to_wei(config.INITIAL_HOUSE_FUNDING_ETHER, "ether"),
            cooldown=config.COOLDOWN_SECONDS,
            reveal_delay=config.REVEAL_DELAY_BLOCKS,
        )
    if db is None:
        db = Database(config.DB_PATH)
    if audit is None:
        audit = AuditLogger(config.DB_PATH)

    app = FastAPI(title="Chain Roulette API", version="1.0.0")

    # CORS - restrict to your frontend's domain in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.chain = chain
    app.state.ledger = ledger
    app.state.db = db
    app.state.audit = audit

    # ===== TRANSACTION HELPERS =====

    def audit_rejection(error: LedgerError, sender: str, request: Request, action: str):
        """Record a reverted call in the audit log."""
        ip_address = request.client.host if request.client else None
        details = f"{action}: {error.message}"

        if isinstance(error, Unauthorized):
            audit.log(AuditEventType.UNAUTHORIZED_ACCESS, AuditSeverity.WARNING, sender, ip_address, details)
        elif isinstance(error, CooldownNotExpired):
            audit.log(AuditEventType.RATE_LIMIT_EXCEEDED, AuditSeverity.WARNING, sender, ip_address, details)
        elif isinstance(error, InvalidSecret):
            audit.log(AuditEventType.SECRET_MISMATCH, AuditSeverity.WARNING, sender, ip_address, details)
        elif isinstance(error, ReentrantCall):
            audit.log(AuditEventType.REENTRANCY_BLOCKED, AuditSeverity.CRITICAL, sender, ip_address, details)
        elif isinstance(error, TransferFailed):
            audit.log(AuditEventType.TRANSFER_FAILED, AuditSeverity.CRITICAL, sender, ip_address, details)
        else:
            audit.log(AuditEventType.SPIN_REJECTED, AuditSeverity.INFO, sender, ip_address, details)

    def submit(request: Request, action: str, sender: str, fn, *args, value: int = 0):
        """Mine a ledger transaction and store its events.

        Raises:
            HTTPException: 400 on a revert (403 for owner-only calls), with the
                error name, message and diagnostic context as detail
        """
        try:
            receipt = chain.transact(sender, fn, *args, value=value)
        except LedgerError as e:
            audit_rejection(e, sender, request, action)
            status_code = 403 if isinstance(e, Unauthorized) else 400
            raise HTTPException(
                status_code=status_code,
                detail={"error": type(e).__name__, "message": e.message, **e.context},
            )
        except (ChainError, ValueError) as e:
            logger.warning(f"[API] {action} from {sender} rejected: {e}")
            raise HTTPException(status_code=400, detail={"error": type(e).__name__, "message": str(e)})

        db.save_events([
            EventRecord(
                name=event.name,
                block_number=receipt.block_number,
                payload=event.to_dict(),
                address=receipt.to,
            )
            for event in receipt.events
        ])
        return receipt

    def record_spin(receipt, mode: SpinMode, commit=None, secret: Optional[str] = None) -> SpinResponse:
        result = receipt.find("SpinResult")
        spin = SpinRecord(
            player=result.player,
            mode=mode,
            bet_amount=result.bet_amount,
            prize=result.prize,
            random_number=result.random_number,
            paid=result.paid,
            block_number=receipt.block_number,
            timestamp=result.timestamp,
            contract_address=ledger.address,
        )

        if commit is not None:
            # Keep the block inputs so the draw stays verifiable after the chain is gone
            spin.commit_block = commit.block_number
            spin.commit_hash = _hex(commit.commit_hash)
            spin.secret = secret
            spin.prevrandao = chain.blocks[receipt.block_number].prevrandao
            if receipt.block_number - commit.block_number <= BLOCKHASH_LOOKBACK:
                spin.commit_blockhash = _hex(chain.blocks[commit.block_number].hash)
            else:
                spin.commit_blockhash = _hex(ZERO_HASH)

        db.save_spin(spin)

        if result.prize > 0 and not result.paid:
            audit.log(
                AuditEventType.PAYOUT_FAILED,
                AuditSeverity.WARNING,
                address=result.player,
                details=f"prize {result.prize} wei withheld at block {receipt.block_number}",
            )

        return SpinResponse(
            block_number=receipt.block_number,
            player=result.player,
            random_number=result.random_number,
            tier=tier_for_draw(result.random_number),
            prize=result.prize,
            prize_display=format_ether(result.prize),
            paid=result.paid,
        )

    def tx_response(receipt) -> TxResponse:
        return TxResponse(
            block_number=receipt.block_number,
            events=[{"name": event.name, **event.to_dict()} for event in receipt.events],
        )

    # ===== API ENDPOINTS =====

    @app.get("/")
    async def root():
        """API root."""
        return {
            "name": "Chain Roulette API",
            "version": "1.0.0",
            "status": "online",
            "network": config.NETWORK_NAME,
            "contract_address": ledger.address,
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

    # === READ-ONLY ENDPOINTS ===

    @app.get("/api/stats")
    async def get_stats() -> StatsResponse:
        """House statistics."""
        stats = chain.call(ledger.get_stats)
        return StatsResponse(
            contract_address=ledger.address,
            owner=ledger.owner,
            contract_balance=stats.contract_balance,
            house_balance=stats.house_balance,
            house_balance_display=format_ether(stats.house_balance),
            spin_cost=stats.spin_cost,
            max_prize=MAX_PRIZE,
            paused=stats.paused,
            block_number=chain.latest_block.number,
        )

    @app.get("/api/tiers")
    async def get_tiers():
        """Prize tier table and expected return to player."""
        expected_wei, rtp = expected_payout()
        return {
            "spin_cost": SPIN_COST,
            "tiers": get_tier_table(),
            "expected_prize": expected_wei,
            "return_to_player": rtp,
        }

    @app.get("/api/player/{address}")
    async def get_player(address: str) -> PlayerResponse:
        """Player statistics and cooldown information."""
        address = require_address(address)
        stats = chain.call(ledger.get_player_stats, address)
        return PlayerResponse(
            address=address,
            total_spins=stats.total_spins,
            total_winnings=stats.total_winnings,
            last_spin_time=stats.last_spin_time,
            can_spin_again_at=stats.can_spin_again_at,
            has_pending_commit=chain.call(ledger.has_pending_commit, address),
        )

    @app.get("/api/player/{address}/commit")
    async def get_commit(address: str) -> CommitDetailsResponse:
        """Latest commit of a player."""
        address = require_address(address)
        details = chain.call(ledger.get_commit_details, address)
        return CommitDetailsResponse(
            address=address,
            commit_hash=_hex(details.commit_hash),
            block_number=details.block_number,
            bet_amount=details.bet_amount,
            revealed=details.revealed,
            reveal_block=details.reveal_block,
            has_pending_commit=chain.call(ledger.has_pending_commit, address),
        )

    @app.get("/api/player/{address}/spins")
    async def get_player_spins(address: str, limit: int = 10) -> List[SpinHistoryResponse]:
        address = require_address(address)
        spins = db.get_player_spins(address, min(limit, 100), contract_address=ledger.address)
        return [_spin_response(spin) for spin in spins]

    @app.get("/api/spins/recent")
    async def get_recent_spins(limit: int = 10) -> List[SpinHistoryResponse]:
        """Recent spins (all players) with proof data."""
        spins = db.get_recent_spins(min(limit, 100), contract_address=ledger.address)
        return [_spin_response(spin) for spin in spins]

    @app.get("/api/spin/verify/{spin_id}")
    async def verify_spin(spin_id: int):
        """Re-derive a commit-reveal draw from the recorded block data and the revealed secret."""
        spin = db.get_spin(spin_id)
        if not spin:
            raise HTTPException(status_code=404, detail="Spin not found")

        if spin.mode != SpinMode.COMMIT_REVEAL:
            return {
                "spin_id": spin_id,
                "verifiable": False,
                "message": "Quick spins depend on contract balance at execution time and cannot be re-derived",
            }

        if spin.prevrandao is None or spin.commit_blockhash is None:
            raise HTTPException(status_code=409, detail="Spin has no recorded block data to verify against")

        is_fair = verify_reveal_draw(
            spin.random_number,
            spin.prevrandao,
            spin.commit_blockhash,
            spin.secret,
            spin.player,
            spin.commit_hash,
            spin.timestamp,
        )
        return {
            "spin_id": spin_id,
            "verifiable": True,
            "contract_address": spin.contract_address,
            "random_number": spin.random_number,
            "prevrandao": str(spin.prevrandao),
            "commit_blockhash": spin.commit_blockhash,
            "is_fair": is_fair,
            "message": "Spin result is provably fair!" if is_fair else "Spin result verification failed!",
        }

    @app.get("/api/events")
    async def get_events(name: Optional[str] = None, limit: int = 50):
        """Event log of the running ledger, newest first."""
        return [
            {
                "event_id": event.event_id,
                "name": event.name,
                "block_number": event.block_number,
                "payload": event.payload,
            }
            for event in db.get_events(name, min(limit, 500), address=ledger.address)
        ]

    @app.get("/api/balance/{address}")
    async def get_balance(address: str):
        address = require_address(address)
        balance = chain.balance_of(address)
        return {"address": address, "balance": balance, "balance_display": format_ether(balance)}

    # === SPIN ENDPOINTS ===

    @app.post("/api/spin/commit")
    async def commit_spin(request: CommitSpinRequest, http_request: Request) -> CommitResponse:
        """Phase one: commit to keccak256(secret) and pay the spin cost."""
        sender = require_address(request.sender)
        require_amount(request.value)
        require_bytes32(request.secret_hash, "Secret hash")

        receipt = submit(http_request, "commit_spin", sender, ledger.commit_spin, request.secret_hash, value=request.value)
        return CommitResponse(
            block_number=receipt.block_number,
            commit_hash=_hex(receipt.return_value),
            reveal_block=receipt.block_number + ledger.reveal_delay,
        )

    @app.post("/api/spin/reveal")
    async def reveal_spin(request: RevealSpinRequest, http_request: Request) -> SpinResponse:
        """Phase two: reveal the secret and resolve the spin."""
        sender = require_address(request.sender)
        require_bytes32(request.secret, "Secret")

        commit = chain.call(ledger.get_commit_details, sender)
        receipt = submit(http_request, "reveal_spin", sender, ledger.reveal_spin, request.secret)
        return record_spin(receipt, SpinMode.COMMIT_REVEAL, commit=commit, secret=request.secret.lower())

    @app.post("/api/spin/quick")
    async def quick_spin(request: ValueRequest, http_request: Request) -> SpinResponse:
        """Single transaction spin (weaker randomness)."""
        sender = require_address(request.sender)
        require_amount(request.value)

        receipt = submit(http_request, "quick_spin", sender, ledger.quick_spin, value=request.value)
        return record_spin(receipt, SpinMode.QUICK)

    @app.post("/api/transfer")
    async def transfer_to_ledger(request: ValueRequest) -> TxResponse:
        """Bare value transfer to the ledger (folded into the house pool)."""
        sender = require_address(request.sender)
        require_amount(request.value)

        try:
            receipt = chain.send_transaction(sender, ledger.address, request.value)
        except (LedgerError, ChainError) as e:
            raise HTTPException(status_code=400, detail={"error": type(e).__name__, "message": str(e)})

        db.save_events([
            EventRecord(name=event.name, block_number=receipt.block_number, payload=event.to_dict(), address=ledger.address)
            for event in receipt.events
        ])
        return tx_response(receipt)

    # === ADMIN ENDPOINTS ===

    @app.post("/api/admin/deposit")
    async def deposit_funds(request: ValueRequest, http_request: Request) -> TxResponse:
        sender = require_address(request.sender)
        require_amount(request.value)

        receipt = submit(http_request, "deposit_funds", sender, ledger.deposit_funds, value=request.value)
        audit.log(AuditEventType.ADMIN_ACTION, address=sender, details=f"deposit {request.value} wei")
        return tx_response(receipt)

    @app.post("/api/admin/withdraw")
    async def withdraw_funds(request: WithdrawRequest, http_request: Request) -> TxResponse:
        sender = require_address(request.sender)
        require_amount(request.amount)

        receipt = submit(http_request, "withdraw_funds", sender, ledger.withdraw_funds, request.amount)
        audit.log(AuditEventType.ADMIN_ACTION, address=sender, details=f"withdraw {request.amount} wei")
        return tx_response(receipt)

    @app.post("/api/admin/pause")
    async def pause(request: SenderRequest, http_request: Request) -> TxResponse:
        sender = require_address(request.sender)
        receipt = submit(http_request, "pause", sender, ledger.pause)
        audit.log(AuditEventType.ADMIN_ACTION, AuditSeverity.WARNING, address=sender, details="pause")
        return tx_response(receipt)

    @app.post("/api/admin/unpause")
    async def unpause(request: SenderRequest, http_request: Request) -> TxResponse:
        sender = require_address(request.sender)
        receipt = submit(http_request, "unpause", sender, ledger.unpause)
        audit.log(AuditEventType.ADMIN_ACTION, address=sender, details="unpause")
        return tx_response(receipt)

    @app.post("/api/admin/emergency-withdraw")
    async def emergency_withdraw(request: SenderRequest, http_request: Request) -> TxResponse:
        sender = require_address(request.sender)
        receipt = submit(http_request, "emergency_withdraw", sender, ledger.emergency_withdraw)
        withdrawn = receipt.find("FundsWithdrawn")
        audit.log(
            AuditEventType.EMERGENCY_WITHDRAWAL,
            AuditSeverity.CRITICAL,
            address=sender,
            details=f"drained {withdrawn.amount} wei",
        )
        return tx_response(receipt)

    @app.get("/api/admin/audit")
    async def get_audit_summary(sender: str, hours: int = 24):
        """Security summary, owner only."""
        sender = require_address(sender)
        if sender != ledger.owner:
            raise HTTPException(status_code=403, detail="Owner access required.")
        return {
            "summary": audit.get_security_summary(hours),
            "recent": audit.get_recent_events(limit=20),
        }

    # === DEV NODE ENDPOINTS ===

    @app.get("/api/dev/accounts")
    async def get_accounts():
        """Funded dev accounts (the first one owns the ledger)."""
        return [
            {"address": account, "balance": chain.balance_of(account)}
            for account in chain.accounts
        ]

    @app.post("/api/dev/mine")
    async def mine(request: MineRequest):
        if request.blocks < 1 or request.blocks > 1000:
            raise HTTPException(status_code=400, detail="blocks must be between 1 and 1000")
        block = chain.mine(request.blocks)
        return {"block_number": block.number, "timestamp": block.timestamp}

    @app.post("/api/dev/increase-time")
    async def increase_time(request: IncreaseTimeRequest):
        if request.seconds < 0:
            raise HTTPException(status_code=400, detail="seconds cannot be negative")
        chain.increase_time(request.seconds)
        return {"seconds": request.seconds}

    return app


# ===== MAIN =====

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL)

    logger.info("="*50)
    logger.info("Chain Roulette API Starting...")
    logger.info("="*50)

    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT)
