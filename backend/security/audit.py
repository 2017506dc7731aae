"""
Security audit logging system.
Tracks admin actions and rejected or suspicious ledger calls.
"""
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Optional
from enum import Enum

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of security events to audit."""
    # Admin Actions
    ADMIN_ACTION = "admin_action"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    EMERGENCY_WITHDRAWAL = "emergency_withdrawal"

    # Rate Limiting
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"

    # Spin Security
    SPIN_REJECTED = "spin_rejected"
    SECRET_MISMATCH = "secret_mismatch"
    REENTRANCY_BLOCKED = "reentrancy_blocked"

    # Payouts
    PAYOUT_FAILED = "payout_failed"
    TRANSFER_FAILED = "transfer_failed"


class AuditSeverity(Enum):
    """Severity levels for audit events."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AuditLogger:
    """Audit logging system for security events."""

    def __init__(self, db_path: str = "roulette.db"):
        self.db_path = db_path
        self._init_audit_table()

    def _init_audit_table(self):
        """Initialize audit log table."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS audit_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_type TEXT NOT NULL,
                address TEXT,
                ip_address TEXT,
                details TEXT,
                severity TEXT NOT NULL,
                timestamp TEXT NOT NULL
            )
        """)

        # Indexes for common queries
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_logs(timestamp)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_audit_address ON audit_logs(address)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_audit_severity ON audit_logs(severity)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_audit_event_type ON audit_logs(event_type)")

        conn.commit()
        conn.close()

    def log(
        self,
        event_type: AuditEventType,
        severity: AuditSeverity = AuditSeverity.INFO,
        address: Optional[str] = None,
        ip_address: Optional[str] = None,
        details: Optional[str] = None,
    ):
        """Log a security event.

        Args:
            event_type: Type of event
            severity: Severity level
            address: Account address if applicable
            ip_address: IP address if applicable
            details: Additional details (JSON string or text)
        """
        try:
            conn = sqlite3.connect(self.db_path)
            cursor = conn.cursor()

            cursor.execute("""
                INSERT INTO audit_logs (
                    event_type, address, ip_address, details, severity, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, (
                event_type.value,
                address,
                ip_address,
                details,
                severity.value,
                datetime.utcnow().isoformat()
            ))

            conn.commit()
            conn.close()
        except sqlite3.Error as e:
            # Never fail the caller over the audit trail
            logger.error(f"Failed to write audit log: {e}", exc_info=True)

        # Also log to application logger
        log_msg = f"[AUDIT] {event_type.value}"
        if address:
            log_msg += f" | address={address}"
        if ip_address:
            log_msg += f" | ip={ip_address}"
        if details:
            log_msg += f" | {details}"

        if severity == AuditSeverity.CRITICAL:
            logger.critical(log_msg)
        elif severity == AuditSeverity.WARNING:
            logger.warning(log_msg)
        else:
            logger.info(log_msg)

    def get_recent_events(
        self,
        limit: int = 100,
        severity: Optional[AuditSeverity] = None,
        event_type: Optional[AuditEventType] = None,
        address: Optional[str] = None
    ) -> list:
        """Get recent audit events.

        Args:
            limit: Maximum number of events to return
            severity: Filter by severity
            event_type: Filter by event type
            address: Filter by account address

        Returns:
            List of audit log dictionaries
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()

        query = "SELECT * FROM audit_logs WHERE 1=1"
        params = []

        if severity:
            query += " AND severity = ?"
            params.append(severity.value)

        if event_type:
            query += " AND event_type = ?"
            params.append(event_type.value)

        if address:
            query += " AND address = ?"
            params.append(address)

        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [dict(row) for row in rows]

    def get_security_summary(self, hours: int = 24) -> dict:
        """Get security summary for last N hours.

        Args:
            hours: Number of hours to analyze

        Returns:
            Dict with security metrics
        """
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cutoff = (datetime.utcnow() - timedelta(hours=hours)).isoformat()

        # Count by severity
        cursor.execute("""
            SELECT severity, COUNT(*) as count
            FROM audit_logs
            WHERE timestamp > ?
            GROUP BY severity
        """, (cutoff,))

        severity_counts = dict(cursor.fetchall())

        # Count by event type
        cursor.execute("""
            SELECT event_type, COUNT(*) as count
            FROM audit_logs
            WHERE timestamp > ?
            GROUP BY event_type
            ORDER BY count DESC
            LIMIT 10
        """, (cutoff,))

        event_counts = dict(cursor.fetchall())

        # Accounts repeatedly hitting the cooldown
        cursor.execute("""
            SELECT address, COUNT(*) as violations
            FROM audit_logs
            WHERE timestamp > ? AND event_type = 'rate_limit_exceeded'
            GROUP BY address
            HAVING violations > 5
            ORDER BY violations DESC
        """, (cutoff,))

        suspicious_addresses = cursor.fetchall()

        conn.close()

        return {
            "period_hours": hours,
            "severity_counts": severity_counts,
            "top_events": event_counts,
            "suspicious_addresses": suspicious_addresses,
            "total_critical": severity_counts.get("critical", 0),
            "total_warnings": severity_counts.get("warning", 0),
        }
