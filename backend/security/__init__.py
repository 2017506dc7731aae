"""Security utilities for Chain Roulette."""
from .audit import AuditEventType, AuditSeverity, AuditLogger

__all__ = ["AuditEventType", "AuditSeverity", "AuditLogger"]
