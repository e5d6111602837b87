"""Data models for the bank reconciliation system."""

from .enums import (
    TransactionType,
    TransactionStatus,
    ReconciliationStatus,
    AuditAction,
)
from .statement import StatementLine
from .transaction import (
    LedgerTransaction,
    MatchCandidate,
)
from .reconciliation import (
    Adjustment,
    CreateGapTransaction,
    AcceptUnbalanced,
    GapFillDecision,
    ReconciliationLink,
    ReconciliationResult,
    AuditEntry,
)

__all__ = [
    # Enums
    "TransactionType",
    "TransactionStatus",
    "ReconciliationStatus",
    "AuditAction",
    # Statement
    "StatementLine",
    # Ledger
    "LedgerTransaction",
    "MatchCandidate",
    # Reconciliation
    "Adjustment",
    "CreateGapTransaction",
    "AcceptUnbalanced",
    "GapFillDecision",
    "ReconciliationLink",
    "ReconciliationResult",
    "AuditEntry",
]
