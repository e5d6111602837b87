"""
Bank statement reconciliation: candidate scoring, operator sessions and
settlement of statement lines against the internal ledger.
"""

from .exceptions import (
    AlreadyReconciled,
    ConcurrentModification,
    InvalidAdjustment,
    InvalidSelection,
    NoGapToFill,
    ReconciliationError,
    RecordNotFound,
    StoreUnavailable,
    UnbalancedReconciliation,
)
from .models import (
    AcceptUnbalanced,
    Adjustment,
    CreateGapTransaction,
    LedgerTransaction,
    MatchCandidate,
    ReconciliationLink,
    ReconciliationResult,
    StatementLine,
)
from .reconciliation import (
    ReconciliationService,
    ReconciliationSession,
    SettlementResolver,
    rank_candidates,
    score_candidate,
)
from .store import InMemoryReconciliationStore, ReconciliationStore

__version__ = "1.0.0"

__all__ = [
    "AlreadyReconciled",
    "ConcurrentModification",
    "InvalidAdjustment",
    "InvalidSelection",
    "NoGapToFill",
    "ReconciliationError",
    "RecordNotFound",
    "StoreUnavailable",
    "UnbalancedReconciliation",
    "AcceptUnbalanced",
    "Adjustment",
    "CreateGapTransaction",
    "LedgerTransaction",
    "MatchCandidate",
    "ReconciliationLink",
    "ReconciliationResult",
    "StatementLine",
    "ReconciliationService",
    "ReconciliationSession",
    "SettlementResolver",
    "rank_candidates",
    "score_candidate",
    "InMemoryReconciliationStore",
    "ReconciliationStore",
]
