"""
Errors raised by the reconciliation core.

Scoring and ranking never raise; only session mutators, the resolver and
the store do, and always with one of the types below.
"""

from typing import Any, Dict, Optional


class ReconciliationError(Exception):
    """Base class for every reconciliation failure."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidAdjustment(ReconciliationError):
    """Negative or unparsable interest/penalty/discount supplied."""


class InvalidSelection(ReconciliationError):
    """
    Transaction cannot be part of this session: unknown id, a transfer,
    or a transaction from a different bank account.
    """


class UnbalancedReconciliation(ReconciliationError):
    """Commit attempted with a residual and no gap-fill decision."""

    def __init__(self, message: str, residual_cents: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.residual_cents = residual_cents


class NoGapToFill(ReconciliationError):
    """Gap settlement requested while the session is already balanced."""


class AlreadyReconciled(ReconciliationError):
    """Statement line is already linked to a reconciliation."""


class ConcurrentModification(ReconciliationError):
    """
    Compare-and-set on the statement line failed because another
    resolution committed first. Re-fetch and retry once.
    """


class StoreUnavailable(ReconciliationError):
    """Persistence or transport failure in the store collaborator."""


class RecordNotFound(ReconciliationError, KeyError):
    """Requested statement line, transaction or reconciliation does not exist."""

    def __str__(self) -> str:
        return self.message
