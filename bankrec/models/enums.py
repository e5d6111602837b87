"""Enumerations for the bank reconciliation system."""

from enum import Enum


class TransactionType(str, Enum):
    """Type of ledger transaction. The sign of the amount is derived from it."""
    INCOME = "income"        # Money in
    EXPENSE = "expense"      # Money out
    TRANSFER = "transfer"    # Between own accounts, never matched


class TransactionStatus(str, Enum):
    """Lifecycle status of a ledger transaction."""
    RECONCILED = "reconciled"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    OVERDUE = "overdue"


class ReconciliationStatus(str, Enum):
    """
    Status of a committed reconciliation.

    COMPLETED: Statement line fully explained by links (and adjustments)
    PENDING_DIFFERENCE: Operator accepted an open residual
    """
    COMPLETED = "completed"
    PENDING_DIFFERENCE = "pending_difference"


class AuditAction(str, Enum):
    """Type of audit action."""
    CANDIDATES_RANKED = "candidates_ranked"
    TRANSACTION_SELECTED = "transaction_selected"
    TRANSACTION_DESELECTED = "transaction_deselected"
    ADJUSTMENT_SET = "adjustment_set"
    GAP_FILL_CREATED = "gap_fill_created"
    UNBALANCED_ACCEPTED = "unbalanced_accepted"
    RECONCILIATION_COMMITTED = "reconciliation_committed"
    RECONCILIATION_REJECTED = "reconciliation_rejected"
