"""Reconciliation result models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from ..exceptions import InvalidAdjustment
from ..utils.money import MoneyInput, from_cents, to_cents
from .enums import AuditAction, ReconciliationStatus
from .transaction import LedgerTransaction


@dataclass(frozen=True)
class Adjustment:
    """
    Financial corrections entered by the operator (unsigned, in cents).
    Only their net effect on the residual is ever recorded.
    """
    interest_cents: int = 0
    penalty_cents: int = 0
    discount_cents: int = 0

    def __post_init__(self):
        for name in ("interest_cents", "penalty_cents", "discount_cents"):
            if getattr(self, name) < 0:
                raise InvalidAdjustment(
                    f"Adjustment {name.replace('_cents', '')} must not be negative",
                    details={name: getattr(self, name)},
                )

    @classmethod
    def from_amounts(
        cls,
        interest: MoneyInput = 0,
        penalty: MoneyInput = 0,
        discount: MoneyInput = 0,
    ) -> "Adjustment":
        """Build from amounts in standard units (e.g. Decimal("5.00"))."""
        cents = {}
        for name, value in (("interest", interest), ("penalty", penalty), ("discount", discount)):
            try:
                cents[name] = to_cents(value, strict=True)
            except ValueError as e:
                raise InvalidAdjustment(
                    f"Adjustment {name} is not a valid amount",
                    details={name: str(value)},
                ) from e
        return cls(
            interest_cents=cents["interest"],
            penalty_cents=cents["penalty"],
            discount_cents=cents["discount"],
        )

    @property
    def charges_cents(self) -> int:
        """Interest plus penalty."""
        return self.interest_cents + self.penalty_cents

    @property
    def is_empty(self) -> bool:
        return self.charges_cents == 0 and self.discount_cents == 0

    def net_cents(self, statement_is_debit: bool) -> int:
        """
        Signed effect on the explained total.

        Expense side: charges increase the outflow, discount reduces it.
        Income side: charges increase the inflow, discount reduces it.
        """
        if statement_is_debit:
            return -self.charges_cents + self.discount_cents
        return self.charges_cents - self.discount_cents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interest": str(from_cents(self.interest_cents)),
            "penalty": str(from_cents(self.penalty_cents)),
            "discount": str(from_cents(self.discount_cents)),
        }


@dataclass(frozen=True)
class CreateGapTransaction:
    """Settle the residual by creating a balancing ledger transaction."""
    description: str = ""
    category_id: Optional[str] = None


@dataclass(frozen=True)
class AcceptUnbalanced:
    """Commit with an explicitly accepted open difference."""
    note: str = ""


GapFillDecision = Union[CreateGapTransaction, AcceptUnbalanced]


@dataclass(frozen=True)
class ReconciliationLink:
    """Association between a statement line and one contributing transaction."""
    reconciliation_id: str
    statement_line_id: str
    transaction_id: str
    amount_allocated_cents: int
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def amount_allocated(self) -> Decimal:
        return from_cents(self.amount_allocated_cents)


@dataclass
class ReconciliationResult:
    """Committed outcome of settling one statement line."""
    reconciliation_id: str = field(default_factory=lambda: str(uuid4()))
    statement_line_id: str = ""
    bank_account_id: str = ""

    links: List[ReconciliationLink] = field(default_factory=list)
    created_transaction: Optional[LedgerTransaction] = None
    adjustment: Adjustment = field(default_factory=Adjustment)

    status: ReconciliationStatus = ReconciliationStatus.COMPLETED
    total_amount_cents: int = 0  # Statement line amount
    open_difference_cents: int = 0  # Residual accepted without settlement
    note: str = ""

    reconciled_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def transaction_ids(self) -> List[str]:
        return [link.transaction_id for link in self.links]

    @property
    def allocated_cents(self) -> int:
        return sum(link.amount_allocated_cents for link in self.links)

    @property
    def has_open_difference(self) -> bool:
        return self.status == ReconciliationStatus.PENDING_DIFFERENCE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "reconciliation_id": self.reconciliation_id,
            "statement_line_id": self.statement_line_id,
            "bank_account_id": self.bank_account_id,
            "status": self.status.value,
            "total_amount": str(from_cents(self.total_amount_cents)),
            "open_difference": str(from_cents(self.open_difference_cents)),
            "adjustment": self.adjustment.to_dict(),
            "links": [
                {
                    "id": link.id,
                    "transaction_id": link.transaction_id,
                    "amount_allocated": str(link.amount_allocated),
                }
                for link in self.links
            ],
            "created_transaction": (
                self.created_transaction.to_dict() if self.created_transaction else None
            ),
            "note": self.note,
            "reconciled_at": self.reconciled_at.isoformat(),
        }


@dataclass
class AuditEntry:
    """An entry in the audit log."""
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)

    # Action
    action: AuditAction = AuditAction.CANDIDATES_RANKED

    # Context
    statement_line_id: Optional[str] = None
    transaction_ids: List[str] = field(default_factory=list)
    reconciliation_id: Optional[str] = None

    # Details
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    # Outcome
    success: bool = True
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "transaction_ids": self.transaction_ids,
            "reconciliation_id": self.reconciliation_id,
            "message": self.message,
            "details": self.details,
            "success": self.success,
            "error_message": self.error_message,
        }
