"""Ledger transaction models."""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..utils.money import from_cents
from .enums import TransactionStatus, TransactionType


@dataclass
class LedgerTransaction:
    """
    Internal income/expense/transfer record.
    The amount is an unsigned magnitude in CENTS; the sign comes from the type.
    """
    id: str = field(default_factory=lambda: str(uuid4()))
    bank_account_id: str = ""
    type: TransactionType = TransactionType.EXPENSE
    amount_cents: int = 0

    # Temporal
    date: Optional[datetime.date] = None
    due_date: Optional[datetime.date] = None
    payment_date: Optional[datetime.date] = None
    launch_date: Optional[datetime.date] = None  # When the entry was created

    description: str = ""
    category_id: Optional[str] = None

    # Reconciliation state
    status: TransactionStatus = TransactionStatus.PENDING
    is_reconciled: bool = False

    def __post_init__(self):
        if self.amount_cents < 0:
            raise ValueError(
                f"Ledger amounts are unsigned, got {self.amount_cents} cents for {self.id}"
            )

    @property
    def amount(self) -> Decimal:
        """Return amount in standard units."""
        return from_cents(self.amount_cents)

    @property
    def signed_cents(self) -> int:
        """Signed contribution: expenses are negative, incomes positive."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount_cents
        if self.type == TransactionType.INCOME:
            return self.amount_cents
        raise ValueError(f"Transfer {self.id} has no signed contribution")

    @property
    def effective_date(self) -> Optional[datetime.date]:
        """Date used for matching, falling back to the launch date."""
        return self.date or self.launch_date

    @property
    def is_matchable(self) -> bool:
        """Transfers are never matched against statement lines."""
        return self.type != TransactionType.TRANSFER

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "bank_account_id": self.bank_account_id,
            "type": self.type.value,
            "amount_cents": self.amount_cents,
            "amount": str(self.amount),
            "date": self.date.isoformat() if self.date else None,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "launch_date": self.launch_date.isoformat() if self.launch_date else None,
            "description": self.description,
            "category_id": self.category_id,
            "status": self.status.value,
            "is_reconciled": self.is_reconciled,
        }


@dataclass
class MatchCandidate:
    """A ledger transaction scored against one statement line."""
    transaction: LedgerTransaction
    score: int = 0
    reasons: List[str] = field(default_factory=list)

    @property
    def transaction_id(self) -> str:
        return self.transaction.id
