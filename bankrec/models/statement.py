"""Bank statement line model."""

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

from ..utils.money import from_cents


@dataclass
class StatementLine:
    """
    One row imported from a bank statement.
    Amount is signed and stored in CENTS: negative = money left the account.
    """
    id: str = field(default_factory=lambda: str(uuid4()))
    bank_account_id: str = ""
    date: datetime.date = field(default_factory=datetime.date.today)
    description: str = ""
    amount_cents: int = 0

    # FITID or equivalent fingerprint from the source file
    external_ref: Optional[str] = None

    # Reconciliation state
    is_reconciled: bool = False
    reconciliation_id: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        """Return amount in standard units."""
        return from_cents(self.amount_cents)

    @property
    def is_debit(self) -> bool:
        """Money left the account."""
        return self.amount_cents < 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "bank_account_id": self.bank_account_id,
            "date": self.date.isoformat(),
            "description": self.description,
            "amount_cents": self.amount_cents,
            "amount": str(self.amount),
            "external_ref": self.external_ref,
            "is_reconciled": self.is_reconciled,
            "reconciliation_id": self.reconciliation_id,
        }
