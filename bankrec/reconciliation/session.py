"""
Reconciliation Session - working state for one statement line.

Holds the operator's selection and adjustment. Every derived value is
recomputed from that state on read; nothing is cached and the store is
never touched from here.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog

from ..exceptions import InvalidSelection
from ..models import (
    Adjustment,
    AuditAction,
    AuditEntry,
    LedgerTransaction,
    StatementLine,
)
from ..utils.money import MoneyInput, from_cents, is_within_tolerance

logger = structlog.get_logger()


class ReconciliationSession:
    """
    One in-progress reconciliation.

    Not thread-safe: a session belongs to exactly one operator workflow.
    """

    def __init__(
        self,
        statement: StatementLine,
        transactions: Iterable[LedgerTransaction],
    ):
        self.statement = statement
        self._transactions: Dict[str, LedgerTransaction] = {
            tx.id: tx for tx in transactions
        }
        # dict keeps selection order for deterministic links
        self._selected: Dict[str, None] = {}
        self.adjustment = Adjustment()
        self.audit_entries: List[AuditEntry] = []

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected_transaction_ids(self) -> List[str]:
        return list(self._selected)

    @property
    def selected_transactions(self) -> List[LedgerTransaction]:
        return [self._transactions[tx_id] for tx_id in self._selected]

    @property
    def available_transactions(self) -> List[LedgerTransaction]:
        return list(self._transactions.values())

    def is_selected(self, tx_id: str) -> bool:
        return tx_id in self._selected

    def select(self, tx_id: str) -> None:
        """Add a transaction to the selection. Selecting twice is a no-op."""
        if tx_id in self._selected:
            return
        self._check_selectable(tx_id)
        self._selected[tx_id] = None
        self._record(AuditAction.TRANSACTION_SELECTED, tx_id)

    def deselect(self, tx_id: str) -> None:
        """Remove a transaction from the selection. Absent ids are a no-op."""
        if tx_id not in self._selected:
            return
        del self._selected[tx_id]
        self._record(AuditAction.TRANSACTION_DESELECTED, tx_id)

    def toggle(self, tx_id: str) -> bool:
        """Flip selection state; returns True if the id is now selected."""
        if tx_id in self._selected:
            self.deselect(tx_id)
            return False
        self.select(tx_id)
        return True

    def clear(self) -> None:
        for tx_id in list(self._selected):
            self.deselect(tx_id)

    def _check_selectable(self, tx_id: str) -> None:
        tx = self._transactions.get(tx_id)
        if tx is None:
            raise InvalidSelection(
                f"Transaction {tx_id} is not part of this session",
                details={"transaction_id": tx_id},
            )
        if not tx.is_matchable:
            raise InvalidSelection(
                f"Transaction {tx_id} is a transfer and cannot be reconciled",
                details={"transaction_id": tx_id, "type": tx.type.value},
            )
        if tx.bank_account_id != self.statement.bank_account_id:
            raise InvalidSelection(
                f"Transaction {tx_id} belongs to another bank account",
                details={
                    "transaction_id": tx_id,
                    "transaction_bank_account_id": tx.bank_account_id,
                    "statement_bank_account_id": self.statement.bank_account_id,
                },
            )

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def set_adjustment(
        self,
        interest: MoneyInput = 0,
        penalty: MoneyInput = 0,
        discount: MoneyInput = 0,
    ) -> Adjustment:
        """
        Replace the current adjustment with amounts in standard units.

        Raises InvalidAdjustment on negative input; the previous adjustment
        stays in place in that case.
        """
        return self.apply_adjustment(Adjustment.from_amounts(interest, penalty, discount))

    def apply_adjustment(self, adjustment: Adjustment) -> Adjustment:
        """Replace the current adjustment with an already validated one."""
        self.adjustment = adjustment
        self.audit_entries.append(AuditEntry(
            action=AuditAction.ADJUSTMENT_SET,
            statement_line_id=self.statement.id,
            message="Adjustment set",
            details=adjustment.to_dict(),
        ))
        return adjustment

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def selected_total_cents(self) -> int:
        return sum(tx.signed_cents for tx in self.selected_transactions)

    @property
    def adjustment_net_cents(self) -> int:
        return self.adjustment.net_cents(self.statement.is_debit)

    @property
    def explained_cents(self) -> int:
        return self.selected_total_cents + self.adjustment_net_cents

    @property
    def residual_cents(self) -> int:
        """Statement amount not yet explained by selection plus adjustments."""
        return self.statement.amount_cents - self.explained_cents

    @property
    def is_balanced(self) -> bool:
        return is_within_tolerance(self.residual_cents)

    @property
    def selected_total(self) -> Decimal:
        return from_cents(self.selected_total_cents)

    @property
    def adjustment_net(self) -> Decimal:
        return from_cents(self.adjustment_net_cents)

    @property
    def residual(self) -> Decimal:
        return from_cents(self.residual_cents)

    def summary(self) -> Dict[str, Any]:
        """Snapshot of the running totals for display or logging."""
        return {
            "statement_line_id": self.statement.id,
            "statement_amount": str(self.statement.amount),
            "selected_transaction_ids": self.selected_transaction_ids,
            "selected_total": str(self.selected_total),
            "adjustment": self.adjustment.to_dict(),
            "adjustment_net": str(self.adjustment_net),
            "residual": str(self.residual),
            "is_balanced": self.is_balanced,
        }

    def _record(self, action: AuditAction, tx_id: Optional[str] = None) -> None:
        self.audit_entries.append(AuditEntry(
            action=action,
            statement_line_id=self.statement.id,
            transaction_ids=[tx_id] if tx_id else [],
            message=action.value.replace("_", " ").capitalize(),
        ))
        logger.debug(
            "Session updated",
            statement_line_id=self.statement.id,
            action=action.value,
            transaction_id=tx_id,
            residual_cents=self.residual_cents,
        )
