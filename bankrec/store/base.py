"""
Store contract consumed by the reconciliation core.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import LedgerTransaction, ReconciliationResult, StatementLine


class ReconciliationStore(ABC):
    """
    Persistence for statement lines, ledger transactions and links.

    Implementations must make commit_reconciliation all-or-nothing and
    must refuse a second active reconciliation for the same statement line.
    """

    @abstractmethod
    def fetch_candidate_pool(self, bank_account_id: str, month: str) -> List[LedgerTransaction]:
        """Unreconciled ledger transactions relevant to a YYYY-MM month."""

    @abstractmethod
    def fetch_statement_lines(
        self,
        bank_account_id: str,
        month: str,
        reconciled: bool = False,
    ) -> List[StatementLine]:
        """Statement lines dated within a YYYY-MM month."""

    @abstractmethod
    def fetch_transactions(
        self,
        bank_account_id: str,
        month: str,
        reconciled: bool = False,
    ) -> List[LedgerTransaction]:
        """Ledger transactions dated within a YYYY-MM month."""

    @abstractmethod
    def get_statement_line(self, statement_line_id: str) -> StatementLine:
        """Current state of one statement line. Raises RecordNotFound."""

    @abstractmethod
    def commit_reconciliation(self, result: ReconciliationResult) -> None:
        """
        Persist links, the optional new transaction and all reconciled flags
        as one unit.

        Raises:
            ConcurrentModification: statement line or a linked transaction is
                already reconciled (compare-and-set failed)
            RecordNotFound: statement line or linked transaction is unknown
            StoreUnavailable: persistence failure; nothing was written
        """
