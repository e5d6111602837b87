"""
In-memory reconciliation store.

Records are handed out as copies, and commits are staged on copies and
swapped in under a lock, so a failed commit leaves no trace.
"""

import copy
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from ..exceptions import ConcurrentModification, RecordNotFound
from ..models import (
    LedgerTransaction,
    ReconciliationLink,
    ReconciliationResult,
    StatementLine,
    TransactionStatus,
)
from ..utils.money import month_bounds
from .base import ReconciliationStore

logger = structlog.get_logger()


class InMemoryReconciliationStore(ReconciliationStore):
    """Thread-safe store backed by dictionaries."""

    def __init__(
        self,
        statement_lines: Optional[Iterable[StatementLine]] = None,
        transactions: Optional[Iterable[LedgerTransaction]] = None,
    ):
        self._lock = threading.RLock()
        self._statement_lines: Dict[str, StatementLine] = {}
        self._transactions: Dict[str, LedgerTransaction] = {}
        self._links: Dict[str, ReconciliationLink] = {}
        self._reconciliations: Dict[str, ReconciliationResult] = {}

        if statement_lines:
            self.import_statement_lines(statement_lines)
        for tx in transactions or []:
            self.add_transaction(tx)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_transaction(self, tx: LedgerTransaction) -> LedgerTransaction:
        """Insert or replace a ledger transaction."""
        with self._lock:
            self._transactions[tx.id] = replace(tx)
        return replace(tx)

    def import_statement_lines(self, lines: Iterable[StatementLine]) -> List[StatementLine]:
        """
        Add statement lines, skipping ones already known by id or by
        (bank_account_id, external_ref).

        Returns the lines actually imported.
        """
        imported = []
        skipped = 0
        with self._lock:
            known_refs = {
                (line.bank_account_id, line.external_ref)
                for line in self._statement_lines.values()
                if line.external_ref
            }
            for line in lines:
                ref_key = (line.bank_account_id, line.external_ref)
                if line.id in self._statement_lines or (line.external_ref and ref_key in known_refs):
                    skipped += 1
                    continue
                self._statement_lines[line.id] = replace(line)
                if line.external_ref:
                    known_refs.add(ref_key)
                imported.append(replace(line))

        logger.info("Statement lines imported", imported=len(imported), skipped=skipped)
        return imported

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_candidate_pool(self, bank_account_id: str, month: str) -> List[LedgerTransaction]:
        """Unreconciled transactions of the account dated on or before the month's end."""
        _, end = month_bounds(month)
        with self._lock:
            pool = [
                replace(tx)
                for tx in self._transactions.values()
                if tx.bank_account_id == bank_account_id
                and not tx.is_reconciled
                and tx.effective_date is not None
                and tx.effective_date <= end
            ]
        pool.sort(key=lambda tx: tx.effective_date, reverse=True)
        return pool

    def fetch_statement_lines(
        self,
        bank_account_id: str,
        month: str,
        reconciled: bool = False,
    ) -> List[StatementLine]:
        start, end = month_bounds(month)
        with self._lock:
            lines = [
                replace(line)
                for line in self._statement_lines.values()
                if line.bank_account_id == bank_account_id
                and start <= line.date <= end
                and line.is_reconciled == reconciled
            ]
        lines.sort(key=lambda line: line.date, reverse=True)
        return lines

    def fetch_transactions(
        self,
        bank_account_id: str,
        month: str,
        reconciled: bool = False,
    ) -> List[LedgerTransaction]:
        """Transactions of the account dated within the month."""
        start, end = month_bounds(month)
        with self._lock:
            txs = [
                replace(tx)
                for tx in self._transactions.values()
                if tx.bank_account_id == bank_account_id
                and tx.effective_date is not None
                and start <= tx.effective_date <= end
                and tx.is_reconciled == reconciled
            ]
        txs.sort(key=lambda tx: tx.effective_date, reverse=True)
        return txs

    def get_statement_line(self, statement_line_id: str) -> StatementLine:
        with self._lock:
            return replace(self._require_line(statement_line_id))

    def get_transaction(self, transaction_id: str) -> LedgerTransaction:
        with self._lock:
            return replace(self._require_transaction(transaction_id))

    def get_reconciliation(self, reconciliation_id: str) -> ReconciliationResult:
        with self._lock:
            result = self._reconciliations.get(reconciliation_id)
            if result is None:
                raise RecordNotFound(f"Reconciliation {reconciliation_id} not found")
            return copy.deepcopy(result)

    def links_for_statement_line(self, statement_line_id: str) -> List[ReconciliationLink]:
        with self._lock:
            return [
                link for link in self._links.values()
                if link.statement_line_id == statement_line_id
            ]

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit_reconciliation(self, result: ReconciliationResult) -> None:
        with self._lock:
            line = self._require_line(result.statement_line_id)
            if line.is_reconciled:
                raise ConcurrentModification(
                    f"Statement line {line.id} was reconciled concurrently",
                    details={
                        "statement_line_id": line.id,
                        "existing_reconciliation_id": line.reconciliation_id,
                    },
                )

            created_id = result.created_transaction.id if result.created_transaction else None
            for tx_id in result.transaction_ids:
                if tx_id == created_id:
                    continue
                if self._require_transaction(tx_id).is_reconciled:
                    raise ConcurrentModification(
                        f"Transaction {tx_id} was reconciled concurrently",
                        details={"transaction_id": tx_id},
                    )

            statement_lines, transactions, links = self._stage(result, line)

            self._statement_lines = statement_lines
            self._transactions = transactions
            self._links = links
            self._reconciliations[result.reconciliation_id] = copy.deepcopy(result)

        logger.info(
            "Reconciliation committed",
            reconciliation_id=result.reconciliation_id,
            statement_line_id=result.statement_line_id,
            links=len(result.links),
            created_transaction_id=created_id,
        )

    def _stage(
        self,
        result: ReconciliationResult,
        line: StatementLine,
    ) -> Tuple[
        Dict[str, StatementLine],
        Dict[str, LedgerTransaction],
        Dict[str, ReconciliationLink],
    ]:
        """Build the post-commit state on copies of the current tables."""
        statement_lines = dict(self._statement_lines)
        transactions = dict(self._transactions)
        links = dict(self._links)

        statement_lines[line.id] = replace(
            line,
            is_reconciled=True,
            reconciliation_id=result.reconciliation_id,
        )

        if result.created_transaction is not None:
            transactions[result.created_transaction.id] = replace(result.created_transaction)

        for tx_id in result.transaction_ids:
            transactions[tx_id] = replace(
                transactions[tx_id],
                is_reconciled=True,
                status=TransactionStatus.RECONCILED,
            )

        self._stage_links(links, result.links)
        return statement_lines, transactions, links

    def _stage_links(
        self,
        links: Dict[str, ReconciliationLink],
        new_links: List[ReconciliationLink],
    ) -> None:
        for link in new_links:
            links[link.id] = link

    def _require_line(self, statement_line_id: str) -> StatementLine:
        line = self._statement_lines.get(statement_line_id)
        if line is None:
            raise RecordNotFound(f"Statement line {statement_line_id} not found")
        return line

    def _require_transaction(self, transaction_id: str) -> LedgerTransaction:
        tx = self._transactions.get(transaction_id)
        if tx is None:
            raise RecordNotFound(f"Transaction {transaction_id} not found")
        return tx
