"""
Reconciliation Service - the operator workflow over a store.

Store -> Ranker (candidates) -> Session (selection) -> Resolver (settle)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from ..exceptions import ConcurrentModification, ReconciliationError, StoreUnavailable
from ..models import (
    Adjustment,
    AuditAction,
    AuditEntry,
    CreateGapTransaction,
    GapFillDecision,
    MatchCandidate,
    ReconciliationResult,
)
from ..store.base import ReconciliationStore
from ..utils.audit_logger import AuditLogger
from ..utils.money import from_cents
from .ranker import MatchRanker
from .resolver import SettlementResolver
from .session import ReconciliationSession

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class PeriodSummary:
    """Statement vs ledger balance for one account and month."""
    bank_account_id: str
    month: str
    statement_balance_cents: int
    ledger_balance_cents: int
    statement_line_count: int
    transaction_count: int

    @property
    def difference_cents(self) -> int:
        return self.statement_balance_cents - self.ledger_balance_cents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bank_account_id": self.bank_account_id,
            "month": self.month,
            "statement_balance": str(from_cents(self.statement_balance_cents)),
            "ledger_balance": str(from_cents(self.ledger_balance_cents)),
            "difference": str(from_cents(self.difference_cents)),
            "statement_line_count": self.statement_line_count,
            "transaction_count": self.transaction_count,
        }


class ReconciliationService:
    """
    Coordinates ranking, sessions and settlement for one store.

    Keeps one audit trail per statement line for the life of the service.
    """

    def __init__(
        self,
        store: ReconciliationStore,
        resolver: Optional[SettlementResolver] = None,
    ):
        self.store = store
        self.ranker = MatchRanker()
        self.resolver = resolver or SettlementResolver(store)
        self._audits: Dict[str, AuditLogger] = {}

    def audit_trail(self, statement_line_id: str) -> AuditLogger:
        if statement_line_id not in self._audits:
            self._audits[statement_line_id] = AuditLogger(statement_line_id)
        return self._audits[statement_line_id]

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def candidates(self, statement_line_id: str, month: str) -> List[MatchCandidate]:
        """Ranked match candidates for a statement line from the month's pool."""
        statement = self._call_store(self.store.get_statement_line, statement_line_id)
        pool = self._call_store(self.store.fetch_candidate_pool, statement.bank_account_id, month)
        ranked = self.ranker.rank(statement, pool)

        self.audit_trail(statement.id).log(AuditEntry(
            action=AuditAction.CANDIDATES_RANKED,
            statement_line_id=statement.id,
            transaction_ids=[c.transaction_id for c in ranked],
            message=f"{len(ranked)} candidates above threshold",
            details={
                "pool_size": len(pool),
                "scores": {c.transaction_id: c.score for c in ranked},
            },
        ))
        return ranked

    def open_session(self, statement_line_id: str, month: str) -> ReconciliationSession:
        """Session over the statement line and the month's candidate pool."""
        statement = self._call_store(self.store.get_statement_line, statement_line_id)
        pool = self._call_store(self.store.fetch_candidate_pool, statement.bank_account_id, month)
        return ReconciliationSession(statement, pool)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def resolve(
        self,
        session: ReconciliationSession,
        decision: Optional[GapFillDecision] = None,
    ) -> ReconciliationResult:
        return self.resolver.resolve(
            session,
            decision,
            audit=self.audit_trail(session.statement.id),
        )

    @retry(
        retry=retry_if_exception_type(ConcurrentModification),
        stop=stop_after_attempt(2),
        reraise=True,
    )
    def reconcile(
        self,
        statement_line_id: str,
        month: str,
        transaction_ids: Iterable[str],
        adjustment: Optional[Adjustment] = None,
        decision: Optional[GapFillDecision] = None,
    ) -> ReconciliationResult:
        """
        Build a fresh session and settle it in one call.

        A ConcurrentModification triggers exactly one retry with freshly
        fetched data; the retry then fails with AlreadyReconciled if the
        competing commit reconciled this line.
        """
        session = self.open_session(statement_line_id, month)
        for tx_id in transaction_ids:
            session.select(tx_id)
        if adjustment is not None:
            session.apply_adjustment(adjustment)

        try:
            return self.resolve(session, decision)
        except ConcurrentModification:
            logger.warning(
                "Concurrent reconciliation detected",
                statement_line_id=statement_line_id,
            )
            raise

    def create_from_statement(
        self,
        statement_line_id: str,
        month: str,
        description: str = "",
        category_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Fallback when no candidate matches: a new transaction explains the
        whole statement amount.
        """
        return self.reconcile(
            statement_line_id,
            month,
            transaction_ids=[],
            decision=CreateGapTransaction(description=description, category_id=category_id),
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def period_summary(
        self,
        bank_account_id: str,
        month: str,
        reconciled: bool = False,
    ) -> PeriodSummary:
        """
        Statement balance against ledger balance for the month.
        Transfers carry no sign and are left out of the ledger balance.
        """
        lines = self._call_store(self.store.fetch_statement_lines, bank_account_id, month, reconciled)
        txs = [
            tx
            for tx in self._call_store(self.store.fetch_transactions, bank_account_id, month, reconciled)
            if tx.is_matchable
        ]
        summary = PeriodSummary(
            bank_account_id=bank_account_id,
            month=month,
            statement_balance_cents=sum(line.amount_cents for line in lines),
            ledger_balance_cents=sum(tx.signed_cents for tx in txs),
            statement_line_count=len(lines),
            transaction_count=len(txs),
        )
        logger.info("Period summary computed", **summary.to_dict())
        return summary

    def _call_store(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except (ReconciliationError, ValueError):
            raise
        except Exception as e:
            raise StoreUnavailable(
                f"Store call {fn.__name__} failed: {e}",
                details={"operation": fn.__name__},
            ) from e
