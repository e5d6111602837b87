"""
Settlement Resolver - turns a session into a committed reconciliation.

Decision table:

    balanced   + None                  -> commit links
    unbalanced + None                  -> UnbalancedReconciliation
    unbalanced + CreateGapTransaction  -> new transaction absorbs the residual
    unbalanced + AcceptUnbalanced      -> commit with an open difference
    balanced   + any decision          -> NoGapToFill

The store commits links, the optional new transaction and the reconciled
flags in a single call; this module only mutates the session's objects after
that call succeeds.
"""

from datetime import date
from typing import List, Optional

import structlog

from ..config import get_settings
from ..exceptions import (
    AlreadyReconciled,
    NoGapToFill,
    ReconciliationError,
    StoreUnavailable,
    UnbalancedReconciliation,
)
from ..models import (
    AcceptUnbalanced,
    AuditAction,
    AuditEntry,
    CreateGapTransaction,
    GapFillDecision,
    LedgerTransaction,
    ReconciliationLink,
    ReconciliationResult,
    ReconciliationStatus,
    TransactionStatus,
    TransactionType,
)
from ..store.base import ReconciliationStore
from ..utils.audit_logger import AuditLogger
from ..utils.money import format_cents
from .session import ReconciliationSession

logger = structlog.get_logger()


class SettlementResolver:
    """
    Validates a session's balance and commits the reconciliation.

    Stateless apart from its collaborators; one instance can serve many
    sessions, but the store must serialize commits per statement line.
    """

    def __init__(self, store: ReconciliationStore):
        self.store = store
        self.settings = get_settings()

    def resolve(
        self,
        session: ReconciliationSession,
        decision: Optional[GapFillDecision] = None,
        audit: Optional[AuditLogger] = None,
    ) -> ReconciliationResult:
        """
        Settle a session.

        Args:
            session: Session holding the statement line, selection and adjustment
            decision: None, CreateGapTransaction or AcceptUnbalanced
            audit: Audit trail to append to (defaults to one per statement line)

        Returns:
            The committed ReconciliationResult

        Raises:
            AlreadyReconciled, UnbalancedReconciliation, NoGapToFill,
            ConcurrentModification, StoreUnavailable
        """
        statement = session.statement
        if audit is None:
            audit = AuditLogger(statement.id)
        audit.log_many(session.audit_entries)
        session.audit_entries.clear()

        try:
            self._check_not_reconciled(session)
            self._check_decision(session, decision)
            result = self._build_result(session, decision)
        except ReconciliationError as e:
            self._log_rejection(audit, session, e)
            raise

        try:
            self.store.commit_reconciliation(result)
        except ReconciliationError as e:
            self._log_rejection(audit, session, e)
            raise
        except Exception as e:
            error = StoreUnavailable(
                f"Store failed while committing statement line {statement.id}: {e}",
                details={"statement_line_id": statement.id},
            )
            self._log_rejection(audit, session, error)
            raise error from e

        self._mirror_commit(session, result)
        self._log_commit(audit, session, result)

        if self.settings.export_audit_on_commit:
            self._export_audit(audit, result)

        return result

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_not_reconciled(self, session: ReconciliationSession) -> None:
        statement = session.statement
        current = statement
        if not statement.is_reconciled:
            try:
                current = self.store.get_statement_line(statement.id)
            except ReconciliationError:
                raise
            except Exception as e:
                raise StoreUnavailable(
                    f"Store failed while loading statement line {statement.id}: {e}",
                    details={"statement_line_id": statement.id},
                ) from e
        if current.is_reconciled:
            raise AlreadyReconciled(
                f"Statement line {statement.id} is already reconciled",
                details={
                    "statement_line_id": statement.id,
                    "reconciliation_id": current.reconciliation_id,
                },
            )

    def _check_decision(
        self,
        session: ReconciliationSession,
        decision: Optional[GapFillDecision],
    ) -> None:
        residual = session.residual_cents

        if decision is None:
            if not session.is_balanced:
                raise UnbalancedReconciliation(
                    f"Residual of {format_cents(residual)} needs a gap-fill decision",
                    residual_cents=residual,
                    details=session.summary(),
                )
            return

        if not isinstance(decision, (CreateGapTransaction, AcceptUnbalanced)):
            raise TypeError(f"Unsupported gap-fill decision: {decision!r}")

        if session.is_balanced:
            raise NoGapToFill(
                f"Statement line {session.statement.id} is already balanced",
                details={"decision": type(decision).__name__},
            )

    # ------------------------------------------------------------------
    # Result construction
    # ------------------------------------------------------------------

    def _build_result(
        self,
        session: ReconciliationSession,
        decision: Optional[GapFillDecision],
    ) -> ReconciliationResult:
        statement = session.statement
        result = ReconciliationResult(
            statement_line_id=statement.id,
            bank_account_id=statement.bank_account_id,
            adjustment=session.adjustment,
            total_amount_cents=statement.amount_cents,
        )

        links: List[ReconciliationLink] = [
            ReconciliationLink(
                reconciliation_id=result.reconciliation_id,
                statement_line_id=statement.id,
                transaction_id=tx.id,
                amount_allocated_cents=tx.signed_cents,
            )
            for tx in session.selected_transactions
        ]

        if isinstance(decision, CreateGapTransaction):
            gap_tx = self._build_gap_transaction(session, decision)
            result.created_transaction = gap_tx
            links.append(ReconciliationLink(
                reconciliation_id=result.reconciliation_id,
                statement_line_id=statement.id,
                transaction_id=gap_tx.id,
                amount_allocated_cents=gap_tx.signed_cents,
            ))
        elif isinstance(decision, AcceptUnbalanced):
            result.status = ReconciliationStatus.PENDING_DIFFERENCE
            result.open_difference_cents = session.residual_cents
            result.note = decision.note

        result.links = links
        return result

    def _build_gap_transaction(
        self,
        session: ReconciliationSession,
        decision: CreateGapTransaction,
    ) -> LedgerTransaction:
        """Transaction whose signed amount equals the residual exactly."""
        statement = session.statement
        residual = session.residual_cents
        description = decision.description.strip() or (
            f"{self.settings.gap_fill_description_prefix}{statement.description}"
        )
        return LedgerTransaction(
            bank_account_id=statement.bank_account_id,
            type=TransactionType.INCOME if residual > 0 else TransactionType.EXPENSE,
            amount_cents=abs(residual),
            date=statement.date,
            due_date=statement.date,
            payment_date=statement.date,
            launch_date=date.today(),
            description=description,
            category_id=decision.category_id,
            status=TransactionStatus.RECONCILED,
            is_reconciled=True,
        )

    # ------------------------------------------------------------------
    # Post-commit
    # ------------------------------------------------------------------

    def _mirror_commit(self, session: ReconciliationSession, result: ReconciliationResult) -> None:
        """Reflect the committed flags on the session's own copies."""
        session.statement.is_reconciled = True
        session.statement.reconciliation_id = result.reconciliation_id
        for tx in session.selected_transactions:
            tx.is_reconciled = True
            tx.status = TransactionStatus.RECONCILED

    def _log_commit(
        self,
        audit: AuditLogger,
        session: ReconciliationSession,
        result: ReconciliationResult,
    ) -> None:
        statement_id = session.statement.id
        if result.created_transaction is not None:
            audit.log(AuditEntry(
                action=AuditAction.GAP_FILL_CREATED,
                statement_line_id=statement_id,
                transaction_ids=[result.created_transaction.id],
                reconciliation_id=result.reconciliation_id,
                message=f"Gap-fill {result.created_transaction.type.value} created",
                details={"amount_cents": result.created_transaction.amount_cents},
            ))
        if result.has_open_difference:
            audit.log(AuditEntry(
                action=AuditAction.UNBALANCED_ACCEPTED,
                statement_line_id=statement_id,
                reconciliation_id=result.reconciliation_id,
                message=f"Open difference of {format_cents(result.open_difference_cents)} accepted",
                details={
                    "open_difference_cents": result.open_difference_cents,
                    "note": result.note,
                },
            ))
        audit.log(AuditEntry(
            action=AuditAction.RECONCILIATION_COMMITTED,
            statement_line_id=statement_id,
            transaction_ids=result.transaction_ids,
            reconciliation_id=result.reconciliation_id,
            message="Reconciliation committed",
            details={
                "status": result.status.value,
                "adjustment": result.adjustment.to_dict(),
                "links": len(result.links),
            },
        ))

    def _export_audit(self, audit: AuditLogger, result: ReconciliationResult) -> None:
        """The commit already stands; a failed export is only reported."""
        try:
            audit.export_to_file()
        except OSError as e:
            logger.warning(
                "Audit export failed",
                statement_line_id=result.statement_line_id,
                reconciliation_id=result.reconciliation_id,
                error=str(e),
            )

    def _log_rejection(
        self,
        audit: AuditLogger,
        session: ReconciliationSession,
        error: ReconciliationError,
    ) -> None:
        audit.log(AuditEntry(
            action=AuditAction.RECONCILIATION_REJECTED,
            statement_line_id=session.statement.id,
            transaction_ids=session.selected_transaction_ids,
            message="Reconciliation rejected",
            details={"error": type(error).__name__, **error.details},
            success=False,
            error_message=error.message,
        ))
