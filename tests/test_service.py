"""
Tests for the Reconciliation Service.
"""

from unittest.mock import MagicMock

import pytest

from bankrec.exceptions import (
    AlreadyReconciled,
    ConcurrentModification,
    StoreUnavailable,
)
from bankrec.models import (
    AcceptUnbalanced,
    Adjustment,
    AuditAction,
    ReconciliationResult,
    ReconciliationStatus,
    TransactionType,
)
from bankrec.reconciliation import ReconciliationService
from bankrec.store import InMemoryReconciliationStore
from conftest import BANK, MONTH, make_line, make_tx


@pytest.fixture
def service(store):
    store.import_statement_lines([
        make_line(-15000, id="stmt1"),
        make_line(50000, id="stmt2", description="CLIENTE XYZ"),
    ])
    for tx in (
        make_tx(15000, id="e150"),
        make_tx(10000, id="e100"),
        make_tx(50000, id="i500", type=TransactionType.INCOME, description="Cliente XYZ"),
        make_tx(3000, id="transfer", type=TransactionType.TRANSFER),
    ):
        store.add_transaction(tx)
    return ReconciliationService(store)


class TestCandidates:

    def test_ranked_candidates_are_audited(self, service):
        ranked = service.candidates("stmt1", MONTH)

        assert [c.transaction_id for c in ranked] == ["e150"]
        entries = service.audit_trail("stmt1").of_action(AuditAction.CANDIDATES_RANKED)
        assert len(entries) == 1
        assert entries[0].details["scores"] == {"e150": 100}

    def test_credit_line_sees_incomes(self, service):
        assert [c.transaction_id for c in service.candidates("stmt2", MONTH)] == ["i500"]


class TestReconcile:

    def test_end_to_end(self, service):
        result = service.reconcile("stmt1", MONTH, ["e150"])

        assert result.status == ReconciliationStatus.COMPLETED
        assert result.transaction_ids == ["e150"]
        assert service.store.get_statement_line("stmt1").is_reconciled
        assert service.candidates("stmt2", MONTH)[0].transaction_id == "i500"
        assert "e150" not in [tx.id for tx in service.store.fetch_candidate_pool(BANK, MONTH)]

        actions = [e.action for e in service.audit_trail("stmt1").entries]
        assert actions[-1] == AuditAction.RECONCILIATION_COMMITTED

    def test_with_adjustment_and_open_difference(self, service):
        result = service.reconcile(
            "stmt1",
            MONTH,
            ["e100"],
            adjustment=Adjustment(interest_cents=500),
            decision=AcceptUnbalanced(note="check with bank"),
        )

        assert result.open_difference_cents == -4500
        assert result.adjustment.interest_cents == 500

    def test_second_reconcile_is_rejected(self, service):
        service.reconcile("stmt1", MONTH, ["e150"])

        with pytest.raises(AlreadyReconciled):
            service.reconcile("stmt1", MONTH, ["e100"], decision=AcceptUnbalanced())

    def test_create_from_statement(self, service):
        result = service.create_from_statement("stmt1", MONTH, description="Bank fee", category_id="fees")

        created = result.created_transaction
        assert created.type == TransactionType.EXPENSE
        assert created.amount_cents == 15000
        assert created.description == "Bank fee"
        assert result.transaction_ids == [created.id]
        assert service.store.get_transaction(created.id).is_reconciled


class TestRetry:

    def test_concurrent_modification_is_retried_once(self, service):
        expected = ReconciliationResult(statement_line_id="stmt1")
        service.resolver = MagicMock()
        service.resolver.resolve.side_effect = [ConcurrentModification("lost race"), expected]

        result = service.reconcile("stmt1", MONTH, ["e150"])

        assert result is expected
        assert service.resolver.resolve.call_count == 2

    def test_second_conflict_is_raised(self, service):
        service.resolver = MagicMock()
        service.resolver.resolve.side_effect = ConcurrentModification("lost race")

        with pytest.raises(ConcurrentModification):
            service.reconcile("stmt1", MONTH, ["e150"])

        assert service.resolver.resolve.call_count == 2

    def test_other_errors_are_not_retried(self, service):
        service.resolver = MagicMock()
        service.resolver.resolve.side_effect = AlreadyReconciled("done")

        with pytest.raises(AlreadyReconciled):
            service.reconcile("stmt1", MONTH, ["e150"])

        assert service.resolver.resolve.call_count == 1


class TestPeriodSummary:

    def test_balances_and_difference(self, store):
        store.import_statement_lines([
            make_line(-15000, id="out"),
            make_line(50000, id="in"),
        ])
        for tx in (
            make_tx(10000, id="expense"),
            make_tx(50000, id="income", type=TransactionType.INCOME),
            make_tx(3000, id="transfer", type=TransactionType.TRANSFER),
        ):
            store.add_transaction(tx)

        summary = ReconciliationService(store).period_summary(BANK, MONTH)

        assert summary.statement_balance_cents == 35000
        assert summary.ledger_balance_cents == 40000
        assert summary.difference_cents == -5000
        assert summary.transaction_count == 2
        assert summary.to_dict()["difference"] == "-50.00"


class UnreachableStore(InMemoryReconciliationStore):
    def get_statement_line(self, statement_line_id):
        raise ConnectionError("db down")


class TestStoreFailures:

    def test_store_errors_surface_as_store_unavailable(self):
        with pytest.raises(StoreUnavailable) as exc_info:
            ReconciliationService(UnreachableStore()).candidates("stmt1", MONTH)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.details["operation"] == "get_statement_line"
