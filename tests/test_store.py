"""
Tests for the in-memory reconciliation store.
"""

from datetime import date

import pytest

from bankrec.exceptions import RecordNotFound
from bankrec.models import ReconciliationLink, ReconciliationResult, TransactionType
from conftest import BANK, MONTH, OTHER_BANK, make_line, make_tx


class TestImport:

    def test_duplicate_ids_and_refs_are_skipped(self, store):
        first = store.import_statement_lines([
            make_line(-1000, id="a", external_ref="FIT1"),
            make_line(-2000, id="b", external_ref="FIT2"),
        ])
        second = store.import_statement_lines([
            make_line(-1000, id="a"),
            make_line(-1000, id="c", external_ref="FIT1"),
            make_line(-3000, id="d", external_ref="FIT3"),
        ])

        assert [line.id for line in first] == ["a", "b"]
        assert [line.id for line in second] == ["d"]

    def test_same_ref_on_other_account_is_imported(self, store):
        store.import_statement_lines([make_line(-1000, id="a", external_ref="FIT1")])
        imported = store.import_statement_lines([
            make_line(-1000, id="b", external_ref="FIT1", bank_account_id=OTHER_BANK),
        ])

        assert [line.id for line in imported] == ["b"]

    def test_duplicates_within_one_batch(self, store):
        imported = store.import_statement_lines([
            make_line(-1000, id="a", external_ref="FIT1"),
            make_line(-1000, id="b", external_ref="FIT1"),
        ])

        assert [line.id for line in imported] == ["a"]


class TestQueries:

    @pytest.fixture
    def populated(self, store):
        store.import_statement_lines([
            make_line(-1000, id="march", on=date(2024, 3, 2)),
            make_line(-1000, id="april", on=date(2024, 4, 2)),
            make_line(-1000, id="other_bank", bank_account_id=OTHER_BANK),
        ])
        for tx in (
            make_tx(1000, id="feb", on=date(2024, 2, 10)),
            make_tx(1000, id="mar_early", on=date(2024, 3, 1)),
            make_tx(1000, id="mar_late", on=date(2024, 3, 31)),
            make_tx(1000, id="apr", on=date(2024, 4, 1)),
            make_tx(1000, id="dateless", on=None),
            make_tx(1000, id="foreign", bank_account_id=OTHER_BANK),
            make_tx(1000, id="done", is_reconciled=True),
        ):
            store.add_transaction(tx)
        return store

    def test_candidate_pool_includes_earlier_months(self, populated):
        pool = populated.fetch_candidate_pool(BANK, MONTH)

        assert [tx.id for tx in pool] == ["mar_late", "mar_early", "feb"]

    def test_statement_lines_within_month(self, populated):
        lines = populated.fetch_statement_lines(BANK, MONTH)

        assert [line.id for line in lines] == ["march"]
        assert populated.fetch_statement_lines(BANK, MONTH, reconciled=True) == []

    def test_transactions_within_month(self, populated):
        assert [tx.id for tx in populated.fetch_transactions(BANK, MONTH)] == ["mar_late", "mar_early"]
        assert [tx.id for tx in populated.fetch_transactions(BANK, MONTH, reconciled=True)] == ["done"]

    def test_malformed_month(self, populated):
        with pytest.raises(ValueError):
            populated.fetch_candidate_pool(BANK, "03/2024")

    def test_records_are_copies(self, populated):
        line = populated.get_statement_line("march")
        line.is_reconciled = True
        tx = populated.fetch_candidate_pool(BANK, MONTH)[0]
        tx.is_reconciled = True

        assert not populated.get_statement_line("march").is_reconciled
        assert not populated.get_transaction(tx.id).is_reconciled

    def test_missing_records(self, store):
        with pytest.raises(RecordNotFound):
            store.get_statement_line("nope")
        with pytest.raises(KeyError):
            store.get_transaction("nope")
        with pytest.raises(RecordNotFound):
            store.get_reconciliation("nope")


class TestCommit:

    def test_commit_unknown_transaction_changes_nothing(self, store):
        store.import_statement_lines([make_line(-1000, id="stmt1")])
        result = ReconciliationResult(statement_line_id="stmt1", bank_account_id=BANK)
        result.links = [ReconciliationLink(
            reconciliation_id=result.reconciliation_id,
            statement_line_id="stmt1",
            transaction_id="ghost",
            amount_allocated_cents=-1000,
        )]

        with pytest.raises(RecordNotFound):
            store.commit_reconciliation(result)

        assert not store.get_statement_line("stmt1").is_reconciled
        assert store.links_for_statement_line("stmt1") == []

    def test_commit_persists_result(self, store):
        store.import_statement_lines([make_line(2500, id="stmt1")])
        store.add_transaction(make_tx(2500, id="inc", type=TransactionType.INCOME))
        result = ReconciliationResult(statement_line_id="stmt1", bank_account_id=BANK)
        result.links = [ReconciliationLink(
            reconciliation_id=result.reconciliation_id,
            statement_line_id="stmt1",
            transaction_id="inc",
            amount_allocated_cents=2500,
        )]

        store.commit_reconciliation(result)

        stored = store.get_reconciliation(result.reconciliation_id)
        assert stored.transaction_ids == ["inc"]
        assert store.fetch_candidate_pool(BANK, MONTH) == []
        assert [line.id for line in store.fetch_statement_lines(BANK, MONTH, reconciled=True)] == ["stmt1"]
