"""
Shared fixtures for reconciliation tests.
"""

from datetime import date

import pytest

from bankrec.models import (
    LedgerTransaction,
    StatementLine,
    TransactionStatus,
    TransactionType,
)
from bankrec.store import InMemoryReconciliationStore

BANK = "bank-1"
OTHER_BANK = "bank-2"
MONTH = "2024-03"
DAY = date(2024, 3, 15)


def make_line(
    amount_cents: int,
    id: str = "stmt1",
    on: date = DAY,
    description: str = "PAGTO FORNECEDOR ACME",
    bank_account_id: str = BANK,
    external_ref=None,
) -> StatementLine:
    return StatementLine(
        id=id,
        bank_account_id=bank_account_id,
        date=on,
        description=description,
        amount_cents=amount_cents,
        external_ref=external_ref,
    )


def make_tx(
    amount_cents: int,
    id: str = "tx1",
    type: TransactionType = TransactionType.EXPENSE,
    on: date = DAY,
    description: str = "Acme supplies",
    bank_account_id: str = BANK,
    **kwargs,
) -> LedgerTransaction:
    return LedgerTransaction(
        id=id,
        bank_account_id=bank_account_id,
        type=type,
        amount_cents=amount_cents,
        date=on,
        due_date=on,
        description=description,
        status=kwargs.pop("status", TransactionStatus.PENDING),
        **kwargs,
    )


@pytest.fixture
def store():
    return InMemoryReconciliationStore()
