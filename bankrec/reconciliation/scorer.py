"""
Candidate Scorer - rates one ledger transaction against one statement line.

Starts from 100 points, subtracts an amount penalty and a date penalty,
adds a small bonus for a shared description token, then clamps to [0, 100].
The coefficients were tuned together with MATCH_THRESHOLD; change them as a
set or not at all.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Set, Tuple

import structlog

from ..models import LedgerTransaction, StatementLine
from ..utils.money import calendar_days_between

logger = structlog.get_logger()

MAX_SCORE = Decimal(100)
MATCH_THRESHOLD = 90

AMOUNT_PENALTY_PER_PERCENT = Decimal(10)
DATE_PENALTY_PER_DAY = Decimal(2)
NAME_BONUS = Decimal(5)

NEAR_DATE_DAYS = 3
MIN_TOKEN_LENGTH = 3  # tokens must be longer than this

REASON_EXACT_AMOUNT = "exact amount"
REASON_AMOUNT_WITHIN_1_PCT = "amount within 1%"
REASON_SAME_DATE = "same date"
REASON_SIMILAR_NAME = "similar name"

_TOKEN_SPLIT = re.compile(r"[\s\-_]+")


def tokenize(text: str) -> List[str]:
    """Lower-case tokens split on whitespace, hyphens and underscores."""
    return _TOKEN_SPLIT.split((text or "").lower())


def amount_diff_percent(statement: StatementLine, tx: LedgerTransaction) -> Decimal:
    """
    Relative amount mismatch in percent of the statement amount.
    A zero statement amount counts as a full 100% mismatch.
    """
    diff = abs(statement.amount_cents - tx.signed_cents)
    if statement.amount_cents == 0:
        return Decimal(100)
    return Decimal(diff) / Decimal(abs(statement.amount_cents)) * 100


def shares_name_token(statement_description: str, tx_description: str) -> bool:
    tx_tokens: Set[str] = set(tokenize(tx_description))
    return any(
        len(token) > MIN_TOKEN_LENGTH and token in tx_tokens
        for token in tokenize(statement_description)
    )


def score_candidate(statement: StatementLine, tx: LedgerTransaction) -> Tuple[int, List[str]]:
    """
    Score a ledger transaction as a match for a statement line.

    Args:
        statement: The statement line being explained
        tx: An income or expense transaction (transfers must be filtered out)

    Returns:
        (score in 0..100, ordered match reasons)
    """
    score = MAX_SCORE
    reasons: List[str] = []

    # 1. Amount
    diff_cents = abs(statement.amount_cents - tx.signed_cents)
    diff_percent = amount_diff_percent(statement, tx)
    score -= diff_percent * AMOUNT_PENALTY_PER_PERCENT

    if diff_cents < 1:
        reasons.append(REASON_EXACT_AMOUNT)
    elif diff_percent < 1:
        reasons.append(REASON_AMOUNT_WITHIN_1_PCT)

    # 2. Date
    tx_date = tx.effective_date
    if tx_date is None:
        score -= MAX_SCORE
    else:
        days = calendar_days_between(statement.date, tx_date)
        score -= days * DATE_PENALTY_PER_DAY

        if days == 0:
            reasons.append(REASON_SAME_DATE)
        elif days <= NEAR_DATE_DAYS:
            reasons.append(f"{days} days off")

    # 3. Name
    if shares_name_token(statement.description, tx.description):
        score += NAME_BONUS
        reasons.append(REASON_SIMILAR_NAME)

    score = max(Decimal(0), min(MAX_SCORE, score))
    return int(score.quantize(Decimal(1), rounding=ROUND_HALF_UP)), reasons


class StatementScorer:
    """Scores candidates for a single statement line."""

    def __init__(self, statement: StatementLine):
        self.statement = statement

    def score(self, tx: LedgerTransaction) -> Tuple[int, List[str]]:
        result = score_candidate(self.statement, tx)
        logger.debug(
            "Candidate scored",
            statement_line_id=self.statement.id,
            transaction_id=tx.id,
            score=result[0],
            reasons=result[1],
        )
        return result
