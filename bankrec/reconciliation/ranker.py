"""
Match Ranker - filters a candidate pool down to the confident matches.
"""

from typing import Iterable, List

import structlog

from ..models import LedgerTransaction, MatchCandidate, StatementLine, TransactionType
from .scorer import MATCH_THRESHOLD, StatementScorer

logger = structlog.get_logger()


def expected_type(statement: StatementLine) -> TransactionType:
    """Outflows are explained by expenses, everything else by incomes."""
    return TransactionType.EXPENSE if statement.is_debit else TransactionType.INCOME


def rank_candidates(
    statement: StatementLine,
    pool: Iterable[LedgerTransaction],
) -> List[MatchCandidate]:
    """
    Score a pool of ledger transactions and keep those above threshold.

    Only transactions whose polarity matches the statement line are scored.
    The result is sorted by descending score; ties keep pool order.
    An empty list means the caller should offer creating a new transaction.
    """
    wanted = expected_type(statement)
    scorer = StatementScorer(statement)

    candidates: List[MatchCandidate] = []
    considered = 0
    for tx in pool:
        if tx.type != wanted:
            continue
        considered += 1
        score, reasons = scorer.score(tx)
        if score < MATCH_THRESHOLD:
            continue
        candidates.append(MatchCandidate(transaction=tx, score=score, reasons=reasons))

    # list.sort is stable
    candidates.sort(key=lambda c: c.score, reverse=True)

    logger.info(
        "Candidates ranked",
        statement_line_id=statement.id,
        considered=considered,
        surfaced=len(candidates),
    )
    return candidates


class MatchRanker:
    """Stateless ranker; safe to share across threads."""

    threshold = MATCH_THRESHOLD

    def rank(
        self,
        statement: StatementLine,
        pool: Iterable[LedgerTransaction],
    ) -> List[MatchCandidate]:
        return rank_candidates(statement, pool)
