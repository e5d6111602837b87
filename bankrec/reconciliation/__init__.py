"""Reconciliation engine components."""

from .scorer import MATCH_THRESHOLD, StatementScorer, score_candidate
from .ranker import MatchRanker, rank_candidates
from .session import ReconciliationSession
from .resolver import SettlementResolver
from .service import PeriodSummary, ReconciliationService

__all__ = [
    "MATCH_THRESHOLD",
    "StatementScorer",
    "score_candidate",
    "MatchRanker",
    "rank_candidates",
    "ReconciliationSession",
    "SettlementResolver",
    "PeriodSummary",
    "ReconciliationService",
]
