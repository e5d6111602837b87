"""Persistence collaborators for reconciliation."""

from .base import ReconciliationStore
from .memory import InMemoryReconciliationStore

__all__ = ["ReconciliationStore", "InMemoryReconciliationStore"]
