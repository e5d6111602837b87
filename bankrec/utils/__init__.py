"""Utility modules."""

from .money import (
    BALANCE_TOLERANCE_CENTS,
    calendar_days_between,
    format_cents,
    from_cents,
    is_within_tolerance,
    month_bounds,
    to_cents,
)

__all__ = [
    "BALANCE_TOLERANCE_CENTS",
    "calendar_days_between",
    "format_cents",
    "from_cents",
    "is_within_tolerance",
    "month_bounds",
    "to_cents",
]
