"""
Money and calendar helpers.

All monetary amounts are handled in CENTS (integer) to avoid floating point
errors. Decimal is only used at the edges: parsing input and presenting.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Tuple, Union

MoneyInput = Union[int, float, str, Decimal]

CENT = Decimal("0.01")

# |residual| < 0.01 expressed in cents
BALANCE_TOLERANCE_CENTS = 1


def to_cents(value: MoneyInput, strict: bool = False) -> int:
    """
    Convert an amount in standard units to integer cents.

    Floats go through their repr so 0.1 becomes 10, not 9. Fractions of a
    cent are rounded half-up, or rejected when strict is set.
    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")

    cents = amount * 100
    rounded = cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if strict and rounded != cents:
        raise ValueError(f"Amount has fractions of a cent: {value!r}")
    return int(rounded)


def from_cents(cents: int) -> Decimal:
    """Return cents as a Decimal with two places."""
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int) -> str:
    """Human-readable signed amount, e.g. -1,234.50."""
    return f"{from_cents(cents):,.2f}"


def is_within_tolerance(cents: int) -> bool:
    """True when an amount is small enough to count as balanced."""
    return abs(cents) < BALANCE_TOLERANCE_CENTS


def as_calendar_date(value: Union[date, datetime]) -> date:
    """Truncate a datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def calendar_days_between(first: Union[date, datetime], second: Union[date, datetime]) -> int:
    """Absolute number of calendar days between two dates, ignoring time of day."""
    return abs((as_calendar_date(first) - as_calendar_date(second)).days)


def month_bounds(month: str) -> Tuple[date, date]:
    """
    First and last day of a YYYY-MM month key.

    Raises ValueError for malformed keys.
    """
    try:
        year_str, month_str = month.split("-")
        year, month_num = int(year_str), int(month_str)
        last_day = calendar.monthrange(year, month_num)[1]
        return date(year, month_num, 1), date(year, month_num, last_day)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid month key: {month!r} (expected YYYY-MM)") from e
