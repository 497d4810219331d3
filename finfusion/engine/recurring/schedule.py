"""Calendar rules for recurring transaction templates.

Month-based frequencies keep the day of month of the start date and clamp it
to the last day of shorter months, so a template starting on January 31st
fires on February 28th (or 29th) and March 31st.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from typing import Final

from dateutil.relativedelta import relativedelta

__all__ = ["FREQUENCIES", "is_due", "next_occurrence", "occurrences_between", "step_for"]

FREQUENCIES: Final[tuple[str, ...]] = ("DAILY", "WEEKLY", "MONTHLY", "QUARTERLY", "YEARLY")


def step_for(frequency: str, count: int = 1) -> relativedelta:
    """Return the offset spanning ``count`` periods of ``frequency``."""

    if frequency == "DAILY":
        return relativedelta(days=+count)
    if frequency == "WEEKLY":
        return relativedelta(weeks=+count)
    if frequency == "MONTHLY":
        return relativedelta(months=+count)
    if frequency == "QUARTERLY":
        return relativedelta(months=+3 * count)
    if frequency == "YEARLY":
        return relativedelta(years=+count)
    raise ValueError(f"Unsupported recurring frequency: {frequency}")


def _periods_before(start: date, frequency: str, on: date) -> int:
    """Largest ``k`` such that the ``k``-th occurrence is not after ``on``."""

    if frequency == "DAILY":
        return (on - start).days
    if frequency == "WEEKLY":
        return (on - start).days // 7
    months = (on.year - start.year) * 12 + (on.month - start.month)
    if frequency == "QUARTERLY":
        k = months // 3
    elif frequency == "YEARLY":
        k = months // 12
    else:
        k = months
    if start + step_for(frequency, k) > on:
        k -= 1
    return k


def is_due(start: date, frequency: str, on: date, end: date | None = None) -> bool:
    """Return ``True`` when a template starting on ``start`` fires on ``on``."""

    if on < start:
        return False
    if end is not None and on > end:
        return False
    k = _periods_before(start, frequency, on)
    return start + step_for(frequency, k) == on


def next_occurrence(start: date, frequency: str, after: date, end: date | None = None) -> date | None:
    """First occurrence on or after ``after``; ``None`` once the template has ended."""

    if after <= start:
        candidate = start
    else:
        k = _periods_before(start, frequency, after)
        candidate = start + step_for(frequency, k)
        if candidate < after:
            candidate = start + step_for(frequency, k + 1)
    if end is not None and candidate > end:
        return None
    return candidate


def occurrences_between(
    start: date,
    frequency: str,
    first: date,
    last: date,
    end: date | None = None,
) -> Iterator[date]:
    """Yield every occurrence falling within ``[first, last]``."""

    current = next_occurrence(start, frequency, first, end)
    while current is not None and current <= last:
        yield current
        current = next_occurrence(start, frequency, current + timedelta(days=1), end)
