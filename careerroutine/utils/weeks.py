"""Week anchoring helpers."""

from __future__ import annotations

from datetime import date, timedelta


def monday_of(today: date | None = None) -> date:
    """Return the Monday of the week containing ``today``."""
    today = today or date.today()
    return today - timedelta(days=today.weekday())


def blocks_per_day(budget_hours: float) -> int:
    """How many time blocks a day with this budget should be split into."""
    if budget_hours <= 2:
        return 3
    if budget_hours <= 4:
        return 4
    return 5
