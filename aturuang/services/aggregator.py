import math
from collections.abc import Iterable
from datetime import date, timedelta
from enum import Enum

from aturuang.models.schemas import CategoryTotal, ExpenseRecord, Summary


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


def summarize(records: Iterable[ExpenseRecord]) -> Summary:
    """Total, count, per-category and per-mood figures for a set of records.

    Categories keep the order in which they first appear; use
    ``Summary.categories_by_total`` for report ordering.
    """
    summary = Summary()
    for record in records:
        summary.total += record.amount
        summary.count += 1

        key = record.category.value
        group = summary.by_category.setdefault(key, CategoryTotal())
        group.total += record.amount
        group.count += 1

        if record.mood:
            summary.by_mood[record.mood] = summary.by_mood.get(record.mood, 0) + 1
    return summary


def percentage(part: int, total: int) -> int | None:
    """Share of ``total`` as a whole percent, half rounded up; None if total is 0."""
    if not total:
        return None
    return math.floor(100 * part / total + 0.5)


def period_window(period: Period, today: date) -> tuple[date, date]:
    if period is Period.TODAY:
        return today, today
    if period is Period.WEEK:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period is Period.MONTH:
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return start, next_month - timedelta(days=1)
    raise ValueError(f"Unknown period: {period}")
