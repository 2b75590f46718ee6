from datetime import date

import pytest

from aturuang.models.schemas import ExpenseRecord
from aturuang.services.aggregator import Period, percentage, period_window, summarize


def _rec(amount, category, mood=None):
    return ExpenseRecord(
        owner_id="42",
        amount=amount,
        item=category,
        category=category,
        mood=mood,
        date=date(2024, 2, 8),
        raw_message="test",
    )


def test_summarize_totals_per_category():
    summary = summarize([_rec(50000, "food"), _rec(25000, "coffee"), _rec(30000, "transport")])

    assert summary.total == 105000
    assert summary.count == 3
    assert {k: (v.total, v.count) for k, v in summary.by_category.items()} == {
        "food": (50000, 1),
        "coffee": (25000, 1),
        "transport": (30000, 1),
    }
    assert list(summary.by_category) == ["food", "coffee", "transport"]


def test_categories_by_total_sorts_descending():
    summary = summarize(
        [_rec(10000, "snack"), _rec(40000, "food"), _rec(15000, "snack"), _rec(30000, "bills")]
    )

    ordered = [(cat, data.total, data.count) for cat, data in summary.categories_by_total()]
    assert ordered == [("food", 40000, 1), ("bills", 30000, 1), ("snack", 25000, 2)]


def test_by_mood_counts_only_present_moods():
    summary = summarize(
        [_rec(1000, "food", "happy"), _rec(2000, "food"), _rec(3000, "drink", "happy"), _rec(4000, "food", "regret")]
    )

    assert summary.by_mood == {"happy": 2, "regret": 1}
    assert summary.count == 4
    assert summary.total == 10000


def test_empty_summary():
    summary = summarize([])

    assert summary.total == 0
    assert summary.count == 0
    assert summary.by_category == {}
    assert summary.by_mood == {}
    assert percentage(0, summary.total) is None


@pytest.mark.parametrize(
    "part,total,expected",
    [(50000, 105000, 48), (25000, 105000, 24), (1, 8, 13), (1, 3, 33), (100, 100, 100)],
)
def test_percentage_rounds_half_up(part, total, expected):
    assert percentage(part, total) == expected


def test_summary_serializes_camel_case():
    data = summarize([_rec(1000, "food", "happy")]).model_dump(by_alias=True)
    assert set(data) == {"total", "count", "byCategory", "byMood"}


@pytest.mark.parametrize(
    "period,today,start,end",
    [
        (Period.TODAY, date(2024, 2, 8), date(2024, 2, 8), date(2024, 2, 8)),
        (Period.WEEK, date(2024, 2, 8), date(2024, 2, 5), date(2024, 2, 11)),
        (Period.WEEK, date(2024, 2, 5), date(2024, 2, 5), date(2024, 2, 11)),
        (Period.WEEK, date(2024, 2, 11), date(2024, 2, 5), date(2024, 2, 11)),
        (Period.MONTH, date(2024, 2, 8), date(2024, 2, 1), date(2024, 2, 29)),
        (Period.MONTH, date(2023, 12, 31), date(2023, 12, 1), date(2023, 12, 31)),
    ],
)
def test_period_window(period, today, start, end):
    assert period_window(period, today) == (start, end)
