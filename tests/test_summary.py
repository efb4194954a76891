from __future__ import annotations

from datetime import UTC, datetime

import pytest

from finance_insights.models import Timeframe, Transaction
from finance_insights.summary import (
    TOP_CATEGORY_LIMIT,
    compare_summaries,
    empty_summary,
    summarize,
)

_WHEN = datetime(2026, 3, 1, tzinfo=UTC)


def _tx(tx_id: str, amount: float, category: str | None = None) -> Transaction:
    return Transaction(id=tx_id, date=_WHEN, name=tx_id, amount=amount, category=category)


def test_income_spend_and_top_categories() -> None:
    txs = [
        _tx("pay", 1000.0, None),
        _tx("food", -200.0, "Groceries"),
        _tx("tv", -100.0, "Streaming"),
    ]

    s = summarize(txs, Timeframe.THIS_MONTH)

    assert s.timeframe is Timeframe.THIS_MONTH
    assert s.income == 1000.0
    assert s.spend == 300.0
    assert s.net == 700.0
    assert [(c.category, c.amount) for c in s.top_categories] == [
        ("Groceries", 200.0),
        ("Streaming", 100.0),
    ]


def test_default_timeframe_is_past_30_days() -> None:
    assert summarize([]).timeframe is Timeframe.PAST_30_DAYS


def test_zero_amount_counts_as_income() -> None:
    s = summarize([_tx("zero", 0.0, "Fees")])

    assert s.income == 0.0
    assert s.spend == 0.0
    assert s.top_categories == []


def test_blank_and_missing_categories_become_uncategorized() -> None:
    txs = [_tx("a", -5.0, None), _tx("b", -7.0, "   "), _tx("c", -3.0, "  Travel ")]

    s = summarize(txs)

    assert [(c.category, c.amount) for c in s.top_categories] == [
        ("Uncategorized", 12.0),
        ("Travel", 3.0),
    ]


def test_ties_are_broken_by_category_name() -> None:
    txs = [_tx("z", -50.0, "Zoo"), _tx("a", -50.0, "Art"), _tx("m", -80.0, "Market")]

    s = summarize(txs)

    assert [c.category for c in s.top_categories] == ["Market", "Art", "Zoo"]


def test_top_categories_are_capped() -> None:
    txs = [_tx(str(i), -float(i + 1), f"Cat{i:02d}") for i in range(12)]

    s = summarize(txs)

    assert len(s.top_categories) == TOP_CATEGORY_LIMIT
    amounts = [c.amount for c in s.top_categories]
    assert amounts == sorted(amounts, reverse=True)
    assert s.top_categories[0].category == "Cat11"
    # Spend still includes every category, not just the top 8
    assert s.spend == pytest.approx(sum(range(1, 13)))


def test_net_is_income_minus_spend() -> None:
    s = summarize([_tx("in", 12.5), _tx("out", -40.25, "X")])

    assert s.net == pytest.approx(s.income - s.spend)
    assert s.net < 0


def test_summary_json_uses_camel_case() -> None:
    dumped = summarize([_tx("out", -1.0, "X")]).model_dump(by_alias=True)

    assert set(dumped) == {"timeframe", "income", "spend", "net", "topCategories"}
    assert dumped["topCategories"] == [{"category": "X", "amount": 1.0}]


def test_empty_summary_is_all_zero() -> None:
    s = empty_summary("LAST_MONTH")

    assert s.timeframe is Timeframe.LAST_MONTH
    assert (s.income, s.spend, s.net, s.top_categories) == (0.0, 0.0, 0.0, [])


# ---- compare_summaries -------------------------------------------------------


def test_compare_summaries_deltas() -> None:
    primary = summarize([_tx("pay", 1000.0), _tx("food", -300.0, "Groceries")], "THIS_MONTH")
    baseline = summarize([_tx("pay", 800.0), _tx("food", -200.0, "Groceries")], "LAST_MONTH")

    cmp = compare_summaries(primary, baseline)

    assert cmp.timeframe is Timeframe.THIS_MONTH
    assert cmp.compare_to is Timeframe.LAST_MONTH
    assert cmp.primary == primary and cmp.baseline == baseline
    assert cmp.deltas.spend == pytest.approx(100.0)
    assert cmp.deltas.spend_pct == pytest.approx(0.5)
    assert cmp.deltas.income == pytest.approx(200.0)
    assert cmp.deltas.net == pytest.approx(100.0)


def test_compare_against_zero_spend_baseline_has_null_pct() -> None:
    primary = summarize([_tx("food", -50.0, "Groceries")], "PAST_7_DAYS")

    cmp = compare_summaries(primary, empty_summary("PAST_30_DAYS"))
    dumped = cmp.model_dump(mode="json", by_alias=True)

    assert cmp.deltas.spend_pct is None
    assert dumped["compareTo"] == "PAST_30_DAYS"
    assert dumped["deltas"] == {"spend": 50.0, "spendPct": None, "income": 0.0, "net": -50.0}
    assert dumped["primary"]["topCategories"] == [{"category": "Groceries", "amount": 50.0}]
