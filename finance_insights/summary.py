"""Spending Summary: income/spend totals and leading spend categories."""

from __future__ import annotations

from collections.abc import Iterable

from .models import (
    CategoryAmount,
    SpendingComparison,
    SpendingDeltas,
    SpendingSummary,
    Timeframe,
    Transaction,
)

UNCATEGORIZED = "Uncategorized"
TOP_CATEGORY_LIMIT = 8


def summarize(
    transactions: Iterable[Transaction],
    timeframe: Timeframe | str = Timeframe.PAST_30_DAYS,
) -> SpendingSummary:
    """Summarize ``transactions`` already filtered to ``timeframe``.

    Income is every amount ``>= 0``; expenses add their magnitude to ``spend``
    and to their trimmed category label (blank or missing labels count as
    ``"Uncategorized"``). ``top_categories`` holds at most eight entries by
    amount descending, with ties ordered by category name.
    """

    income = 0.0
    spend = 0.0
    by_category: dict[str, float] = {}

    for t in transactions:
        if t.amount >= 0:
            income += t.amount
            continue
        value = -t.amount
        spend += value
        category = (t.category or "").strip() or UNCATEGORIZED
        by_category[category] = by_category.get(category, 0.0) + value

    ranked = sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0]))
    return SpendingSummary(
        timeframe=Timeframe(timeframe),
        income=income,
        spend=spend,
        net=income - spend,
        top_categories=[
            CategoryAmount(category=c, amount=a) for c, a in ranked[:TOP_CATEGORY_LIMIT]
        ],
    )


def empty_summary(timeframe: Timeframe | str) -> SpendingSummary:
    return SpendingSummary(
        timeframe=Timeframe(timeframe), income=0.0, spend=0.0, net=0.0, top_categories=[]
    )


def compare_summaries(primary: SpendingSummary, baseline: SpendingSummary) -> SpendingComparison:
    """Set ``primary`` against ``baseline``; every delta is primary minus baseline."""

    spend_delta = primary.spend - baseline.spend
    return SpendingComparison(
        timeframe=primary.timeframe,
        compare_to=baseline.timeframe,
        primary=primary,
        baseline=baseline,
        deltas=SpendingDeltas(
            spend=spend_delta,
            spend_pct=None if baseline.spend == 0 else spend_delta / baseline.spend,
            income=primary.income - baseline.income,
            net=primary.net - baseline.net,
        ),
    )
