"""Snapshot Builder: bucketed spending series and trailing-window KPIs.

Public API:
    - :func:`build`
    - :func:`build_empty`

Both are pure: identical inputs (including ``now``) give identical output,
nothing is read from the environment and the input rows are not mutated.
Chart bucketing and KPIs are independent: buckets follow the period's
window, KPIs always compare the trailing 30 days with the 30 before.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .classification import classify
from .currency import infer_currency_code
from .logging_setup import get_logger
from .models import (
    Accounts,
    Period,
    RecentTransaction,
    Snapshot,
    SnapshotKpis,
    SpendingCategory,
    SpendingSeries,
    Transaction,
    Transactions,
    as_utc,
)
from .numeric import clamp, iso_millis, micros, round_half_up

_logger = get_logger("finance_insights.snapshot")

# ---- Tunables ----------------------------------------------------------------

_KPI_WINDOW = timedelta(days=30)
_BALANCE_TREND_WINDOW = timedelta(days=7)
_RECENT_LIMIT = 4
_BILLS_DUE_IN_DAYS = 7

_SAVINGS_RATE_BOUNDS = (0.0, 0.95)
_SPEND_TREND_BOUNDS = (-0.9, 0.9)
_SAVINGS_TREND_POINTS_BOUNDS = (-50.0, 50.0)
_BALANCE_TREND_BOUNDS = (-0.5, 0.5)

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True, slots=True)
class BucketConfig:
    length: int
    window_days: int
    labels: tuple[str, ...]

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.window_days)


def _week_labels(n: int) -> tuple[str, ...]:
    return tuple(f"W{i + 1}" for i in range(n))


BUCKETS: dict[Period, BucketConfig] = {
    Period.ONE_WEEK: BucketConfig(7, 7, _WEEKDAYS[:7]),
    Period.ONE_MONTH: BucketConfig(12, 30, _week_labels(12)),
    Period.THREE_MONTHS: BucketConfig(18, 90, _week_labels(18)),
    Period.ONE_YEAR: BucketConfig(12, 365, _MONTHS[:12]),
    Period.ALL: BucketConfig(22, 730, tuple(f"P{i + 1}" for i in range(22))),
}


def bucket_config(period: Period | str) -> BucketConfig:
    return BUCKETS[Period(period)]


# ---- Internal helpers --------------------------------------------------------


@dataclass(slots=True)
class _Flows:
    income: float = 0.0
    spend: float = 0.0

    @property
    def savings_rate(self) -> float:
        if self.income == 0:
            return 0.0
        return clamp((self.income - self.spend) / self.income, *_SAVINGS_RATE_BOUNDS)


def _sum_range(transactions: Transactions, start: datetime, end: datetime) -> _Flows:
    """Income and spend magnitude over the half-open range ``[start, end)``."""

    flows = _Flows()
    for t in transactions:
        ts = t.timestamp
        if ts < start or ts >= end:
            continue
        if t.amount >= 0:
            flows.income += t.amount
        else:
            flows.spend += -t.amount
    return flows


def _bucketize(
    transactions: Transactions, cfg: BucketConfig, end: datetime
) -> SpendingSeries:
    start = end - cfg.window
    window_us = micros(cfg.window)

    total = [0.0] * cfg.length
    splits: dict[SpendingCategory, list[float]] = {c: [0.0] * cfg.length for c in SpendingCategory}

    for t in transactions:
        if t.amount >= 0:
            continue
        ts = t.timestamp
        if ts < start or ts >= end:
            continue
        # floor(offset / (window / length)) computed on integers
        idx = int(clamp(micros(ts - start) * cfg.length // window_us, 0, cfg.length - 1))
        spend = -t.amount
        total[idx] += spend
        splits[classify(t.category)][idx] += spend

    return SpendingSeries(
        total=[round_half_up(v) for v in total],
        essentials=[round_half_up(v) for v in splits[SpendingCategory.ESSENTIALS]],
        leisure=[round_half_up(v) for v in splits[SpendingCategory.LEISURE]],
        subscriptions=[round_half_up(v) for v in splits[SpendingCategory.SUBSCRIPTIONS]],
    )


def _display_row(t: Transaction) -> RecentTransaction:
    if t.counterparty_label is not None:
        meta = t.counterparty_label
    elif t.category is not None:
        meta = t.category
    else:
        meta = "Bank"
    return RecentTransaction(
        id=t.id,
        date_iso=iso_millis(t.timestamp),
        name=t.name,
        meta=meta,
        amount=t.amount,
        category=classify(t.category) if t.is_expense else None,
    )


def _recent(transactions: Transactions) -> list[RecentTransaction]:
    # Stable: equal timestamps keep input order.
    ordered = sorted(transactions, key=lambda t: t.timestamp, reverse=True)
    return [_display_row(t) for t in ordered[:_RECENT_LIMIT]]


# ---- Public API --------------------------------------------------------------


def build_empty(period: Period | str) -> Snapshot:
    """Return the all-zero snapshot used when a user has no linked data."""

    period = Period(period)
    cfg = BUCKETS[period]
    zeros = [0] * cfg.length
    series = SpendingSeries(
        total=list(zeros),
        essentials=list(zeros),
        leisure=list(zeros),
        subscriptions=list(zeros),
    )
    return Snapshot(
        period=period,
        currency_code=None,
        labels=list(cfg.labels),
        series=series,
        points=list(series.total),
        kpis=SnapshotKpis(
            current_balance=0.0,
            current_balance_trend_pct=0.0,
            monthly_spend=0.0,
            monthly_spend_trend_pct=0.0,
            savings_rate=0.0,
            savings_rate_trend_pct_points=0.0,
            upcoming_bills=0.0,
            upcoming_bills_due_in_days=0,
        ),
        recent_transactions=[],
    )


def build(
    period: Period | str,
    accounts: Accounts,
    transactions: Transactions,
    now: datetime,
) -> Snapshot:
    """Derive the dashboard snapshot for ``period`` as of ``now``.

    Parameters
    ----------
    period:
        Chart period; selects bucket count, window and labels.
    accounts:
        Accounts whose ``current_balance`` values are summed and whose
        currencies decide ``currency_code``.
    transactions:
        Transactions in the positive-inflow convention. Only expenses feed
        the chart; income counts toward the savings KPIs.
    now:
        Reference instant. Naive values are read as UTC.
    """

    period = Period(period)
    cfg = BUCKETS[period]
    end = as_utc(now)

    series = _bucketize(transactions, cfg, end)

    this30 = _sum_range(transactions, end - _KPI_WINDOW, end)
    prev30 = _sum_range(transactions, end - 2 * _KPI_WINDOW, end - _KPI_WINDOW)

    monthly_spend = this30.spend
    spend_trend = 0.0 if prev30.spend == 0 else (this30.spend - prev30.spend) / prev30.spend
    savings_rate = this30.savings_rate
    savings_trend_points = (savings_rate - prev30.savings_rate) * 100

    current_balance = float(sum((a.current_balance or 0.0) for a in accounts))
    balance_since = end - _BALANCE_TREND_WINDOW
    net7 = sum(t.amount for t in transactions if t.timestamp >= balance_since)
    prior_balance = current_balance - net7
    balance_trend = (
        0.0 if prior_balance == 0 else (current_balance - prior_balance) / abs(prior_balance)
    )

    # Rough estimate: half of the subscription burn shown in the chart.
    upcoming_bills = sum(series.subscriptions) / 2

    _logger.debug(
        "snapshot:build period=%s accounts=%d transactions=%d",
        period.value,
        len(accounts),
        len(transactions),
    )

    return Snapshot(
        period=period,
        currency_code=infer_currency_code(accounts),
        labels=list(cfg.labels),
        series=series,
        points=list(series.total),
        kpis=SnapshotKpis(
            current_balance=current_balance,
            current_balance_trend_pct=clamp(balance_trend, *_BALANCE_TREND_BOUNDS),
            monthly_spend=monthly_spend,
            monthly_spend_trend_pct=clamp(spend_trend, *_SPEND_TREND_BOUNDS),
            savings_rate=savings_rate,
            savings_rate_trend_pct_points=clamp(
                savings_trend_points, *_SAVINGS_TREND_POINTS_BOUNDS
            ),
            upcoming_bills=upcoming_bills,
            upcoming_bills_due_in_days=_BILLS_DUE_IN_DAYS if accounts or transactions else 0,
        ),
        recent_transactions=_recent(transactions),
    )
