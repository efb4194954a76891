"""Timeframe date ranges and phrase-based period/timeframe inference.

The inference helpers read a free-text question ("how much did I spend this
week?") and pick the dashboard period and summary timeframe the assistant
should load. Matching is plain lower-cased substring search; the first rule
that hits wins.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from .models import Period, Timeframe, as_utc

_PAST_DAYS: dict[Timeframe, int] = {
    Timeframe.PAST_7_DAYS: 7,
    Timeframe.PAST_30_DAYS: 30,
    Timeframe.PAST_90_DAYS: 90,
}

_PERIOD_PHRASES: tuple[tuple[tuple[str, ...], Period], ...] = (
    (("this week", "past week", "last 7", "7 days"), Period.ONE_WEEK),
    (("3 months", "past 3", "90 days", "quarter"), Period.THREE_MONTHS),
    (("this year", "past year", "12 months", "365"), Period.ONE_YEAR),
    (("all time", "lifetime"), Period.ALL),
)

_TIMEFRAME_PHRASES: tuple[tuple[tuple[str, ...], Timeframe], ...] = (
    (("this month",), Timeframe.THIS_MONTH),
    (("last month", "previous month"), Timeframe.LAST_MONTH),
    (("past 7", "last 7", "7 days", "this week"), Timeframe.PAST_7_DAYS),
    (("past 90", "90 days", "3 months", "quarter"), Timeframe.PAST_90_DAYS),
    (("all time", "lifetime"), Timeframe.ALL_TIME),
)

FINANCE_KEYWORDS: tuple[str, ...] = (
    "spend",
    "spent",
    "transaction",
    "balance",
    "income",
    "savings",
    "bill",
    "subscription",
    "budget",
)

# History fetched for a snapshot: the chart window plus room for the
# 30-vs-30 day KPI comparison on the short periods.
_HISTORY_DAYS: dict[Period, int] = {
    Period.ALL: 730,
    Period.ONE_YEAR: 365,
    Period.THREE_MONTHS: 120,
}
_DEFAULT_HISTORY_DAYS = 90


def history_days_for_period(period: Period | str) -> int:
    return _HISTORY_DAYS.get(Period(period), _DEFAULT_HISTORY_DAYS)


def date_range_for_timeframe(
    timeframe: Timeframe | str, now: datetime
) -> tuple[datetime | None, datetime]:
    """Return inclusive ``(start, end)`` bounds for ``timeframe`` as of ``now``.

    ``start`` is ``None`` for :attr:`Timeframe.ALL_TIME`. Calendar months are
    evaluated in ``now``'s own timezone (UTC when ``now`` is naive).
    """

    timeframe = Timeframe(timeframe)
    end = now if now.tzinfo is not None else as_utc(now)

    if timeframe is Timeframe.ALL_TIME:
        return None, end

    month_start = end.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if timeframe is Timeframe.THIS_MONTH:
        return month_start, end

    if timeframe is Timeframe.LAST_MONTH:
        last_month_end = month_start - timedelta(milliseconds=1)
        last_month_start = last_month_end.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return last_month_start, last_month_end

    return end - timedelta(days=_PAST_DAYS[timeframe]), end


def infer_period(text: str) -> Period:
    t = text.lower()
    for phrases, period in _PERIOD_PHRASES:
        if any(p in t for p in phrases):
            return period
    return Period.ONE_MONTH


def infer_timeframe(text: str) -> Timeframe:
    t = text.lower()
    for phrases, timeframe in _TIMEFRAME_PHRASES:
        if any(p in t for p in phrases):
            return timeframe
    return Timeframe.PAST_30_DAYS


def looks_like_finance_question(text: str) -> bool:
    t = text.lower()
    return any(k in t for k in FINANCE_KEYWORDS)
