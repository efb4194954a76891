from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from finance_insights.models import Period, Timeframe
from finance_insights.timeframes import (
    date_range_for_timeframe,
    history_days_for_period,
    infer_period,
    infer_timeframe,
    looks_like_finance_question,
)

NOW = datetime(2026, 3, 15, 12, 30, tzinfo=UTC)


def test_all_time_has_no_start() -> None:
    assert date_range_for_timeframe(Timeframe.ALL_TIME, NOW) == (None, NOW)


def test_this_month_starts_at_first_of_month() -> None:
    start, end = date_range_for_timeframe("THIS_MONTH", NOW)

    assert start == datetime(2026, 3, 1, tzinfo=UTC)
    assert end == NOW


def test_last_month_covers_whole_previous_month() -> None:
    start, end = date_range_for_timeframe(Timeframe.LAST_MONTH, NOW)

    assert start == datetime(2026, 2, 1, tzinfo=UTC)
    assert end == datetime(2026, 2, 28, 23, 59, 59, 999000, tzinfo=UTC)


def test_last_month_in_january_wraps_year() -> None:
    start, end = date_range_for_timeframe(
        Timeframe.LAST_MONTH, datetime(2026, 1, 10, tzinfo=UTC)
    )

    assert start == datetime(2025, 12, 1, tzinfo=UTC)
    assert end == datetime(2025, 12, 31, 23, 59, 59, 999000, tzinfo=UTC)


@pytest.mark.parametrize(
    ("timeframe", "days"),
    [(Timeframe.PAST_7_DAYS, 7), (Timeframe.PAST_30_DAYS, 30), (Timeframe.PAST_90_DAYS, 90)],
)
def test_past_n_days(timeframe: Timeframe, days: int) -> None:
    assert date_range_for_timeframe(timeframe, NOW) == (NOW - timedelta(days=days), NOW)


def test_naive_now_is_read_as_utc() -> None:
    start, end = date_range_for_timeframe(Timeframe.THIS_MONTH, NOW.replace(tzinfo=None))

    assert start == datetime(2026, 3, 1, tzinfo=UTC)
    assert end == NOW


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("How much did I spend this week?", Period.ONE_WEEK),
        ("spending over the last 7 days", Period.ONE_WEEK),
        ("What about the past 3 months", Period.THREE_MONTHS),
        ("show me this quarter", Period.THREE_MONTHS),
        ("How did I do this year?", Period.ONE_YEAR),
        ("all time totals", Period.ALL),
        ("What's my balance?", Period.ONE_MONTH),
    ],
)
def test_infer_period(text: str, expected: Period) -> None:
    assert infer_period(text) is expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("What did I spend THIS MONTH?", Timeframe.THIS_MONTH),
        ("compare with last month", Timeframe.LAST_MONTH),
        ("the previous month please", Timeframe.LAST_MONTH),
        ("this week's transactions", Timeframe.PAST_7_DAYS),
        ("past 90 days", Timeframe.PAST_90_DAYS),
        ("lifetime income", Timeframe.ALL_TIME),
        ("recent transactions", Timeframe.PAST_30_DAYS),
    ],
)
def test_infer_timeframe(text: str, expected: Timeframe) -> None:
    assert infer_timeframe(text) is expected


def test_this_month_wins_over_later_rules() -> None:
    assert infer_timeframe("this month vs last month") is Timeframe.THIS_MONTH


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("How much did I SPEND?", True),
        ("what's my balance", True),
        ("any subscriptions I forgot?", True),
        ("Where do I link my bank?", False),
        ("hello", False),
    ],
)
def test_looks_like_finance_question(text: str, expected: bool) -> None:
    assert looks_like_finance_question(text) is expected


@pytest.mark.parametrize(
    ("period", "days"),
    [("ALL", 730), ("1Y", 365), ("3M", 120), ("1M", 90), ("1W", 90)],
)
def test_history_days(period: str, days: int) -> None:
    assert history_days_for_period(period) == days
