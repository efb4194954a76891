"""Public API for per-user finance views and the assistant's finance context.

Each ``get_*`` function applies the same gating before touching
transactions: a user with no stored card payment method, or with no credit
accounts, gets the all-zero view for the requested period/timeframe.

The ``*_from_records`` variants run the same pipeline over in-memory
records (e.g. a JSON input file) and skip the gating, which only makes
sense against the database.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from . import data
from .evaluation import evaluate
from .logging_setup import get_logger
from .models import (
    Account,
    ListedTransaction,
    Period,
    Snapshot,
    SpendingComparison,
    SpendingSummary,
    Timeframe,
    Transaction,
    TransactionListing,
    Transactions,
    as_utc,
)
from .snapshot import build, build_empty
from .summary import compare_summaries, empty_summary, summarize
from .timeframes import (
    date_range_for_timeframe,
    history_days_for_period,
    infer_period,
    infer_timeframe,
)

# ---- Tunables ----
SNAPSHOT_TRANSACTION_CAP = 5000
RECENT_LIMIT_BOUNDS = (1, 100)
CONTEXT_RECENT_LIMIT = 12

_logger = get_logger("finance_insights.api")


def _clamp_limit(limit: int) -> int:
    lo, hi = RECENT_LIMIT_BOUNDS
    return min(max(int(limit), lo), hi)


def _eligible_account_ids(session: Session, user_id: str) -> list[str]:
    """Return credit account ids, or ``[]`` when the user is gated out."""

    if not data.has_card_linked(session, user_id):
        _logger.info("gated user_id=%s reason=no_card", user_id)
        return []
    ids = data.credit_account_ids(session, user_id)
    if not ids:
        _logger.info("gated user_id=%s reason=no_credit_accounts", user_id)
    return ids


def _listing(timeframe: Timeframe, transactions: Transactions) -> TransactionListing:
    rows = [
        ListedTransaction(
            id=t.id,
            date=t.timestamp,
            name=t.name,
            merchant_name=t.counterparty_label,
            amount=t.amount,
            category=t.category,
        )
        for t in transactions
    ]
    return TransactionListing(timeframe=timeframe, count=len(rows), transactions=rows)


# ---------------------------------------------------------------------------
# Database-backed views
# ---------------------------------------------------------------------------


def get_finance_snapshot(
    session: Session, user_id: str, period: Period | str, now: datetime
) -> Snapshot:
    period = Period(period)
    ids = _eligible_account_ids(session, user_id)
    if not ids:
        return build_empty(period)

    accounts = data.load_accounts(session, user_id, ids)
    since = now - timedelta(days=history_days_for_period(period))
    transactions = data.load_transactions(
        session, user_id, ids, since=since, limit=SNAPSHOT_TRANSACTION_CAP
    )
    if not accounts and not transactions:
        return build_empty(period)
    return build(period, accounts, transactions, now)


def _summary_for(
    session: Session, user_id: str, ids: list[str], timeframe: Timeframe, now: datetime
) -> SpendingSummary:
    if not ids:
        return empty_summary(timeframe)
    start, end = date_range_for_timeframe(timeframe, now)
    transactions = data.load_transactions(session, user_id, ids, since=start, until=end)
    return summarize(transactions, timeframe)


def get_spending_summary(
    session: Session,
    user_id: str,
    timeframe: Timeframe | str,
    now: datetime,
    *,
    compare_to: Timeframe | str | None = None,
) -> SpendingSummary | SpendingComparison:
    """Spending summary for ``timeframe``.

    With ``compare_to`` the result is a :class:`SpendingComparison` of the
    ``timeframe`` summary against the ``compare_to`` one.
    """

    timeframe = Timeframe(timeframe)
    ids = _eligible_account_ids(session, user_id)
    primary = _summary_for(session, user_id, ids, timeframe, now)
    if compare_to is None:
        return primary
    baseline = _summary_for(session, user_id, ids, Timeframe(compare_to), now)
    return compare_summaries(primary, baseline)


def get_recent_transactions(
    session: Session,
    user_id: str,
    limit: int,
    timeframe: Timeframe | str,
    now: datetime,
) -> TransactionListing:
    """Most recent transactions in ``timeframe``; ``limit`` is clamped to 1..100."""

    timeframe = Timeframe(timeframe)
    ids = _eligible_account_ids(session, user_id)
    if not ids:
        return TransactionListing(timeframe=timeframe, count=0, transactions=[])

    start, end = date_range_for_timeframe(timeframe, now)
    transactions = data.load_transactions(
        session, user_id, ids, since=start, until=end, limit=_clamp_limit(limit)
    )
    return _listing(timeframe, transactions)


def build_finance_context(
    session: Session, user_id: str, question: str, now: datetime
) -> dict[str, Any]:
    """Gather the JSON finance context for answering ``question``.

    The period and timeframe are inferred from the question text. The
    returned mapping is JSON-ready (camelCase keys, ISO timestamps).
    """

    period = infer_period(question)
    timeframe = infer_timeframe(question)
    snapshot = get_finance_snapshot(session, user_id, period, now)
    recent = get_recent_transactions(session, user_id, CONTEXT_RECENT_LIMIT, timeframe, now)
    ids = _eligible_account_ids(session, user_id)
    summary = _summary_for(session, user_id, ids, timeframe, now)
    return _context(period, timeframe, snapshot, recent, summary)


# ---------------------------------------------------------------------------
# In-memory views
# ---------------------------------------------------------------------------


def _within(
    transactions: Transactions, start: datetime | None, end: datetime
) -> list[Transaction]:
    lo = None if start is None else as_utc(start)
    hi = as_utc(end)
    return [t for t in transactions if (lo is None or t.timestamp >= lo) and t.timestamp <= hi]


def _most_recent(transactions: Transactions, limit: int | None = None) -> list[Transaction]:
    ordered = sorted(transactions, key=lambda t: t.timestamp, reverse=True)
    return ordered if limit is None else ordered[:limit]


def snapshot_from_records(
    period: Period | str,
    accounts: Sequence[Account],
    transactions: Transactions,
    now: datetime,
) -> Snapshot:
    period = Period(period)
    since = as_utc(now) - timedelta(days=history_days_for_period(period))
    window = _most_recent([t for t in transactions if t.timestamp >= since])[
        :SNAPSHOT_TRANSACTION_CAP
    ]
    return build(period, accounts, window, now)


def _records_summary(
    transactions: Transactions, timeframe: Timeframe, now: datetime
) -> SpendingSummary:
    start, end = date_range_for_timeframe(timeframe, now)
    return summarize(_within(transactions, start, end), timeframe)


def summary_from_records(
    transactions: Transactions,
    timeframe: Timeframe | str,
    now: datetime,
    *,
    compare_to: Timeframe | str | None = None,
) -> SpendingSummary | SpendingComparison:
    primary = _records_summary(transactions, Timeframe(timeframe), now)
    if compare_to is None:
        return primary
    return compare_summaries(
        primary, _records_summary(transactions, Timeframe(compare_to), now)
    )


def recent_from_records(
    transactions: Transactions, limit: int, timeframe: Timeframe | str, now: datetime
) -> TransactionListing:
    timeframe = Timeframe(timeframe)
    start, end = date_range_for_timeframe(timeframe, now)
    rows = _most_recent(_within(transactions, start, end), _clamp_limit(limit))
    return _listing(timeframe, rows)


def finance_context_from_records(
    accounts: Sequence[Account],
    transactions: Transactions,
    question: str,
    now: datetime,
) -> dict[str, Any]:
    period = infer_period(question)
    timeframe = infer_timeframe(question)
    return _context(
        period,
        timeframe,
        snapshot_from_records(period, accounts, transactions, now),
        recent_from_records(transactions, CONTEXT_RECENT_LIMIT, timeframe, now),
        _records_summary(transactions, timeframe, now),
    )


def _context(
    period: Period,
    timeframe: Timeframe,
    snapshot: Snapshot,
    recent: TransactionListing,
    summary: SpendingSummary,
) -> dict[str, Any]:
    evaluation = evaluate(snapshot, summary)
    _logger.info(
        "finance_context period=%s timeframe=%s status=%s score=%s",
        period.value,
        timeframe.value,
        evaluation.status,
        evaluation.score,
    )
    return {
        "period": period.value,
        "timeframe": timeframe.value,
        "snapshot": snapshot.model_dump(mode="json", by_alias=True),
        "recentTransactions": recent.model_dump(mode="json", by_alias=True),
        "spendingSummary": summary.model_dump(mode="json", by_alias=True),
        "evaluation": evaluation.model_dump(mode="json", by_alias=True),
    }


__all__ = [
    "CONTEXT_RECENT_LIMIT",
    "SNAPSHOT_TRANSACTION_CAP",
    "build_finance_context",
    "finance_context_from_records",
    "get_finance_snapshot",
    "get_recent_transactions",
    "get_spending_summary",
    "recent_from_records",
    "snapshot_from_records",
    "summary_from_records",
]
