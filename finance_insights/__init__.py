"""Public interface for the ``finance_insights`` package.

This module exposes the aggregation core (snapshot, summary, evaluation),
the per-user views and the public models/types as the stable import
surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    build_finance_context,
    finance_context_from_records,
    get_finance_snapshot,
    get_recent_transactions,
    get_spending_summary,
)
from .classification import classify
from .currency import infer_currency_code, normalize_currency_code
from .evaluation import evaluate
from .models import (
    Account,
    ChatMessage,
    Evaluation,
    Period,
    Snapshot,
    SpendingCategory,
    SpendingComparison,
    SpendingSummary,
    Timeframe,
    Transaction,
    TransactionListing,
    Transactions,
)
from .snapshot import build, build_empty
from .summary import compare_summaries, summarize

__all__ = [
    # Core
    "build",
    "build_empty",
    "summarize",
    "compare_summaries",
    "evaluate",
    "classify",
    "infer_currency_code",
    "normalize_currency_code",
    # Per-user views
    "build_finance_context",
    "finance_context_from_records",
    "get_finance_snapshot",
    "get_recent_transactions",
    "get_spending_summary",
    # Models / types
    "Account",
    "ChatMessage",
    "Evaluation",
    "Period",
    "Snapshot",
    "SpendingCategory",
    "SpendingComparison",
    "SpendingSummary",
    "Timeframe",
    "Transaction",
    "TransactionListing",
    "Transactions",
]
