"""Data models and type aliases for ``finance_insights``.

Input rows (:class:`Transaction`, :class:`Account`) are frozen dataclasses
owned by the caller and never mutated. Derived views (:class:`Snapshot`,
:class:`SpendingSummary`, :class:`Evaluation`) are pydantic models whose
``model_dump(by_alias=True)`` output is the camelCase JSON served to the
dashboard and embedded in assistant prompts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Period(StrEnum):
    """Dashboard chart period."""

    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


class Timeframe(StrEnum):
    """Date range used for spending summaries and transaction listings."""

    PAST_7_DAYS = "PAST_7_DAYS"
    PAST_30_DAYS = "PAST_30_DAYS"
    PAST_90_DAYS = "PAST_90_DAYS"
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    ALL_TIME = "ALL_TIME"


class SpendingCategory(StrEnum):
    ESSENTIALS = "Essentials"
    LEISURE = "Leisure"
    SUBSCRIPTIONS = "Subscriptions"


class Severity(StrEnum):
    INFO = "info"
    WARN = "warn"
    RISK = "risk"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


def as_utc(value: date | datetime) -> datetime:
    """Return ``value`` as an aware UTC ``datetime``.

    Plain dates map to UTC midnight and naive datetimes are read as UTC,
    matching how bank-provider dates are stored.
    """

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single bank transaction in the positive-inflow sign convention.

    Attributes
    ----------
    id:
        Stable identifier of the stored row.
    date:
        Posting date/time. Naive values are treated as UTC.
    name:
        Provider description of the transaction.
    amount:
        Signed amount: positive is income, negative is an expense.
    counterparty_label:
        Optional merchant name; shown as the display ``meta`` when present.
    currency_code:
        Optional ISO 4217 code reported by the provider.
    category:
        Optional provider category label (e.g. ``"FOOD_AND_DRINK"``).
    """

    id: str
    date: date | datetime
    name: str
    amount: float
    counterparty_label: str | None = None
    currency_code: str | None = None
    category: str | None = None

    @property
    def timestamp(self) -> datetime:
        return as_utc(self.date)

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


@dataclass(frozen=True, slots=True)
class Account:
    """Balance-bearing account row; only balances and currency are read."""

    current_balance: float | None = None
    available_balance: float | None = None
    currency_code: str | None = None


type Transactions = Sequence[Transaction]
type Accounts = Sequence[Account]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str


# ---------------------------------------------------------------------------
# Derived views (JSON output)
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SpendingSeries(_CamelModel):
    """Per-bucket spend, one parallel list per split."""

    total: list[int]
    essentials: list[int]
    leisure: list[int]
    subscriptions: list[int]


class SnapshotKpis(_CamelModel):
    current_balance: float
    current_balance_trend_pct: float
    monthly_spend: float
    monthly_spend_trend_pct: float
    savings_rate: float
    savings_rate_trend_pct_points: float
    upcoming_bills: float
    upcoming_bills_due_in_days: int


class RecentTransaction(_CamelModel):
    """Display row for the dashboard's recent-activity list."""

    id: str
    date_iso: str = Field(alias="dateISO")
    name: str
    meta: str
    amount: float
    category: SpendingCategory | None = None

    @model_serializer(mode="wrap")
    def _omit_income_category(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if self.category is None:
            data.pop("category", None)
        return data


class Snapshot(_CamelModel):
    """Aggregated dashboard view for one period. Never persisted."""

    period: Period
    currency_code: str | None = None
    labels: list[str]
    series: SpendingSeries
    points: list[int]
    kpis: SnapshotKpis
    recent_transactions: list[RecentTransaction]

    @model_serializer(mode="wrap")
    def _omit_unknown_currency(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if self.currency_code is None:
            data.pop("currencyCode", None)
            data.pop("currency_code", None)
        return data


class CategoryAmount(_CamelModel):
    category: str
    amount: float


class SpendingSummary(_CamelModel):
    """Income/spend totals and leading spend categories for a timeframe."""

    timeframe: Timeframe
    income: float
    spend: float
    net: float
    top_categories: list[CategoryAmount]


class SpendingDeltas(_CamelModel):
    """Primary minus baseline. ``spend_pct`` is a fraction, ``None`` for a zero baseline."""

    spend: float
    spend_pct: float | None
    income: float
    net: float


class SpendingComparison(_CamelModel):
    """Two spending summaries side by side with their differences."""

    timeframe: Timeframe
    compare_to: Timeframe
    primary: SpendingSummary
    baseline: SpendingSummary
    deltas: SpendingDeltas


class Insight(_CamelModel):
    severity: Severity
    title: str
    detail: str


class NextAction(_CamelModel):
    label: str
    route: str


class EvaluationMetrics(_CamelModel):
    monthly_spend: float
    monthly_spend_trend_pct: float
    current_balance: float
    current_balance_trend_pct: float
    savings_rate: float
    upcoming_bills_estimate: float
    category_concentration_top1_pct: float | None = None


class Evaluation(_CamelModel):
    """Heuristic health evaluation derived from a snapshot."""

    status: Literal["ok", "no_data"]
    score: int | None
    summary: str
    insights: list[Insight]
    next_actions: list[NextAction]
    metrics: EvaluationMetrics


class ListedTransaction(_CamelModel):
    """Raw transaction row as returned by the recent-transactions listing."""

    id: str
    date: datetime
    name: str
    merchant_name: str | None = None
    amount: float
    category: str | None = None


class TransactionListing(_CamelModel):
    timeframe: Timeframe
    count: int
    transactions: list[ListedTransaction]


# ---------------------------------------------------------------------------
# JSON input files (CLI)
# ---------------------------------------------------------------------------


class InputTransaction(_CamelModel):
    """Transaction row as written in a JSON input file."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: str
    posted_at: datetime | date = Field(alias="date")
    name: str
    amount: float
    counterparty_label: str | None = None
    currency_code: str | None = None
    category: str | None = None

    def to_record(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.posted_at,
            name=self.name,
            amount=self.amount,
            counterparty_label=self.counterparty_label,
            currency_code=self.currency_code,
            category=self.category,
        )


class InputAccount(_CamelModel):
    model_config = ConfigDict(extra="forbid")

    current_balance: float | None = None
    available_balance: float | None = None
    currency_code: str | None = None

    def to_record(self) -> Account:
        return Account(
            current_balance=self.current_balance,
            available_balance=self.available_balance,
            currency_code=self.currency_code,
        )


class FinanceInput(_CamelModel):
    """Top-level schema of a JSON input file: ``{accounts, transactions}``."""

    model_config = ConfigDict(extra="forbid")

    accounts: list[InputAccount] = Field(default_factory=list)
    transactions: list[InputTransaction] = Field(default_factory=list)

    @field_validator("transactions")
    @classmethod
    def _unique_ids(cls, v: list[InputTransaction]) -> list[InputTransaction]:
        seen: set[str] = set()
        for tx in v:
            if tx.id in seen:
                raise ValueError(f"duplicate transaction id: {tx.id!r}")
            seen.add(tx.id)
        return v

    def account_records(self) -> list[Account]:
        return [a.to_record() for a in self.accounts]

    def transaction_records(self) -> list[Transaction]:
        return [t.to_record() for t in self.transactions]
