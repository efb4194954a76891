"""Evaluation Engine: heuristic health score, insights and next actions.

The evaluation is computed from a :class:`~finance_insights.models.Snapshot`
(and optionally a spending summary) only, so the assistant can quote a
precomputed score instead of inventing one.
"""

from __future__ import annotations

from .models import (
    Evaluation,
    EvaluationMetrics,
    Insight,
    NextAction,
    Severity,
    Snapshot,
    SpendingSummary,
)
from .numeric import clamp, pct, round_half_up

SAVINGS_TARGET = 0.20
SPEND_TREND_THRESHOLD = 0.15
CONCENTRATION_PENALTY_FLOOR = 0.35
CONCENTRATION_WARN_SHARE = 0.5

NO_DATA_SUMMARY = (
    "No finance data yet. Link a card and connect a bank account to see spending, "
    "trends, and insights."
)

_NO_DATA_ACTIONS = (
    NextAction(label="Connect a card and bank", route="/banking"),
    NextAction(label="View dashboard", route="/dashboard"),
)
_OK_ACTIONS = (
    NextAction(label="View dashboard", route="/dashboard"),
    NextAction(label="Manage connections", route="/banking"),
)


def has_no_data(snapshot: Snapshot) -> bool:
    """True when the snapshot carries no transactions, spend or KPI signal."""

    k = snapshot.kpis
    any_tx = len(snapshot.recent_transactions) > 0
    any_series = any(n != 0 for n in snapshot.points) or any(
        n != 0 for n in snapshot.series.total
    )
    any_kpi = k.current_balance != 0 or k.monthly_spend != 0 or k.savings_rate != 0
    return not any_tx and not any_series and not any_kpi


def _no_data_evaluation() -> Evaluation:
    return Evaluation(
        status="no_data",
        score=None,
        summary=NO_DATA_SUMMARY,
        insights=[
            Insight(
                severity=Severity.INFO,
                title="Connect your accounts",
                detail=(
                    "Go to /banking to link a card (Stripe) and connect transaction "
                    "history (Plaid)."
                ),
            )
        ],
        next_actions=list(_NO_DATA_ACTIONS),
        metrics=EvaluationMetrics(
            monthly_spend=0.0,
            monthly_spend_trend_pct=0.0,
            current_balance=0.0,
            current_balance_trend_pct=0.0,
            savings_rate=0.0,
            upcoming_bills_estimate=0.0,
            category_concentration_top1_pct=None,
        ),
    )


def top_category_share(summary: SpendingSummary | None) -> float | None:
    """Share of spend in the leading category, or ``None`` when undefined."""

    if summary is None or summary.spend <= 0 or not summary.top_categories:
        return None
    return clamp(summary.top_categories[0].amount / summary.spend, 0.0, 1.0)


def health_score(
    *,
    savings_rate: float,
    spend_trend: float,
    balance_trend: float,
    top1_share: float | None,
) -> int:
    """Score in ``[0, 100]`` starting at 50; each term is clamped on its own."""

    score = 50.0
    score += clamp((savings_rate - SAVINGS_TARGET) * 120, -30, 40)
    score += clamp(-spend_trend * 25, -15, 15)
    score += clamp(balance_trend * 20, -10, 10)
    if top1_share is not None:
        # Concentration only ever costs points.
        score -= clamp((top1_share - CONCENTRATION_PENALTY_FLOOR) * 40, 0, 12)
    return round_half_up(clamp(score, 0, 100))


def _insights(
    snapshot: Snapshot,
    summary: SpendingSummary | None,
    top1_share: float | None,
) -> list[Insight]:
    k = snapshot.kpis
    spend_trend = k.monthly_spend_trend_pct
    out: list[Insight] = []

    if k.savings_rate == 0 and summary is not None and summary.income == 0 and summary.spend > 0:
        out.append(
            Insight(
                severity=Severity.WARN,
                title="Income not detected",
                detail=(
                    "Your connected data shows spending but no income in this timeframe. "
                    "If you only connected credit accounts, income may not appear."
                ),
            )
        )

    if spend_trend > SPEND_TREND_THRESHOLD:
        out.append(
            Insight(
                severity=Severity.RISK,
                title="Spending is trending up",
                detail=(
                    f"Spending is up about {pct(spend_trend)}% vs the previous period. "
                    "Consider reviewing top categories and recurring charges."
                ),
            )
        )
    elif spend_trend < -SPEND_TREND_THRESHOLD:
        out.append(
            Insight(
                severity=Severity.INFO,
                title="Spending is trending down",
                detail=f"Nice, spending is down about {pct(-spend_trend)}% vs the previous period.",
            )
        )

    if k.upcoming_bills > 0:
        out.append(
            Insight(
                severity=Severity.INFO,
                title="Upcoming bills estimate",
                detail=(
                    f"Estimated upcoming bills: {round_half_up(k.upcoming_bills)} due in "
                    f"~{k.upcoming_bills_due_in_days} days."
                ),
            )
        )

    if top1_share is not None and top1_share > CONCENTRATION_WARN_SHARE and summary is not None:
        top1 = summary.top_categories[0]
        out.append(
            Insight(
                severity=Severity.WARN,
                title="Spending is concentrated",
                detail=(
                    f"Top category ({top1.category}) is ~{pct(top1_share)}% of spend in "
                    "this timeframe."
                ),
            )
        )

    return out


def evaluate(snapshot: Snapshot, spending_summary: SpendingSummary | None = None) -> Evaluation:
    """Evaluate ``snapshot`` (and optionally ``spending_summary``).

    Returns a ``no_data`` evaluation with a fixed onboarding message when the
    snapshot is empty; otherwise an ``ok`` evaluation with score, insights in
    a fixed order, a one-line summary and the standard next actions.
    """

    if has_no_data(snapshot):
        return _no_data_evaluation()

    k = snapshot.kpis
    top1_share = top_category_share(spending_summary)
    score = health_score(
        savings_rate=k.savings_rate,
        spend_trend=k.monthly_spend_trend_pct,
        balance_trend=k.current_balance_trend_pct,
        top1_share=top1_share,
    )

    parts = [
        f"Health score: {score}/100.",
        f"Monthly spend: {round_half_up(k.monthly_spend)}.",
        f"Savings rate: {pct(k.savings_rate)}%.",
    ]
    if top1_share is not None:
        parts.append(f"Top category share: {pct(top1_share)}%.")

    return Evaluation(
        status="ok",
        score=score,
        summary=" ".join(parts),
        insights=_insights(snapshot, spending_summary, top1_share),
        next_actions=list(_OK_ACTIONS),
        metrics=EvaluationMetrics(
            monthly_spend=k.monthly_spend,
            monthly_spend_trend_pct=k.monthly_spend_trend_pct,
            current_balance=k.current_balance,
            current_balance_trend_pct=k.current_balance_trend_pct,
            savings_rate=k.savings_rate,
            upcoming_bills_estimate=k.upcoming_bills,
            category_concentration_top1_pct=top1_share,
        ),
    )
