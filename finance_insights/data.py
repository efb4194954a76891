"""Read-side queries over the shared finance database.

Only credit-card accounts feed the dashboard, and only for users with a
stored card payment method. Rows are converted into the immutable input
records consumed by :mod:`finance_insights.snapshot` and
:mod:`finance_insights.summary`; nothing here writes.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from db.models.finance import BankAccount, BankTransaction, StripePaymentMethod
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import Account, Transaction, as_utc

_logger = get_logger("finance_insights.data")

_CREDIT_EXACT: tuple[str, ...] = ("credit", "Credit", "CREDIT")
_CREDIT_SUBTYPE_FRAGMENTS: tuple[str, ...] = ("credit", "Credit", "card", "Card")


def has_card_linked(session: Session, user_id: str) -> bool:
    stmt = select(func.count()).select_from(StripePaymentMethod).where(
        StripePaymentMethod.user_id == user_id
    )
    return (session.execute(stmt).scalar_one() or 0) > 0


def credit_account_ids(session: Session, user_id: str) -> list[str]:
    """Return ids of the user's credit accounts.

    An account counts as credit when its ``type`` or ``subtype`` is exactly
    ``credit`` (in any of the three common casings) or its ``subtype``
    contains ``credit``/``card``.
    """

    stmt = (
        select(BankAccount.id)
        .where(BankAccount.user_id == user_id)
        .where(
            or_(
                BankAccount.type.in_(_CREDIT_EXACT),
                BankAccount.subtype.in_(_CREDIT_EXACT),
                *(BankAccount.subtype.contains(frag) for frag in _CREDIT_SUBTYPE_FRAGMENTS),
            )
        )
        .order_by(BankAccount.id)
    )
    ids = list(session.execute(stmt).scalars())
    _logger.debug("credit_accounts user_id=%s count=%d", user_id, len(ids))
    return ids


def load_accounts(session: Session, user_id: str, account_ids: Sequence[str]) -> list[Account]:
    if not account_ids:
        return []
    stmt = (
        select(BankAccount.current_balance, BankAccount.available_balance, BankAccount.currency_code)
        .where(BankAccount.user_id == user_id, BankAccount.id.in_(list(account_ids)))
        .order_by(BankAccount.id)
    )
    return [
        Account(
            current_balance=_opt_float(row.current_balance),
            available_balance=_opt_float(row.available_balance),
            currency_code=row.currency_code,
        )
        for row in session.execute(stmt)
    ]


def load_transactions(
    session: Session,
    user_id: str,
    account_ids: Sequence[str],
    *,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int | None = None,
) -> list[Transaction]:
    """Load transactions for ``account_ids``, most recent first.

    Parameters
    ----------
    since, until:
        Optional inclusive bounds on the posting date.
    limit:
        Maximum number of rows; ``None`` means unbounded.

    Notes
    -----
    Stored amounts already follow the positive-inflow convention, and the
    merchant name becomes the record's counterparty label.
    """

    if not account_ids:
        return []

    stmt = select(BankTransaction).where(
        BankTransaction.user_id == user_id,
        BankTransaction.account_id.in_(list(account_ids)),
    )
    if since is not None:
        stmt = stmt.where(BankTransaction.date >= as_utc(since))
    if until is not None:
        stmt = stmt.where(BankTransaction.date <= as_utc(until))
    stmt = stmt.order_by(BankTransaction.date.desc(), BankTransaction.id)
    if limit is not None:
        stmt = stmt.limit(limit)

    out = [_to_record(row) for row in session.execute(stmt).scalars()]
    _logger.debug(
        "transactions_loaded user_id=%s accounts=%d rows=%d", user_id, len(account_ids), len(out)
    )
    return out


def _to_record(row: BankTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        date=as_utc(row.date),
        name=row.name,
        amount=float(row.amount),
        counterparty_label=row.merchant_name,
        currency_code=row.iso_currency_code,
        category=row.category,
    )


def _opt_float(value: float | None) -> float | None:
    return None if value is None else float(value)


__all__ = [
    "credit_account_ids",
    "has_card_linked",
    "load_accounts",
    "load_transactions",
]
