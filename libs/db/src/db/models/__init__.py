"""Shared SQLAlchemy models registry for the finance database.

Read by ``finance_insights`` to build dashboard snapshots and summaries, and
written by its assistant to keep per-user chat history.
"""

from .finance import (
    Base,
    BankAccount,
    BankTransaction,
    ChatMessage,
    ChatSession,
    StripePaymentMethod,
    User,
)

__all__ = [
    "Base",
    "BankAccount",
    "BankTransaction",
    "ChatMessage",
    "ChatSession",
    "StripePaymentMethod",
    "User",
]
