"""Per-user chat history stored in the finance database.

Sessions belong to one user; every lookup is scoped by ``user_id`` so an id
from another user behaves like an unknown one.
"""

from __future__ import annotations

from collections.abc import Sequence

from db.models.finance import ChatMessage as ChatMessageRow
from db.models.finance import ChatSession, User
from sqlalchemy import select
from sqlalchemy.orm import Session

from .logging_setup import get_logger
from .models import ChatMessage

_logger = get_logger("finance_insights.memory")

# ---- Tunables ----
HISTORY_DEFAULT_LIMIT = 40
HISTORY_LIMIT_BOUNDS = (1, 200)

_CHAT_ROLES = frozenset({"user", "assistant"})


def _owned_session(session: Session, user_id: str, session_id: str) -> ChatSession | None:
    stmt = select(ChatSession).where(ChatSession.id == session_id, ChatSession.user_id == user_id)
    return session.execute(stmt).scalar_one_or_none()


def get_or_create_session(session: Session, user_id: str, session_id: str | None = None) -> str:
    """Return ``session_id`` when the user owns it, else the id of a new session.

    The ``users`` row is created on first use; identity lives with the auth
    provider and this table only anchors foreign keys.
    """

    if session.get(User, user_id) is None:
        session.add(User(id=user_id))
        session.flush()

    if session_id:
        existing = _owned_session(session, user_id, session_id)
        if existing is not None:
            return existing.id

    created = ChatSession(user_id=user_id)
    session.add(created)
    session.flush()
    _logger.info("chat_session:created user_id=%s session_id=%s", user_id, created.id)
    return created.id


def get_history(
    session: Session,
    user_id: str,
    session_id: str,
    limit: int = HISTORY_DEFAULT_LIMIT,
) -> list[ChatMessage]:
    """Oldest-first messages of the session, at most ``limit`` rows (clamped to 1..200).

    Rows with roles other than user/assistant are dropped after the limit
    is applied.
    """

    if _owned_session(session, user_id, session_id) is None:
        return []

    lo, hi = HISTORY_LIMIT_BOUNDS
    stmt = (
        select(ChatMessageRow.role, ChatMessageRow.content)
        .where(ChatMessageRow.session_id == session_id)
        .order_by(ChatMessageRow.created_at, ChatMessageRow.id)
        .limit(min(max(int(limit), lo), hi))
    )
    return [
        ChatMessage(role=row.role, content=row.content)
        for row in session.execute(stmt)
        if row.role in _CHAT_ROLES
    ]


def append_messages(
    session: Session, user_id: str, session_id: str, messages: Sequence[ChatMessage]
) -> int:
    """Store ``messages`` in order; returns how many rows were written."""

    if not messages or _owned_session(session, user_id, session_id) is None:
        return 0
    session.add_all(
        ChatMessageRow(session_id=session_id, role=m.role, content=m.content) for m in messages
    )
    session.flush()
    _logger.debug("chat_history:appended session_id=%s count=%d", session_id, len(messages))
    return len(messages)


__all__ = [
    "HISTORY_DEFAULT_LIMIT",
    "append_messages",
    "get_history",
    "get_or_create_session",
]
