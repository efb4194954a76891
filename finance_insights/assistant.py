"""One assistant chat turn.

``answer`` picks the provider from :class:`~finance_insights.config.Settings`,
attaches the user's finance context when the latest question looks
financial, and returns the reply text. Missing provider configuration is not
an error: the reply is a setup message explaining what to put in ``.env``.

``chat_turn`` wraps ``answer`` with stored per-user history and ``welcome``
produces the opening greeting.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from . import memory
from .api import build_finance_context
from .config import Settings
from .errors import FinanceInsightsError
from .logging_setup import get_logger
from .models import ChatMessage
from .prompting import SETUP_MESSAGE, build_system_prompt, fallback_welcome, welcome_request
from .providers import ChatProvider, provider_from_settings
from .timeframes import looks_like_finance_question

_logger = get_logger("finance_insights.assistant")

# ---- Tunables ----
MAX_MESSAGES = 20
SESSION_HISTORY_LIMIT = 60
SESSION_WINDOW = 30
CONTEXT_ERROR: dict[str, str] = {"error": "Failed to load finance context"}
EMPTY_REPLY = "Sorry, I couldn't generate a response."

type ContextLoader = Callable[[str], Mapping[str, Any]]


def setup_message(settings: Settings) -> str | None:
    """Return the setup message when chat cannot run, else ``None``."""

    name = settings.resolved_provider()
    if name is None:
        return SETUP_MESSAGE
    if not settings.is_supported_provider(name):
        return (
            SETUP_MESSAGE
            + f"\n\n(Unsupported CHAT_PROVIDER: {name}. Use 'openai' or 'huggingface'.)"
        )
    if name == "openai" and not settings.openai_api_key:
        return SETUP_MESSAGE
    if name == "huggingface" and not settings.huggingface_api_key:
        return SETUP_MESSAGE
    return None


def last_user_text(messages: Sequence[ChatMessage]) -> str:
    for m in reversed(messages):
        if m.role == "user":
            return m.content
    return ""


def _load_context(loader: ContextLoader, question: str) -> Mapping[str, Any]:
    try:
        return loader(question)
    except Exception:  # noqa: BLE001 - a broken context must not block the reply
        _logger.exception("finance_context:failed")
        return dict(CONTEXT_ERROR)


def answer(
    messages: Sequence[ChatMessage],
    settings: Settings,
    *,
    session: Session | None = None,
    user_id: str | None = None,
    now: datetime | None = None,
    user_name: str | None = None,
    context_loader: ContextLoader | None = None,
    provider: ChatProvider | None = None,
    max_messages: int = MAX_MESSAGES,
) -> str:
    """Answer the conversation's latest user message.

    Parameters
    ----------
    messages:
        Conversation so far, oldest first. Only the last ``max_messages``
        (default 20) are sent.
    settings:
        Provider selection and credentials.
    session, user_id:
        When both are given the user counts as signed in and finance context
        is loaded from the database for finance-looking questions.
    now:
        Reference instant for the context; defaults to the current UTC time.
    context_loader:
        Alternative context source (question -> JSON mapping), used instead
        of the database, e.g. for JSON input files.
    provider:
        Pre-built provider; defaults to :func:`provider_from_settings`.

    Raises
    ------
    ProviderError / ProviderResponseError
        When the upstream model call fails.
    """

    if provider is None:
        message = setup_message(settings)
        if message is not None:
            _logger.info("chat:setup_required provider=%s", settings.resolved_provider())
            return message
        provider = provider_from_settings(settings)

    trimmed = list(messages)[-max_messages:]
    question = last_user_text(trimmed)

    loader = context_loader
    if loader is None and session is not None and user_id:
        at = now or datetime.now(UTC)

        def _load(q: str) -> Mapping[str, Any]:
            return build_finance_context(session, user_id, q, at)

        loader = _load

    finance_context: Mapping[str, Any] | None = None
    if loader is not None and looks_like_finance_question(question):
        finance_context = _load_context(loader, question)

    _logger.info(
        "chat:request provider=%s messages=%d context=%s",
        provider.name,
        len(trimmed),
        "yes" if finance_context else "no",
    )
    reply = provider.complete(
        system=build_system_prompt(user_name),
        finance_context=finance_context,
        messages=trimmed,
    )
    return reply or EMPTY_REPLY


def welcome(
    settings: Settings,
    *,
    signed_in: bool,
    provider: ChatProvider | None = None,
) -> str:
    """Opening greeting for a new chat.

    The model writes it when a provider is configured; a provider failure or
    an empty reply falls back to a fixed greeting.
    """

    if provider is None:
        message = setup_message(settings)
        if message is not None:
            return message
        provider = provider_from_settings(settings)

    try:
        text = provider.complete(
            system=build_system_prompt(None),
            finance_context=None,
            messages=[ChatMessage(role="user", content=welcome_request(signed_in))],
        )
    except FinanceInsightsError as e:
        _logger.warning("chat:welcome_failed provider=%s error=%s", provider.name, e)
        return fallback_welcome(signed_in)
    return text.strip() or fallback_welcome(signed_in)


@dataclass(frozen=True, slots=True)
class ChatReply:
    session_id: str | None
    content: str


def chat_turn(
    session: Session,
    user_id: str,
    messages: Sequence[ChatMessage],
    settings: Settings,
    *,
    session_id: str | None = None,
    now: datetime | None = None,
    user_name: str | None = None,
    provider: ChatProvider | None = None,
) -> ChatReply:
    """Answer a signed-in user's latest message within a stored chat session.

    The stored history (last 60 rows) stands in for the incoming
    conversation; only the incoming latest user message is added, unless it
    already ends the history. The model sees at most 30 messages. The
    question and the reply are appended to the session afterwards.
    ``session_id`` is reused when the user owns it, otherwise a new session
    is opened.
    """

    if provider is None:
        message = setup_message(settings)
        if message is not None:
            return ChatReply(session_id=None, content=message)
        provider = provider_from_settings(settings)

    sid = memory.get_or_create_session(session, user_id, session_id)
    merged = memory.get_history(session, user_id, sid, limit=SESSION_HISTORY_LIMIT)
    question = last_user_text(messages)
    if question and not (merged and merged[-1] == ChatMessage(role="user", content=question)):
        merged.append(ChatMessage(role="user", content=question))

    reply = answer(
        merged[-SESSION_WINDOW:],
        settings,
        session=session,
        user_id=user_id,
        now=now,
        user_name=user_name,
        provider=provider,
        max_messages=SESSION_WINDOW,
    )
    if question:
        memory.append_messages(
            session,
            user_id,
            sid,
            [
                ChatMessage(role="user", content=question),
                ChatMessage(role="assistant", content=reply),
            ],
        )
    return ChatReply(session_id=sid, content=reply)


__all__ = [
    "CONTEXT_ERROR",
    "EMPTY_REPLY",
    "MAX_MESSAGES",
    "ChatReply",
    "answer",
    "chat_turn",
    "last_user_text",
    "setup_message",
    "welcome",
]
