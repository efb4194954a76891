from __future__ import annotations

from datetime import datetime

import pytest
from db.client import session_scope
from db.models.finance import ChatMessage as ChatMessageRow
from db.models.finance import ChatSession, User
from sqlalchemy import func, select

from finance_insights import memory
from finance_insights.assistant import ChatReply, chat_turn, welcome
from finance_insights.config import Settings
from finance_insights.errors import ProviderError
from finance_insights.models import ChatMessage
from finance_insights.prompting import SETUP_MESSAGE, fallback_welcome
from tests.helpers.db import seed_user
from tests.helpers.openai_stub import RecordingProvider

# ---- Helpers -----------------------------------------------------------------


def _user(text: str) -> ChatMessage:
    return ChatMessage(role="user", content=text)


def _bot(text: str) -> ChatMessage:
    return ChatMessage(role="assistant", content=text)


class _FailingProvider(RecordingProvider):
    def complete(self, **kwargs):
        raise ProviderError("OpenAI", 503, "unavailable")


# ---- sessions ----------------------------------------------------------------


def test_new_session_creates_user_row(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "newcomer")

    with session_scope(database_url=sqlite_url) as s:
        assert s.get(User, "newcomer") is not None
        owner = s.execute(select(ChatSession.user_id).where(ChatSession.id == sid)).scalar_one()
    assert owner == "newcomer"


def test_existing_session_is_reused_only_by_its_owner(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        again = memory.get_or_create_session(s, "alice", sid)
        foreign = memory.get_or_create_session(s, "mallory", sid)
        unknown = memory.get_or_create_session(s, "alice", "no-such-session")

    assert again == sid
    assert foreign != sid
    assert unknown not in (sid, foreign)


# ---- history -----------------------------------------------------------------


def test_history_is_oldest_first(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(s, "alice", sid, [_user("hi"), _bot("hello")])
        memory.append_messages(s, "alice", sid, [_user("spend?"), _bot("$10")])

    with session_scope(database_url=sqlite_url) as s:
        history = memory.get_history(s, "alice", sid)

    assert history == [_user("hi"), _bot("hello"), _user("spend?"), _bot("$10")]


def test_history_drops_non_chat_roles(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(s, "alice", sid, [_user("hi")])
        s.add(ChatMessageRow(session_id=sid, role="tool", content='{"x": 1}'))
        s.flush()
        memory.append_messages(s, "alice", sid, [_bot("hello")])

        assert memory.get_history(s, "alice", sid) == [_user("hi"), _bot("hello")]


@pytest.mark.parametrize(("limit", "expected"), [(0, 1), (-5, 1), (3, 3), (500, 200)])
def test_history_limit_is_clamped(sqlite_url: str, limit: int, expected: int) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(s, "alice", sid, [_user(f"m{i}") for i in range(205)])

        history = memory.get_history(s, "alice", sid, limit=limit)

    assert len(history) == expected
    assert history[0] == _user("m0")


def test_history_default_limit(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(s, "alice", sid, [_user(f"m{i}") for i in range(50)])

        assert len(memory.get_history(s, "alice", sid)) == memory.HISTORY_DEFAULT_LIMIT


def test_history_and_append_are_scoped_to_owner(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(s, "alice", sid, [_user("private")])

        written = memory.append_messages(s, "mallory", sid, [_user("injected")])
        seen = memory.get_history(s, "mallory", sid)
        count = s.execute(select(func.count()).select_from(ChatMessageRow)).scalar_one()

    assert written == 0
    assert seen == []
    assert count == 1


def test_append_nothing_is_noop(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        assert memory.append_messages(s, "alice", sid, []) == 0


# ---- chat_turn ---------------------------------------------------------------


def test_chat_turn_persists_question_and_reply(sqlite_url: str, now: datetime) -> None:
    provider = RecordingProvider("Hello there")

    with session_scope(database_url=sqlite_url) as s:
        first = chat_turn(s, "alice", [_user("hi")], Settings(), now=now, provider=provider)
    with session_scope(database_url=sqlite_url) as s:
        second = chat_turn(
            s,
            "alice",
            [_user("ignored earlier turn"), _bot("x"), _user("and now?")],
            Settings(),
            session_id=first.session_id,
            now=now,
            provider=provider,
        )
        history = memory.get_history(s, "alice", second.session_id or "")

    assert first == ChatReply(session_id=first.session_id, content="Hello there")
    assert second.session_id == first.session_id
    # Stored history replaces the incoming conversation; only the last user turn is added
    assert provider.calls[1]["messages"] == [_user("hi"), _bot("Hello there"), _user("and now?")]
    assert history == [
        _user("hi"),
        _bot("Hello there"),
        _user("and now?"),
        _bot("Hello there"),
    ]


def test_chat_turn_keeps_thirty_messages(sqlite_url: str, now: datetime) -> None:
    provider = RecordingProvider()
    with session_scope(database_url=sqlite_url) as s:
        sid = memory.get_or_create_session(s, "alice")
        memory.append_messages(
            s, "alice", sid, [(_user if i % 2 == 0 else _bot)(f"m{i}") for i in range(40)]
        )
        chat_turn(s, "alice", [_user("latest")], Settings(), session_id=sid, provider=provider)

    sent = provider.calls[0]["messages"]
    assert len(sent) == 30
    assert sent[-1] == _user("latest")


def test_chat_turn_without_provider_skips_storage(sqlite_url: str) -> None:
    with session_scope(database_url=sqlite_url) as s:
        reply = chat_turn(s, "alice", [_user("hi")], Settings())
        sessions = s.execute(select(func.count()).select_from(ChatSession)).scalar_one()

    assert reply == ChatReply(session_id=None, content=SETUP_MESSAGE)
    assert sessions == 0


def test_chat_turn_loads_finance_context(sqlite_url: str, now: datetime) -> None:
    seed_user(database_url=sqlite_url, user_id="alice", card=False)
    provider = RecordingProvider()

    with session_scope(database_url=sqlite_url) as s:
        chat_turn(s, "alice", [_user("what's my balance?")], Settings(), now=now, provider=provider)

    ctx = provider.calls[0]["finance_context"]
    assert ctx["evaluation"]["status"] == "no_data"


# ---- welcome -----------------------------------------------------------------


def test_welcome_without_provider_is_setup_message() -> None:
    assert welcome(Settings(), signed_in=True) == SETUP_MESSAGE


def test_welcome_asks_model_with_signed_in_focus() -> None:
    provider = RecordingProvider("  Welcome back!  ")

    text = welcome(Settings(), signed_in=True, provider=provider)

    assert text == "Welcome back!"
    request = provider.calls[0]["messages"][0]
    assert request.role == "user"
    assert "analyze budgets and spending" in request.content
    assert provider.calls[0]["finance_context"] is None


@pytest.mark.parametrize("signed_in", [True, False])
def test_welcome_falls_back_on_failure_or_empty_reply(signed_in: bool) -> None:
    assert welcome(Settings(), signed_in=signed_in, provider=_FailingProvider()) == (
        fallback_welcome(signed_in)
    )
    assert welcome(Settings(), signed_in=signed_in, provider=RecordingProvider("   ")) == (
        fallback_welcome(signed_in)
    )


def test_fallback_welcome_text() -> None:
    assert "Sign in to connect accounts" in fallback_welcome(False)
    assert "spending trends, budgets, or recent transactions" in fallback_welcome(True)
    assert fallback_welcome(True).endswith("What would you like to do today?")
