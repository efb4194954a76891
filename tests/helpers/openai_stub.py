"""Test helpers to stub the chat providers used by ``finance_insights``.

``OpenAIStub`` mirrors the ``openai.OpenAI`` surface used by
:class:`~finance_insights.providers.OpenAIChatProvider`
(``client.chat.completions.create(...)``). ``RecordingProvider`` is a
drop-in :class:`~finance_insights.providers.ChatProvider` that records what
the assistant sends it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import SimpleNamespace
from typing import Any

from finance_insights.models import ChatMessage


class OpenAIStub:
    """Minimal stub matching ``openai.OpenAI`` for chat completions.

    Parameters
    ----------
    reply:
        Content returned as ``choices[0].message.content``. ``None`` models a
        response with empty content.
    calls_out:
        List appended with each call's kwargs for lightweight assertions.
    raise_exc:
        When set, ``create`` raises it instead of answering.
    """

    def __init__(
        self,
        reply: str | None = "ok",
        calls_out: list[dict[str, Any]] | None = None,
        raise_exc: BaseException | None = None,
    ) -> None:
        self._reply = reply
        self._calls = calls_out if calls_out is not None else []
        self._raise = raise_exc

        outer = self

        class _Completions:
            def create(self, **kwargs: Any) -> Any:
                outer._calls.append(kwargs)
                if outer._raise is not None:
                    raise outer._raise
                message = SimpleNamespace(content=outer._reply, role="assistant")
                return SimpleNamespace(choices=[SimpleNamespace(message=message)])

        self.chat = SimpleNamespace(completions=_Completions())

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls


class RecordingProvider:
    """Provider stub that captures each ``complete`` call."""

    name = "stub"

    def __init__(self, reply: str = "stub reply") -> None:
        self.reply = reply
        self.calls: list[dict[str, Any]] = []

    def complete(
        self,
        *,
        system: str,
        finance_context: Mapping[str, Any] | None,
        messages: Sequence[ChatMessage],
    ) -> str:
        self.calls.append(
            {"system": system, "finance_context": finance_context, "messages": list(messages)}
        )
        return self.reply
