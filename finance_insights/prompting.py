"""Prompt construction for the finance assistant.

This module builds:
- The system prompt (assistant persona, grounding rules, key app routes).
- A single flat text prompt for completion-style models: system text, the
  optional finance context as indented JSON, the conversation, and a
  trailing ``Assistant:`` cue.
- The chat-message list for chat-completion models.
- The greeting request and its canned fallback.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from .models import ChatMessage

ASSISTANT_NAME = "Emerald Bot"

SETUP_MESSAGE = (
    f"Hi, I'm {ASSISTANT_NAME}.\n\n"
    "This app doesn't have an AI provider configured yet.\n\n"
    "To enable chat, add an AI provider to .env and run the command again:\n\n"
    "Option A (Hugging Face):\n"
    "CHAT_PROVIDER=huggingface\n"
    "HUGGINGFACE_API_KEY=...\n"
    "HUGGINGFACE_MODEL=mistralai/Mistral-7B-Instruct-v0.3\n\n"
    "Option B (OpenAI):\n"
    "CHAT_PROVIDER=openai\n"
    "OPENAI_API_KEY=...\n"
    "OPENAI_MODEL=gpt-4o-mini"
)


def welcome_request(signed_in: bool) -> str:
    """Instruction sent as the user turn when asking the model for a greeting."""

    focus = (
        "Mention you can help analyze budgets and spending inside the app. "
        if signed_in
        else "Mention that signing in and connecting accounts enables personalized insights. "
    )
    return (
        "Write a short, friendly welcome message (2-4 sentences). "
        f"Introduce yourself as {ASSISTANT_NAME}. "
        + focus
        + "End with: 'What would you like to do today?'"
    )


def fallback_welcome(signed_in: bool) -> str:
    extra = (
        "You can ask about spending trends, budgets, or recent transactions."
        if signed_in
        else "Sign in to connect accounts for personalized insights."
    )
    return f"Hi, I'm {ASSISTANT_NAME}.\n\n{extra} What would you like to do today?"


def build_system_prompt(user_name: str | None = None) -> str:
    """Return the assistant's system prompt, personalised when a name is known."""

    name = f" The user's name is {user_name}." if user_name else ""
    return (
        f"You are {ASSISTANT_NAME}, a helpful finance and product assistant for the "
        "Emerald Finance web app."
        + name
        + " You guide users through the platform and answer questions accurately and concisely."
        " If finance context (JSON) is provided, use it to answer with exact numbers and"
        " concrete takeaways."
        " The finance context may include an evaluation object (score/insights). Prefer using"
        " it instead of inventing your own scoring."
        " If finance context indicates no linked card, no credit accounts, or no transactions,"
        " explain that and suggest the next step."
        " Never invent numbers. If a number is not present in the context, say you don't have it."
        " When users ask where to do something, always mention the most relevant route."
        " Key routes: /dashboard (insights + trends), /banking (connect Plaid + Stripe),"
        " /auth/sign-in (login), / (home)."
    )


def render_finance_context(finance_context: Mapping[str, Any]) -> str:
    return json.dumps(finance_context, indent=2, ensure_ascii=False)


def _speaker(message: ChatMessage) -> str:
    return "User" if message.role == "user" else "Assistant"


def build_prompt(
    system: str,
    finance_context: Mapping[str, Any] | None,
    messages: Sequence[ChatMessage],
) -> str:
    """Render a flat completion prompt.

    An empty or missing ``finance_context`` omits the JSON block entirely.
    """

    lines: list[str] = [f"System: {system}"]
    if finance_context:
        lines.append("\nFinance context (JSON):")
        lines.append(render_finance_context(finance_context))
    lines.append("\nConversation:")
    for m in messages:
        lines.append(f"{_speaker(m)}: {m.content}")
    lines.append("Assistant:")
    return "\n".join(lines)


def build_chat_messages(
    system: str,
    finance_context: Mapping[str, Any] | None,
    messages: Sequence[ChatMessage],
) -> list[dict[str, str]]:
    """Return chat-completion messages; the context rides in a second system turn."""

    out: list[dict[str, str]] = [{"role": "system", "content": system}]
    if finance_context:
        out.append(
            {
                "role": "system",
                "content": "Finance context (JSON):\n" + render_finance_context(finance_context),
            }
        )
    out.extend({"role": m.role, "content": m.content} for m in messages)
    return out


__all__ = [
    "ASSISTANT_NAME",
    "SETUP_MESSAGE",
    "build_chat_messages",
    "build_prompt",
    "build_system_prompt",
    "fallback_welcome",
    "render_finance_context",
    "welcome_request",
]
