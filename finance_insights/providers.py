"""Chat providers: OpenAI chat completions and Hugging Face text generation.

Both providers expose ``complete(system=..., finance_context=..., messages=...)``
and return the stripped reply text (possibly empty). Upstream HTTP failures
raise :class:`~finance_insights.errors.ProviderError`; payloads that decode
to none of the known response variants raise
:class:`~finance_insights.errors.ProviderResponseError`.

No side effects occur at import time; clients are created per call through
small factory functions that tests replace with stubs.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import openai
from openai import OpenAI
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .config import Settings
from .errors import ConfigurationError, ProviderError, ProviderResponseError
from .logging_setup import get_logger
from .models import ChatMessage
from .prompting import build_chat_messages, build_prompt

_logger = get_logger("finance_insights.providers")

# ---- Tunables ----
OPENAI_TEMPERATURE = 0.4
HF_API_BASE = "https://api-inference.huggingface.co/models/"
HF_MAX_NEW_TOKENS = 500
HF_TEMPERATURE = 0.3
HF_TIMEOUT_SECONDS = 120.0


class ChatProvider(Protocol):
    name: str

    def complete(
        self,
        *,
        system: str,
        finance_context: Mapping[str, Any] | None,
        messages: Sequence[ChatMessage],
    ) -> str: ...


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


def _create_openai_client(api_key: str) -> OpenAI:
    return OpenAI(api_key=api_key)


class OpenAIChatProvider:
    """Chat-completions provider backed by the ``openai`` SDK."""

    name = "openai"

    def __init__(self, *, api_key: str, model: str) -> None:
        self.api_key = api_key
        self.model = model

    def complete(
        self,
        *,
        system: str,
        finance_context: Mapping[str, Any] | None,
        messages: Sequence[ChatMessage],
    ) -> str:
        client = _create_openai_client(self.api_key)
        try:
            resp = client.chat.completions.create(
                model=self.model,
                temperature=OPENAI_TEMPERATURE,
                messages=build_chat_messages(system, finance_context, messages),
            )
        except openai.APIStatusError as e:
            raise ProviderError("OpenAI", e.status_code, _status_error_body(e)) from e
        except openai.APIConnectionError as e:
            raise ProviderError("OpenAI", None, str(e)) from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise ProviderResponseError("OpenAI response contained no choices")
        content = choices[0].message.content
        return (content or "").strip()


def _status_error_body(e: openai.APIStatusError) -> str:
    body = e.body
    if body is None:
        return e.message
    if isinstance(body, str):
        return body
    return json.dumps(body, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Hugging Face
# ---------------------------------------------------------------------------


class _Generation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    generated_text: str


class _ErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error: str


# Variants tried in order: list of generations, single generation, error object.
_HF_RESPONSE = TypeAdapter(list[_Generation] | _Generation | _ErrorBody)


def decode_huggingface_response(payload: Any) -> str:
    """Decode a text-generation payload into the generated text.

    An empty generation list yields ``""``. An ``{"error": ...}`` object raises
    :class:`ProviderError`; anything else raises :class:`ProviderResponseError`.
    """

    try:
        decoded = _HF_RESPONSE.validate_python(payload)
    except ValidationError as e:
        raise ProviderResponseError(
            f"Unrecognized Hugging Face response shape: {type(payload).__name__}"
        ) from e

    if isinstance(decoded, list):
        return decoded[0].generated_text.strip() if decoded else ""
    if isinstance(decoded, _Generation):
        return decoded.generated_text.strip()
    raise ProviderError("Hugging Face", None, decoded.error)


def _post_json(url: str, payload: Mapping[str, Any], *, api_key: str) -> Any:
    """POST ``payload`` as JSON and return the parsed JSON body."""

    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(url, data=data, method="POST")
    req.add_header("Authorization", f"Bearer {api_key}")
    req.add_header("Content-Type", "application/json")

    try:
        with urllib.request.urlopen(req, timeout=HF_TIMEOUT_SECONDS) as resp:
            body = resp.read()
    except urllib.error.HTTPError as e:
        err_body = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
        raise ProviderError("Hugging Face", e.code, err_body) from e
    except urllib.error.URLError as e:
        raise ProviderError("Hugging Face", None, str(e.reason)) from e

    try:
        return json.loads(body.decode("utf-8"))
    except json.JSONDecodeError as e:
        raise ProviderResponseError("Hugging Face response was not valid JSON") from e


class HuggingFaceProvider:
    """Text-generation provider for the Hugging Face inference endpoint."""

    name = "huggingface"

    def __init__(self, *, api_key: str, model: str) -> None:
        self.api_key = api_key
        self.model = model

    @property
    def url(self) -> str:
        return HF_API_BASE + urllib.parse.quote(self.model, safe="")

    def payload(self, prompt: str) -> dict[str, Any]:
        return {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": HF_MAX_NEW_TOKENS,
                "temperature": HF_TEMPERATURE,
                "return_full_text": False,
            },
            "options": {"wait_for_model": True},
        }

    def complete(
        self,
        *,
        system: str,
        finance_context: Mapping[str, Any] | None,
        messages: Sequence[ChatMessage],
    ) -> str:
        prompt = build_prompt(system, finance_context, messages)
        _logger.debug("hf:request model=%s prompt_chars=%d", self.model, len(prompt))
        body = _post_json(self.url, self.payload(prompt), api_key=self.api_key)
        return decode_huggingface_response(body)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def provider_from_settings(settings: Settings) -> ChatProvider:
    """Instantiate the provider named by ``settings.resolved_provider()``.

    Raises :class:`ConfigurationError` when no supported provider is
    configured or its API key is missing.
    """

    name = settings.resolved_provider()
    if name == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        return OpenAIChatProvider(api_key=settings.openai_api_key, model=settings.openai_model)
    if name == "huggingface":
        if not settings.huggingface_api_key:
            raise ConfigurationError("HUGGINGFACE_API_KEY is not set")
        return HuggingFaceProvider(
            api_key=settings.huggingface_api_key, model=settings.huggingface_model
        )
    if name is None:
        raise ConfigurationError("No chat provider configured")
    raise ConfigurationError(
        f"Unsupported CHAT_PROVIDER: {name}. Use 'openai' or 'huggingface'."
    )


__all__ = [
    "ChatProvider",
    "HuggingFaceProvider",
    "OpenAIChatProvider",
    "decode_huggingface_response",
    "provider_from_settings",
]
