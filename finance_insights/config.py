"""Process configuration.

``Settings`` is built once at startup (the CLI loads ``.env`` with
``python-dotenv`` first) and handed to whatever needs it. The aggregation
core takes no settings at all.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_HUGGINGFACE_MODEL = "mistralai/Mistral-7B-Instruct-v0.3"

_KNOWN_PROVIDERS: frozenset[str] = frozenset({"openai", "huggingface"})


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s or None


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit configuration for storage, chat providers and logging.

    Attributes
    ----------
    database_url:
        SQLAlchemy URL of the finance database (``DATABASE_URL``).
    chat_provider:
        Requested provider (``CHAT_PROVIDER``), lower-cased. May name an
        unsupported provider; :meth:`resolved_provider` reports that.
    openai_api_key / openai_model:
        ``OPENAI_API_KEY`` / ``OPENAI_MODEL``.
    huggingface_api_key / huggingface_model:
        ``HUGGINGFACE_API_KEY`` / ``HUGGINGFACE_MODEL``.
    log_level:
        ``FINANCE_INSIGHTS_LOG_LEVEL``; ``None`` means INFO.
    """

    database_url: str | None = None
    chat_provider: str | None = None
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    huggingface_api_key: str | None = None
    huggingface_model: str = DEFAULT_HUGGINGFACE_MODEL
    log_level: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        provider = _blank_to_none(env.get("CHAT_PROVIDER"))
        return cls(
            database_url=_blank_to_none(env.get("DATABASE_URL")),
            chat_provider=provider.lower() if provider else None,
            openai_api_key=_blank_to_none(env.get("OPENAI_API_KEY")),
            openai_model=_blank_to_none(env.get("OPENAI_MODEL")) or DEFAULT_OPENAI_MODEL,
            huggingface_api_key=_blank_to_none(env.get("HUGGINGFACE_API_KEY")),
            huggingface_model=(
                _blank_to_none(env.get("HUGGINGFACE_MODEL")) or DEFAULT_HUGGINGFACE_MODEL
            ),
            log_level=_blank_to_none(env.get("FINANCE_INSIGHTS_LOG_LEVEL")),
        )

    def resolved_provider(self) -> str | None:
        """Return the provider to use, or ``None`` when chat is not set up.

        An explicit ``chat_provider`` wins even when unsupported (callers turn
        that into a setup message). Otherwise OpenAI is preferred when its key
        is present, then Hugging Face.
        """

        if self.chat_provider:
            return self.chat_provider
        if self.openai_api_key:
            return "openai"
        if self.huggingface_api_key:
            return "huggingface"
        return None

    def is_supported_provider(self, name: str | None) -> bool:
        return name in _KNOWN_PROVIDERS

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigurationError(
                "DATABASE_URL is not set; pass --database-url or set it in the environment"
            )
        return self.database_url
