"""Exceptions raised by the glue around the aggregation core.

The snapshot/summary/evaluation functions never raise for numeric edge cases;
everything here belongs to configuration, storage and chat providers.
"""

from __future__ import annotations


class FinanceInsightsError(Exception):
    """Base class for package errors."""


class ConfigurationError(FinanceInsightsError):
    """A required setting (database URL, API key) is missing or invalid."""


class ProviderError(FinanceInsightsError):
    """A chat provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status: int | None, body: str = "") -> None:
        self.provider = provider
        self.status = status
        # Bounded so upstream HTML error pages don't flood logs.
        self.body = body[:2000]
        super().__init__(f"{provider} error ({status if status is not None else 'unknown'})")


class ProviderResponseError(FinanceInsightsError):
    """A chat provider answered with a payload shape we do not recognize."""
