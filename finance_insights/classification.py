"""Keyword classification of provider category labels.

Provider labels such as ``"ENTERTAINMENT"`` or ``"GENERAL_SERVICES"`` are
mapped onto the three dashboard splits by an ordered rule table: the first
keyword found (case-insensitive substring) decides, and anything unmatched is
an essential.
"""

from __future__ import annotations

from .models import SpendingCategory

CATEGORY_RULES: tuple[tuple[str, SpendingCategory], ...] = (
    ("SUBSCRIPT", SpendingCategory.SUBSCRIPTIONS),
    ("SERVICE", SpendingCategory.SUBSCRIPTIONS),
    ("STREAM", SpendingCategory.SUBSCRIPTIONS),
    ("ENTERTAIN", SpendingCategory.LEISURE),
    ("TRAVEL", SpendingCategory.LEISURE),
    ("TRANSPORT", SpendingCategory.LEISURE),
    ("RECREATION", SpendingCategory.LEISURE),
)

DEFAULT_CATEGORY = SpendingCategory.ESSENTIALS


def classify(label: str | None) -> SpendingCategory:
    """Return the spending split for a provider category ``label``."""

    s = (label or "").upper()
    for keyword, category in CATEGORY_RULES:
        if keyword in s:
            return category
    return DEFAULT_CATEGORY
