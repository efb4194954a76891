"""Currency code normalization and inference from account rows."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import Account

_ISO_CODE = re.compile(r"^[A-Z]{3}$")


def normalize_currency_code(code: str | None) -> str | None:
    """Return ``code`` trimmed and upper-cased when it looks like ISO 4217."""

    c = (code or "").strip().upper()
    if not _ISO_CODE.match(c):
        return None
    return c


def infer_currency_code(accounts: Iterable[Account], fallback: str | None = None) -> str | None:
    """Return the most common normalized currency across ``accounts``.

    Ties go to the code seen first. When no account carries a usable code the
    normalized ``fallback`` is returned (which may itself be ``None``).
    """

    counts: dict[str, int] = {}
    for account in accounts:
        code = normalize_currency_code(account.currency_code)
        if code is None:
            continue
        counts[code] = counts.get(code, 0) + 1

    best: str | None = None
    best_count = 0
    for code, count in counts.items():
        if count > best_count:
            best = code
            best_count = count

    return best or normalize_currency_code(fallback)
