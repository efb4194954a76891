"""Pytest configuration shared by the suite.

Tests must not pick up a developer's ``.env`` or shell configuration: the
provider keys and ``DATABASE_URL`` are cleared for every test, and the clock
is pinned through the ``now`` fixture instead of ``datetime.now()``.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

_ENV_VARS = (
    "DATABASE_URL",
    "CHAT_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "HUGGINGFACE_API_KEY",
    "HUGGINGFACE_MODEL",
    "FINANCE_INSIGHTS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def sqlite_url(tmp_path: Path) -> Iterator[str]:
    from db.client import dispose_all

    from tests.helpers.db import bootstrap_sqlite_db

    url = bootstrap_sqlite_db(tmp_path / "finance.sqlite3")
    yield url
    dispose_all()
