from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from finance_insights.config import Settings
from finance_insights.logging_setup import (
    DEFAULT_LEVEL,
    ROOT_LOGGER,
    configure_logging,
    get_logger,
    resolve_level,
)


@pytest.fixture
def pkg_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger(ROOT_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, logging.INFO),
        ("", logging.INFO),
        ("   ", logging.INFO),
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("15", 15),
        (logging.ERROR, logging.ERROR),
        ("chatty", DEFAULT_LEVEL),
    ],
)
def test_resolve_level(value: int | str | None, expected: int) -> None:
    assert resolve_level(value) == expected


def test_blank_env_level_resolves_to_default() -> None:
    settings = Settings.from_env({"FINANCE_INSIGHTS_LOG_LEVEL": "  "})

    assert settings.log_level is None
    assert resolve_level(settings.log_level) == logging.INFO


def test_level_comes_from_argument_not_environment(
    pkg_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FINANCE_INSIGHTS_LOG_LEVEL", "DEBUG")

    configure_logging(None, stream=io.StringIO())

    assert pkg_logger.level == logging.INFO


def test_configure_logging_writes_to_stream_once(pkg_logger: logging.Logger) -> None:
    get_logger("finance_insights.test")
    buf = io.StringIO()

    configure_logging("warning", stream=buf)
    configure_logging("debug", stream=io.StringIO())
    get_logger("finance_insights.test").debug("snapshot:build period=%s", "1W")

    streams = [h for h in pkg_logger.handlers if not isinstance(h, logging.NullHandler)]
    assert len(streams) == 1
    assert len(pkg_logger.handlers) == 1
    assert pkg_logger.level == logging.DEBUG
    assert "finance_insights.test DEBUG snapshot:build period=1W" in buf.getvalue()


def test_get_logger_is_silent_until_configured(pkg_logger: logging.Logger) -> None:
    get_logger("finance_insights.api")

    assert [type(h) for h in pkg_logger.handlers] == [logging.NullHandler]
