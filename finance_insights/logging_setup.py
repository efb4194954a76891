"""Package logging for ``finance_insights``.

Library modules log through ``get_logger("finance_insights.<module>")`` and
never attach handlers. The CLI calls :func:`configure_logging` once with
``Settings.log_level``; until then the package logger only carries a
``NullHandler``.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

ROOT_LOGGER = "finance_insights"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DEFAULT_LEVEL = logging.INFO

_STREAM_HANDLER = "finance_insights.stream"


def resolve_level(value: int | str | None) -> int:
    """Map a configured level to a ``logging`` level number.

    ``None`` and blank strings mean :data:`DEFAULT_LEVEL`. Strings may be a
    level name in any case (``"debug"``) or a number (``"15"``). Unknown
    names fall back to the default.
    """

    if isinstance(value, int):
        return value
    text = (value or "").strip().upper()
    if not text:
        return DEFAULT_LEVEL
    if text.isdigit():
        return int(text)
    mapped = logging.getLevelNamesMapping().get(text)
    return DEFAULT_LEVEL if mapped is None else mapped


def _stream_handler(logger: logging.Logger) -> logging.Handler | None:
    for h in logger.handlers:
        if h.get_name() == _STREAM_HANDLER:
            return h
    return None


def configure_logging(
    level: int | str | None = None,
    *,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Send package logs to ``stream`` at ``level`` and return the root logger.

    Safe to call more than once: the existing stream handler is reused and
    only its level changes.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    resolved = resolve_level(level)

    handler = _stream_handler(logger)
    if handler is None:
        for h in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
            logger.removeHandler(h)
        handler = logging.StreamHandler(stream)
        handler.set_name(_STREAM_HANDLER)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    handler.setLevel(resolved)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)
