"""Structured logging for calstore.

structlog events and plain stdlib records (SQLAlchemy, aiosqlite) go through
one ``ProcessorFormatter`` on a single stderr handler, so both render the same
way: key/value console lines in development, JSON lines in production.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from calstore.config import get_settings

HANDLER_NAME = "calstore"

_SHARED_PROCESSORS: list[structlog.typing.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def setup_logging(level: Optional[str] = None, *, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Level name overriding ``CALSTORE_LOG_LEVEL``.
        json_logs: Force JSON (True) or console (False) rendering. Defaults
            to JSON when ``CALSTORE_ENV`` is ``production``.

    Safe to call repeatedly; the previous calstore handler is replaced.
    """
    settings = get_settings()
    level_name = (level or settings.calstore_log_level).strip().upper()
    log_level = getattr(logging, level_name, logging.INFO)
    if json_logs is None:
        json_logs = settings.calstore_env == "production"

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    # SQL echo is far too chatty below WARNING.
    logging.getLogger("sqlalchemy.engine").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structured logger."""
    return structlog.get_logger(name)
