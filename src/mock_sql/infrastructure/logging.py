"""Structured logging for the mock SQL engine.

Events are rendered by structlog as JSON lines (the default) or as
coloured console output. Batch-scoped context such as the session
database and the statement count is merged from contextvars, and SQL text
is shortened by :class:`TruncateSQL` so a pasted script does not flood the
log.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SQL_KEYS = ("sql", "statement")


class TruncateSQL:
    """Processor that shortens SQL text in log events.

    Only string values under :data:`SQL_KEYS` are touched; ``statement``
    is also used for a statement index, which stays as is.

    Args:
        max_length: Longest SQL text kept verbatim.
    """

    def __init__(self, max_length: int = 200) -> None:
        self.max_length = max_length

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        for key in SQL_KEYS:
            value = event_dict.get(key)
            if isinstance(value, str) and len(value) > self.max_length:
                event_dict[key] = f"{value[: self.max_length]}... ({len(value)} chars)"
        return event_dict


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    max_sql_length: int = 200,
) -> None:
    """
    Configure structlog, and stdlib logging for uvicorn and other libraries.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: 'json' or 'console'
        max_sql_length: SQL text in events is truncated beyond this length
    """
    numeric_level = logging.getLevelName(level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        TruncateSQL(max_sql_length),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a structlog logger, optionally bound to initial context."""
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
