"""
Structured logging for scylladb-migrate.

All events go to stderr through structlog; stdout belongs to command output
(status tables, ``--json`` payloads). Modules log dotted event names with
key/value fields:

    logger = get_logger(__name__)
    logger.info("migration.applied", migration_id="2024-05-01-120000_users")

Console output (interactive terminal):
    2024-05-01T12:00:00Z [info     ] migration.applied  migration_id=2024-05-01-120000_users stream=migrate

JSON output (redirected stderr, or ``--json-logs``):
    {"migration_id": "2024-05-01-120000_users", "stream": "migrate", "direction": "up",
     "event": "migration.applied", "level": "info", "tool": "scylladb-migrate", ...}
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

TOOL_NAME = "scylladb-migrate"


def _add_tool_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("tool", TOOL_NAME)
    return event_dict


def _plain_enums(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Log ``MigrationStatus.SUCCESS`` as ``"success"``."""
    for key, value in event_dict.items():
        if isinstance(value, str) and hasattr(value, "value"):
            event_dict[key] = value.value
    return event_dict


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return number


def configure_logging(level: str = "INFO", json_format: bool | None = None) -> None:
    """(Re)configure structlog for the process.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_format: True for JSON lines, False for the console renderer,
            None to pick JSON whenever stderr is not a terminal
    """
    interactive = sys.stderr.isatty()
    if json_format is None:
        json_format = not interactive

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_tool_name,
        _plain_enums,
        structlog.processors.format_exc_info if json_format else structlog.dev.set_exc_info,
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=interactive),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields to every event logged inside the block.

    Example:
        with LogContext(stream="migrate", direction="up"):
            logger.info("migration.applying", migration_id=unit.id)
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = [
    "TOOL_NAME",
    "configure_logging",
    "get_logger",
    "clear_context",
    "LogContext",
]
