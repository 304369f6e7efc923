"""
Structured Logging

structlog setup for voicetasks. JSON lines for files and pipes, a pretty
renderer for interactive use. Output goes to stderr (or the log file) so the
chat loop owns stdout.

Per-conversation context is carried in contextvars: bind_context() once per
session and every event logged while handling it carries the ids.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.typing import EventDict, WrappedLogger

from voicetasks import __version__


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp every entry with the application name and version."""
    event_dict["app"] = "voicetasks"
    event_dict.setdefault("version", __version__)
    return event_dict


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console"] = "json",
    log_file: Path | None = None,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Minimum log level to output
        format: 'json' or 'console'; a log file always gets JSON
        log_file: Write events to this file instead of stderr
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
    ]

    if format == "json" or log_file:
        renderer: list[Any] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        factory: Any = structlog.WriteLoggerFactory(file=log_file.open("a", encoding="utf-8"))
    else:
        factory = structlog.PrintLoggerFactory(file=sys.stderr)

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=factory,
        cache_logger_on_first_use=True,
    )

    # Third-party libraries log through stdlib
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr, level=log_level)
    for noisy in ("asyncio", "httpx", "openai", "anthropic", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))


def bind_context(**values: Any) -> None:
    """Attach key-values to every event logged from this context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__ of the calling module)
    """
    return structlog.get_logger(name)
