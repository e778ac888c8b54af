"""Structured logging for MCP Platform.

Events are logged as a short message plus key/value fields through
structlog. Output goes to stderr so that command output on stdout stays
clean.
"""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog
from structlog.types import Processor


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure structured logging for the application.
    
    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of console output
        stream: Destination of log lines, stderr by default
    """
    level = _level(log_level)
    stream = stream or sys.stderr
    
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))
    
    # Loggers are not cached: each invocation may bring a new stream.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
    
    # Third-party libraries log through the standard library.
    logging.basicConfig(format="%(message)s", stream=stream, level=level)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Get a structlog logger, optionally bound to ``initial_context``."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial_context) if initial_context else logger


def bind_context(**context: Any) -> None:
    """Bind values to every log event of the current context (e.g. a conversation id)."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
