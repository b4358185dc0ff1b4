"""
Logging utilities for the CT STH Monitor.

This module provides structured logging using structlog,
with support for both console and JSON output.

Components never log through a hidden global: the Pipeline, Scheduler and
API Call Recorder each take a bound logger as a dependency. ``get_logger``
builds one with the Log identity already bound.

Example:
    >>> from ct_sth_monitor.utils import setup_logging, get_logger
    >>>
    >>> setup_logging(level="INFO", format="json")
    >>> logger = get_logger(__name__, log_url="https://ct.example.com/log/")
    >>> logger.info("sth_stored", tree_size=100)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

LOG_FORMATS = ("console", "json")


def setup_logging(
    level: str = "INFO",
    format: str = "console",
    *,
    include_timestamp: bool = True,
    include_location: bool = False,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("console" or "json")
        include_timestamp: Include timestamps in output
        include_location: Include source file/line info

    Raises:
        ValueError: If the format is not supported
    """
    if format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format '{format}', expected one of {LOG_FORMATS}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_location:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    processors.append(structlog.stdlib.PositionalArgumentsFormatter())
    processors.append(structlog.processors.StackInfoRenderer())
    processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.processors.UnicodeDecoder())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **bindings: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger instance, optionally with bound context.

    Args:
        name: Logger name (usually __name__)
        **bindings: Key-value pairs included in every event

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__, component="sth_getter")
        >>> logger.info("getting_sth")
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    if bindings:
        logger = logger.bind(**bindings)
    return logger
