"""
pulsar_deploy.observability - Logging Setup
=============================================

Every module logs through a module-level ``structlog.get_logger()``; this
module decides how those events are rendered. Logs go to stderr so that the
run report on stdout stays machine-readable.

    configure_logging("INFO", "console")  → human-readable key=value lines
    configure_logging("DEBUG", "json")    → one JSON object per event
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from pulsar_deploy.core.exceptions import ConfigurationError


LOG_LEVELS: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # Looked up per logger so a swapped sys.stderr (tests, CliRunner) is honoured
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog rendering for the process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: "console" or "json".

    Raises:
        ConfigurationError: On an unknown level or format.
    """
    numeric_level = LOG_LEVELS.get(level.upper())
    if numeric_level is None:
        raise ConfigurationError(
            message=f"Unknown log level: {level}",
            error_code="INVALID_LOG_LEVEL",
            details={"level": level},
        )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if fmt == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    elif fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        raise ConfigurationError(
            message=f"Unknown log format: {fmt}",
            error_code="INVALID_LOG_FORMAT",
            details={"format": fmt},
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
