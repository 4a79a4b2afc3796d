"""Structured logging configuration for Curator.

This module provides structured logging using structlog. Logs are JSON in
production (for log aggregators) and colored console output in development.

Configuration:
    Set via environment variables:
    - CURATOR_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - CURATOR_LOG_FORMAT: json, console (default: json in production, console in dev)
    - CURATOR_ENVIRONMENT: development, production (affects format default)

Usage:
    >>> from curator.observability.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("arms_selected", selected=12, excluded=3, used_tokens=7400)

Standard Events:
    Selection:
        - arms_selected: Selector partitioned candidates
        - baseline_run: Turn runs with the full context
        - oracle_fallback: Oracle unavailable, first-fit fallback used

    Learning:
        - trace_captured: Run trace persisted
        - posteriors_updated: Bayesian update applied
        - posteriors_reset: Operator reset
        - reward_recorded: Operator reward injected

    Errors:
        - best_effort_failed: Hot-path operation swallowed an error
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.types import Processor

# Module-level flag to track initialization
_configured = False


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
    is_production: bool | None = None,
) -> None:
    """Configure structured logging for the application.

    Should be called once at startup. Subsequent calls are no-ops.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Default from CURATOR_LOG_LEVEL.
        log_format: Output format (json, console). Default based on environment.
        is_production: Override production detection. Default from CURATOR_ENVIRONMENT.
    """
    global _configured
    if _configured:
        return

    if level is None:
        level = os.getenv("CURATOR_LOG_LEVEL", "INFO")
    level = level.upper()

    if is_production is None:
        is_production = (
            os.getenv("CURATOR_ENVIRONMENT", "development").lower() == "production"
        )

    if log_format is None:
        log_format = os.getenv(
            "CURATOR_LOG_FORMAT", "json" if is_production else "console"
        )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Loggers are lazy proxies, so module-level ``get_logger(__name__)`` is
    safe before configure_logging runs.

    Args:
        name: Logger name (typically __name__)

    Returns:
        structlog BoundLogger
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_context(**kwargs: Any) -> None:
    """Bind context variables (session_key, run_id) to subsequent log calls."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables.

    Call at the end of a turn to prevent context leakage.
    """
    structlog.contextvars.clear_contextvars()


class LogEvents:
    """Standard event names for structured logging.

    Example:
        >>> logger.info(LogEvents.ARMS_SELECTED, selected=12)
    """

    # Selection events
    ARMS_SELECTED = "arms_selected"
    BASELINE_RUN = "baseline_run"
    ORACLE_FALLBACK = "oracle_fallback"

    # Learning events
    TRACE_CAPTURED = "trace_captured"
    POSTERIORS_UPDATED = "posteriors_updated"
    POSTERIORS_RESET = "posteriors_reset"
    REWARD_RECORDED = "reward_recorded"

    # Errors
    BEST_EFFORT_FAILED = "best_effort_failed"
    STORE_ERROR = "store_error"

    # Lifecycle events
    SERVER_STARTED = "server_started"
    SERVER_SHUTDOWN = "server_shutdown"
