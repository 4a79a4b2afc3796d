"""Logging and OpenTelemetry metrics for Curator."""

from curator.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from curator.observability.metrics import (
    get_meter,
    record_posterior_update,
    record_selection,
    record_trace_captured,
)

__all__ = [
    "LogEvents",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "get_meter",
    "record_posterior_update",
    "record_selection",
    "record_trace_captured",
]
