"""OpenTelemetry metrics for Curator context selection.

Metrics:
    - curator.selection.decisions: Counter of selections by path (oracle, fallback, baseline)
    - curator.selection.used_tokens: Histogram of tokens spent on included arms
    - curator.selection.excluded_arms: Histogram of arms excluded per turn
    - curator.traces.captured: Counter of persisted run traces
    - curator.posteriors.updates: Counter of posterior writes by kind (updated, created)

Instruments are no-ops unless CURATOR_OTEL_ENABLED and
CURATOR_OTEL_METRICS_ENABLED are both true. Exporter wiring is left to the
host process's OpenTelemetry SDK configuration.
"""

import logging

from opentelemetry import metrics

from curator.core.config import settings
from curator.core.models import SelectionResult, UpdateResult

logger = logging.getLogger(__name__)

# Global meter instance
_meter: metrics.Meter | None = None

# Metric instruments (created on first access)
_selection_counter: metrics.Counter | None = None
_used_tokens_histogram: metrics.Histogram | None = None
_excluded_arms_histogram: metrics.Histogram | None = None
_traces_counter: metrics.Counter | None = None
_posterior_updates_counter: metrics.Counter | None = None


def _metrics_enabled() -> bool:
    return settings.otel_enabled and settings.otel_metrics_enabled


def get_meter(name: str = "curator") -> metrics.Meter:
    """Get OpenTelemetry meter instance.

    Args:
        name: Meter name

    Returns:
        Meter instance (no-op if no SDK is configured)
    """
    global _meter
    if _meter is None:
        _meter = metrics.get_meter(name)
    return _meter


def _ensure_instruments() -> None:
    """Lazy initialization of metric instruments."""
    global _selection_counter
    global _used_tokens_histogram
    global _excluded_arms_histogram
    global _traces_counter
    global _posterior_updates_counter

    meter = get_meter()

    if _selection_counter is None:
        _selection_counter = meter.create_counter(
            name="curator.selection.decisions",
            description="Number of context selections made",
            unit="1",
        )

    if _used_tokens_histogram is None:
        _used_tokens_histogram = meter.create_histogram(
            name="curator.selection.used_tokens",
            description="Prompt tokens spent on included arms",
            unit="token",
        )

    if _excluded_arms_histogram is None:
        _excluded_arms_histogram = meter.create_histogram(
            name="curator.selection.excluded_arms",
            description="Arms excluded per turn",
            unit="1",
        )

    if _traces_counter is None:
        _traces_counter = meter.create_counter(
            name="curator.traces.captured",
            description="Number of run traces persisted",
            unit="1",
        )

    if _posterior_updates_counter is None:
        _posterior_updates_counter = meter.create_counter(
            name="curator.posteriors.updates",
            description="Number of posterior writes",
            unit="1",
        )


def record_selection(result: SelectionResult, path: str) -> None:
    """Record a selection outcome.

    Args:
        result: Selector output
        path: Which path produced it (oracle, fallback, baseline)
    """
    if not _metrics_enabled():
        return

    _ensure_instruments()

    attributes = {"path": path, "baseline": result.is_baseline}

    if _selection_counter:
        _selection_counter.add(1, attributes)
    if _used_tokens_histogram:
        _used_tokens_histogram.record(result.used_tokens, attributes)
    if _excluded_arms_histogram:
        _excluded_arms_histogram.record(len(result.excluded_arms), attributes)


def record_trace_captured(is_baseline: bool, aborted: bool) -> None:
    """Record a persisted run trace."""
    if not _metrics_enabled():
        return

    _ensure_instruments()

    if _traces_counter:
        _traces_counter.add(1, {"baseline": is_baseline, "aborted": aborted})


def record_posterior_update(result: UpdateResult) -> None:
    """Record posterior writes from one trace."""
    if not _metrics_enabled():
        return

    _ensure_instruments()

    if _posterior_updates_counter:
        if result.updated:
            _posterior_updates_counter.add(result.updated, {"kind": "updated"})
        if result.created:
            _posterior_updates_counter.add(result.created, {"kind": "created"})
