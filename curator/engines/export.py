"""Export traces and posteriors as JSON or CSV."""

import csv
import io
import json
from typing import Literal

from curator.core.models import ArmPosterior, RunTrace
from curator.core.state_store import PosteriorStore

ExportFormat = Literal["json", "csv"]

EXPORT_TRACE_LIMIT = 10_000

TRACE_CSV_COLUMNS = [
    "trace_id",
    "run_id",
    "session_id",
    "timestamp",
    "provider",
    "model",
    "channel",
    "is_baseline",
    "total_tokens",
    "duration_ms",
    "aborted",
]
POSTERIOR_CSV_COLUMNS = ["arm_id", "alpha", "beta", "mean", "pulls", "last_updated"]


def traces_to_csv(traces: list[RunTrace]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TRACE_CSV_COLUMNS)
    for trace in traces:
        writer.writerow(
            [
                trace.trace_id,
                trace.run_id,
                trace.session_id,
                trace.timestamp,
                trace.provider or "",
                trace.model or "",
                trace.channel or "",
                int(trace.is_baseline),
                trace.usage.effective_total if trace.usage else 0,
                trace.duration_ms or 0,
                int(trace.aborted),
            ]
        )
    return buffer.getvalue()


def posteriors_to_csv(posteriors: list[ArmPosterior]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(POSTERIOR_CSV_COLUMNS)
    for p in posteriors:
        writer.writerow(
            [
                p.arm_id,
                f"{p.alpha:.4f}",
                f"{p.beta:.4f}",
                f"{p.mean:.4f}",
                p.pulls,
                p.last_updated.isoformat(),
            ]
        )
    return buffer.getvalue()


async def export_learning_data(
    store: PosteriorStore,
    fmt: ExportFormat = "json",
    include_traces: bool = True,
    include_posteriors: bool = True,
) -> str:
    """Serialize the trace log and/or posteriors.

    JSON output is one object with ``traces`` and ``posteriors`` keys; CSV
    output is one block per section separated by a blank line.

    Raises:
        StoreError: If reading the store fails
        ValueError: If the format is unknown
    """
    traces = (
        await store.list_traces(limit=EXPORT_TRACE_LIMIT) if include_traces else None
    )
    posteriors = (
        sorted((await store.load()).values(), key=lambda p: p.arm_id)
        if include_posteriors
        else None
    )

    if fmt == "json":
        data: dict[str, list] = {}
        if traces is not None:
            data["traces"] = [trace.model_dump(mode="json") for trace in traces]
        if posteriors is not None:
            data["posteriors"] = [
                {**p.model_dump(mode="json"), "mean": p.mean} for p in posteriors
            ]
        return json.dumps(data, indent=2)

    if fmt == "csv":
        sections = []
        if traces is not None:
            sections.append(traces_to_csv(traces))
        if posteriors is not None:
            sections.append(posteriors_to_csv(posteriors))
        return "\n".join(sections)

    raise ValueError(f"Unknown export format: {fmt}")
