"""Terminal rendering of the learning status report."""

from datetime import UTC, datetime

import click

from curator.core.models import LearningConfig, LearningSummary, PosteriorView
from curator.oracle.models import OracleStatus


def _date(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=UTC).strftime("%Y-%m-%d")


def format_learning_status(
    summary: LearningSummary,
    learning: LearningConfig,
    posteriors: list[PosteriorView],
    max_rows: int = 20,
) -> str:
    """Render summary, baseline split, and top posteriors as plain lines."""
    phase_color = "green" if learning.phase == "active" else "bright_black"
    lines = [
        click.style("Learning Status", bold=True)
        + "  "
        + click.style(f"[{learning.phase.upper()}]", fg=phase_color),
        "",
        click.style(
            f"  budget: {learning.token_budget}  |  baseline: "
            f"{learning.baseline_rate * 100:.0f}%  |  min pulls: {learning.min_pulls}",
            fg="bright_black",
        ),
        "",
    ]

    if summary.trace_count == 0:
        lines.append(
            "No observations recorded yet. Run some agent turns to start collecting data."
        )
        return "\n".join(lines)

    date_range = "-"
    if summary.min_timestamp is not None and summary.max_timestamp is not None:
        date_range = f"{_date(summary.min_timestamp)} to {_date(summary.max_timestamp)}"
    lines.append(
        f"  Observations: {summary.trace_count}    Arms: {summary.arm_count}    "
        f"Tokens: {summary.total_tokens:,}    Range: {date_range}"
    )
    lines.append("")

    baseline = summary.baseline
    total_runs = baseline.baseline_runs + baseline.selected_runs
    if total_runs > 0:
        lines.append(click.style("Run Distribution", bold=True))
        lines.append(
            f"  Baseline: {baseline.baseline_runs} "
            f"({baseline.baseline_runs / total_runs * 100:.1f}%)    "
            f"Selected: {baseline.selected_runs} "
            f"({baseline.selected_runs / total_runs * 100:.1f}%)"
        )
        if baseline.token_savings_percent is not None:
            savings = baseline.token_savings_percent
            sign = "+" if savings > 0 else ""
            lines.append(
                "  Token Savings: "
                + click.style(f"{sign}{savings:.1f}%", fg="green" if savings > 0 else "red")
                + f" (baseline avg: {baseline.baseline_avg_tokens or 0:.0f}, "
                f"selected avg: {baseline.selected_avg_tokens or 0:.0f})"
            )
        lines.append("")

    lines.extend(_posterior_table(posteriors, max_rows))
    return "\n".join(lines)


def _posterior_table(posteriors: list[PosteriorView], max_rows: int) -> list[str]:
    if not posteriors:
        return ["No arm posteriors yet."]

    width = max(len(p.arm_id) for p in posteriors[:max_rows])
    lines = [
        click.style(f"{'Arm':<{width}}  {'Mean':>7}  {'Pulls':>6}  Confidence", bold=True)
    ]
    for p in posteriors[:max_rows]:
        marker = " (seed)" if p.is_seed else ""
        lines.append(
            f"{p.arm_id:<{width}}  {p.mean:>7.3f}  {p.pulls:>6}  {p.confidence}{marker}"
        )
    if len(posteriors) > max_rows:
        lines.append(f"... and {len(posteriors) - max_rows} more")
    return lines


def format_oracle_status(status: OracleStatus, max_rows: int = 20) -> str:
    """Render remote learner metrics and its posteriors."""
    metrics = status.metrics
    lines = [
        click.style("Remote Learner", bold=True) + f"  [{status.learner}]",
        "",
        f"  Pulls: {metrics.total_pulls}    Arms: {metrics.arm_count}    "
        f"Accuracy: {metrics.accuracy * 100:.1f}%    "
        f"Explore: {metrics.explore_ratio * 100:.1f}%",
        "",
    ]
    lines.extend(_posterior_table(status.posteriors, max_rows))
    return "\n".join(lines)
