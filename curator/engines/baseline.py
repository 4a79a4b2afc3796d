"""Baseline controller: randomized full-context holdout runs.

A baseline run skips filtering entirely so its token usage is an unbiased
"what if we didn't filter" measurement. Comparing baseline and selected
runs gives the token savings the bandit is buying.
"""

import random
from collections.abc import Iterable

from curator.core.defaults import (
    BASELINE_MEDIUM_ARM_COUNT,
    BASELINE_RATE_LARGE,
    BASELINE_RATE_MEDIUM,
    BASELINE_RATE_SMALL,
    BASELINE_SMALL_ARM_COUNT,
    LCG_INCREMENT,
    LCG_MODULUS,
    LCG_MULTIPLIER,
)
from curator.core.models import BaselineComparison, LearningConfig, RunTrace


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def should_run_baseline(config: LearningConfig) -> bool:
    """Random baseline decision. Strict: a draw equal to the rate is not baseline."""
    return random.random() < config.baseline_rate


def seeded_random(seed: int) -> float:
    """One LCG step mapped to [0, 1)."""
    return ((seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS) / LCG_MODULUS


def should_run_baseline_seeded(config: LearningConfig, seed: int) -> bool:
    """Deterministic baseline decision for reproducible tests and backfill."""
    return seeded_random(seed) < config.baseline_rate


def generate_baseline_seed(session_key: str | None, timestamp: int) -> int:
    """Stable non-negative seed from (session key, timestamp).

    Uses a 31-multiplier string hash with 32-bit signed wraparound so seeds
    match across hosts for the same inputs.
    """
    hashed = 0
    for char in f"{session_key or 'default'}:{timestamp}":
        hashed = _to_int32((hashed << 5) - hashed + ord(char))
    return abs(hashed)


def recommended_baseline_rate(arm_count: int) -> float:
    """Smaller baseline fraction for larger arm inventories.

    Larger inventories still get coverage through selected runs, so the
    share of full-context runs can shrink while absolute volume stays
    reasonable.
    """
    if arm_count <= BASELINE_SMALL_ARM_COUNT:
        return BASELINE_RATE_SMALL
    if arm_count <= BASELINE_MEDIUM_ARM_COUNT:
        return BASELINE_RATE_MEDIUM
    return BASELINE_RATE_LARGE


def _trace_tokens(trace: RunTrace) -> int:
    if trace.usage is not None:
        return trace.usage.effective_total
    return sum(outcome.token_cost for outcome in trace.arms if outcome.included)


def _average(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def compare_baseline(traces: Iterable[RunTrace]) -> BaselineComparison:
    """Compare baseline and selected runs.

    ``token_savings_percent = (baseline_avg - selected_avg) / baseline_avg * 100``;
    None when either group is empty or the baseline average is zero.
    Token counts come from reported usage, falling back to included arm costs.
    """
    baseline_tokens: list[float] = []
    selected_tokens: list[float] = []
    baseline_durations: list[float] = []
    selected_durations: list[float] = []

    for trace in traces:
        tokens, durations = (
            (baseline_tokens, baseline_durations)
            if trace.is_baseline
            else (selected_tokens, selected_durations)
        )
        tokens.append(_trace_tokens(trace))
        if trace.duration_ms is not None:
            durations.append(trace.duration_ms)

    baseline_avg = _average(baseline_tokens)
    selected_avg = _average(selected_tokens)
    savings = None
    if baseline_avg and selected_avg is not None:
        savings = (baseline_avg - selected_avg) / baseline_avg * 100

    return BaselineComparison(
        baseline_runs=len(baseline_tokens),
        selected_runs=len(selected_tokens),
        baseline_avg_tokens=baseline_avg,
        selected_avg_tokens=selected_avg,
        token_savings_percent=savings,
        baseline_avg_duration_ms=_average(baseline_durations),
        selected_avg_duration_ms=_average(selected_durations),
    )
