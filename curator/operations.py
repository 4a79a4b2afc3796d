"""Operator surface: reset, reward injection, and read-only queries.

These functions back the HTTP API and the CLI. Unlike the hot path they
propagate StoreError and OracleError so callers can report a clear failure.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from curator.core.defaults import ARM_ID_SEPARATOR
from curator.core.exceptions import OracleError
from curator.core.models import (
    LearningSummary,
    PosteriorView,
    ResetReport,
    RewardReport,
)
from curator.core.state_store import PosteriorStore
from curator.engines.baseline import compare_baseline
from curator.engines.updater import apply_observation, confidence_for
from curator.observability.logging import LogEvents, get_logger
from curator.oracle.client import OracleClient
from curator.oracle.models import OracleStatus

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


async def reset_learning(
    store: PosteriorStore,
    learner: str,
    oracle: OracleClient | None = None,
    arm_id: str | None = None,
) -> ResetReport:
    """Reset posteriors to the uniform prior.

    Args:
        store: Posterior store
        learner: Learner namespace reported back to the operator
        oracle: Remote learner to reset as well (best effort)
        arm_id: Reset a single arm (all arms if None)

    Returns:
        ResetReport with the number of posteriors reset

    Raises:
        StoreError: If the store cannot be written
    """
    count = await store.reset(arm_id)
    if oracle is not None:
        remote = await oracle.reset([arm_id] if arm_id else None)
        if remote is None:
            logger.debug("Remote oracle reset failed; local posteriors were reset")
    event_logger.info(LogEvents.POSTERIORS_RESET, learner=learner, arm_id=arm_id, count=count)
    return ResetReport(learner=learner, reset_count=count)


def resolve_arm_id(label: str, known_ids: Iterable[str]) -> str:
    """Map an operator-supplied label to a known arm ID.

    Resolution order: a label containing ``:`` is used as-is; then an exact
    case-insensitive match on the final ID segment; then a case-insensitive
    substring match; otherwise the raw label.

    Example:
        >>> resolve_arm_id("read", ["tool:fs:Read", "tool:exec:Bash"])
        'tool:fs:Read'
    """
    if ARM_ID_SEPARATOR in label:
        return label

    ids = list(known_ids)
    needle = label.lower()
    for arm_id in ids:
        if arm_id.split(ARM_ID_SEPARATOR)[-1].lower() == needle:
            return arm_id
    for arm_id in ids:
        if needle in arm_id.lower():
            return arm_id
    return label


def parse_reward_args(text: str) -> tuple[str, float]:
    """Split ``"<label> [0|1]"`` into (label, reward); reward defaults to 1.

    Raises:
        ValueError: If no label is given
    """
    parts = text.split()
    if not parts:
        raise ValueError("Usage: reward <label> [0|1]")
    if len(parts) > 1 and parts[-1] in ("0", "1"):
        return " ".join(parts[:-1]), float(parts[-1])
    return " ".join(parts), 1.0


async def record_reward(
    store: PosteriorStore,
    arm_id: str,
    reward: float,
    oracle: OracleClient | None = None,
) -> RewardReport:
    """Apply an operator reward with the same Beta update as trace learning.

    Raises:
        ValueError: If reward is not 0 or 1
        StoreError: If the store cannot be read or written
    """
    if reward not in (0, 1):
        raise ValueError(f"Reward must be 0 or 1, got {reward}")

    posteriors = await store.load()
    now = datetime.now(UTC)
    updated = apply_observation(arm_id, float(reward), posteriors.get(arm_id), now)
    await store.save(updated)

    outcome = "accepted" if reward >= 1 else "rejected"
    if oracle is not None:
        await oracle.observe(arm_id, outcome, reward=float(reward))

    event_logger.info(
        LogEvents.REWARD_RECORDED,
        arm_id=arm_id,
        reward=reward,
        mean=round(updated.mean, 4),
        pulls=updated.pulls,
    )
    return RewardReport(
        arm_id=arm_id,
        outcome=outcome,
        reward=float(reward),
        alpha=updated.alpha,
        beta=updated.beta,
        mean=updated.mean,
        pulls=updated.pulls,
    )


async def summarize(store: PosteriorStore) -> LearningSummary:
    """Trace and posterior counts, token totals, and baseline savings.

    Raises:
        StoreError: If the store cannot be read
    """
    traces = await store.list_traces(limit=0)
    posteriors = await store.load()

    timestamps = [t.timestamp for t in traces]
    total_tokens = sum(t.usage.effective_total for t in traces if t.usage)
    return LearningSummary(
        trace_count=len(traces),
        arm_count=len(posteriors),
        total_tokens=total_tokens,
        min_timestamp=min(timestamps) if timestamps else None,
        max_timestamp=max(timestamps) if timestamps else None,
        baseline=compare_baseline(traces),
    )


async def list_posteriors(
    store: PosteriorStore,
    min_pulls: int,
    seed_arm_ids: Iterable[str] = (),
) -> list[PosteriorView]:
    """Posteriors annotated for operators, sorted by mean descending."""
    seeds = set(seed_arm_ids)
    posteriors = await store.load()
    views = [
        PosteriorView(
            arm_id=p.arm_id,
            alpha=p.alpha,
            beta=p.beta,
            mean=p.mean,
            pulls=p.pulls,
            confidence=confidence_for(p.pulls),
            is_seed=p.arm_id in seeds,
            is_underexplored=p.pulls < min_pulls,
            last_updated=p.last_updated,
        )
        for p in posteriors.values()
    ]
    views.sort(key=lambda v: v.mean, reverse=True)
    return views



async def oracle_status(
    oracle: OracleClient,
    min_pulls: int,
    seed_arm_ids: Iterable[str] = (),
) -> OracleStatus:
    """Metrics and posteriors held by the remote learner.

    When the oracle is remote its posteriors are the ones selection uses,
    so operators read them from there rather than from the local store.

    Raises:
        OracleError: If the remote learner does not answer the metrics query
    """
    metrics, remote = await asyncio.gather(oracle.metrics(), oracle.posteriors())
    if metrics is None:
        raise OracleError(
            "Remote learner not reachable", details={"base_url": oracle.base_url}
        )

    seeds = set(seed_arm_ids)
    states = remote.posteriors if remote is not None else {}
    views = [
        PosteriorView(
            arm_id=arm_id,
            alpha=state.alpha,
            beta=state.beta,
            mean=state.mean,
            pulls=state.pulls,
            confidence=confidence_for(state.pulls),
            is_seed=arm_id in seeds,
            is_underexplored=state.pulls < min_pulls,
            last_updated=state.last_updated,
        )
        for arm_id, state in states.items()
    ]
    views.sort(key=lambda v: v.mean, reverse=True)
    return OracleStatus(learner=metrics.learner, metrics=metrics, posteriors=views)
