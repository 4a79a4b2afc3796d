"""Posterior updater: Beta-Bernoulli updates from run traces.

Each included arm contributes one Bernoulli observation: reward 1 if the
model referenced it, 0 otherwise. Excluded arms are never updated because
their counterfactual outcome was not observed.

Gates (checked in order, each a no-op returning zero counts):
    1. Learning phase is not "active" (passive only observes)
    2. Trace was aborted or errored (no reliable reward signal)
    3. Trace is a baseline run and baseline runs are configured not to count

All posterior writes for one trace go through a single atomic save_many.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from curator.core.arms import parse_arm_id
from curator.core.defaults import CONFIDENCE_HIGH_PULLS, CONFIDENCE_MEDIUM_PULLS
from curator.core.models import (
    ArmPosterior,
    ArmType,
    Confidence,
    LearningConfig,
    PosteriorStats,
    RunTrace,
    UpdateResult,
)
from curator.core.state_store import PosteriorStore
from curator.engines.beta import BetaParams, PriorSource, get_initial_prior, update_beta

logger = logging.getLogger(__name__)


def prior_source_for(arm_id: str) -> PriorSource:
    """Files start from the learned prior; everything else, malformed IDs included, is curated."""
    parsed = parse_arm_id(arm_id)
    if parsed is not None and parsed.type is ArmType.FILE:
        return "learned"
    return "curated"


def infer_prior(
    arm_id: str, priors: dict[str, tuple[float, float]] | None = None
) -> BetaParams:
    """Initial Beta prior for an arm that has no posterior yet."""
    return get_initial_prior(prior_source_for(arm_id), priors)


def apply_observation(
    arm_id: str,
    reward: float,
    existing: ArmPosterior | None,
    now: datetime,
    priors: dict[str, tuple[float, float]] | None = None,
) -> ArmPosterior:
    """Apply one observation to an arm's posterior (creating it from the prior)."""
    if existing is not None:
        params = BetaParams(existing.alpha, existing.beta)
        pulls = existing.pulls + 1
    else:
        params = infer_prior(arm_id, priors)
        pulls = 1

    updated = update_beta(params, reward)
    return ArmPosterior(
        arm_id=arm_id,
        alpha=updated.alpha,
        beta=updated.beta,
        pulls=pulls,
        last_updated=now,
    )


async def update_posteriors(
    store: PosteriorStore,
    trace: RunTrace,
    config: LearningConfig,
    priors: dict[str, tuple[float, float]] | None = None,
) -> UpdateResult:
    """Apply Bayesian updates for one trace.

    Args:
        store: Posterior store
        trace: Completed run trace
        config: Learning configuration (phase gate, baseline policy)
        priors: Optional prior overrides for new arms

    Returns:
        Counts of updated and newly created posteriors

    Raises:
        StoreError: If loading or saving posteriors fails (nothing is written)
    """
    if config.phase != "active":
        return UpdateResult()
    if trace.aborted or trace.error:
        return UpdateResult()
    if trace.is_baseline and not config.count_baseline_runs:
        return UpdateResult()

    included = [outcome for outcome in trace.arms if outcome.included]
    if not included:
        return UpdateResult()

    posteriors = await store.load()
    now = datetime.now(UTC)
    result = UpdateResult()
    staged: dict[str, ArmPosterior] = {}

    for outcome in included:
        reward = 1.0 if outcome.referenced else 0.0
        existing = staged.get(outcome.arm_id) or posteriors.get(outcome.arm_id)
        if existing is None:
            result.created += 1
        else:
            result.updated += 1
        staged[outcome.arm_id] = apply_observation(
            outcome.arm_id, reward, existing, now, priors
        )

    await store.save_many(list(staged.values()))
    logger.debug(
        f"Trace {trace.trace_id}: updated={result.updated} created={result.created}"
    )
    return result


async def batch_update_posteriors(
    store: PosteriorStore,
    traces: Iterable[RunTrace],
    config: LearningConfig,
    priors: dict[str, tuple[float, float]] | None = None,
) -> UpdateResult:
    """Replay traces in order for offline bootstrap.

    Not idempotent: replaying the same trace twice counts it twice, so
    callers must replay each trace at most once.
    """
    total = UpdateResult()
    for trace in traces:
        result = await update_posteriors(store, trace, config, priors)
        total.updated += result.updated
        total.created += result.created
    return total


def confidence_for(pulls: int) -> Confidence:
    if pulls >= CONFIDENCE_HIGH_PULLS:
        return "high"
    if pulls >= CONFIDENCE_MEDIUM_PULLS:
        return "medium"
    return "low"


def get_posterior_stats(
    posteriors: dict[str, ArmPosterior], arm_id: str
) -> PosteriorStats | None:
    """Mean, pulls, and confidence bucket for an arm (None if unknown)."""
    posterior = posteriors.get(arm_id)
    if posterior is None:
        return None
    return PosteriorStats(
        mean=posterior.mean,
        pulls=posterior.pulls,
        confidence=confidence_for(posterior.pulls),
    )
