"""Beta distribution utilities for Thompson Sampling.

Curated components (tools, skills, memory, sections) start from an
optimistic Beta(3, 1) prior: they were included on purpose and should not
be pruned before evidence accumulates. Learned components (workspace files)
start neutral at Beta(1, 1) and let the data speak.
"""

import math
from statistics import NormalDist
from typing import Literal, NamedTuple

import numpy as np

from curator.core.defaults import CREDIBLE_INTERVAL_Z95, CURATED_PRIOR, LEARNED_PRIOR

PriorSource = Literal["curated", "learned"]


class BetaParams(NamedTuple):
    """Beta distribution parameters (successes + prior, failures + prior)."""

    alpha: float
    beta: float


def sample_beta(params: BetaParams, rng: np.random.Generator | None = None) -> float:
    """Draw one sample from Beta(alpha, beta).

    Args:
        params: Distribution parameters (both > 0)
        rng: Optional generator for reproducible draws

    Returns:
        Sample in [0, 1]
    """
    if rng is not None:
        return float(rng.beta(params.alpha, params.beta))
    return float(np.random.beta(params.alpha, params.beta))


def beta_mean(params: BetaParams) -> float:
    """Posterior mean alpha / (alpha + beta)."""
    total = params.alpha + params.beta
    if total == 0:
        return 0.5
    return params.alpha / total


def beta_variance(params: BetaParams) -> float:
    """Posterior variance alpha*beta / ((alpha+beta)^2 (alpha+beta+1))."""
    alpha, beta = params
    total = alpha + beta
    if total == 0:
        return 0.0
    return (alpha * beta) / (total * total * (total + 1))


def update_beta(params: BetaParams, reward: float) -> BetaParams:
    """Bayesian update: alpha += reward, beta += 1 - reward.

    Rewards are Bernoulli (0 or 1) for observed references; any value in
    [0, 1] is accepted so fractional feedback keeps alpha + beta growing by
    exactly one per observation.
    """
    if not 0.0 <= reward <= 1.0:
        raise ValueError(f"reward must be in [0, 1], got {reward}")
    return BetaParams(params.alpha + reward, params.beta + (1.0 - reward))


def get_initial_prior(
    source: PriorSource, priors: dict[str, tuple[float, float]] | None = None
) -> BetaParams:
    """Initial prior for an arm source.

    Args:
        source: "curated" or "learned"
        priors: Optional overrides loaded from curator.yaml

    Returns:
        Beta prior for the source
    """
    if priors and source in priors:
        return BetaParams(*priors[source])
    match source:
        case "curated":
            return BetaParams(*CURATED_PRIOR)
        case "learned":
            return BetaParams(*LEARNED_PRIOR)
    raise ValueError(f"Unknown prior source: {source}")


def beta_credible_interval(
    params: BetaParams, level: float = 0.95
) -> tuple[float, float]:
    """Credible interval via the normal approximation, clipped to [0, 1].

    Args:
        params: Distribution parameters
        level: Interval mass in (0, 1)

    Returns:
        (lower, upper) bounds
    """
    mean = beta_mean(params)
    std = math.sqrt(beta_variance(params))
    z = CREDIBLE_INTERVAL_Z95 if level == 0.95 else NormalDist().inv_cdf((1 + level) / 2)
    return max(0.0, mean - z * std), min(1.0, mean + z * std)
