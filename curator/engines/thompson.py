"""Local Thompson Sampling oracle for budgeted arm selection.

For each candidate arm we sample from its Beta(alpha, beta) posterior (or
its type prior when it has none) and rank arms by the sample, not the mean.
Sampling is what lets uncertain arms win occasionally and get explored.

Ranking order:
    1. Seed arms (core tools that are never excluded)
    2. Under-explored arms (fewer than min_pulls observations)
    3. Thompson sample, highest first

Ranked arms are then packed greedily into the token budget. Any arm that
fits is taken, so a cheap low-ranked arm can still fill leftover budget.

Reference: https://en.wikipedia.org/wiki/Thompson_sampling
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from curator.core.models import (
    Arm,
    ArmPosterior,
    ArmType,
    LearningConfig,
    LearningPhase,
    SelectionContext,
    SelectionResult,
)
from curator.core.state_store import PosteriorStore
from curator.engines.beta import BetaParams, get_initial_prior, sample_beta

logger = logging.getLogger(__name__)


@dataclass
class _ScoredArm:
    arm: Arm
    score: float
    is_seed: bool
    is_underexplored: bool


class LocalThompsonOracle:
    """In-process decision oracle backed by the local posterior store.

    Attributes:
        store: Posterior store read on every selection
        min_pulls: Arms below this pull count are ranked ahead of sampled arms
        seed_arm_ids: Arms ranked first and effectively never excluded
        priors: Optional prior overrides for arms without a posterior

    Example:
        >>> oracle = LocalThompsonOracle(store, LearningConfig(phase="active"))
        >>> result = await oracle.select(arms, context=SelectionContext(), token_budget=8000)
        >>> "tool:fs:Read" in result.selected_arms
        True
    """

    def __init__(
        self,
        store: PosteriorStore,
        config: LearningConfig,
        priors: dict[str, tuple[float, float]] | None = None,
        random_seed: int | None = None,
    ) -> None:
        self.store = store
        self.min_pulls = config.min_pulls
        self.seed_arm_ids = frozenset(config.seed_arm_ids)
        self.priors = priors
        self._rng = np.random.default_rng(random_seed)

    def _sample_score(self, arm: Arm, posterior: ArmPosterior | None) -> float:
        if posterior is not None:
            params = BetaParams(posterior.alpha, posterior.beta)
        else:
            source = "learned" if arm.type is ArmType.FILE else "curated"
            params = get_initial_prior(source, self.priors)
        return sample_beta(params, self._rng)

    def rank(
        self, candidates: Sequence[Arm], posteriors: dict[str, ArmPosterior]
    ) -> list[_ScoredArm]:
        """Score and order candidates (seeds, under-explored, then by sample)."""
        scored = []
        for arm in candidates:
            posterior = posteriors.get(arm.id)
            scored.append(
                _ScoredArm(
                    arm=arm,
                    score=self._sample_score(arm, posterior),
                    is_seed=arm.id in self.seed_arm_ids,
                    is_underexplored=posterior is None or posterior.pulls < self.min_pulls,
                )
            )
        scored.sort(key=lambda s: (not s.is_seed, not s.is_underexplored, -s.score))
        return scored

    async def select(
        self,
        candidates: Sequence[Arm],
        *,
        context: SelectionContext,
        token_budget: int,
        k: int = 0,
        phase: LearningPhase | None = None,
    ) -> SelectionResult | None:
        """Select arms within the token budget.

        Args:
            candidates: Candidate arms for this turn
            context: Turn metadata (unused by the context-free policy)
            token_budget: Token budget (0 = unlimited)
            k: Maximum number of arms to select (0 = as many as fit)
            phase: Learning phase (unused locally)

        Returns:
            SelectionResult with per-arm Thompson scores
        """
        posteriors = await self.store.load()
        ranked = self.rank(candidates, posteriors)

        selected: list[str] = []
        excluded: list[str] = []
        used_tokens = 0
        for entry in ranked:
            cost = entry.arm.token_cost
            within_k = k <= 0 or len(selected) < k
            within_budget = token_budget == 0 or used_tokens + cost <= token_budget
            if within_k and within_budget:
                selected.append(entry.arm.id)
                used_tokens += cost
            else:
                excluded.append(entry.arm.id)

        logger.debug(
            f"Thompson selected {len(selected)}/{len(ranked)} arms "
            f"({used_tokens}/{token_budget} tokens)"
        )
        return SelectionResult(
            selected_arms=selected,
            excluded_arms=excluded,
            is_baseline=False,
            total_token_budget=token_budget,
            used_tokens=used_tokens,
            scores={entry.arm.id: entry.score for entry in ranked},
        )
