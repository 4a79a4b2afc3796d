"""Selector: partition candidate arms into included/excluded under a budget.

Selection paths:
    - Baseline run: every candidate is included, nothing is filtered.
    - Oracle: delegate to a decision oracle (remote service or local
      Thompson Sampling) and trust its partition.
    - Fallback: when no oracle is configured, it returns None, or it raises,
      pack candidates first-fit in the given order. The fallback result is
      reported as a baseline run because it is not a learned choice.

In the active phase an exploration floor is applied on top of whichever
path ran: arms with fewer than ``min_pulls`` observations (or no posterior)
are always included so every arm escapes the low-confidence bucket.

The selector never raises.
"""

import logging
from collections.abc import Collection, Sequence
from typing import Protocol, runtime_checkable

from curator.core.models import (
    Arm,
    ArmPosterior,
    LearningConfig,
    LearningPhase,
    SelectionContext,
    SelectionResult,
)
from curator.core.state_store import PosteriorStore
from curator.observability.logging import LogEvents, get_logger
from curator.observability.metrics import record_selection

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


@runtime_checkable
class DecisionOracle(Protocol):
    """Anything that can choose arms for a turn.

    Returning None (or raising) means "unavailable"; the selector then
    falls back to first-fit packing.
    """

    async def select(
        self,
        candidates: Sequence[Arm],
        *,
        context: SelectionContext,
        token_budget: int,
        k: int = 0,
        phase: LearningPhase | None = None,
    ) -> SelectionResult | None: ...


def select_all(candidates: Sequence[Arm], token_budget: int) -> SelectionResult:
    """Baseline partition: include every candidate."""
    return SelectionResult(
        selected_arms=[arm.id for arm in candidates],
        excluded_arms=[],
        is_baseline=True,
        total_token_budget=token_budget,
        used_tokens=sum(arm.token_cost for arm in candidates),
    )


def fallback_select(
    candidates: Sequence[Arm],
    token_budget: int,
    forced_arm_ids: Collection[str] = frozenset(),
) -> SelectionResult:
    """First-fit packing in candidate order.

    A budget of 0 means unlimited. Forced arms are always included and
    their cost is charged against the budget before packing the rest.
    Later, smaller arms may still fit after a larger one was excluded.

    Example:
        >>> arms = [Arm(id=f"tool:other:t{i}", type="tool", category="other",
        ...             label=f"t{i}", token_cost=40) for i in range(3)]
        >>> result = fallback_select(arms, token_budget=100)
        >>> result.selected_arms, result.excluded_arms, result.used_tokens
        (['tool:other:t0', 'tool:other:t1'], ['tool:other:t2'], 80)
    """
    used_tokens = sum(arm.token_cost for arm in candidates if arm.id in forced_arm_ids)
    selected: list[str] = []
    excluded: list[str] = []

    for arm in candidates:
        if arm.id in forced_arm_ids:
            selected.append(arm.id)
        elif token_budget == 0 or used_tokens + arm.token_cost <= token_budget:
            selected.append(arm.id)
            used_tokens += arm.token_cost
        else:
            excluded.append(arm.id)

    return SelectionResult(
        selected_arms=selected,
        excluded_arms=excluded,
        is_baseline=True,
        total_token_budget=token_budget,
        used_tokens=used_tokens,
    )


def underexplored_arm_ids(
    candidates: Sequence[Arm], posteriors: dict[str, ArmPosterior], min_pulls: int
) -> set[str]:
    """Candidates with no posterior or fewer than ``min_pulls`` pulls."""
    result = set()
    for arm in candidates:
        posterior = posteriors.get(arm.id)
        if posterior is None or posterior.pulls < min_pulls:
            result.add(arm.id)
    return result


def apply_exploration_floor(
    result: SelectionResult, candidates: Sequence[Arm], forced_arm_ids: Collection[str]
) -> SelectionResult:
    """Move forced arms an oracle did not select back into the selection.

    Every candidate missing from ``selected_arms`` counts as excluded,
    whether or not the oracle listed it in ``excluded_arms``.
    """
    selected = set(result.selected_arms)
    excluded = [arm.id for arm in candidates if arm.id not in selected]
    rescued = [arm_id for arm_id in excluded if arm_id in forced_arm_ids]

    costs = {arm.id: arm.token_cost for arm in candidates}
    return result.model_copy(
        update={
            "selected_arms": [*result.selected_arms, *rescued],
            "excluded_arms": [a for a in excluded if a not in forced_arm_ids],
            "used_tokens": result.used_tokens + sum(costs.get(a, 0) for a in rescued),
        }
    )


class Selector:
    """Budgeted context selection with oracle delegation and a safe fallback.

    Attributes:
        config: Learning configuration (budget, phase, min_pulls)
        store: Posterior store used for the exploration floor (optional)
        oracle: Decision oracle (optional)

    Example:
        >>> selector = Selector(config, store=store, oracle=LocalThompsonOracle(store, config))
        >>> result = await selector.select(arms, SelectionContext(session_key="main"))
        >>> excluded = result.excluded_arms  # withheld from the prompt this turn
    """

    def __init__(
        self,
        config: LearningConfig,
        store: PosteriorStore | None = None,
        oracle: DecisionOracle | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.oracle = oracle

    async def _load_posteriors(self) -> dict[str, ArmPosterior]:
        if self.store is None:
            return {}
        try:
            return await self.store.load()
        except Exception as e:
            # Unknown posteriors: every arm counts as under-explored
            logger.debug(f"Posterior load failed during selection: {e}")
            return {}

    async def _ask_oracle(
        self,
        candidates: Sequence[Arm],
        context: SelectionContext,
        token_budget: int,
        k: int,
    ) -> SelectionResult | None:
        if self.oracle is None:
            return None
        try:
            return await self.oracle.select(
                candidates,
                context=context,
                token_budget=token_budget,
                k=k,
                phase=self.config.phase,
            )
        except Exception as e:
            logger.debug(f"Decision oracle failed, using fallback: {e}")
            return None

    async def select(
        self,
        candidates: Sequence[Arm],
        context: SelectionContext,
        *,
        is_baseline: bool = False,
        token_budget: int | None = None,
        k: int = 0,
    ) -> SelectionResult:
        """Partition candidates for one turn.

        Args:
            candidates: Candidate arms, in host order
            context: Turn metadata forwarded to the oracle
            is_baseline: Baseline controller decision for this turn
            token_budget: Budget override (defaults to config.token_budget)
            k: Maximum number of arms for the oracle (0 = as many as fit)

        Returns:
            SelectionResult (never raises)
        """
        budget = self.config.token_budget if token_budget is None else token_budget

        if is_baseline:
            result = select_all(candidates, budget)
            record_selection(result, "baseline")
            event_logger.debug(LogEvents.BASELINE_RUN, arms=len(candidates))
            return result

        forced: set[str] = set()
        if self.config.phase == "active":
            posteriors = await self._load_posteriors()
            forced = underexplored_arm_ids(candidates, posteriors, self.config.min_pulls)

        result = await self._ask_oracle(candidates, context, budget, k)
        if result is not None:
            path = "oracle"
            result = apply_exploration_floor(result, candidates, forced)
        else:
            path = "fallback"
            if self.oracle is not None:
                event_logger.debug(LogEvents.ORACLE_FALLBACK, arms=len(candidates))
            result = fallback_select(candidates, budget, forced)

        record_selection(result, path)
        event_logger.debug(
            LogEvents.ARMS_SELECTED,
            path=path,
            selected=len(result.selected_arms),
            excluded=len(result.excluded_arms),
            used_tokens=result.used_tokens,
            token_budget=budget,
        )
        return result
