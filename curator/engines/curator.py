"""ContextCurator: per-turn orchestration of selection and learning.

Per-turn flow:
    begin_turn:  baseline decision -> selector (oracle or fallback)
                 -> host builds the prompt from plan.selection
    finish_turn: reference detection -> trace capture -> posterior update
                 (active phase only) -> optional oracle observations

Both entry points run inside best-effort boundaries: whatever fails, the
host turn proceeds. begin_turn degrades to "include everything".
"""

import asyncio
from collections.abc import Sequence

from pydantic import BaseModel, Field

from curator.core.defaults import REFERENCE_DETECTION_DEFAULTS, ReferenceDetectionConfig
from curator.core.models import (
    Arm,
    LearningConfig,
    PromptReport,
    RunTrace,
    SelectionContext,
    SelectionResult,
    TokenUsage,
    ToolMeta,
)
from curator.core.state_store import PosteriorStore
from curator.engines.baseline import (
    generate_baseline_seed,
    should_run_baseline,
    should_run_baseline_seeded,
)
from curator.engines.guidance import build_excluded_tools_guidance
from curator.engines.selector import DecisionOracle, Selector, select_all
from curator.engines.trace_capture import capture_and_store_trace, extract_arms
from curator.engines.updater import update_posteriors
from curator.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    get_logger,
)
from curator.observability.metrics import record_posterior_update
from curator.oracle.client import OracleClient
from curator.utils.best_effort import run_best_effort

event_logger = get_logger(__name__)


class TurnPlan(BaseModel):
    """Selection decided at the start of a turn."""

    report: PromptReport
    candidates: list[Arm] = Field(default_factory=list)
    selection: SelectionResult
    is_baseline: bool = False
    guidance: str | None = Field(
        None, description="Prompt fragment naming excluded tools"
    )


class ContextCurator:
    """Adaptive context selection for one agent host process.

    Attributes:
        store: Posterior store (constructed once per process)
        config: Learning configuration
        selector: Budgeted selector (oracle + fallback)
        observer: Remote oracle to report outcomes to (optional)

    Example:
        >>> curator = ContextCurator(store, LearningConfig(phase="active"))
        >>> plan = await curator.begin_turn(report, SelectionContext(session_key="main"))
        >>> # host builds the prompt from plan.selection.selected_arms
        >>> trace = await curator.finish_turn(
        ...     plan, run_id="r1", session_id="s1",
        ...     assistant_texts=["Done."], tool_metas=[ToolMeta(tool_name="Read")],
        ... )
    """

    def __init__(
        self,
        store: PosteriorStore,
        config: LearningConfig,
        oracle: DecisionOracle | None = None,
        observer: OracleClient | None = None,
        priors: dict[str, tuple[float, float]] | None = None,
        reference_config: ReferenceDetectionConfig = REFERENCE_DETECTION_DEFAULTS,
    ) -> None:
        self.store = store
        self.config = config
        self.selector = Selector(config, store=store, oracle=oracle)
        self.observer = observer
        self.priors = priors
        self.reference_config = reference_config

    def decide_baseline(self, session_key: str | None, timestamp: int | None) -> bool:
        """Baseline decision; deterministic when a timestamp is supplied."""
        if timestamp is not None:
            seed = generate_baseline_seed(session_key, timestamp)
            return should_run_baseline_seeded(self.config, seed)
        return should_run_baseline(self.config)

    async def _plan(
        self,
        report: PromptReport,
        candidates: list[Arm],
        context: SelectionContext,
        timestamp: int | None,
    ) -> TurnPlan:
        budget = self.config.token_budget

        if not self.config.enabled:
            selection = select_all(candidates, budget).model_copy(
                update={"is_baseline": False}
            )
            return TurnPlan(report=report, candidates=candidates, selection=selection)

        is_baseline = self.decide_baseline(context.session_key, timestamp)

        if self.config.phase != "active":
            # Passive phase observes the full context; the baseline flag is
            # still recorded so savings can be measured once active.
            selection = select_all(candidates, budget).model_copy(
                update={"is_baseline": is_baseline}
            )
            return TurnPlan(
                report=report,
                candidates=candidates,
                selection=selection,
                is_baseline=is_baseline,
            )

        selection = await self.selector.select(
            candidates, context, is_baseline=is_baseline
        )
        return TurnPlan(
            report=report,
            candidates=candidates,
            selection=selection,
            is_baseline=selection.is_baseline,
            guidance=build_excluded_tools_guidance(selection.excluded_arms),
        )

    async def begin_turn(
        self,
        report: PromptReport,
        context: SelectionContext,
        timestamp: int | None = None,
    ) -> TurnPlan:
        """Choose which optional components go into this turn's prompt.

        Args:
            report: Candidate components from the host's prompt assembly
            context: Turn metadata
            timestamp: Epoch ms; when given the baseline decision is seeded

        Returns:
            TurnPlan (never raises; degrades to including everything)
        """
        bind_context(session_key=context.session_key)
        candidates = extract_arms(report)
        plan = await run_best_effort(self._plan, report, candidates, context, timestamp)
        if plan is None:
            plan = TurnPlan(
                report=report,
                candidates=candidates,
                selection=select_all(candidates, self.config.token_budget),
                is_baseline=True,
            )
        return plan

    def _should_observe(self, trace: RunTrace) -> bool:
        """Remote observations follow the same gates as local updates."""
        if self.config.phase != "active" or trace.aborted or trace.error:
            return False
        return not (trace.is_baseline and not self.config.count_baseline_runs)

    async def _observe_remote(self, trace: RunTrace, context: SelectionContext) -> None:
        if self.observer is None:
            return
        oracle_context = context.to_oracle_context(self.config.phase)
        calls = []
        for outcome in trace.arms:
            if not outcome.included:
                continue
            referenced = outcome.referenced
            calls.append(
                self.observer.observe(
                    outcome.arm_id,
                    "accepted" if referenced else "rejected",
                    reward=1.0 if referenced else 0.0,
                    context=oracle_context,
                )
            )
        await asyncio.gather(*calls, return_exceptions=True)

    async def finish_turn(
        self,
        plan: TurnPlan,
        *,
        run_id: str,
        session_id: str,
        assistant_texts: Sequence[str],
        tool_metas: Sequence[ToolMeta],
        context: SelectionContext | None = None,
        usage: TokenUsage | None = None,
        duration_ms: int | None = None,
        aborted: bool = False,
        error: str | None = None,
    ) -> RunTrace | None:
        """Record the turn and learn from it.

        Returns:
            The stored trace, or None if learning is disabled or capture
            failed (never raises)
        """
        if not self.config.enabled:
            return None
        context = context or SelectionContext()
        trace = await capture_and_store_trace(
            self.store,
            run_id=run_id,
            session_id=session_id,
            session_key=context.session_key,
            report=plan.report,
            assistant_texts=assistant_texts,
            tool_metas=tool_metas,
            selection=plan.selection,
            is_baseline=plan.is_baseline,
            usage=usage,
            duration_ms=duration_ms,
            channel=context.channel,
            provider=context.provider,
            model=context.model,
            prompt_length=context.prompt_length,
            aborted=aborted,
            error=error,
            reference_config=self.reference_config,
        )
        if trace is None:
            clear_context()
            return None

        result = await run_best_effort(
            update_posteriors, self.store, trace, self.config, self.priors
        )
        if result is not None and (result.updated or result.created):
            record_posterior_update(result)
            event_logger.debug(
                LogEvents.POSTERIORS_UPDATED,
                trace_id=trace.trace_id,
                updated=result.updated,
                created=result.created,
            )

        if self._should_observe(trace):
            await run_best_effort(self._observe_remote, trace, context)
        clear_context()
        return trace

    async def close(self) -> None:
        """Release the store and oracle client."""
        if self.observer is not None:
            await self.observer.aclose()
        await self.store.close()
