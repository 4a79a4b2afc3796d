"""Trace capture: turn a completed agent turn into a RunTrace.

Capture runs after the turn's response is computed. It derives the
candidate arms from the host's prompt report, decides per arm whether it was
included and referenced, and appends the trace to the trace log.
Persisting is best-effort: a failure here never fails the turn.
"""

from collections.abc import Sequence
from uuid import uuid4

from curator.core.arms import file_arm, memory_arm, section_arm, skill_arm, tool_arm
from curator.core.defaults import REFERENCE_DETECTION_DEFAULTS, ReferenceDetectionConfig
from curator.core.models import (
    Arm,
    ArmOutcome,
    PromptReport,
    RunTrace,
    SelectionContext,
    SelectionResult,
    TokenUsage,
    ToolMeta,
    now_ms,
)
from curator.core.state_store import PosteriorStore
from curator.engines.reference import detect_reference
from curator.observability.logging import LogEvents, get_logger
from curator.observability.metrics import record_trace_captured
from curator.utils.best_effort import run_best_effort

event_logger = get_logger(__name__)


def extract_arms(report: PromptReport) -> list[Arm]:
    """Derive the turn's candidate arms from the prompt report.

    Costs use each component's own character accounting (tool schema,
    skill block, injected file chars). Missing files are skipped.
    """
    arms: list[Arm] = [tool_arm(t.name, t.schema_chars) for t in report.tools]
    arms.extend(skill_arm(s.name, s.block_chars) for s in report.skills)
    arms.extend(
        file_arm(f.name, f.injected_chars) for f in report.injected_files if not f.missing
    )
    arms.extend(memory_arm(m.key, m.text, m.source) for m in report.memories)
    arms.extend(section_arm(s.name, s.chars) for s in report.sections)
    return arms


def capture_run_trace(
    *,
    run_id: str,
    session_id: str,
    report: PromptReport,
    assistant_texts: Sequence[str],
    tool_metas: Sequence[ToolMeta],
    session_key: str | None = None,
    selection: SelectionResult | None = None,
    is_baseline: bool = False,
    usage: TokenUsage | None = None,
    duration_ms: int | None = None,
    channel: str | None = None,
    provider: str | None = None,
    model: str | None = None,
    prompt_length: int = 0,
    aborted: bool = False,
    error: str | None = None,
    reference_config: ReferenceDetectionConfig = REFERENCE_DETECTION_DEFAULTS,
) -> RunTrace:
    """Build an immutable RunTrace for a completed (or aborted) turn.

    Without a selection every extracted arm was in the prompt (passive
    default). With one, only the selected arms count as included; every
    other arm is recorded as not included and never referenced.

    Args:
        run_id: Host run identifier
        session_id: Host session identifier
        report: Assembled-prompt report for the turn
        assistant_texts: Assistant messages produced during the turn
        tool_metas: Tool calls made during the turn
        selection: Selection applied to this turn, if any
        is_baseline: Whether the turn ran with the full context

    Returns:
        New RunTrace with a fresh trace ID
    """
    selected = set(selection.selected_arms) if selection is not None else None
    outcomes: list[ArmOutcome] = []
    for arm in extract_arms(report):
        included = selected is None or arm.id in selected
        referenced = included and detect_reference(
            arm.id,
            arm.type,
            arm.label,
            assistant_texts,
            tool_metas,
            config=reference_config,
        )
        outcomes.append(
            ArmOutcome(
                arm_id=arm.id,
                included=included,
                referenced=referenced,
                token_cost=arm.token_cost,
            )
        )

    context = SelectionContext(
        session_key=session_key,
        channel=channel,
        provider=provider,
        model=model,
        prompt_length=prompt_length,
    )

    return RunTrace(
        trace_id=str(uuid4()),
        run_id=run_id,
        session_id=session_id,
        session_key=session_key,
        timestamp=now_ms(),
        provider=provider,
        model=model,
        channel=channel,
        is_baseline=is_baseline,
        context=context,
        arms=outcomes,
        usage=usage,
        duration_ms=duration_ms,
        system_prompt_chars=report.system_prompt_chars,
        aborted=aborted,
        error=error,
    )


async def _capture(store: PosteriorStore, params: dict) -> RunTrace:
    trace = capture_run_trace(**params)
    await store.insert_trace(trace)
    return trace


async def capture_and_store_trace(store: PosteriorStore, **params) -> RunTrace | None:
    """Capture a trace and append it to the trace log.

    Swallows every error (logged at debug) and returns None, so trace
    capture can never abort the surrounding turn.

    Args:
        store: Posterior store holding the trace log
        **params: Keyword arguments for capture_run_trace

    Returns:
        The stored trace, or None if capture or persistence failed
    """
    trace = await run_best_effort(_capture, store, params)
    if trace is None:
        return None

    record_trace_captured(trace.is_baseline, trace.aborted)
    event_logger.debug(
        LogEvents.TRACE_CAPTURED,
        trace_id=trace.trace_id,
        arms=len(trace.arms),
        baseline=trace.is_baseline,
    )
    return trace
