"""Core data models for Curator context selection.

This module defines Pydantic models for arms, posteriors, per-turn
selection context, run traces, selection results, the host's prompt
report, and the read-only summaries served to operators.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from curator.core.defaults import (
    DEFAULT_BASELINE_RATE,
    DEFAULT_LEARNER_NAME,
    DEFAULT_MIN_PULLS,
    DEFAULT_TOKEN_BUDGET,
    SEED_ARM_IDS,
)

LearningPhase = Literal["passive", "active"]
Confidence = Literal["high", "medium", "low"]


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class ArmType(str, Enum):
    """Closed set of selectable context component kinds."""

    TOOL = "tool"
    MEMORY = "memory"
    SKILL = "skill"
    FILE = "file"
    SECTION = "section"


class ParsedArmId(BaseModel):
    """Components of an arm ID of the form ``type:category:id``."""

    model_config = ConfigDict(frozen=True)

    type: ArmType
    category: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)


class Arm(BaseModel):
    """Candidate context component competing for prompt inclusion.

    Arms are rebuilt every turn from the host's prompt report and are
    never persisted on their own.

    Example:
        >>> arm = Arm(
        ...     id="tool:exec:bash", type=ArmType.TOOL,
        ...     category="exec", label="bash", token_cost=120,
        ... )
    """

    id: str = Field(..., description="Arm ID (type:category:id)")
    type: ArmType = Field(..., description="Component kind")
    category: str = Field(..., description="Arm category segment")
    label: str = Field(..., description="Human-readable label used for reference detection")
    token_cost: int = Field(default=0, description="Estimated prompt tokens", ge=0)
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Extra metadata forwarded to the oracle"
    )


class ArmPosterior(BaseModel):
    """Beta(alpha, beta) belief about an arm's usefulness."""

    arm_id: str = Field(..., description="Arm ID")
    alpha: float = Field(default=1.0, description="Successes + prior", gt=0.0)
    beta: float = Field(default=1.0, description="Failures + prior", gt=0.0)
    pulls: int = Field(default=0, description="Observations applied", ge=0)
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp",
    )

    @property
    def mean(self) -> float:
        """Posterior mean alpha / (alpha + beta)."""
        return self.alpha / (self.alpha + self.beta)


class SelectionContext(BaseModel):
    """Per-turn metadata attached to a trace for contextual extensions."""

    model_config = ConfigDict(frozen=True)

    session_key: str | None = Field(None, description="Host session key")
    channel: str | None = Field(None, description="Delivery channel")
    provider: str | None = Field(None, description="LLM provider")
    model: str | None = Field(None, description="LLM model")
    prompt_length: int = Field(default=0, description="User prompt length in chars", ge=0)
    feature_vector: list[float] | None = Field(
        None, description="Reserved for contextual policies"
    )

    def to_oracle_context(self, phase: LearningPhase | None = None) -> dict[str, Any]:
        """Compact dict form sent to the decision oracle (None fields dropped)."""
        context: dict[str, Any] = {
            key: value for key, value in self.model_dump().items() if value is not None
        }
        if phase:
            context["phase"] = phase
        return context


class ArmOutcome(BaseModel):
    """Observed outcome of one arm in one turn."""

    model_config = ConfigDict(frozen=True)

    arm_id: str
    included: bool
    referenced: bool = False
    token_cost: int = Field(default=0, ge=0)

    @field_validator("referenced")
    @classmethod
    def excluded_arms_never_referenced(cls, v: bool, info: ValidationInfo) -> bool:
        """Excluded arms carry no observation, so they cannot be referenced."""
        if info.data.get("included") is False:
            return False
        return v


class TokenUsage(BaseModel):
    """Normalized token usage reported by the host for one turn."""

    input: int | None = Field(None, ge=0)
    output: int | None = Field(None, ge=0)
    cache_read: int | None = Field(None, ge=0)
    cache_write: int | None = Field(None, ge=0)
    total: int | None = Field(None, ge=0)

    @property
    def effective_total(self) -> int:
        """Total tokens, summing the parts when the host left total unset."""
        if self.total is not None:
            return self.total
        return sum(
            part or 0
            for part in (self.input, self.output, self.cache_read, self.cache_write)
        )


class RunTrace(BaseModel):
    """Immutable record of one completed (or aborted) agent turn."""

    model_config = ConfigDict(frozen=True)

    trace_id: str = Field(default_factory=lambda: str(uuid4()))
    run_id: str
    session_id: str
    session_key: str | None = None
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    provider: str | None = None
    model: str | None = None
    channel: str | None = None
    is_baseline: bool = False
    context: SelectionContext = Field(default_factory=SelectionContext)
    arms: list[ArmOutcome] = Field(default_factory=list)
    usage: TokenUsage | None = None
    duration_ms: int | None = Field(None, ge=0)
    system_prompt_chars: int = Field(default=0, ge=0)
    aborted: bool = False
    error: str | None = None


class SelectionResult(BaseModel):
    """Included/excluded partition of the candidates for one turn."""

    selected_arms: list[str] = Field(default_factory=list)
    excluded_arms: list[str] = Field(default_factory=list)
    is_baseline: bool = False
    total_token_budget: int = Field(default=0, ge=0)
    used_tokens: int = Field(default=0, ge=0)
    scores: dict[str, float] = Field(
        default_factory=dict, description="Oracle scores, when the oracle provided them"
    )


class UpdateResult(BaseModel):
    """Counts of posteriors touched by an update."""

    updated: int = 0
    created: int = 0


class PosteriorStats(BaseModel):
    """Summary statistics for a single posterior."""

    mean: float
    pulls: int
    confidence: Confidence


class LearningConfig(BaseModel):
    """Validated learning configuration.

    Attributes:
        enabled: Master switch for selection and capture
        phase: "passive" only observes; "active" updates posteriors and steers selection
        token_budget: Prompt token budget for optional components (0 = unlimited)
        baseline_rate: Fraction of runs that use the full context
        min_pulls: Arms with fewer observations are always included
        learner_name: Learner namespace at the decision oracle
        seed_arm_ids: Arms the local Thompson oracle never excludes
        count_baseline_runs: Whether baseline-run outcomes update posteriors
    """

    enabled: bool = True
    phase: LearningPhase = "passive"
    token_budget: int = Field(default=DEFAULT_TOKEN_BUDGET, ge=0)
    baseline_rate: float = Field(default=DEFAULT_BASELINE_RATE, ge=0.0, le=1.0)
    min_pulls: int = Field(default=DEFAULT_MIN_PULLS, ge=0)
    learner_name: str = Field(default=DEFAULT_LEARNER_NAME, min_length=1)
    seed_arm_ids: list[str] = Field(default_factory=lambda: list(SEED_ARM_IDS))
    count_baseline_runs: bool = True


# =============================================================================
# HOST PROMPT REPORT
# =============================================================================


class ToolEntry(BaseModel):
    """Tool exposed to the model, with its schema size."""

    name: str
    schema_chars: int = Field(default=0, ge=0)


class SkillEntry(BaseModel):
    """Skill block loaded into the prompt."""

    name: str
    block_chars: int = Field(default=0, ge=0)


class InjectedFile(BaseModel):
    """Workspace file injected into the prompt."""

    name: str
    injected_chars: int = Field(default=0, ge=0)
    missing: bool = False


class MemoryEntry(BaseModel):
    """Retrieved memory chunk placed into the prompt."""

    key: str
    text: str
    source: str | None = None


class SectionEntry(BaseModel):
    """Structural prompt section."""

    name: str
    chars: int = Field(default=0, ge=0)


class PromptReport(BaseModel):
    """Host's report of the assembled system prompt for one turn."""

    system_prompt_chars: int = Field(default=0, ge=0)
    tools: list[ToolEntry] = Field(default_factory=list)
    skills: list[SkillEntry] = Field(default_factory=list)
    injected_files: list[InjectedFile] = Field(default_factory=list)
    memories: list[MemoryEntry] = Field(default_factory=list)
    sections: list[SectionEntry] = Field(default_factory=list)


class ToolMeta(BaseModel):
    """One tool invocation observed during the turn."""

    tool_name: str
    meta: str | None = None


# =============================================================================
# OPERATOR / QUERY SURFACE
# =============================================================================


class BaselineComparison(BaseModel):
    """Baseline-vs-selected run statistics."""

    baseline_runs: int = 0
    selected_runs: int = 0
    baseline_avg_tokens: float | None = None
    selected_avg_tokens: float | None = None
    token_savings_percent: float | None = None
    baseline_avg_duration_ms: float | None = None
    selected_avg_duration_ms: float | None = None


class LearningSummary(BaseModel):
    """Read-only summary of the trace log and posterior store."""

    trace_count: int = 0
    arm_count: int = 0
    total_tokens: int = 0
    min_timestamp: int | None = None
    max_timestamp: int | None = None
    baseline: BaselineComparison = Field(default_factory=BaselineComparison)


class PosteriorView(BaseModel):
    """Posterior row as listed to operators."""

    arm_id: str
    alpha: float
    beta: float
    mean: float
    pulls: int
    confidence: Confidence
    is_seed: bool = False
    is_underexplored: bool = False
    last_updated: datetime | None = None


class ResetReport(BaseModel):
    """Outcome of a posterior reset."""

    learner: str
    reset_count: int = Field(..., ge=0)


class RewardReport(BaseModel):
    """Outcome of an operator-injected reward."""

    ok: bool = True
    arm_id: str
    outcome: Literal["accepted", "rejected"]
    reward: float = Field(..., ge=0.0, le=1.0)
    alpha: float
    beta: float
    mean: float
    pulls: int
