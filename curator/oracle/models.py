"""Wire models for the remote decision oracle.

Field names follow the oracle's JSON contract (snake_case), so these models
validate responses directly.
"""

from typing import Any

from pydantic import BaseModel, Field

from curator.core.models import PosteriorView, SelectionResult


class OracleArm(BaseModel):
    """Candidate arm as sent to the oracle."""

    id: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    token_cost: int = Field(default=0, ge=0)


class OracleSelectResponse(BaseModel):
    """Response of the select operation."""

    selected_arms: list[str]
    excluded_arms: list[str] = Field(default_factory=list)
    is_baseline: bool = False
    scores: dict[str, float] = Field(default_factory=dict)
    token_budget: int = Field(default=0, ge=0)
    used_tokens: int = Field(default=0, ge=0)

    def to_selection_result(self) -> SelectionResult:
        return SelectionResult(
            selected_arms=self.selected_arms,
            excluded_arms=self.excluded_arms,
            is_baseline=self.is_baseline,
            total_token_budget=self.token_budget,
            used_tokens=self.used_tokens,
            scores=self.scores,
        )


class OracleObservation(BaseModel):
    """Posterior state returned by the observe operation."""

    arm_id: str
    alpha: float
    beta: float
    mean: float
    pulls: int


class OracleArmState(BaseModel):
    """Per-arm posterior as reported by the posteriors operation."""

    alpha: float
    beta: float
    pulls: int = 0
    total_reward: float = 0.0
    last_updated: str | None = None
    mean: float


class OraclePosteriors(BaseModel):
    learner: str
    posteriors: dict[str, OracleArmState] = Field(default_factory=dict)


class OracleMetrics(BaseModel):
    learner: str
    total_pulls: int = 0
    total_reward: float = 0.0
    accuracy: float = 0.0
    arm_count: int = 0
    explore_ratio: float = 0.0


class OracleReset(BaseModel):
    learner: str
    reset_count: int = Field(default=0, ge=0)



class OracleStatus(BaseModel):
    """Remote learner metrics and posteriors, annotated for operators."""

    learner: str
    metrics: OracleMetrics
    posteriors: list[PosteriorView] = Field(default_factory=list)
