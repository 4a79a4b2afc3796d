"""Request and response validation schemas for the learning API."""

from pydantic import BaseModel, Field

from curator.core.models import LearningConfig, PosteriorView, RunTrace


class ResetRequest(BaseModel):
    """Request schema for POST /learning/reset."""

    arm_id: str | None = Field(
        None, description="Reset a single arm (all arms when omitted)"
    )


class RewardRequest(BaseModel):
    """Request schema for POST /learning/reward."""

    label: str = Field(
        ...,
        description="Arm ID or short label (e.g. 'Read' for tool:fs:Read)",
        min_length=1,
    )
    reward: int = Field(1, description="1 = useful, 0 = not useful", ge=0, le=1)


class PosteriorsResponse(BaseModel):
    """Response schema for GET /learning/posteriors."""

    learner: str
    posteriors: list[PosteriorView]


class TracesResponse(BaseModel):
    """Response schema for GET /learning/traces."""

    total: int = Field(..., description="Total traces in the log")
    traces: list[RunTrace]


class ConfigResponse(BaseModel):
    """Response schema for GET /learning/config."""

    learning: LearningConfig
    store_backend: str
    oracle: str


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str = Field(..., description="Error type")
    detail: str = Field(..., description="Error details")


class HealthResponse(BaseModel):
    """Response schema for GET /health."""

    status: str = Field(..., description="Health status (healthy, unhealthy)")
    timestamp: str = Field(..., description="ISO timestamp")
