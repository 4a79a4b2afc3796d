"""Core infrastructure for Curator context selection."""

from curator.core.arms import (
    build_arm_id,
    estimate_tokens,
    infer_tool_category,
    parse_arm_id,
)
from curator.core.config import Settings, settings
from curator.core.exceptions import (
    ConfigurationError,
    CuratorError,
    OracleError,
    StoreError,
    ValidationError,
)
from curator.core.models import (
    Arm,
    ArmOutcome,
    ArmPosterior,
    ArmType,
    LearningConfig,
    ParsedArmId,
    PromptReport,
    RunTrace,
    SelectionContext,
    SelectionResult,
    ToolMeta,
)
from curator.core.state_store import InMemoryPosteriorStore, PosteriorStore

__all__ = [
    # Arm model
    "build_arm_id",
    "estimate_tokens",
    "infer_tool_category",
    "parse_arm_id",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "CuratorError",
    "ConfigurationError",
    "OracleError",
    "StoreError",
    "ValidationError",
    # Models
    "Arm",
    "ArmOutcome",
    "ArmPosterior",
    "ArmType",
    "LearningConfig",
    "ParsedArmId",
    "PromptReport",
    "RunTrace",
    "SelectionContext",
    "SelectionResult",
    "ToolMeta",
    # Stores
    "InMemoryPosteriorStore",
    "PosteriorStore",
]
