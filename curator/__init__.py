"""Curator - adaptive context selection for agent prompts.

Curator learns which optional prompt components (tools, skills, workspace
files, memories, prompt sections) an agent actually uses, and withholds
the rest under a token budget using Beta-Bernoulli Thompson Sampling.

Basic usage:
    >>> from curator import create_curator, SelectionContext
    >>> curator = await create_curator()
    >>> plan = await curator.begin_turn(report, SelectionContext(session_key="main"))
    >>> plan.selection.selected_arms
    ['tool:fs:Read', 'tool:exec:Bash', ...]
"""

from dotenv import load_dotenv

load_dotenv()

from curator.core import (
    Arm,
    ArmPosterior,
    ConfigurationError,
    CuratorError,
    LearningConfig,
    OracleError,
    PromptReport,
    RunTrace,
    SelectionContext,
    SelectionResult,
    StoreError,
    ValidationError,
    settings,
)
from curator.engines import ContextCurator, TurnPlan
from curator.utils.service_factory import create_curator

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "ContextCurator",
    "TurnPlan",
    "create_curator",
    # Models
    "Arm",
    "ArmPosterior",
    "LearningConfig",
    "PromptReport",
    "RunTrace",
    "SelectionContext",
    "SelectionResult",
    # Configuration
    "settings",
    # Exceptions
    "CuratorError",
    "ConfigurationError",
    "OracleError",
    "StoreError",
    "ValidationError",
    # Version
    "__version__",
]
