"""Pytest configuration and fixtures for Curator tests."""

from datetime import UTC, datetime

import pytest

from curator.core.models import (
    Arm,
    ArmOutcome,
    ArmPosterior,
    ArmType,
    InjectedFile,
    LearningConfig,
    MemoryEntry,
    PromptReport,
    RunTrace,
    SectionEntry,
    SkillEntry,
    ToolEntry,
)
from curator.core.state_store import InMemoryPosteriorStore

# =============================================================================
# SHARED FIXTURES
# =============================================================================
# Arm IDs used here follow the inference rules: "Read" -> tool:fs:Read,
# "Bash" -> tool:exec:Bash, "web_search" -> tool:web:web_search.


def make_arm(arm_id: str, token_cost: int = 0) -> Arm:
    """Build an Arm from its ID, deriving type/category/label."""
    arm_type, category, ident = arm_id.split(":", 2)
    return Arm(
        id=arm_id,
        type=ArmType(arm_type),
        category=category,
        label=ident,
        token_cost=token_cost,
    )


def make_trace(
    arms: list[tuple[str, bool, bool]],
    *,
    is_baseline: bool = False,
    aborted: bool = False,
    error: str | None = None,
    timestamp: int = 1_700_000_000_000,
    **kwargs,
) -> RunTrace:
    """Build a RunTrace from (arm_id, included, referenced) triples."""
    return RunTrace(
        run_id=kwargs.pop("run_id", "run-1"),
        session_id=kwargs.pop("session_id", "session-1"),
        timestamp=timestamp,
        is_baseline=is_baseline,
        aborted=aborted,
        error=error,
        arms=[
            ArmOutcome(arm_id=arm_id, included=included, referenced=referenced, token_cost=10)
            for arm_id, included, referenced in arms
        ],
        **kwargs,
    )


def make_posterior(arm_id: str, alpha: float = 1.0, beta: float = 1.0, pulls: int = 0) -> ArmPosterior:
    return ArmPosterior(
        arm_id=arm_id,
        alpha=alpha,
        beta=beta,
        pulls=pulls,
        last_updated=datetime(2025, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def store():
    """Fresh in-memory posterior store."""
    return InMemoryPosteriorStore()


@pytest.fixture
def active_config():
    """Active-phase config with no baseline runs and a small budget."""
    return LearningConfig(
        phase="active",
        token_budget=100,
        baseline_rate=0.0,
        min_pulls=5,
        seed_arm_ids=[],
    )


@pytest.fixture
def passive_config():
    """Passive-phase config (observe only)."""
    return LearningConfig(phase="passive", baseline_rate=0.0)


@pytest.fixture
def sample_report():
    """Prompt report with one component of each kind."""
    return PromptReport(
        system_prompt_chars=4000,
        tools=[
            ToolEntry(name="Read", schema_chars=400),
            ToolEntry(name="web_search", schema_chars=800),
        ],
        skills=[SkillEntry(name="deploy", block_chars=200)],
        injected_files=[
            InjectedFile(name="AGENTS.md", injected_chars=120),
            InjectedFile(name="MISSING.md", injected_chars=0, missing=True),
        ],
        memories=[MemoryEntry(key="m1", text="prefers tabs", source="recall")],
        sections=[SectionEntry(name="safety", chars=40)],
    )


@pytest.fixture
def arm_factory():
    """Factory: make_arm(arm_id, token_cost=0)."""
    return make_arm


@pytest.fixture
def trace_factory():
    """Factory: make_trace([(arm_id, included, referenced), ...], **fields)."""
    return make_trace


@pytest.fixture
def posterior_factory():
    """Factory: make_posterior(arm_id, alpha, beta, pulls)."""
    return make_posterior
