"""Unit tests for budgeted selection, fallback, and the exploration floor."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from curator.core.exceptions import StoreError
from curator.core.models import LearningConfig, SelectionContext, SelectionResult
from curator.engines.selector import (
    DecisionOracle,
    Selector,
    apply_exploration_floor,
    fallback_select,
    select_all,
    underexplored_arm_ids,
)
from curator.engines.thompson import LocalThompsonOracle


@pytest.fixture
def three_arms(arm_factory):
    return [
        arm_factory("tool:other:a", 40),
        arm_factory("tool:other:b", 40),
        arm_factory("tool:other:c", 40),
    ]


@pytest_asyncio.fixture
async def explored_store(store, posterior_factory):
    """Store where every test arm is past the exploration floor."""
    for arm_id in ("tool:other:a", "tool:other:b", "tool:other:c"):
        await store.save(posterior_factory(arm_id, pulls=10))
    return store


class TestFallbackSelect:
    """Tests for first-fit packing."""

    def test_zero_budget_selects_everything(self, three_arms):
        result = fallback_select(three_arms, token_budget=0)

        assert result.selected_arms == ["tool:other:a", "tool:other:b", "tool:other:c"]
        assert result.excluded_arms == []
        assert result.is_baseline is True

    def test_packs_in_order_until_budget(self, three_arms):
        """Test costs [40, 40, 40] under 100 keep the first two."""
        result = fallback_select(three_arms, token_budget=100)

        assert result.selected_arms == ["tool:other:a", "tool:other:b"]
        assert result.excluded_arms == ["tool:other:c"]
        assert result.used_tokens == 80
        assert result.total_token_budget == 100

    def test_smaller_arm_fills_leftover_budget(self, arm_factory):
        arms = [
            arm_factory("tool:other:big", 90),
            arm_factory("tool:other:huge", 50),
            arm_factory("tool:other:tiny", 10),
        ]

        result = fallback_select(arms, token_budget=100)

        assert result.selected_arms == ["tool:other:big", "tool:other:tiny"]
        assert result.excluded_arms == ["tool:other:huge"]

    def test_forced_arms_always_included(self, three_arms):
        result = fallback_select(three_arms, token_budget=50, forced_arm_ids={"tool:other:c"})

        assert result.selected_arms == ["tool:other:c"]
        assert result.excluded_arms == ["tool:other:a", "tool:other:b"]
        assert result.used_tokens == 40

    def test_partition_is_complete(self, three_arms):
        """Test selected and excluded are disjoint and cover the candidates."""
        result = fallback_select(three_arms, token_budget=60)

        assert set(result.selected_arms).isdisjoint(result.excluded_arms)
        assert set(result.selected_arms) | set(result.excluded_arms) == {
            a.id for a in three_arms
        }

    def test_select_all(self, three_arms):
        result = select_all(three_arms, token_budget=10)

        assert len(result.selected_arms) == 3
        assert result.used_tokens == 120
        assert result.is_baseline


class TestExplorationFloor:
    """Tests for under-explored arm detection and rescue."""

    def test_underexplored_ids(self, three_arms, posterior_factory):
        posteriors = {
            "tool:other:a": posterior_factory("tool:other:a", pulls=10),
            "tool:other:b": posterior_factory("tool:other:b", pulls=2),
        }

        assert underexplored_arm_ids(three_arms, posteriors, min_pulls=5) == {
            "tool:other:b",
            "tool:other:c",
        }

    def test_rescues_forced_arms(self, three_arms):
        result = SelectionResult(
            selected_arms=["tool:other:a"],
            excluded_arms=["tool:other:b", "tool:other:c"],
            used_tokens=40,
        )

        floored = apply_exploration_floor(result, three_arms, {"tool:other:c"})

        assert floored.selected_arms == ["tool:other:a", "tool:other:c"]
        assert floored.excluded_arms == ["tool:other:b"]
        assert floored.used_tokens == 80

    def test_unlisted_candidates_count_as_excluded(self, three_arms):
        result = SelectionResult(selected_arms=["tool:other:a"], excluded_arms=[], used_tokens=40)

        floored = apply_exploration_floor(result, three_arms, set())

        assert floored.selected_arms == ["tool:other:a"]
        assert floored.excluded_arms == ["tool:other:b", "tool:other:c"]
        assert floored.used_tokens == 40

    def test_rescues_arms_missing_from_both_lists(self, three_arms):
        result = SelectionResult(selected_arms=["tool:other:a"], excluded_arms=[], used_tokens=40)

        floored = apply_exploration_floor(result, three_arms, {"tool:other:b", "tool:other:c"})

        assert floored.selected_arms == ["tool:other:a", "tool:other:b", "tool:other:c"]
        assert floored.excluded_arms == []
        assert floored.used_tokens == 120


class TestSelector:
    """Tests for the oracle/fallback/baseline composition."""

    @pytest.mark.asyncio
    async def test_baseline_includes_everything(self, three_arms, active_config):
        oracle = AsyncMock()
        selector = Selector(active_config, oracle=oracle)

        result = await selector.select(three_arms, SelectionContext(), is_baseline=True)

        assert result.is_baseline
        assert len(result.selected_arms) == 3
        oracle.select.assert_not_called()

    @pytest.mark.asyncio
    async def test_uses_oracle_result(self, three_arms, explored_store):
        config = LearningConfig(phase="active", token_budget=100, min_pulls=5)
        oracle = AsyncMock()
        oracle.select.return_value = SelectionResult(
            selected_arms=["tool:other:b"],
            excluded_arms=["tool:other:a", "tool:other:c"],
            used_tokens=40,
        )

        result = await Selector(config, store=explored_store, oracle=oracle).select(
            three_arms, SelectionContext()
        )

        assert result.selected_arms == ["tool:other:b"]
        assert not result.is_baseline
        assert oracle.select.await_args.kwargs["phase"] == "active"

    @pytest.mark.asyncio
    async def test_oracle_none_falls_back(self, three_arms, active_config, explored_store):
        oracle = AsyncMock()
        oracle.select.return_value = None

        selector = Selector(active_config, store=explored_store, oracle=oracle)

        result = await selector.select(three_arms, SelectionContext())

        assert result.is_baseline
        assert result.selected_arms == ["tool:other:a", "tool:other:b"]

    @pytest.mark.asyncio
    async def test_oracle_exception_falls_back(
        self, three_arms, active_config, explored_store
    ):
        oracle = AsyncMock()
        oracle.select.side_effect = RuntimeError("oracle exploded")

        selector = Selector(active_config, store=explored_store, oracle=oracle)

        result = await selector.select(three_arms, SelectionContext())

        assert result.excluded_arms == ["tool:other:c"]

    @pytest.mark.asyncio
    async def test_floor_overrides_oracle(self, three_arms, store, posterior_factory):
        """Test an oracle cannot exclude an arm below min_pulls."""
        for arm_id in ("tool:other:a", "tool:other:b"):
            await store.save(posterior_factory(arm_id, pulls=10))
        config = LearningConfig(phase="active", token_budget=40, min_pulls=5)
        oracle = AsyncMock()
        oracle.select.return_value = SelectionResult(
            selected_arms=["tool:other:a"],
            excluded_arms=["tool:other:b", "tool:other:c"],
            used_tokens=40,
        )

        result = await Selector(config, store=store, oracle=oracle).select(
            three_arms, SelectionContext()
        )

        assert "tool:other:c" in result.selected_arms
        assert "tool:other:b" in result.excluded_arms

    @pytest.mark.asyncio
    async def test_floor_applies_when_oracle_omits_exclusions(self, three_arms, store):
        """Test unexplored arms are forced even if the oracle only lists its picks."""
        config = LearningConfig(phase="active", token_budget=40, min_pulls=5)
        oracle = AsyncMock()
        oracle.select.return_value = SelectionResult(
            selected_arms=["tool:other:a"], used_tokens=40
        )

        result = await Selector(config, store=store, oracle=oracle).select(
            three_arms, SelectionContext()
        )

        assert set(result.selected_arms) == {"tool:other:a", "tool:other:b", "tool:other:c"}
        assert result.excluded_arms == []

    @pytest.mark.asyncio
    async def test_store_failure_includes_everything(self, three_arms):
        """Test unknown posteriors make every arm under-explored."""
        store = AsyncMock()
        store.load.side_effect = StoreError("db down")
        config = LearningConfig(phase="active", token_budget=40, min_pulls=5)

        result = await Selector(config, store=store).select(three_arms, SelectionContext())

        assert len(result.selected_arms) == 3
        assert result.excluded_arms == []

    @pytest.mark.asyncio
    async def test_passive_phase_skips_floor(self, three_arms, store):
        config = LearningConfig(phase="passive", token_budget=40, min_pulls=5)

        result = await Selector(config, store=store).select(three_arms, SelectionContext())

        assert result.selected_arms == ["tool:other:a"]

    @pytest.mark.asyncio
    async def test_budget_override(self, three_arms, active_config, explored_store):
        result = await Selector(active_config, store=explored_store).select(
            three_arms, SelectionContext(), token_budget=0
        )

        assert len(result.selected_arms) == 3

    def test_local_oracle_satisfies_protocol(self, store, active_config):
        assert isinstance(LocalThompsonOracle(store, active_config), DecisionOracle)
