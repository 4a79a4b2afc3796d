"""Unit tests for the local Thompson Sampling oracle."""

import pytest

from curator.core.models import LearningConfig, SelectionContext
from curator.engines.thompson import LocalThompsonOracle


@pytest.fixture
def config():
    return LearningConfig(phase="active", min_pulls=5, seed_arm_ids=["tool:fs:Read"])


class TestRanking:
    """Tests for rank order: seeds, under-explored, then sample."""

    def test_seed_arms_rank_first(self, store, config, arm_factory, posterior_factory):
        arms = [arm_factory("tool:other:x", 10), arm_factory("tool:fs:Read", 10)]
        posteriors = {
            "tool:other:x": posterior_factory("tool:other:x", 100.0, 1.0, 100),
            "tool:fs:Read": posterior_factory("tool:fs:Read", 1.0, 100.0, 100),
        }

        ranked = LocalThompsonOracle(store, config, random_seed=1).rank(arms, posteriors)

        assert ranked[0].arm.id == "tool:fs:Read"
        assert ranked[0].is_seed

    def test_underexplored_before_explored(self, store, config, arm_factory, posterior_factory):
        arms = [arm_factory("tool:other:old", 10), arm_factory("tool:other:new", 10)]
        posteriors = {"tool:other:old": posterior_factory("tool:other:old", 100.0, 1.0, 100)}

        ranked = LocalThompsonOracle(store, config, random_seed=1).rank(arms, posteriors)

        assert [s.arm.id for s in ranked] == ["tool:other:new", "tool:other:old"]
        assert ranked[0].is_underexplored

    def test_explored_arms_ordered_by_sample(self, store, config, arm_factory, posterior_factory):
        """Test a near-certain good arm outranks a near-certain bad one."""
        arms = [arm_factory("tool:other:bad", 10), arm_factory("tool:other:good", 10)]
        posteriors = {
            "tool:other:bad": posterior_factory("tool:other:bad", 1.0, 500.0, 500),
            "tool:other:good": posterior_factory("tool:other:good", 500.0, 1.0, 500),
        }

        ranked = LocalThompsonOracle(store, config, random_seed=3).rank(arms, posteriors)

        assert ranked[0].arm.id == "tool:other:good"


class TestSelect:
    """Tests for budgeted packing of ranked arms."""

    @pytest.mark.asyncio
    async def test_respects_budget(self, store, config, arm_factory, posterior_factory):
        for arm_id in ("tool:other:a", "tool:other:b", "tool:other:c"):
            await store.save(posterior_factory(arm_id, 5.0, 5.0, 10))
        arms = [arm_factory(f"tool:other:{n}", 40) for n in "abc"]

        result = await LocalThompsonOracle(store, config, random_seed=0).select(
            arms, context=SelectionContext(), token_budget=100
        )

        assert len(result.selected_arms) == 2
        assert len(result.excluded_arms) == 1
        assert result.used_tokens == 80
        assert not result.is_baseline
        assert set(result.scores) == {a.id for a in arms}

    @pytest.mark.asyncio
    async def test_zero_budget_is_unlimited(self, store, config, arm_factory):
        arms = [arm_factory(f"tool:other:{n}", 5000) for n in "abc"]

        result = await LocalThompsonOracle(store, config).select(
            arms, context=SelectionContext(), token_budget=0
        )

        assert len(result.selected_arms) == 3

    @pytest.mark.asyncio
    async def test_k_limits_arm_count(self, store, config, arm_factory):
        arms = [arm_factory(f"tool:other:{n}", 1) for n in "abcd"]

        result = await LocalThompsonOracle(store, config).select(
            arms, context=SelectionContext(), token_budget=0, k=2
        )

        assert len(result.selected_arms) == 2
        assert len(result.excluded_arms) == 2

    @pytest.mark.asyncio
    async def test_cheap_arm_fills_leftover(self, store, config, arm_factory, posterior_factory):
        """Test greedy packing keeps going after an arm does not fit."""
        await store.save(posterior_factory("tool:other:big", 500.0, 1.0, 500))
        await store.save(posterior_factory("tool:other:cheap", 1.0, 500.0, 500))
        arms = [arm_factory("tool:other:big", 90), arm_factory("tool:other:cheap", 10)]

        result = await LocalThompsonOracle(store, config, random_seed=5).select(
            arms, context=SelectionContext(), token_budget=100
        )

        assert result.selected_arms == ["tool:other:big", "tool:other:cheap"]

    @pytest.mark.asyncio
    async def test_seeded_runs_are_reproducible(self, store, config, arm_factory):
        arms = [arm_factory(f"tool:other:{n}", 40) for n in "abcdef"]

        first = await LocalThompsonOracle(store, config, random_seed=11).select(
            arms, context=SelectionContext(), token_budget=120
        )
        second = await LocalThompsonOracle(store, config, random_seed=11).select(
            arms, context=SelectionContext(), token_budget=120
        )

        assert first.selected_arms == second.selected_arms
