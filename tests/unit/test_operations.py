"""Unit tests for operator operations: reset, reward, summaries."""

from unittest.mock import AsyncMock

import pytest

from curator.core.exceptions import OracleError, StoreError
from curator.core.models import TokenUsage
from curator.operations import (
    list_posteriors,
    oracle_status,
    parse_reward_args,
    record_reward,
    reset_learning,
    resolve_arm_id,
    summarize,
)
from curator.oracle.models import OracleArmState, OracleMetrics, OraclePosteriors

KNOWN = ["tool:fs:Read", "tool:exec:Bash", "file:workspace:AGENTS.md"]


class TestResolveArmId:
    """Tests for operator label resolution."""

    def test_full_id_passes_through(self):
        assert resolve_arm_id("tool:custom:thing", KNOWN) == "tool:custom:thing"

    def test_exact_last_segment_case_insensitive(self):
        assert resolve_arm_id("read", KNOWN) == "tool:fs:Read"

    def test_substring_match(self):
        assert resolve_arm_id("agents", KNOWN) == "file:workspace:AGENTS.md"

    def test_exact_match_wins_over_substring(self):
        ids = ["tool:other:Readme", "tool:fs:Read"]

        assert resolve_arm_id("Read", ids) == "tool:fs:Read"

    def test_unknown_label_returned_raw(self):
        assert resolve_arm_id("nothing", KNOWN) == "nothing"


class TestParseRewardArgs:
    """Tests for '<label> [0|1]' parsing."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Read", ("Read", 1.0)),
            ("Read 0", ("Read", 0.0)),
            ("Read 1", ("Read", 1.0)),
            ("web search 0", ("web search", 0.0)),
            ("Read 5", ("Read 5", 1.0)),
        ],
    )
    def test_parses(self, text, expected):
        assert parse_reward_args(text) == expected

    def test_empty_is_usage_error(self):
        with pytest.raises(ValueError, match="Usage"):
            parse_reward_args("   ")


class TestRecordReward:
    """Tests for operator-injected rewards."""

    @pytest.mark.asyncio
    async def test_new_tool_arm_starts_from_curated_prior(self, store):
        report = await record_reward(store, "tool:fs:Read", 1)

        assert (report.alpha, report.beta, report.pulls) == (4.0, 1.0, 1)
        assert report.outcome == "accepted"
        assert (await store.load())["tool:fs:Read"].pulls == 1

    @pytest.mark.asyncio
    async def test_rejection_updates_existing(self, store, posterior_factory):
        await store.save(posterior_factory("tool:exec:Bash", 2.0, 2.0, 2))

        report = await record_reward(store, "tool:exec:Bash", 0)

        assert (report.alpha, report.beta, report.pulls) == (2.0, 3.0, 3)
        assert report.outcome == "rejected"

    @pytest.mark.asyncio
    async def test_invalid_reward(self, store):
        with pytest.raises(ValueError):
            await record_reward(store, "tool:fs:Read", 0.5)

    @pytest.mark.asyncio
    async def test_forwards_to_oracle(self, store):
        oracle = AsyncMock()

        await record_reward(store, "tool:fs:Read", 1, oracle=oracle)

        oracle.observe.assert_awaited_once_with("tool:fs:Read", "accepted", reward=1.0)

    @pytest.mark.asyncio
    async def test_store_error_propagates(self):
        store = AsyncMock()
        store.load.side_effect = StoreError("down")

        with pytest.raises(StoreError):
            await record_reward(store, "tool:fs:Read", 1)


class TestResetLearning:
    """Tests for posterior resets."""

    @pytest.mark.asyncio
    async def test_reset_all(self, store, posterior_factory):
        await store.save_many(
            [posterior_factory("tool:fs:Read", 5.0, 1.0, 4), posterior_factory("tool:exec:Bash", 1.0, 5.0, 4)]
        )

        report = await reset_learning(store, "curator")

        assert report.reset_count == 2
        assert report.learner == "curator"
        assert all(p.pulls == 0 for p in (await store.load()).values())

    @pytest.mark.asyncio
    async def test_reset_one_also_resets_oracle(self, store, posterior_factory):
        await store.save(posterior_factory("tool:fs:Read", 5.0, 1.0, 4))
        oracle = AsyncMock()
        oracle.reset.return_value = None

        report = await reset_learning(store, "curator", oracle=oracle, arm_id="tool:fs:Read")

        assert report.reset_count == 1
        oracle.reset.assert_awaited_once_with(["tool:fs:Read"])


class TestQueries:
    """Tests for read-only summaries."""

    @pytest.mark.asyncio
    async def test_summarize(self, store, trace_factory, posterior_factory):
        await store.insert_trace(
            trace_factory([], is_baseline=True, usage=TokenUsage(total=1000), timestamp=100)
        )
        await store.insert_trace(trace_factory([], usage=TokenUsage(total=500), timestamp=300))
        await store.save(posterior_factory("tool:fs:Read"))

        summary = await summarize(store)

        assert summary.trace_count == 2
        assert summary.arm_count == 1
        assert summary.total_tokens == 1500
        assert (summary.min_timestamp, summary.max_timestamp) == (100, 300)
        assert summary.baseline.token_savings_percent == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_summarize_empty(self, store):
        summary = await summarize(store)

        assert summary.trace_count == 0
        assert summary.min_timestamp is None

    @pytest.mark.asyncio
    async def test_list_posteriors_annotated_and_sorted(self, store, posterior_factory):
        await store.save_many(
            [
                posterior_factory("tool:exec:Bash", 1.0, 9.0, 8),
                posterior_factory("tool:fs:Read", 9.0, 1.0, 25),
            ]
        )

        views = await list_posteriors(store, min_pulls=10, seed_arm_ids=["tool:fs:Read"])

        assert [v.arm_id for v in views] == ["tool:fs:Read", "tool:exec:Bash"]
        assert views[0].is_seed and views[0].confidence == "high"
        assert views[1].is_underexplored and views[1].confidence == "medium"


def remote_oracle(metrics=True, posteriors=True):
    oracle = AsyncMock()
    oracle.base_url = "http://oracle.test"
    oracle.metrics.return_value = (
        OracleMetrics(learner="remote", total_pulls=30, arm_count=2, accuracy=0.5)
        if metrics
        else None
    )
    oracle.posteriors.return_value = (
        OraclePosteriors(
            learner="remote",
            posteriors={
                "tool:exec:Bash": OracleArmState(alpha=1.0, beta=3.0, pulls=2, mean=0.25),
                "tool:fs:Read": OracleArmState(
                    alpha=22.0,
                    beta=2.0,
                    pulls=22,
                    mean=0.917,
                    last_updated="2025-01-01T00:00:00+00:00",
                ),
            },
        )
        if posteriors
        else None
    )
    return oracle


class TestOracleStatus:
    """Tests for reading the remote learner's state."""

    @pytest.mark.asyncio
    async def test_annotates_remote_posteriors(self):
        status = await oracle_status(
            remote_oracle(), min_pulls=5, seed_arm_ids=["tool:fs:Read"]
        )

        assert status.learner == "remote"
        assert status.metrics.total_pulls == 30
        assert [v.arm_id for v in status.posteriors] == ["tool:fs:Read", "tool:exec:Bash"]
        assert status.posteriors[0].is_seed
        assert status.posteriors[0].confidence == "high"
        assert status.posteriors[1].is_underexplored

    @pytest.mark.asyncio
    async def test_missing_posteriors_gives_empty_list(self):
        status = await oracle_status(remote_oracle(posteriors=False), min_pulls=5)

        assert status.posteriors == []

    @pytest.mark.asyncio
    async def test_unreachable_oracle_raises(self):
        with pytest.raises(OracleError) as exc_info:
            await oracle_status(remote_oracle(metrics=False), min_pulls=5)

        assert exc_info.value.details["base_url"] == "http://oracle.test"
