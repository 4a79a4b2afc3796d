"""Unit tests for the baseline controller and savings comparison."""

from unittest.mock import patch

import pytest

from curator.core.models import LearningConfig, TokenUsage
from curator.engines.baseline import (
    compare_baseline,
    generate_baseline_seed,
    recommended_baseline_rate,
    seeded_random,
    should_run_baseline,
    should_run_baseline_seeded,
)


class TestBaselineDecision:
    """Tests for random and seeded baseline decisions."""

    def test_rate_zero_never_baseline(self):
        config = LearningConfig(baseline_rate=0.0)

        assert not any(should_run_baseline(config) for _ in range(100))

    def test_rate_one_always_baseline(self):
        config = LearningConfig(baseline_rate=1.0)

        assert all(should_run_baseline(config) for _ in range(100))

    def test_draw_equal_to_rate_is_not_baseline(self):
        config = LearningConfig(baseline_rate=0.5)

        with patch("curator.engines.baseline.random.random", return_value=0.5):
            assert not should_run_baseline(config)

    def test_seeded_random_lcg_step(self):
        """Test one LCG step: (seed * 1664525 + 1013904223) mod 2^32, scaled."""
        assert seeded_random(0) == pytest.approx(1013904223 / 2**32)
        assert 0.0 <= seeded_random(123456789) < 1.0

    def test_seeded_decision_is_deterministic(self):
        config = LearningConfig(baseline_rate=0.3)
        seed = generate_baseline_seed("main", 1_700_000_000_000)

        decisions = {should_run_baseline_seeded(config, seed) for _ in range(10)}

        assert len(decisions) == 1

    def test_seed_is_stable_and_non_negative(self):
        a = generate_baseline_seed("main", 1_700_000_000_000)
        b = generate_baseline_seed("main", 1_700_000_000_000)

        assert a == b
        assert a >= 0
        assert a != generate_baseline_seed("other", 1_700_000_000_000)

    def test_seed_differs_by_timestamp(self):
        assert generate_baseline_seed("main", 1) != generate_baseline_seed("main", 2)

    def test_seed_matches_32bit_string_hash(self):
        """Test the hash wraps like a signed 32-bit accumulator."""
        # "default:1" -> h = h * 31 + ord(c), wrapped to int32, then abs()
        expected = 0
        for char in "default:1":
            expected = (expected * 31 + ord(char)) & 0xFFFFFFFF
        if expected >= 2**31:
            expected -= 2**32

        assert generate_baseline_seed(None, 1) == abs(expected)

    @pytest.mark.parametrize(
        ("arm_count", "rate"),
        [(0, 0.2), (10, 0.2), (11, 0.1), (50, 0.1), (51, 0.05), (500, 0.05)],
    )
    def test_recommended_rate(self, arm_count, rate):
        assert recommended_baseline_rate(arm_count) == rate


class TestCompareBaseline:
    """Tests for baseline vs selected token comparison."""

    def test_savings_percent(self, trace_factory):
        traces = [
            trace_factory([], is_baseline=True, usage=TokenUsage(total=1000), duration_ms=200),
            trace_factory([], is_baseline=True, usage=TokenUsage(total=1000), duration_ms=400),
            trace_factory([], usage=TokenUsage(total=600), duration_ms=100),
        ]

        comparison = compare_baseline(traces)

        assert comparison.baseline_runs == 2
        assert comparison.selected_runs == 1
        assert comparison.baseline_avg_tokens == 1000
        assert comparison.selected_avg_tokens == 600
        assert comparison.token_savings_percent == pytest.approx(40.0)
        assert comparison.baseline_avg_duration_ms == 300
        assert comparison.selected_avg_duration_ms == 100

    def test_falls_back_to_included_arm_costs(self, trace_factory):
        """Test traces without usage count included arm costs (10 each)."""
        traces = [
            trace_factory([("tool:a:a", True, False), ("tool:b:b", True, False)], is_baseline=True),
            trace_factory([("tool:a:a", True, False), ("tool:b:b", False, False)]),
        ]

        comparison = compare_baseline(traces)

        assert comparison.baseline_avg_tokens == 20
        assert comparison.selected_avg_tokens == 10
        assert comparison.token_savings_percent == pytest.approx(50.0)

    def test_no_savings_without_both_groups(self, trace_factory):
        comparison = compare_baseline([trace_factory([], usage=TokenUsage(total=10))])

        assert comparison.token_savings_percent is None
        assert comparison.baseline_avg_tokens is None

    def test_empty(self):
        comparison = compare_baseline([])

        assert comparison.baseline_runs == 0
        assert comparison.selected_runs == 0
        assert comparison.token_savings_percent is None
