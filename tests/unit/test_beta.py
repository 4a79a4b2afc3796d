"""Unit tests for Beta distribution utilities."""

import numpy as np
import pytest

from curator.engines.beta import (
    BetaParams,
    beta_credible_interval,
    beta_mean,
    beta_variance,
    get_initial_prior,
    sample_beta,
    update_beta,
)


class TestUpdateBeta:
    """Tests for the conjugate Beta update."""

    def test_success_increments_alpha(self):
        """Test reward=1 on Beta(5,1) gives Beta(6,1)."""
        assert update_beta(BetaParams(5.0, 1.0), 1.0) == BetaParams(6.0, 1.0)

    def test_failure_increments_beta(self):
        """Test reward=0 on Beta(5,1) gives Beta(5,2)."""
        assert update_beta(BetaParams(5.0, 1.0), 0.0) == BetaParams(5.0, 2.0)

    @pytest.mark.parametrize("reward", [0.0, 0.25, 0.5, 1.0])
    def test_total_grows_by_one(self, reward):
        """Test alpha + beta grows by exactly one per observation."""
        params = BetaParams(3.0, 1.0)

        updated = update_beta(params, reward)

        assert updated.alpha + updated.beta == pytest.approx(params.alpha + params.beta + 1)
        assert updated.alpha >= params.alpha
        assert updated.beta >= params.beta

    @pytest.mark.parametrize("reward", [-0.1, 1.5])
    def test_rejects_out_of_range_reward(self, reward):
        with pytest.raises(ValueError):
            update_beta(BetaParams(1.0, 1.0), reward)

    def test_mean_moves_toward_reward(self):
        """Test repeated successes raise the mean and failures lower it."""
        params = BetaParams(1.0, 1.0)
        up = update_beta(update_beta(params, 1.0), 1.0)
        down = update_beta(update_beta(params, 0.0), 0.0)

        assert beta_mean(up) > beta_mean(params) > beta_mean(down)


class TestPriors:
    """Tests for initial priors by source."""

    def test_curated_prior_is_optimistic(self):
        assert get_initial_prior("curated") == BetaParams(3.0, 1.0)
        assert beta_mean(get_initial_prior("curated")) == pytest.approx(0.75)

    def test_learned_prior_is_uniform(self):
        assert get_initial_prior("learned") == BetaParams(1.0, 1.0)

    def test_overrides_take_precedence(self):
        """Test configured priors replace the defaults."""
        priors = {"curated": (5.0, 2.0), "learned": (2.0, 2.0)}

        assert get_initial_prior("curated", priors) == BetaParams(5.0, 2.0)
        assert get_initial_prior("learned", priors) == BetaParams(2.0, 2.0)

    def test_unknown_source_raises(self):
        with pytest.raises(ValueError):
            get_initial_prior("bogus")  # type: ignore[arg-type]


class TestDistributionStats:
    """Tests for sampling, variance, and credible intervals."""

    def test_sample_in_unit_interval(self):
        rng = np.random.default_rng(7)
        samples = [sample_beta(BetaParams(2.0, 5.0), rng) for _ in range(200)]

        assert all(0.0 <= s <= 1.0 for s in samples)

    def test_seeded_samples_are_reproducible(self):
        a = sample_beta(BetaParams(2.0, 2.0), np.random.default_rng(42))
        b = sample_beta(BetaParams(2.0, 2.0), np.random.default_rng(42))

        assert a == b

    def test_variance_of_uniform(self):
        """Test Beta(1,1) variance is 1/12."""
        assert beta_variance(BetaParams(1.0, 1.0)) == pytest.approx(1 / 12)

    def test_credible_interval_contains_mean(self):
        params = BetaParams(30.0, 10.0)
        lower, upper = beta_credible_interval(params)

        assert 0.0 <= lower < beta_mean(params) < upper <= 1.0

    def test_wider_level_gives_wider_interval(self):
        params = BetaParams(10.0, 10.0)
        narrow = beta_credible_interval(params, level=0.8)
        wide = beta_credible_interval(params, level=0.99)

        assert wide[0] < narrow[0]
        assert wide[1] > narrow[1]
