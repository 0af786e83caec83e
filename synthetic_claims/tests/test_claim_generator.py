"""Tests for claim count, occurrence and size generation."""

import numpy as np
import pytest
from scipy import stats

from synthetic_claims.claim_generator import (
    claim_frequency,
    claim_occurrence,
    claim_size,
    default_claim_size_cdf,
    simulate_cdf,
)
from synthetic_claims.config import SimulationConfig
from synthetic_claims.exceptions import InvalidParameterError, RootFindingError


class TestClaimFrequency:
    """Test claim_frequency."""

    def test_shape_and_type(self, rng):
        """One non-negative integer count per period."""
        counts = claim_frequency(12, 500.0, 0.05, rng)
        assert counts.shape == (12,)
        assert np.issubdtype(counts.dtype, np.integer)
        assert np.all(counts >= 0)

    def test_zero_rate_gives_no_claims(self, rng):
        """A zero frequency produces empty periods."""
        counts = claim_frequency(5, 1000.0, 0.0, rng)
        np.testing.assert_array_equal(counts, np.zeros(5))

    def test_per_period_vectors(self, rng):
        """Exposure and frequency may vary by period."""
        counts = claim_frequency(3, [0.0, 1000.0, 0.0], [0.5, 0.5, 0.5], rng)
        assert counts[0] == 0
        assert counts[2] == 0
        assert counts[1] > 0

    def test_callable_frequency(self, rng):
        """A rate function receives the 1-based period."""
        counts = claim_frequency(6, 100.0, lambda period: 0.0 if period % 2 else 1.0, rng)
        np.testing.assert_array_equal(counts[::2], 0)
        assert np.all(counts[1::2] > 0)

    def test_combined_rate_defaults_to_unit_exposure(self, rng):
        """Without exposure a rate function gives the expected count per period."""
        counts = claim_frequency(4000, None, lambda period: 10.0, rng)
        assert counts.mean() == pytest.approx(10.0, rel=0.02)

    def test_unit_exposure_for_vectors(self, rng):
        """Without exposure a scalar frequency is the expected count."""
        counts = claim_frequency(4000, None, 2.5, rng)
        assert counts.mean() == pytest.approx(2.5, rel=0.03)

    def test_mean_count(self, rng):
        """Counts average exposure times frequency."""
        counts = claim_frequency(2000, 1000.0, 0.03, rng)
        assert counts.mean() == pytest.approx(30.0, rel=0.02)

    def test_reproducible(self):
        """The same seed gives the same counts."""
        a = claim_frequency(10, 100.0, 0.1, np.random.default_rng(7))
        b = claim_frequency(10, 100.0, 0.1, np.random.default_rng(7))
        np.testing.assert_array_equal(a, b)

    def test_length_mismatch(self, rng):
        """Per-period vectors must cover every period."""
        with pytest.raises(InvalidParameterError, match="3 periods"):
            claim_frequency(3, [1.0, 2.0], 0.1, rng)

    def test_negative_rate(self, rng):
        """Negative frequencies are rejected."""
        with pytest.raises(InvalidParameterError, match="non-negative"):
            claim_frequency(2, 100.0, [-0.1, 0.1], rng)

    def test_invalid_period_count(self, rng):
        """At least one period is required."""
        with pytest.raises(InvalidParameterError, match="must be positive"):
            claim_frequency(0, 100.0, 0.1, rng)


class TestClaimOccurrence:
    """Test claim_occurrence."""

    def test_times_within_period(self, rng):
        """Each period's times lie in [i - 1, i) and are sorted."""
        counts = np.array([5, 0, 12, 3])
        times = claim_occurrence(counts, rng)
        assert len(times) == 4
        for i, (n, t) in enumerate(zip(counts, times)):
            assert len(t) == n
            assert np.all(t >= i)
            assert np.all(t < i + 1)
            assert np.all(np.diff(t) >= 0)

    def test_empty_period(self, rng):
        """A period without claims holds an empty array."""
        times = claim_occurrence([0, 0], rng)
        assert all(len(t) == 0 for t in times)

    def test_negative_counts(self, rng):
        """Counts must be non-negative."""
        with pytest.raises(InvalidParameterError):
            claim_occurrence([1, -1], rng)


class TestSimulateCdf:
    """Test inverse-transform sampling."""

    def test_exponential(self, rng):
        """Sampling an exponential CDF recovers its mean."""
        values = simulate_cdf(2000, lambda x: 1 - np.exp(-x), rng, (0.0, 100.0))
        assert np.all((values >= 0) & (values <= 100))
        assert values.mean() == pytest.approx(1.0, rel=0.1)

    def test_unbracketed_quantile(self, rng):
        """A search range that cannot reach the quantile raises."""
        with pytest.raises(RootFindingError, match="not bracketed"):
            simulate_cdf(1, lambda x: 0.0, rng, (0.0, 1.0))

    def test_invalid_range(self, rng):
        """The search interval must be increasing."""
        with pytest.raises(InvalidParameterError, match="increasing"):
            simulate_cdf(1, lambda x: x, rng, (5.0, 1.0))

    def test_zero_draws(self, rng):
        """No draws returns an empty array."""
        assert simulate_cdf(0, lambda x: x, rng, (0.0, 1.0)).shape == (0,)


class TestClaimSize:
    """Test claim_size."""

    def test_default_cdf_truncation(self):
        """The default CDF is zero below the truncation point and increasing above."""
        assert default_claim_size_cdf(10.0) == 0.0
        assert default_claim_size_cdf(30.0) == pytest.approx(0.0, abs=1e-12)
        assert 0 < default_claim_size_cdf(1e5) < default_claim_size_cdf(1e6) < 1

    @pytest.mark.parametrize("s", [45.0, 2_000.0, 75_000.0, 3e6])
    def test_default_cdf_matches_truncated_normal(self, s):
        """The default CDF is the power-normal conditioned on s >= 30."""
        lower = stats.norm.cdf(30.0**0.2, 9.5, 3.0)
        expected = (stats.norm.cdf(s**0.2, 9.5, 3.0) - lower) / (1 - lower)
        assert default_claim_size_cdf(s) == pytest.approx(expected, rel=1e-12)

    def test_default_sizes(self, rng, config):
        """Default sizes match the counts and respect the truncation point."""
        counts = np.array([3, 0, 4])
        sizes = claim_size(counts, rng, config)
        assert [len(s) for s in sizes] == [3, 0, 4]
        assert all(np.all(s >= 30.0) for s in sizes)

    def test_default_scales_with_reference_claim(self):
        """Doubling the reference claim doubles every default size."""
        counts = np.array([5, 5])
        base = claim_size(counts, np.random.default_rng(3), SimulationConfig(n_periods=2))
        doubled = claim_size(
            counts, np.random.default_rng(3), SimulationConfig(n_periods=2, ref_claim=400_000)
        )
        for b, d in zip(base, doubled):
            np.testing.assert_allclose(d, 2 * b, rtol=1e-12)

    def test_custom_sampler(self, rng, config):
        """A direct sampler replaces the default."""
        sizes = claim_size([2, 1], rng, config, sampler=lambda n, rng: np.full(n, 1000.0))
        np.testing.assert_array_equal(sizes[0], [1000.0, 1000.0])
        np.testing.assert_array_equal(sizes[1], [1000.0])

    def test_custom_cdf(self, rng, config):
        """A user CDF is inverted over the search range."""
        sizes = claim_size(
            [50], rng, config, cdf=lambda x: min(1.0, x / 1000.0), search_range=(0.0, 2000.0)
        )
        assert np.all((sizes[0] > 0) & (sizes[0] <= 1000.0))

    def test_cdf_and_sampler_exclusive(self, rng, config):
        """Only one size route may be given."""
        with pytest.raises(InvalidParameterError, match="not both"):
            claim_size(
                [1], rng, config, cdf=lambda x: x, sampler=lambda n, rng: np.ones(n)
            )

    def test_sampler_wrong_length(self, rng, config):
        """A sampler returning the wrong number of sizes is located."""
        with pytest.raises(InvalidParameterError, match=r"period 2"):
            claim_size([1, 3], rng, config, sampler=lambda n, rng: np.ones(1))

    def test_non_positive_sizes(self, rng, config):
        """Sizes must be positive."""
        with pytest.raises(InvalidParameterError, match="positive"):
            claim_size([2], rng, config, sampler=lambda n, rng: np.zeros(n))
