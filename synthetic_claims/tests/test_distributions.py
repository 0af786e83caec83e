"""Tests for moment matching and distribution parameterizers."""

import numpy as np
import pytest
from scipy import stats

from synthetic_claims.distributions import (
    BetaParameterizer,
    CustomParameterizer,
    WeibullParameterizer,
    beta_moments,
    get_beta_parameters,
    get_weibull_parameters,
    weibull_moments,
)
from synthetic_claims.exceptions import InvalidParameterError, NumericalError


class TestWeibullParameters:
    """Test Weibull moment matching."""

    @pytest.mark.parametrize("mean", [1e3, 1e5, 1e6])
    @pytest.mark.parametrize("cv", [0.2, 0.6, 1.0])
    def test_round_trip(self, mean, cv):
        """Matched parameters reproduce the target mean and CV."""
        shape, scale = get_weibull_parameters(mean, cv)
        fitted = stats.weibull_min(shape, scale=scale)
        assert fitted.mean() == pytest.approx(mean, rel=1e-4)
        assert fitted.std() / fitted.mean() == pytest.approx(cv, rel=1e-4)

    def test_moments_match_scipy(self):
        """Closed-form Weibull moments agree with scipy."""
        mean, cv = weibull_moments(1.7, 4.0)
        reference = stats.weibull_min(1.7, scale=4.0)
        assert mean == pytest.approx(reference.mean(), rel=1e-9)
        assert cv == pytest.approx(reference.std() / reference.mean(), rel=1e-9)

    def test_unit_cv_is_exponential(self):
        """A CV of one gives shape one and scale equal to the mean."""
        shape, scale = get_weibull_parameters(5.0, 1.0)
        assert shape == pytest.approx(1.0, abs=1e-8)
        assert scale == pytest.approx(5.0, rel=1e-8)

    def test_scalar_input_returns_floats(self):
        """Scalar targets give plain floats."""
        shape, scale = get_weibull_parameters(2.0, 0.5)
        assert isinstance(shape, float)
        assert isinstance(scale, float)

    def test_vector_input(self):
        """Vector targets are matched elementwise."""
        means = np.array([1.0, 10.0, 100.0])
        shape, scale = get_weibull_parameters(means, 0.5)
        assert shape.shape == (3,)
        np.testing.assert_allclose(shape, shape[0])
        fitted_mean, _ = weibull_moments(shape, scale)
        np.testing.assert_allclose(fitted_mean, means, rtol=1e-8)

    def test_shape_decreases_with_cv(self):
        """Higher dispersion needs a smaller shape."""
        low, _ = get_weibull_parameters(1.0, 0.3)
        high, _ = get_weibull_parameters(1.0, 0.9)
        assert high < low

    def test_invalid_mean(self):
        """Non-positive means are rejected."""
        with pytest.raises(InvalidParameterError, match="mean must be positive"):
            get_weibull_parameters(0.0, 0.5)

    def test_invalid_cv(self):
        """Non-positive CVs are rejected."""
        with pytest.raises(InvalidParameterError, match="CV must be positive"):
            get_weibull_parameters(1.0, -0.1)

    def test_unattainable_cv(self):
        """A CV outside the shape bracket surfaces as a numerical error."""
        with pytest.raises(NumericalError, match="outside the attainable range"):
            get_weibull_parameters(1.0, 0.001)

    def test_mismatched_shapes(self):
        """Mean and CV arrays must broadcast."""
        with pytest.raises(InvalidParameterError, match="shapes do not match"):
            get_weibull_parameters(np.ones(3), np.full(2, 0.5))


class TestBetaParameters:
    """Test Beta moment matching."""

    def test_symmetric_case(self):
        """Mean 0.5 with CV 0.1 gives equal shapes of 49.5."""
        shape1, shape2 = get_beta_parameters(0.5, 0.1)
        assert shape1 == pytest.approx(49.5)
        assert shape2 == pytest.approx(49.5)

    @pytest.mark.parametrize("mean,cv", [(0.1, 0.5), (0.5, 0.1), (0.9, 0.03)])
    def test_round_trip(self, mean, cv):
        """Matched shapes reproduce the target mean and CV."""
        fitted = stats.beta(*get_beta_parameters(mean, cv))
        assert fitted.mean() == pytest.approx(mean, rel=1e-10)
        assert fitted.std() / fitted.mean() == pytest.approx(cv, rel=1e-10)

    def test_moments_match_scipy(self):
        """Closed-form Beta moments agree with scipy."""
        mean, cv = beta_moments(2.5, 7.0)
        reference = stats.beta(2.5, 7.0)
        assert mean == pytest.approx(reference.mean(), rel=1e-10)
        assert cv == pytest.approx(reference.std() / reference.mean(), rel=1e-10)

    @pytest.mark.parametrize("mean", [0.0, 1.0, 1.5, -0.2])
    def test_mean_outside_unit_interval(self, mean):
        """Means outside (0, 1) are rejected."""
        with pytest.raises(InvalidParameterError, match=r"mean must lie in \(0, 1\)"):
            get_beta_parameters(mean, 0.1)

    def test_cv_too_large(self):
        """A CV implying non-positive shapes is rejected."""
        with pytest.raises(InvalidParameterError, match="too large"):
            get_beta_parameters(0.5, 1.5)

    def test_vector_input(self):
        """Vector targets return arrays."""
        shape1, shape2 = get_beta_parameters(np.array([0.2, 0.4]), 0.1)
        assert shape1.shape == (2,)
        assert shape2.shape == (2,)


class TestParameterizers:
    """Test the swappable distribution interface."""

    def test_weibull_single_draw(self, rng):
        """A single draw is a positive float."""
        value = WeibullParameterizer().sample(2.0, 0.5, rng)
        assert isinstance(value, float)
        assert value > 0

    def test_weibull_sample_mean(self, rng):
        """Sample moments are close to the targets."""
        values = WeibullParameterizer().sample(2.0, 0.5, rng, size=20_000)
        assert values.mean() == pytest.approx(2.0, rel=0.02)
        assert values.std() / values.mean() == pytest.approx(0.5, rel=0.05)

    def test_beta_draws_in_unit_interval(self, rng):
        """Beta draws lie in (0, 1)."""
        values = BetaParameterizer().sample(0.3, 0.2, rng, size=10_000)
        assert np.all((values > 0) & (values < 1))
        assert values.mean() == pytest.approx(0.3, rel=0.02)

    def test_custom_default_fit_passes_moments_through(self):
        """Without a fit function the (mean, CV) pair is the parameter set."""
        custom = CustomParameterizer(draw_fn=lambda p, rng, size: p[0])
        assert custom.fit_from_moments(1.0, 0.5) == (1.0, 0.5)

    def test_custom_gamma(self, rng):
        """A user-supplied gamma distribution is drawn through the interface."""
        gamma = CustomParameterizer(
            fit_fn=lambda m, cv: (1 / cv**2, m * cv**2),
            draw_fn=lambda p, rng, size: rng.gamma(p[0], p[1], size=size),
            name="gamma",
        )
        values = gamma.sample(3.0, 0.5, rng, size=20_000)
        assert values.mean() == pytest.approx(3.0, rel=0.02)
        assert isinstance(gamma.sample(3.0, 0.5, rng), float)
        assert "gamma" in repr(gamma)

    def test_custom_requires_callable(self):
        """The draw function must be callable."""
        with pytest.raises(InvalidParameterError, match="callable"):
            CustomParameterizer(draw_fn=None)
