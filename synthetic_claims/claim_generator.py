"""Claim occurrence and size generation.

This module provides the first three stages of the simulation: how many
claims occur in each period, when within the period each one occurs, and
how large each one is. Claim sizes are independent of occurrence time.

Key Features:
    - Poisson claim counts with per-period exposure and frequency
    - Uniform occurrence times within each period, sorted ascending
    - Claim sizes from a direct sampler or by inverse-transform sampling of
      any CDF, with a truncated power-normal default
    - Reproducible generation through an explicit ``numpy`` Generator

Examples:
    Counts, times and sizes for ten quarters::

        rng = np.random.default_rng(42)
        config = SimulationConfig(n_periods=10, exposure=1000, frequency=0.03)

        n_vector = claim_frequency(10, config.exposure_vector(), config.frequency_vector(), rng)
        occurrence = claim_occurrence(n_vector, rng)
        sizes = claim_size(n_vector, rng, config)

    Lognormal sizes instead of the default::

        sizes = claim_size(
            n_vector, rng, config, sampler=lambda n, rng: rng.lognormal(10, 1.2, size=n)
        )

Note:
    Period ``i`` (1-based) spans the half-open interval ``[i - 1, i)`` in
    period units; list index ``i - 1`` holds its claims.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import optimize, special

from .config import SimulationConfig
from .config.constants import REFERENCE_SIZE_SCALE, ROOT_FINDING_MAXITER
from .exceptions import InvalidParameterError, RootFindingError

logger = logging.getLogger(__name__)

# Default severity: s ** 0.2 ~ Normal(9.5, 3), left-truncated at 30
_POWER = 0.2
_NORMAL_MEAN = 9.5
_NORMAL_SD = 3.0
_TRUNCATION_POINT = 30.0
_TRUNCATED_MASS = float(special.ndtr((_TRUNCATION_POINT**_POWER - _NORMAL_MEAN) / _NORMAL_SD))

SizeSampler = Callable[[int, np.random.Generator], np.ndarray]
SizeCDF = Callable[[float], float]


def claim_frequency(
    n_periods: int,
    exposure: Optional[Union[float, Sequence[float], np.ndarray]],
    frequency: Union[float, Sequence[float], np.ndarray, Callable[[int], float]],
    rng: np.random.Generator,
) -> np.ndarray:
    """Draw the number of claims occurring in each period.

    Args:
        n_periods: Number of occurrence periods.
        exposure: Exposure per period, scalar or one value per period.
            ``None`` means unit exposure, so ``frequency`` is the expected
            claim count itself.
        frequency: Expected claims per unit exposure per period. Either a
            scalar, one value per period, or a callable ``rate(period)``
            taking the 1-based period. A callable is usually the combined
            expected count per period, passed with ``exposure=None``.
        rng: Random generator to consume.

    Returns:
        Integer array of length ``n_periods``; entry ``i`` is Poisson with
        mean ``exposure[i] * frequency[i]``.

    Raises:
        InvalidParameterError: If ``n_periods`` is not positive, a vector
            length differs from ``n_periods``, or any rate or exposure is
            negative or non-finite.
    """
    if n_periods < 1:
        raise InvalidParameterError(f"Number of periods must be positive, got {n_periods}")

    exposure_vector = _per_period(1.0 if exposure is None else exposure, n_periods, "exposure")
    if callable(frequency):
        rates = np.array([float(frequency(i)) for i in range(1, n_periods + 1)])
    else:
        rates = _per_period(frequency, n_periods, "frequency")
    if not np.all(np.isfinite(rates)) or np.any(rates < 0):
        raise InvalidParameterError(f"Frequency must be non-negative and finite, got {rates}")

    counts = rng.poisson(exposure_vector * rates)
    logger.debug("Simulated %d claims over %d periods", counts.sum(), n_periods)
    return counts.astype(int)


def _per_period(
    values: Union[float, Sequence[float], np.ndarray], n_periods: int, name: str
) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        arr = np.full(n_periods, float(arr))
    elif arr.shape != (n_periods,):
        raise InvalidParameterError(
            f"{name} has {arr.size} entries but there are {n_periods} periods"
        )
    if not np.all(np.isfinite(arr)) or np.any(arr < 0):
        raise InvalidParameterError(f"{name} must be non-negative and finite, got {arr}")
    return arr


def _check_frequency_vector(frequency_vector: Sequence[int]) -> np.ndarray:
    counts = np.asarray(frequency_vector)
    if counts.ndim != 1 or np.any(counts < 0):
        raise InvalidParameterError(
            f"Frequency vector must be a 1-D array of non-negative counts, got {frequency_vector}"
        )
    return counts.astype(int)


def claim_occurrence(
    frequency_vector: Sequence[int], rng: np.random.Generator
) -> List[np.ndarray]:
    """Place each claim uniformly within its occurrence period.

    Args:
        frequency_vector: Claim count per period.
        rng: Random generator to consume.

    Returns:
        One ascending array per period; period ``i`` (1-based) holds
        ``frequency_vector[i - 1]`` times in ``[i - 1, i)``. Periods without
        claims hold an empty array.
    """
    counts = _check_frequency_vector(frequency_vector)
    return [
        np.sort(rng.uniform(i, i + 1, size=n)) for i, n in enumerate(counts)
    ]


def default_claim_size_cdf(s: float) -> float:
    """Truncated power-normal CDF in reference units.

    ``s ** 0.2`` is Normal(9.5, 3) conditioned on ``s >= 30``.

    Args:
        s: Claim size in reference units (reference claim = 200,000).

    Returns:
        Cumulative probability at ``s``.
    """
    if s < _TRUNCATION_POINT:
        return 0.0
    upper = special.ndtr((s**_POWER - _NORMAL_MEAN) / _NORMAL_SD)
    return float((upper - _TRUNCATED_MASS) / (1 - _TRUNCATED_MASS))


def simulate_cdf(
    n: int,
    cdf: SizeCDF,
    rng: np.random.Generator,
    search_range: Tuple[float, float],
) -> np.ndarray:
    """Draw from an arbitrary CDF by inverse-transform sampling.

    For each draw ``u ~ Uniform(0, 1)`` the equation ``cdf(s) = u`` is
    solved with Brent's method over ``search_range``.

    Args:
        n: Number of variates.
        cdf: Non-decreasing function mapping a value to a probability.
        rng: Random generator to consume.
        search_range: ``(lower, upper)`` interval that must bracket every
            quantile.

    Returns:
        Array of ``n`` variates.

    Raises:
        RootFindingError: If the interval does not bracket a quantile or the
            root finder does not converge.
    """
    lower, upper = search_range
    if lower >= upper:
        raise InvalidParameterError(f"Search range must be increasing, got {search_range}")

    result = np.empty(n)
    for k in range(n):
        u = rng.uniform(0, 1)
        f_lower = cdf(lower) - u
        f_upper = cdf(upper) - u
        if f_lower > 0 or f_upper < 0:
            raise RootFindingError(
                f"CDF quantile {u:.6f} is not bracketed by search range {search_range} "
                f"(cdf values {f_lower + u:.6f}, {f_upper + u:.6f})"
            )
        try:
            result[k] = optimize.brentq(
                lambda s: cdf(s) - u, lower, upper, maxiter=ROOT_FINDING_MAXITER
            )
        except (RuntimeError, ValueError) as e:
            raise RootFindingError(f"Inverse CDF failed for quantile {u:.6f}: {e}") from e
    return result


def claim_size(
    frequency_vector: Sequence[int],
    rng: np.random.Generator,
    config: SimulationConfig,
    cdf: Optional[SizeCDF] = None,
    sampler: Optional[SizeSampler] = None,
    search_range: Optional[Tuple[float, float]] = None,
) -> List[np.ndarray]:
    """Draw a size for every claim.

    Exactly one of ``cdf`` and ``sampler`` may be given. With neither, the
    truncated power-normal default is sampled in reference units and scaled
    by ``config.ref_claim / 200,000``.

    Args:
        frequency_vector: Claim count per period.
        rng: Random generator to consume.
        config: Simulation configuration (reference claim, search range).
        cdf: Size CDF for inverse-transform sampling.
        sampler: Direct sampler ``sampler(n, rng) -> array``.
        search_range: Inverse-CDF interval; defaults to
            ``config.claim_size_range``.

    Returns:
        One array of sizes per period, matching ``frequency_vector``.

    Raises:
        InvalidParameterError: If both routes are given, or a sampler returns
            the wrong number of values or non-positive sizes.
        RootFindingError: If inverse-CDF sampling fails.
    """
    if cdf is not None and sampler is not None:
        raise InvalidParameterError("Provide either a size CDF or a size sampler, not both")

    counts = _check_frequency_vector(frequency_vector)
    search_range = search_range if search_range is not None else config.claim_size_range
    scale = 1.0
    if cdf is None and sampler is None:
        cdf = default_claim_size_cdf
        scale = config.ref_claim / REFERENCE_SIZE_SCALE

    sizes = []
    for i, n in enumerate(counts):
        if sampler is not None:
            values = np.asarray(sampler(int(n), rng), dtype=float).reshape(-1)
        else:
            try:
                values = simulate_cdf(int(n), cdf, rng, search_range) * scale
            except RootFindingError as e:
                raise e.locate(period=i + 1) from e
        if values.shape != (n,):
            raise InvalidParameterError(
                f"Size sampler returned {values.size} values, expected {n}", period=i + 1
            )
        if np.any(~np.isfinite(values)) or np.any(values <= 0):
            raise InvalidParameterError(
                "Claim sizes must be positive and finite", period=i + 1
            )
        sizes.append(values)

    logger.debug("Simulated sizes for %d claims", counts.sum())
    return sizes
