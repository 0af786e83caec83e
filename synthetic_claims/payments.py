"""Partial payment simulation.

Each claim is settled through one or more partial payments. This module
simulates, in order:

1. the number of payments, from a size-tiered regime model;
2. the amount of each payment, splitting the claim size with Beta
   proportions;
3. the delay between successive payments, splitting the settlement delay
   with Weibull draws;
4. the calendar time of each payment, continuous and discretized.

Amounts and delays are made to add up exactly to the claim size and the
settlement delay with :func:`~synthetic_claims.normalization.rescale_to_total`.

Draw order within a claim is fixed so that a seeded run is reproducible:

- amounts for four or more payments draw the complement of the last two
  payments, then the split ratio between them, then the remaining
  ``n - 2`` proportions;
- delays for four or more payments draw the last delay first, then the
  remaining ``n - 1``.

Examples:
    Payment pipeline for simulated claims::

        counts = claim_payment_no(n_vector, sizes, rng, config)
        amounts = claim_payment_size(n_vector, sizes, counts, rng, config)
        delays = claim_payment_delay(n_vector, sizes, counts, setldel, rng, config)
        times = claim_payment_time(n_vector, occurrence, notidel, delays)
"""

from functools import partial
import logging
import math
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .claims import validate_period_lengths
from .config import SimulationConfig
from .delays import settlement_mean
from .distributions import get_beta_parameters, get_weibull_parameters
from .exceptions import InvalidParameterError, SimulationInvariantError, SyntheticClaimsError
from .normalization import rescale_to_total

logger = logging.getLogger(__name__)

PaymentCountFunction = Callable[[float, float, float, np.random.Generator], int]
PaymentSizeFunction = Callable[[int, float, np.random.Generator], np.ndarray]
PaymentDelayFunction = Callable[[int, float, float, float, np.random.Generator], np.ndarray]

_SUM_TOLERANCE = 1e-6

# Beta targets for payment proportions
_PROPORTION_CV = 0.10
_COMPLEMENT_CV = 0.20
_SPLIT_MEAN = 0.9
_SPLIT_CV = 0.03

# Weibull targets for inter-payment delays
_LAST_DELAY_QUARTERS = 1.0
_LAST_DELAY_CV = 0.20
_DELAY_CV = 0.35


def rmixed_payment_no(
    claim_size: float, benchmark_1: float, benchmark_2: float, rng: np.random.Generator
) -> int:
    """Draw the number of partial payments for one claim.

    - ``size <= benchmark_1``: 1 or 2 payments with equal probability;
    - ``benchmark_1 < size <= benchmark_2``: 2 or 3 payments with
      probabilities 1/3 and 2/3;
    - ``size > benchmark_2``: ``4 + Geometric(p)`` failures, with
      ``p = 1 / (mean - 3)`` and ``mean = min(8, 4 + ln(size / benchmark_2))``.

    Args:
        claim_size: Claim size.
        benchmark_1: Upper size of the first regime.
        benchmark_2: Upper size of the second regime.
        rng: Random generator to consume.

    Returns:
        Number of payments, at least 1.
    """
    if claim_size <= benchmark_1:
        return int(rng.choice([1, 2]))
    if claim_size <= benchmark_2:
        return int(rng.choice([2, 3], p=[1 / 3, 2 / 3]))
    mean = min(8.0, 4 + math.log(claim_size / benchmark_2))
    # Generator.geometric counts trials (>= 1), so 3 + trials = 4 + failures
    return 3 + int(rng.geometric(1 / (mean - 3)))


def claim_payment_no(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    rng: np.random.Generator,
    config: SimulationConfig,
    count_fn: Optional[PaymentCountFunction] = None,
    benchmark_1: Optional[float] = None,
    benchmark_2: Optional[float] = None,
) -> List[np.ndarray]:
    """Draw the number of partial payments for every claim.

    Args:
        frequency_vector: Claim count per period.
        claim_sizes: Claim sizes per period.
        rng: Random generator to consume.
        config: Simulation configuration supplying default benchmarks.
        count_fn: ``count_fn(claim_size, benchmark_1, benchmark_2, rng)``.
            Defaults to :func:`rmixed_payment_no`.
        benchmark_1: First size benchmark. Defaults to
            ``config.claim_size_benchmark_1``.
        benchmark_2: Second size benchmark. Defaults to
            ``config.claim_size_benchmark_2``.

    Returns:
        One integer array of payment counts per period.

    Raises:
        InvalidParameterError: If the benchmarks are not positive and
            ordered, or a count below 1 is produced.
    """
    validate_period_lengths(frequency_vector, claim_sizes, "claim_sizes")
    b1 = config.claim_size_benchmark_1 if benchmark_1 is None else benchmark_1
    b2 = config.claim_size_benchmark_2 if benchmark_2 is None else benchmark_2
    if not 0 < b1 <= b2:
        raise InvalidParameterError(
            f"Benchmarks must satisfy 0 < benchmark_1 <= benchmark_2, got {b1}, {b2}"
        )
    count_fn = count_fn or rmixed_payment_no

    result = []
    for i, sizes in enumerate(claim_sizes):
        counts = np.empty(len(sizes), dtype=int)
        for j, size in enumerate(sizes):
            try:
                counts[j] = count_fn(float(size), b1, b2, rng)
            except SyntheticClaimsError as e:
                raise e.locate(i + 1, j + 1) from e
            if counts[j] < 1:
                raise InvalidParameterError(
                    f"Payment count must be at least 1, got {counts[j]}",
                    period=i + 1,
                    claim=j + 1,
                )
        result.append(counts)

    logger.debug("Simulated %d payments", sum(int(c.sum()) for c in result))
    return result


def rmixed_payment_size(
    n: int, claim_size: float, rng: np.random.Generator, config: SimulationConfig
) -> np.ndarray:
    """Split one claim into ``n`` payment amounts.

    - one payment: the whole claim;
    - two or three payments: Beta proportions with mean ``1/n`` and CV
      0.10, normalized;
    - four or more: the last two payments take a share ``1 - c`` where the
      complement ``c`` is Beta with mean
      ``1 - min(0.95, 0.75 + 0.04 ln(size / (0.1 ref)))`` and CV 0.20;
      the second-last receives a fraction ``q ~ Beta(mean 0.9, CV 0.03)``
      of that share; the first ``n - 2`` proportions are Beta with mean
      ``c / (n - 2)`` and CV 0.10, renormalized to sum to ``c``.

    Args:
        n: Number of payments.
        claim_size: Claim size to split.
        rng: Random generator to consume.
        config: Simulation configuration (reference claim size).

    Returns:
        Array of ``n`` amounts summing to ``claim_size``.
    """
    if n < 1:
        raise InvalidParameterError(f"Payment count must be at least 1, got {n}")
    if n == 1:
        return np.array([claim_size], dtype=float)

    if n <= 3:
        shape1, shape2 = get_beta_parameters(1 / n, _PROPORTION_CV)
        proportions = rng.beta(shape1, shape2, size=n)
        return rescale_to_total(proportions, claim_size)

    complement_mean = 1 - min(0.95, 0.75 + 0.04 * math.log(claim_size / (0.10 * config.ref_claim)))
    shape1, shape2 = get_beta_parameters(complement_mean, _COMPLEMENT_CV)
    complement = rng.beta(shape1, shape2)
    last_two = 1 - complement

    shape1, shape2 = get_beta_parameters(_SPLIT_MEAN, _SPLIT_CV)
    q = rng.beta(shape1, shape2)

    shape1, shape2 = get_beta_parameters(complement / (n - 2), _PROPORTION_CV)
    head = rng.beta(shape1, shape2, size=n - 2)
    head = complement * head / head.sum()

    proportions = np.append(head, [q * last_two, (1 - q) * last_two])
    return rescale_to_total(proportions, claim_size)


def _check_allocation(
    values: np.ndarray, n: int, total: float, label: str, period: int, claim: int
) -> np.ndarray:
    values = np.asarray(values, dtype=float).reshape(-1)
    if values.shape != (n,):
        raise InvalidParameterError(
            f"{label} allocation returned {values.size} values, expected {n}",
            period=period,
            claim=claim,
        )
    if not np.all(np.isfinite(values)):
        raise SimulationInvariantError(
            f"Non-finite {label} allocation", period=period, claim=claim
        )
    if np.any(values < 0):
        raise InvalidParameterError(f"Negative {label} allocated", period=period, claim=claim)
    if not math.isclose(math.fsum(values), total, rel_tol=_SUM_TOLERANCE):
        raise InvalidParameterError(
            f"{label} allocation sums to {math.fsum(values)}, expected {total}",
            period=period,
            claim=claim,
        )
    return values


def claim_payment_size(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    payment_counts: Sequence[np.ndarray],
    rng: np.random.Generator,
    config: SimulationConfig,
    size_fn: Optional[PaymentSizeFunction] = None,
) -> List[List[np.ndarray]]:
    """Split every claim into its partial payment amounts.

    Args:
        frequency_vector: Claim count per period.
        claim_sizes: Claim sizes per period.
        payment_counts: Payment counts per period.
        rng: Random generator to consume.
        config: Simulation configuration used by the default function.
        size_fn: ``size_fn(n, claim_size, rng)`` returning ``n`` amounts that
            sum to the claim size. Defaults to :func:`rmixed_payment_size`.

    Returns:
        Per period, a list with one amount array per claim.

    Raises:
        ShapeMismatchError: If inputs disagree with the counts.
        InvalidParameterError: If an allocation has the wrong length or sum.
    """
    validate_period_lengths(frequency_vector, claim_sizes, "claim_sizes")
    validate_period_lengths(frequency_vector, payment_counts, "payment_counts")
    size_fn = size_fn or partial(rmixed_payment_size, config=config)

    result = []
    for i, (sizes, counts) in enumerate(zip(claim_sizes, payment_counts)):
        period_amounts = []
        for j, (size, n) in enumerate(zip(sizes, counts)):
            try:
                amounts = size_fn(int(n), float(size), rng)
            except SyntheticClaimsError as e:
                raise e.locate(i + 1, j + 1) from e
            period_amounts.append(
                _check_allocation(amounts, int(n), float(size), "Payment size", i + 1, j + 1)
            )
        result.append(period_amounts)
    return result


def r_pmtdel(
    n: int,
    claim_size: float,
    setldel: float,
    setldel_mean: float,
    rng: np.random.Generator,
    config: SimulationConfig,
) -> np.ndarray:
    """Split one settlement delay into ``n`` inter-payment delays.

    Unnormalized delays are Weibull with mean ``setldel_mean / n`` and CV
    0.35. With four or more payments the last delay (from the second-last
    payment to settlement) is special-cased: it is drawn first, with a
    mean of one quarter and CV 0.20. The first ``n - 1`` delays are then
    rescaled by ``setldel / sum(all)`` and the last is set to the remainder.

    Args:
        n: Number of payments.
        claim_size: Claim size (unused by the default, kept for replacements).
        setldel: Settlement delay to split.
        setldel_mean: Mean settlement delay for this claim.
        rng: Random generator to consume.
        config: Simulation configuration (period length).

    Returns:
        Array of ``n`` delays summing to ``setldel``.

    Raises:
        SimulationInvariantError: If any sampled delay is not finite.
    """
    if n < 1:
        raise InvalidParameterError(f"Payment count must be at least 1, got {n}")

    raw = np.empty(n)
    if n >= 4:
        shape, scale = get_weibull_parameters(
            _LAST_DELAY_QUARTERS / 4 / config.time_unit, _LAST_DELAY_CV
        )
        raw[-1] = scale * rng.weibull(shape)
        shape, scale = get_weibull_parameters(setldel_mean / n, _DELAY_CV)
        raw[:-1] = scale * rng.weibull(shape, size=n - 1)
    else:
        shape, scale = get_weibull_parameters(setldel_mean / n, _DELAY_CV)
        raw[:] = scale * rng.weibull(shape, size=n)

    if not np.all(np.isfinite(raw)):
        raise SimulationInvariantError(f"Non-finite payment delay sampled: {raw}")
    return rescale_to_total(raw, setldel)


def claim_payment_delay(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    payment_counts: Sequence[np.ndarray],
    settlement_delays: Sequence[np.ndarray],
    rng: np.random.Generator,
    config: SimulationConfig,
    delay_fn: Optional[PaymentDelayFunction] = None,
    setldel_mean_fn: Optional[Callable[[float, int], float]] = None,
) -> List[List[np.ndarray]]:
    """Split every settlement delay into inter-payment delays.

    Args:
        frequency_vector: Claim count per period.
        claim_sizes: Claim sizes per period.
        payment_counts: Payment counts per period.
        settlement_delays: Settlement delays per period.
        rng: Random generator to consume.
        config: Simulation configuration used by the defaults.
        delay_fn: ``delay_fn(n, claim_size, setldel, setldel_mean, rng)``
            returning ``n`` delays that sum to ``setldel``. Defaults to
            :func:`r_pmtdel`.
        setldel_mean_fn: ``setldel_mean_fn(claim_size, occurrence_period)``,
            the settlement mean used to scale unnormalized delays. Should be
            the same function used to simulate the settlement delays.

    Returns:
        Per period, a list with one delay array per claim.

    Raises:
        ShapeMismatchError: If inputs disagree with the counts.
        SimulationInvariantError: If a delay sample is not finite.
    """
    validate_period_lengths(frequency_vector, claim_sizes, "claim_sizes")
    validate_period_lengths(frequency_vector, payment_counts, "payment_counts")
    validate_period_lengths(frequency_vector, settlement_delays, "settlement_delays")
    delay_fn = delay_fn or partial(r_pmtdel, config=config)
    setldel_mean_fn = setldel_mean_fn or partial(settlement_mean, config=config)

    result = []
    for i, (sizes, counts, setldels) in enumerate(
        zip(claim_sizes, payment_counts, settlement_delays)
    ):
        period = i + 1
        period_delays = []
        for j, (size, n, setldel) in enumerate(zip(sizes, counts, setldels)):
            try:
                delays = delay_fn(
                    int(n), float(size), float(setldel), setldel_mean_fn(float(size), period), rng
                )
            except SyntheticClaimsError as e:
                raise e.locate(period, j + 1) from e
            period_delays.append(
                _check_allocation(delays, int(n), float(setldel), "Payment delay", period, j + 1)
            )
        result.append(period_delays)
    return result


def discretize_time(time: Union[float, np.ndarray]) -> Union[int, np.ndarray]:
    """Map continuous time to its 1-based calendar period.

    Period ``k`` covers ``(k - 1, k]``: an exact boundary belongs to the
    earlier period, and time 0 maps to period 1.

    Args:
        time: Continuous time(s) measured in periods from the origin.

    Returns:
        Period index, int for scalar input, integer array otherwise.

    Examples:
        >>> discretize_time(np.array([0.0, 0.5, 1.0, 1.0001]))
        array([1, 1, 1, 2])
    """
    periods = np.maximum(1, np.ceil(np.asarray(time, dtype=float))).astype(int)
    if periods.ndim == 0:
        return int(periods)
    return periods


def claim_payment_time(
    frequency_vector: Sequence[int],
    occurrence_times: Sequence[np.ndarray],
    notification_delays: Sequence[np.ndarray],
    payment_delays: Sequence[Sequence[np.ndarray]],
    discrete: bool = False,
) -> List[List[np.ndarray]]:
    """Project inter-payment delays onto calendar time.

    Payment ``j`` of a claim is made at
    ``occurrence + notification + sum(delays[:j + 1])``.

    Args:
        frequency_vector: Claim count per period.
        occurrence_times: Occurrence times per period.
        notification_delays: Notification delays per period.
        payment_delays: Inter-payment delays, one array per claim.
        discrete: If True, return 1-based payment periods (see
            :func:`discretize_time`) instead of continuous times.

    Returns:
        Per period, a list with one time (or period) array per claim.
    """
    validate_period_lengths(frequency_vector, occurrence_times, "occurrence_times")
    validate_period_lengths(frequency_vector, notification_delays, "notification_delays")
    validate_period_lengths(frequency_vector, payment_delays, "payment_delays")

    result = []
    for occurrence, notidel, delays in zip(occurrence_times, notification_delays, payment_delays):
        period_times = []
        for occ, nd, d in zip(occurrence, notidel, delays):
            times = occ + nd + np.cumsum(d)
            period_times.append(discretize_time(times) if discrete else times)
        result.append(period_times)
    return result
