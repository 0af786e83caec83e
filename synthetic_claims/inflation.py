"""Base and superimposed inflation of partial payments.

Simulated claim sizes are in constant dollar values as at time 0. Each
partial payment is inflated by three multiplicative factors:

- base inflation, compounding a per-period rate vector from the origin
  to the payment time (``BaseInflationIndex``);
- superimposed inflation by occurrence, a function of (occurrence time,
  claim size);
- superimposed inflation by payment, a function of (payment time, claim
  size).

Key Concepts:
    - All factors are multiplicative (1.0 = no change)
    - Fractional times are interpolated geometrically within a period
    - Looking up a time beyond the supplied rate vector is an error

Example:
    Two percent a year, quarterly periods::

        rates = np.full(80, 1.02 ** 0.25 - 1)
        index = BaseInflationIndex(rates)
        index.get_multiplier(4.0)   # 1.02 after four quarters

        inflated = claim_payment_inflation(
            n_vector, amounts, times, occurrence, sizes, rates
        )
"""

import logging
import math
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .claims import validate_period_lengths
from .config import SimulationConfig
from .exceptions import (
    InvalidParameterError,
    OutOfRangeError,
    ShapeMismatchError,
    SyntheticClaimsError,
)

logger = logging.getLogger(__name__)

InflationFunction = Callable[[float, float], float]


class BaseInflationIndex:
    """Cumulative base inflation index built from per-period rates.

    Rate ``rates[k]`` applies during period ``k + 1``, i.e. over the time
    interval ``[k, k + 1)``. The index at time ``t`` is

    ``I(t) = prod(1 + rates[:floor(t)]) * (1 + rates[floor(t)]) ** (t - floor(t))``

    so ``I(0) = 1`` and the index is continuous in ``t``.

    Attributes:
        rates: Per-period rates indexed from the origin.

    Examples:
        Interpolating within a period::

            index = BaseInflationIndex([0.10, 0.10])
            index.get_multiplier(1.0)  # 1.10
            index.get_multiplier(1.5)  # 1.10 * 1.10 ** 0.5
    """

    def __init__(self, rates: Union[Sequence[float], np.ndarray]):
        """Initialize the index.

        Args:
            rates: One inflation rate per period, starting at the origin.

        Raises:
            InvalidParameterError: If ``rates`` is empty, not 1-D, not finite,
                or contains a rate at or below -100%.
        """
        arr = np.asarray(rates, dtype=float)
        if arr.ndim != 1 or arr.size == 0:
            raise InvalidParameterError("Base inflation vector must be a non-empty 1-D sequence")
        if not np.all(np.isfinite(arr)) or np.any(arr <= -1):
            raise InvalidParameterError(
                "Base inflation rates must be finite and greater than -1"
            )
        self.rates = arr
        self._cumulative = np.concatenate([[1.0], np.cumprod(1 + arr)])

    @property
    def horizon(self) -> int:
        """Last time (in periods) covered by the rate vector."""
        return len(self.rates)

    def get_multiplier(self, time: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Base inflation factor from the origin to ``time``.

        Args:
            time: Time(s) in periods from the origin.

        Returns:
            Factor(s), float for scalar input.

        Raises:
            OutOfRangeError: If any time is negative or beyond the horizon.
        """
        t = np.asarray(time, dtype=float)
        if np.any(t < 0) or np.any(t > self.horizon) or not np.all(np.isfinite(t)):
            raise OutOfRangeError(
                f"Inflation requested at time {np.max(t) if t.size else t} but the base "
                f"inflation vector covers [0, {self.horizon}]; supply a longer vector"
            )
        k = np.minimum(np.floor(t).astype(int), self.horizon - 1)
        multiplier = self._cumulative[k] * (1 + self.rates[k]) ** (t - k)
        if multiplier.ndim == 0:
            return float(multiplier)
        return multiplier

    def __repr__(self) -> str:
        return f"BaseInflationIndex(horizon={self.horizon})"


def no_superimposed_inflation(time: float, claim_size: float) -> float:
    """Superimposed inflation factor of 1 at every time."""
    return 1.0


def demo_si_occurrence(
    occurrence_time: float, claim_size: float, config: SimulationConfig
) -> float:
    """Example occurrence-based superimposed inflation.

    From occurrence quarter 20 onward, small claims drop by up to 40%
    (fully for claims near zero, vanishing at a quarter of the reference
    claim), e.g. a legislative change capping minor injury awards.
    """
    if occurrence_time <= 20 / 4 / config.time_unit:
        return 1.0
    return 1 - 0.4 * max(0.0, 1 - claim_size / (0.25 * config.ref_claim))


def demo_si_payment(payment_time: float, claim_size: float, config: SimulationConfig) -> float:
    """Example payment-based superimposed inflation.

    Up to 30% a year, tapering linearly to zero for claims at or above the
    reference claim size.
    """
    period_rate = (1 + 0.30) ** config.time_unit - 1
    beta = period_rate * max(0.0, 1 - claim_size / config.ref_claim)
    return (1 + beta) ** payment_time


def claim_payment_inflation(
    frequency_vector: Sequence[int],
    payment_sizes: Sequence[Sequence[np.ndarray]],
    payment_times: Sequence[Sequence[np.ndarray]],
    occurrence_times: Sequence[np.ndarray],
    claim_sizes: Sequence[np.ndarray],
    base_inflation_vector: Union[Sequence[float], np.ndarray, BaseInflationIndex],
    si_occurrence: Optional[InflationFunction] = None,
    si_payment: Optional[InflationFunction] = None,
) -> List[List[np.ndarray]]:
    """Inflate every partial payment.

    ``inflated[j] = amount[j] * I(t_j) * si_occurrence(occurrence_time, size)
    * si_payment(t_j, size)``.

    Args:
        frequency_vector: Claim count per period.
        payment_sizes: Payment amounts, one array per claim.
        payment_times: Continuous payment times, one array per claim.
        occurrence_times: Occurrence times per period.
        claim_sizes: Claim sizes per period.
        base_inflation_vector: Per-period base rates from the origin, or a
            prebuilt :class:`BaseInflationIndex`. Must cover the latest
            payment time.
        si_occurrence: ``si_occurrence(occurrence_time, claim_size)``.
            Defaults to no superimposed inflation.
        si_payment: ``si_payment(payment_time, claim_size)``. Defaults to no
            superimposed inflation.

    Returns:
        Per period, a list with one inflated amount array per claim.

    Raises:
        ShapeMismatchError: If payment times and amounts disagree.
        OutOfRangeError: If a payment time lies beyond the rate vector.
    """
    validate_period_lengths(frequency_vector, occurrence_times, "occurrence_times")
    validate_period_lengths(frequency_vector, claim_sizes, "claim_sizes")
    validate_period_lengths(frequency_vector, payment_sizes, "payment_sizes")
    validate_period_lengths(frequency_vector, payment_times, "payment_times")

    index = (
        base_inflation_vector
        if isinstance(base_inflation_vector, BaseInflationIndex)
        else BaseInflationIndex(base_inflation_vector)
    )
    si_occurrence = si_occurrence or no_superimposed_inflation
    si_payment = si_payment or no_superimposed_inflation

    result = []
    for i in range(len(frequency_vector)):
        period_inflated = []
        for j, (amounts, times) in enumerate(zip(payment_sizes[i], payment_times[i])):
            amounts = np.asarray(amounts, dtype=float)
            times = np.asarray(times, dtype=float)
            if amounts.shape != times.shape:
                raise ShapeMismatchError(
                    f"{amounts.size} payment amounts but {times.size} payment times",
                    period=i + 1,
                    claim=j + 1,
                )
            size = float(claim_sizes[i][j])
            try:
                base = index.get_multiplier(times)
                occurrence_factor = si_occurrence(float(occurrence_times[i][j]), size)
                payment_factor = np.array([si_payment(float(t), size) for t in times])
            except SyntheticClaimsError as e:
                raise e.locate(i + 1, j + 1) from e
            inflated = amounts * base * occurrence_factor * payment_factor
            if not np.all(np.isfinite(inflated)):
                raise InvalidParameterError(
                    "Inflation produced non-finite payments", period=i + 1, claim=j + 1
                )
            period_inflated.append(inflated)
        result.append(period_inflated)

    logger.debug("Applied inflation with %r", index)
    return result


def required_inflation_horizon(payment_times: Sequence[Sequence[np.ndarray]]) -> int:
    """Smallest rate-vector length covering every payment time.

    Args:
        payment_times: Continuous payment times, one array per claim.

    Returns:
        ``ceil`` of the latest payment time (at least 1).
    """
    latest = max(
        (float(np.max(t)) for period in payment_times for t in period if len(t)), default=0.0
    )
    return max(1, math.ceil(latest))
