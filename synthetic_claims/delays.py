"""Notification and settlement delay sampling.

Both delays follow the same pattern: for each claim, user-replaceable
functions of (claim size, occurrence period) give a target mean and CV,
the moments are matched to a distribution (Weibull by default) and one
variate is drawn. The output keeps the per-period, per-claim shape of the
claim sizes.

The default mean functions are calibrated in quarters and converted to
periods with ``config.time_unit``:

- notification: mean ``min(3, max(1, 2 - ln(size / (0.5 ref)) / 3))``
  quarters, CV 0.70 (large claims are reported faster);
- settlement: mean ``a * min(25, max(1, 6 + 4 ln(size / (0.1 ref))))``
  quarters, CV 0.60, where ``a`` shortens settlement for later occurrence
  quarters and, after quarter 21, for small claims.

Examples:
    Default delays::

        notidel = claim_notification(n_vector, sizes, rng, config)
        setldel = claim_closure(n_vector, sizes, rng, config)

    Constant-mean notification delays::

        notidel = claim_notification(
            n_vector, sizes, rng, config, mean_fn=lambda size, period: 2.0
        )
"""

from functools import partial
import logging
import math
from typing import Callable, List, Optional, Sequence

import numpy as np

from .claims import validate_period_lengths
from .config import SimulationConfig
from .distributions import DistributionParameterizer, WeibullParameterizer
from .exceptions import InvalidParameterError, SimulationInvariantError, SyntheticClaimsError

logger = logging.getLogger(__name__)

MomentFunction = Callable[[float, int], float]

NOTIFICATION_CV = 0.70
SETTLEMENT_CV = 0.60


def _quarters_to_periods(quarters: float, config: SimulationConfig) -> float:
    return quarters / 4 / config.time_unit


def notification_mean(claim_size: float, occurrence_period: int, config: SimulationConfig) -> float:
    """Default mean notification delay, in periods."""
    quarters = min(3.0, max(1.0, 2 - math.log(claim_size / (0.50 * config.ref_claim)) / 3))
    return _quarters_to_periods(quarters, config)


def notification_cv(claim_size: float, occurrence_period: int, config: SimulationConfig) -> float:
    """Default CV of the notification delay."""
    return NOTIFICATION_CV


def settlement_mean(claim_size: float, occurrence_period: int, config: SimulationConfig) -> float:
    """Default mean settlement delay, in periods.

    The occurrence period is converted to quarters before the calibration
    is applied, so the same shape holds for any period length.
    """
    quarter = occurrence_period * config.time_unit * 4
    if claim_size < 0.10 * config.ref_claim and quarter >= 21:
        a = min(0.85, 0.65 + 0.02 * (quarter - 21))
    else:
        a = max(0.85, 1 - 0.0075 * quarter)
    quarters = a * min(25.0, max(1.0, 6 + 4 * math.log(claim_size / (0.10 * config.ref_claim))))
    return _quarters_to_periods(quarters, config)


def settlement_cv(claim_size: float, occurrence_period: int, config: SimulationConfig) -> float:
    """Default CV of the settlement delay."""
    return SETTLEMENT_CV


def _sample_delays(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    rng: np.random.Generator,
    mean_fn: MomentFunction,
    cv_fn: MomentFunction,
    distribution: DistributionParameterizer,
    label: str,
) -> List[np.ndarray]:
    validate_period_lengths(frequency_vector, claim_sizes, "claim_sizes")

    result = []
    for i, sizes in enumerate(claim_sizes):
        period = i + 1
        delays = np.empty(len(sizes))
        for j, size in enumerate(sizes):
            try:
                delays[j] = distribution.sample(
                    mean_fn(float(size), period), cv_fn(float(size), period), rng
                )
            except SyntheticClaimsError as e:
                raise e.locate(period, j + 1) from e
            if not np.isfinite(delays[j]):
                raise SimulationInvariantError(
                    f"Non-finite {label} delay sampled", period=period, claim=j + 1
                )
            if delays[j] < 0:
                raise InvalidParameterError(
                    f"Negative {label} delay {delays[j]} sampled", period=period, claim=j + 1
                )
        result.append(delays)

    logger.debug(
        "Simulated %s delays for %d claims with %r",
        label,
        sum(len(d) for d in result),
        distribution,
    )
    return result


def claim_notification(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    rng: np.random.Generator,
    config: SimulationConfig,
    mean_fn: Optional[MomentFunction] = None,
    cv_fn: Optional[MomentFunction] = None,
    distribution: Optional[DistributionParameterizer] = None,
) -> List[np.ndarray]:
    """Draw the delay from occurrence to notification for every claim.

    Args:
        frequency_vector: Claim count per period.
        claim_sizes: Claim sizes per period.
        rng: Random generator to consume.
        config: Simulation configuration used by the default functions.
        mean_fn: ``mean_fn(claim_size, occurrence_period)`` giving the target
            mean in periods. Defaults to :func:`notification_mean`.
        cv_fn: ``cv_fn(claim_size, occurrence_period)`` giving the target CV.
            Defaults to 0.70.
        distribution: Delay distribution. Defaults to Weibull.

    Returns:
        One array of delays per period.

    Raises:
        ShapeMismatchError: If ``claim_sizes`` disagrees with the counts.
        NumericalError: If moment matching fails for a claim.
    """
    return _sample_delays(
        frequency_vector,
        claim_sizes,
        rng,
        mean_fn or partial(notification_mean, config=config),
        cv_fn or partial(notification_cv, config=config),
        distribution or WeibullParameterizer(),
        "notification",
    )


def claim_closure(
    frequency_vector: Sequence[int],
    claim_sizes: Sequence[np.ndarray],
    rng: np.random.Generator,
    config: SimulationConfig,
    mean_fn: Optional[MomentFunction] = None,
    cv_fn: Optional[MomentFunction] = None,
    distribution: Optional[DistributionParameterizer] = None,
) -> List[np.ndarray]:
    """Draw the delay from notification to settlement for every claim.

    Args:
        frequency_vector: Claim count per period.
        claim_sizes: Claim sizes per period.
        rng: Random generator to consume.
        config: Simulation configuration used by the default functions.
        mean_fn: ``mean_fn(claim_size, occurrence_period)`` giving the target
            mean in periods. Defaults to :func:`settlement_mean`.
        cv_fn: ``cv_fn(claim_size, occurrence_period)`` giving the target CV.
            Defaults to 0.60.
        distribution: Delay distribution. Defaults to Weibull.

    Returns:
        One array of delays per period.

    Raises:
        ShapeMismatchError: If ``claim_sizes`` disagrees with the counts.
        NumericalError: If moment matching fails for a claim.
    """
    return _sample_delays(
        frequency_vector,
        claim_sizes,
        rng,
        mean_fn or partial(settlement_mean, config=config),
        cv_fn or partial(settlement_cv, config=config),
        distribution or WeibullParameterizer(),
        "settlement",
    )
