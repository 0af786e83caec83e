"""Pipeline runner for the claim simulation.

This module chains the simulation stages in their fixed order:

1. claim counts per period
2. occurrence times
3. claim sizes
4. notification delays
5. settlement delays
6. number of partial payments
7. partial payment sizes
8. inter-payment delays
9. payment times (continuous and discrete)
10. inflated payment amounts

Every stage draws from the same ``numpy`` Generator in this order, so a
given seed, configuration and set of models always reproduces the same
run. Any stage's default distributional assumption can be replaced
through :class:`ClaimModels`.

Examples:
    Default run::

        config = SimulationConfig(seed=20200131)
        claims = ClaimSimulator(config).run()
        triangle = claim_output(claims, aggregate_level=4, incremental=False)

    Lognormal claim sizes and demo superimposed inflation::

        from functools import partial

        models = ClaimModels(
            size_sampler=lambda n, rng: rng.lognormal(10, 1.2, size=n),
            si_payment=partial(demo_si_payment, config=config),
        )
        claims = ClaimSimulator(config, models).run()

    Independent replicates::

        runs = ClaimSimulator(config).run_many(100)
"""

from dataclasses import dataclass
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .claim_generator import SizeCDF, SizeSampler, claim_frequency, claim_occurrence, claim_size
from .claims import Claims
from .config import SimulationConfig
from .delays import MomentFunction, claim_closure, claim_notification
from .distributions import DistributionParameterizer
from .exceptions import InvalidParameterError
from .inflation import (
    BaseInflationIndex,
    InflationFunction,
    claim_payment_inflation,
    required_inflation_horizon,
)
from .payments import (
    PaymentCountFunction,
    PaymentDelayFunction,
    PaymentSizeFunction,
    claim_payment_delay,
    claim_payment_no,
    claim_payment_size,
    claim_payment_time,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimModels:
    """Replaceable assumptions for each simulation stage.

    Every field defaults to ``None``, meaning the stage's built-in default
    calibrated to ``SimulationConfig``. User functions receive the same
    arguments as the defaults they replace.

    Attributes:
        frequency_fn: Expected claim count per period as a function of the
            1-based period. Replaces both ``config.exposure`` and
            ``config.frequency``.
        size_cdf: Claim size CDF for inverse-transform sampling.
        size_sampler: ``size_sampler(n, rng)`` drawing ``n`` sizes directly.
        size_search_range: Root-finding interval for ``size_cdf``.
        notification_mean: ``f(claim_size, occurrence_period)`` in periods.
        notification_cv: ``f(claim_size, occurrence_period)``.
        notification_distribution: Notification delay distribution.
        settlement_mean: ``f(claim_size, occurrence_period)`` in periods.
            Also scales the inter-payment delays.
        settlement_cv: ``f(claim_size, occurrence_period)``.
        settlement_distribution: Settlement delay distribution.
        payment_count_fn: ``f(claim_size, benchmark_1, benchmark_2, rng)``.
        benchmark_1: First claim size benchmark for payment counts.
        benchmark_2: Second claim size benchmark for payment counts.
        payment_size_fn: ``f(n, claim_size, rng)``.
        payment_delay_fn: ``f(n, claim_size, setldel, setldel_mean, rng)``.
        base_inflation_vector: Per-period base inflation rates from time 0.
            Defaults to the flat annual rate of the config, long enough to
            cover every payment.
        si_occurrence: ``f(occurrence_time, claim_size)``.
        si_payment: ``f(payment_time, claim_size)``.
    """

    frequency_fn: Optional[Callable[[int], float]] = None
    size_cdf: Optional[SizeCDF] = None
    size_sampler: Optional[SizeSampler] = None
    size_search_range: Optional[Tuple[float, float]] = None
    notification_mean: Optional[MomentFunction] = None
    notification_cv: Optional[MomentFunction] = None
    notification_distribution: Optional[DistributionParameterizer] = None
    settlement_mean: Optional[MomentFunction] = None
    settlement_cv: Optional[MomentFunction] = None
    settlement_distribution: Optional[DistributionParameterizer] = None
    payment_count_fn: Optional[PaymentCountFunction] = None
    benchmark_1: Optional[float] = None
    benchmark_2: Optional[float] = None
    payment_size_fn: Optional[PaymentSizeFunction] = None
    payment_delay_fn: Optional[PaymentDelayFunction] = None
    base_inflation_vector: Optional[Union[Sequence[float], np.ndarray, BaseInflationIndex]] = None
    si_occurrence: Optional[InflationFunction] = None
    si_payment: Optional[InflationFunction] = None


class ClaimSimulator:
    """Run the full claim simulation pipeline.

    Args:
        config: Simulation configuration. Defaults to ``SimulationConfig()``.
        models: Stage overrides. Defaults to all built-in assumptions.

    Examples:
        Two runs with the same seed are identical::

            sim = ClaimSimulator(SimulationConfig(n_periods=8, seed=1))
            a, b = sim.run(), sim.run()
            assert a.n_claims == b.n_claims
    """

    def __init__(
        self, config: Optional[SimulationConfig] = None, models: Optional[ClaimModels] = None
    ):
        self.config = config or SimulationConfig()
        self.models = models or ClaimModels()

    def _resolve_rng(
        self, rng: Optional[np.random.Generator], seed: Optional[int]
    ) -> np.random.Generator:
        if rng is not None and seed is not None:
            raise InvalidParameterError("Provide either a generator or a seed, not both")
        if rng is not None:
            return rng
        return np.random.default_rng(seed if seed is not None else self.config.seed)

    def run(
        self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None
    ) -> Claims:
        """Simulate one complete set of claims.

        Args:
            rng: Generator to consume. Takes precedence over seeds.
            seed: Seed for a fresh generator. Defaults to ``config.seed``;
                if both are None the run is not reproducible.

        Returns:
            The completed :class:`~synthetic_claims.claims.Claims` aggregate.

        Raises:
            SyntheticClaimsError: Any stage failure, located to the period
                and claim where it occurred.
        """
        config = self.config
        models = self.models
        rng = self._resolve_rng(rng, seed)
        start_time = time.time()
        logger.info(
            "Starting claim simulation: %d periods, time unit %.4g years",
            config.n_periods,
            config.time_unit,
        )

        if models.frequency_fn is not None:
            n_vector = claim_frequency(config.n_periods, None, models.frequency_fn, rng)
        else:
            n_vector = claim_frequency(
                config.n_periods, config.exposure_vector(), config.frequency_vector(), rng
            )
        logger.debug("Simulated %d claims", int(n_vector.sum()))

        occurrence = claim_occurrence(n_vector, rng)
        sizes = claim_size(
            n_vector,
            rng,
            config,
            cdf=models.size_cdf,
            sampler=models.size_sampler,
            search_range=models.size_search_range,
        )
        notidel = claim_notification(
            n_vector,
            sizes,
            rng,
            config,
            mean_fn=models.notification_mean,
            cv_fn=models.notification_cv,
            distribution=models.notification_distribution,
        )
        setldel = claim_closure(
            n_vector,
            sizes,
            rng,
            config,
            mean_fn=models.settlement_mean,
            cv_fn=models.settlement_cv,
            distribution=models.settlement_distribution,
        )
        counts = claim_payment_no(
            n_vector,
            sizes,
            rng,
            config,
            count_fn=models.payment_count_fn,
            benchmark_1=models.benchmark_1,
            benchmark_2=models.benchmark_2,
        )
        payment_sizes = claim_payment_size(
            n_vector, sizes, counts, rng, config, size_fn=models.payment_size_fn
        )
        payment_delays = claim_payment_delay(
            n_vector,
            sizes,
            counts,
            setldel,
            rng,
            config,
            delay_fn=models.payment_delay_fn,
            setldel_mean_fn=models.settlement_mean,
        )
        payment_times = claim_payment_time(n_vector, occurrence, notidel, payment_delays)
        payment_periods = claim_payment_time(
            n_vector, occurrence, notidel, payment_delays, discrete=True
        )

        base_inflation = models.base_inflation_vector
        if base_inflation is None:
            length = max(
                config.n_periods + config.dev_horizon, required_inflation_horizon(payment_times)
            )
            base_inflation = config.base_inflation_vector(length)
        inflated = claim_payment_inflation(
            n_vector,
            payment_sizes,
            payment_times,
            occurrence,
            sizes,
            base_inflation,
            si_occurrence=models.si_occurrence,
            si_payment=models.si_payment,
        )

        claims = Claims(
            frequency_vector=n_vector,
            occurrence_list=occurrence,
            claim_size_list=sizes,
            notification_list=notidel,
            settlement_list=setldel,
            payment_count_list=counts,
            payment_size_list=payment_sizes,
            payment_delay_list=payment_delays,
            payment_time_list=payment_times,
            payment_period_list=payment_periods,
            payment_inflated_list=inflated,
            config=config,
        )
        logger.info(
            "Simulation completed in %.2f seconds: %d claims, %d payments",
            time.time() - start_time,
            claims.n_claims,
            int(sum(c.sum() for c in counts)),
        )
        return claims

    def run_many(self, n_runs: int, seed: Optional[int] = None) -> List[Claims]:
        """Simulate independent replicates.

        Each replicate draws from its own child stream spawned from one
        ``SeedSequence``, so replicates are independent and the whole
        batch is reproducible from a single seed.

        Args:
            n_runs: Number of replicates.
            seed: Root seed. Defaults to ``config.seed``.

        Returns:
            List of ``n_runs`` completed runs.

        Raises:
            InvalidParameterError: If ``n_runs`` is not positive.
        """
        if n_runs < 1:
            raise InvalidParameterError(f"Number of runs must be positive, got {n_runs}")
        root = np.random.SeedSequence(seed if seed is not None else self.config.seed)
        runs = []
        for i, child in enumerate(root.spawn(n_runs)):
            logger.debug("Running replicate %d of %d", i + 1, n_runs)
            runs.append(self.run(rng=np.random.default_rng(child)))
        return runs
