"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from synthetic_claims.claims import Claims
from synthetic_claims.config import SimulationConfig
from synthetic_claims.simulation import ClaimSimulator


@pytest.fixture
def rng():
    """Return a seeded random generator."""
    return np.random.default_rng(20200131)


@pytest.fixture
def config():
    """Return a small quarterly configuration."""
    return SimulationConfig(n_periods=8, exposure=200.0, frequency=0.05, seed=42)


@pytest.fixture
def claims(config):
    """Return one completed simulation run for the small configuration."""
    return ClaimSimulator(config).run()


@pytest.fixture
def toy_claims():
    """Return a hand-built three-period run with known payments.

    Period 1 holds a one-payment claim and a two-payment claim, period 2 is
    empty, and period 3 holds one two-payment claim. Payment periods are
    [2], [3, 4] and [4, 7]; with a development horizon of 3 the payments in
    periods 4 (claim 2) and 7 (claim 3) fall beyond the horizon.
    """
    return Claims(
        frequency_vector=np.array([2, 0, 1]),
        occurrence_list=[np.array([0.2, 0.7]), np.array([]), np.array([2.5])],
        claim_size_list=[np.array([1000.0, 5000.0]), np.array([]), np.array([2000.0])],
        notification_list=[np.array([0.5, 1.0]), np.array([]), np.array([0.3])],
        settlement_list=[np.array([1.0, 2.0]), np.array([]), np.array([4.0])],
        payment_count_list=[np.array([1, 2]), np.array([], dtype=int), np.array([2])],
        payment_size_list=[
            [np.array([1000.0]), np.array([2000.0, 3000.0])],
            [],
            [np.array([500.0, 1500.0])],
        ],
        payment_delay_list=[
            [np.array([1.0]), np.array([0.5, 1.5])],
            [],
            [np.array([1.0, 3.0])],
        ],
        payment_time_list=[
            [np.array([1.7]), np.array([2.2, 3.7])],
            [],
            [np.array([3.8, 6.8])],
        ],
        payment_period_list=[
            [np.array([2]), np.array([3, 4])],
            [],
            [np.array([4, 7])],
        ],
        payment_inflated_list=[
            [np.array([1100.0]), np.array([2200.0, 3300.0])],
            [],
            [np.array([550.0, 1650.0])],
        ],
        config=SimulationConfig(n_periods=3),
    )
