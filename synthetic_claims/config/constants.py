"""Module-level scaling constants for the claim simulation.

Centralizes the reference values every default model is calibrated
against, providing a single source of truth for the config layer.
"""

DEFAULT_REF_CLAIM: float = 200_000.0
"""Reference claim size the default parameterization is calibrated to."""

DEFAULT_TIME_UNIT: float = 0.25
"""Length of one simulation period in years (quarterly by default)."""

REFERENCE_SIZE_SCALE: float = 200_000.0
"""Claim size scale at which the default size CDF is expressed."""

BENCHMARK_1_FRACTION: float = 0.0375
BENCHMARK_2_FRACTION: float = 0.075

DEFAULT_CLAIM_SIZE_RANGE = (0.0, 1e24)
"""Search interval for inverse-transform sampling of claim sizes."""

WEIBULL_SHAPE_BRACKET = (0.05, 100.0)
"""Shape interval searched when matching Weibull moments."""

ROOT_FINDING_MAXITER: int = 1000
