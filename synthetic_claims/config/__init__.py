"""Configuration management using Pydantic v2 models.

The configuration is a single immutable ``SimulationConfig`` threaded
through every module of the claim simulation, so no scale or horizon is
ever read from ambient global state.

Sub-modules:
    constants: Default reference claim size, period length and benchmarks.
    reporting: Logging configuration.
    simulation: The run-level ``SimulationConfig``.

Examples:
    Quick start with defaults::

        from synthetic_claims.config import SimulationConfig

        config = SimulationConfig()  # 40 quarters, reference claim 200,000

    Loading from file::

        config = SimulationConfig.from_yaml(Path("scenario.yaml"))

Note:
    Times are measured in periods from the origin 0; rates are expressed
    as decimals (0.02 = 2%).
"""

from .constants import DEFAULT_REF_CLAIM, DEFAULT_TIME_UNIT
from .reporting import LoggingConfig
from .simulation import SimulationConfig

__all__ = [
    "DEFAULT_REF_CLAIM",
    "DEFAULT_TIME_UNIT",
    "LoggingConfig",
    "SimulationConfig",
]
