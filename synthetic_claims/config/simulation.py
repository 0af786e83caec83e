"""Simulation scale and portfolio configuration.

Contains the immutable configuration threaded through every module call:
the reference claim size and period length that calibrate the default
models, the portfolio exposure and frequency, the development horizon,
and base inflation.
"""

import logging
from pathlib import Path
import sys
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import yaml

from .constants import (
    BENCHMARK_1_FRACTION,
    BENCHMARK_2_FRACTION,
    DEFAULT_CLAIM_SIZE_RANGE,
    DEFAULT_REF_CLAIM,
    DEFAULT_TIME_UNIT,
)
from .reporting import LoggingConfig
from .utils import deep_merge

PerPeriod = Union[float, Tuple[float, ...]]


class SimulationConfig(BaseModel):
    """Immutable configuration for one claim simulation run.

    Every module that depends on a scale (reference claim size, period
    length) receives this object explicitly, so independent runs with
    different configurations can coexist in the same process.

    Attributes:
        n_periods: Number of occurrence periods simulated.
        ref_claim: Reference claim size; default models scale with it.
        time_unit: Length of one period in years (0.25 = quarterly).
        max_dev_periods: Development horizon in periods. ``None`` uses
            ``n_periods``.
        exposure: Exposure per period, scalar or one value per period.
        frequency: Expected claims per unit exposure per period, scalar or
            one value per period.
        annual_base_inflation: Annual base inflation rate used to build the
            default per-period rate vector.
        claim_size_range: Search interval for inverse-CDF claim sizes.
        seed: Seed for the run's random generator. ``None`` is unseeded.
        logging: Logging settings.

    Examples:
        Quarterly portfolio over ten years::

            config = SimulationConfig(
                n_periods=40,
                exposure=12_000,
                frequency=0.03,
                seed=20200131,
            )

        Annual periods with a larger reference claim::

            config = SimulationConfig(n_periods=10, time_unit=1.0, ref_claim=1_000_000)
    """

    model_config = ConfigDict(frozen=True)

    n_periods: int = Field(default=40, ge=1, description="Number of occurrence periods")
    ref_claim: float = Field(default=DEFAULT_REF_CLAIM, gt=0, description="Reference claim size")
    time_unit: float = Field(
        default=DEFAULT_TIME_UNIT, gt=0, le=1, description="Period length in years"
    )
    max_dev_periods: Optional[int] = Field(
        default=None, ge=1, description="Development horizon in periods (None=n_periods)"
    )
    exposure: PerPeriod = Field(default=12_000.0, description="Exposure per period")
    frequency: PerPeriod = Field(
        default=0.03, description="Expected claims per unit exposure per period"
    )
    annual_base_inflation: float = Field(
        default=0.02, ge=-0.5, le=1.0, description="Annual base inflation rate"
    )
    claim_size_range: Tuple[float, float] = Field(
        default=DEFAULT_CLAIM_SIZE_RANGE, description="Inverse-CDF search interval"
    )
    seed: Optional[int] = Field(default=None, ge=0, description="Random seed")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("exposure", "frequency")
    @classmethod
    def validate_non_negative(cls, v: PerPeriod) -> PerPeriod:
        """Reject negative exposures and frequencies.

        Args:
            v: Scalar or per-period values.

        Returns:
            The validated value.

        Raises:
            ValueError: If any value is negative.
        """
        values = v if isinstance(v, tuple) else (v,)
        if any(x < 0 for x in values):
            raise ValueError(f"Values must be non-negative, got {v}")
        return v

    @field_validator("claim_size_range")
    @classmethod
    def validate_range(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        """Ensure the claim size search interval is well ordered."""
        if v[0] >= v[1]:
            raise ValueError(f"claim_size_range lower bound must be below upper bound, got {v}")
        return v

    @model_validator(mode="after")
    def validate_vector_lengths(self):
        """Ensure per-period vectors match the number of periods.

        Returns:
            SimulationConfig: The validated config object.

        Raises:
            ValueError: If a per-period vector has the wrong length.
        """
        for name in ("exposure", "frequency"):
            value = getattr(self, name)
            if isinstance(value, tuple) and len(value) != self.n_periods:
                raise ValueError(
                    f"{name} has {len(value)} entries but n_periods is {self.n_periods}"
                )
        return self

    @property
    def dev_horizon(self) -> int:
        """Maximum development period (defaults to the number of periods)."""
        return self.max_dev_periods if self.max_dev_periods is not None else self.n_periods

    @property
    def claim_size_benchmark_1(self) -> float:
        """Upper size of the one-or-two payment regime."""
        return BENCHMARK_1_FRACTION * self.ref_claim

    @property
    def claim_size_benchmark_2(self) -> float:
        """Upper size of the two-or-three payment regime."""
        return BENCHMARK_2_FRACTION * self.ref_claim

    @property
    def period_base_inflation(self) -> float:
        """Base inflation rate per period implied by the annual rate."""
        return float((1 + self.annual_base_inflation) ** self.time_unit - 1)

    def exposure_vector(self) -> np.ndarray:
        """Exposure broadcast to one value per period."""
        return np.broadcast_to(np.asarray(self.exposure, dtype=float), (self.n_periods,)).copy()

    def frequency_vector(self) -> np.ndarray:
        """Frequency broadcast to one value per period."""
        return np.broadcast_to(np.asarray(self.frequency, dtype=float), (self.n_periods,)).copy()

    def base_inflation_vector(self, length: Optional[int] = None) -> np.ndarray:
        """Build a flat per-period base inflation rate vector.

        Args:
            length: Number of periods covered. Defaults to
                ``n_periods + dev_horizon``, enough for every payment
                inside the development horizon.

        Returns:
            Array of per-period rates indexed from time 0.
        """
        if length is None:
            length = self.n_periods + self.dev_horizon
        return np.full(length, self.period_base_inflation)

    def setup_logging(self) -> None:
        """Configure the ``synthetic_claims`` logger from the logging settings."""
        if not self.logging.enabled:
            return

        logger = logging.getLogger("synthetic_claims")
        logger.setLevel(getattr(logging, self.logging.level))
        logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    def with_overrides(self, **overrides: Any) -> "SimulationConfig":
        """Return a validated copy with selected fields replaced.

        Args:
            **overrides: Field values to replace.

        Returns:
            New SimulationConfig; this instance is unchanged.
        """
        return self.from_dict(overrides, base_config=self)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_config: Optional["SimulationConfig"] = None
    ) -> "SimulationConfig":
        """Create config from dictionary, optionally overriding base config.

        Args:
            data: Dictionary with configuration parameters.
            base_config: Optional base configuration to override.

        Returns:
            SimulationConfig object with validated parameters.
        """
        if base_config is None:
            return cls(**data)
        merged = deep_merge(base_config.model_dump(), data)
        return cls(**merged)

    @classmethod
    def from_yaml(cls, path: Path) -> "SimulationConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            SimulationConfig object with validated parameters.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValidationError: If configuration is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path where to save the configuration.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False
            )
