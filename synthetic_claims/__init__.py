"""Synthetic Individual Claims"""

from ._version import __version__
from ._warnings import DataQualityWarning, SyntheticClaimsWarning
from .claim_development import build_triangle, claim_output
from .claim_generator import claim_frequency, claim_occurrence, claim_size, simulate_cdf
from .claims import Claims, Transaction, generate_transaction_dataset, iter_transactions
from .config import LoggingConfig, SimulationConfig
from .delays import claim_closure, claim_notification
from .distributions import (
    BetaParameterizer,
    CustomParameterizer,
    DistributionParameterizer,
    WeibullParameterizer,
    get_beta_parameters,
    get_weibull_parameters,
)
from .exceptions import (
    InvalidParameterError,
    NumericalError,
    OutOfRangeError,
    RootFindingError,
    ShapeMismatchError,
    SimulationInvariantError,
    SyntheticClaimsError,
)
from .inflation import BaseInflationIndex, claim_payment_inflation
from .normalization import rescale_to_total
from .payments import (
    claim_payment_delay,
    claim_payment_no,
    claim_payment_size,
    claim_payment_time,
    discretize_time,
)
from .simulation import ClaimModels, ClaimSimulator

__all__ = [
    "__version__",
    "BaseInflationIndex",
    "BetaParameterizer",
    "ClaimModels",
    "ClaimSimulator",
    "Claims",
    "CustomParameterizer",
    "DataQualityWarning",
    "DistributionParameterizer",
    "InvalidParameterError",
    "LoggingConfig",
    "NumericalError",
    "OutOfRangeError",
    "RootFindingError",
    "ShapeMismatchError",
    "SimulationConfig",
    "SimulationInvariantError",
    "SyntheticClaimsError",
    "SyntheticClaimsWarning",
    "Transaction",
    "WeibullParameterizer",
    "build_triangle",
    "claim_closure",
    "claim_frequency",
    "claim_notification",
    "claim_occurrence",
    "claim_output",
    "claim_payment_delay",
    "claim_payment_inflation",
    "claim_payment_no",
    "claim_payment_size",
    "claim_payment_time",
    "claim_size",
    "discretize_time",
    "generate_transaction_dataset",
    "get_beta_parameters",
    "get_weibull_parameters",
    "iter_transactions",
    "rescale_to_total",
    "simulate_cdf",
]
