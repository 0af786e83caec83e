"""Claims aggregate and transaction flattening.

A simulation run produces many parallel nested collections: one entry per
occurrence period, one element per claim, and (for payment attributes)
one array per claim. ``Claims`` bundles them into a single validated
object; ``generate_transaction_dataset`` unrolls it into one row per
partial payment.

Examples:
    Flattening a finished run::

        claims = ClaimSimulator(config).run()
        transactions = generate_transaction_dataset(claims)
        transactions.groupby("occurrence_period")["payment_amount"].sum()

    Concentrating late payments at the development horizon::

        adjusted = generate_transaction_dataset(claims, adjust=True)
"""

from dataclasses import astuple, dataclass, fields
import logging
from typing import Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import SimulationConfig
from .exceptions import InvalidParameterError, ShapeMismatchError

logger = logging.getLogger(__name__)


def validate_period_lengths(
    frequency_vector: Sequence[int], collection: Sequence[Sequence], name: str
) -> None:
    """Check a per-period collection holds one element per claim.

    Args:
        frequency_vector: Claim count per period.
        collection: One sequence per period.
        name: Collection name used in error messages.

    Raises:
        ShapeMismatchError: If the number of periods or the number of claims
            in any period disagrees with ``frequency_vector``.
    """
    if len(collection) != len(frequency_vector):
        raise ShapeMismatchError(
            f"{name} covers {len(collection)} periods, expected {len(frequency_vector)}"
        )
    for i, (n, entry) in enumerate(zip(frequency_vector, collection)):
        if len(entry) != n:
            raise ShapeMismatchError(
                f"{name} holds {len(entry)} claims, expected {n}", period=i + 1
            )


def validate_payment_lengths(
    payment_counts: Sequence[Sequence[int]], collection: Sequence[Sequence], name: str
) -> None:
    """Check a per-payment collection holds one array of the right length per claim.

    Args:
        payment_counts: Number of payments per claim, per period.
        collection: One list of per-claim arrays per period.
        name: Collection name used in error messages.

    Raises:
        ShapeMismatchError: If any claim's array length differs from its
            payment count.
    """
    validate_period_lengths([len(c) for c in payment_counts], collection, name)
    for i, (counts, entry) in enumerate(zip(payment_counts, collection)):
        for j, (m, payments) in enumerate(zip(counts, entry)):
            if len(payments) != m:
                raise ShapeMismatchError(
                    f"{name} holds {len(payments)} payments, expected {m}",
                    period=i + 1,
                    claim=j + 1,
                )


@dataclass(frozen=True)
class Claims:
    """All module outputs of one completed simulation run.

    Index ``i`` of every list is occurrence period ``i + 1``; index ``j``
    within a period is that period's ``j + 1``-th claim in occurrence order.
    The object holds references to the module outputs and is never
    modified after construction.

    Attributes:
        frequency_vector: Claim count per period.
        occurrence_list: Occurrence times per period.
        claim_size_list: Claim sizes per period.
        notification_list: Notification delays per period.
        settlement_list: Settlement delays per period.
        payment_count_list: Number of partial payments per claim.
        payment_size_list: Payment amounts, one array per claim.
        payment_delay_list: Inter-payment delays, one array per claim.
        payment_time_list: Continuous payment times, one array per claim.
        payment_period_list: Discrete payment periods, one array per claim.
        payment_inflated_list: Inflated payment amounts, one array per claim.
        config: Configuration the run used, if available.

    Raises:
        ShapeMismatchError: On construction, if any collection disagrees
            with the frequency vector or the payment counts.
    """

    frequency_vector: np.ndarray
    occurrence_list: List[np.ndarray]
    claim_size_list: List[np.ndarray]
    notification_list: List[np.ndarray]
    settlement_list: List[np.ndarray]
    payment_count_list: List[np.ndarray]
    payment_size_list: List[List[np.ndarray]]
    payment_delay_list: List[List[np.ndarray]]
    payment_time_list: List[List[np.ndarray]]
    payment_period_list: List[List[np.ndarray]]
    payment_inflated_list: List[List[np.ndarray]]
    config: Optional[SimulationConfig] = None

    def __post_init__(self):
        """Validate that every collection has a consistent shape."""
        per_claim = {
            "occurrence_list": self.occurrence_list,
            "claim_size_list": self.claim_size_list,
            "notification_list": self.notification_list,
            "settlement_list": self.settlement_list,
            "payment_count_list": self.payment_count_list,
        }
        for name, collection in per_claim.items():
            validate_period_lengths(self.frequency_vector, collection, name)

        for i, counts in enumerate(self.payment_count_list):
            if np.any(np.asarray(counts) < 1):
                raise ShapeMismatchError("Every claim needs at least one payment", period=i + 1)

        per_payment = {
            "payment_size_list": self.payment_size_list,
            "payment_delay_list": self.payment_delay_list,
            "payment_time_list": self.payment_time_list,
            "payment_period_list": self.payment_period_list,
            "payment_inflated_list": self.payment_inflated_list,
        }
        for name, collection in per_payment.items():
            validate_payment_lengths(self.payment_count_list, collection, name)

    @property
    def n_periods(self) -> int:
        """Number of occurrence periods."""
        return len(self.frequency_vector)

    @property
    def n_claims(self) -> int:
        """Total number of claims across all periods."""
        return int(np.sum(self.frequency_vector))

    @property
    def dev_horizon(self) -> int:
        """Development horizon from the config, or the number of periods."""
        if self.config is not None:
            return self.config.dev_horizon
        return self.n_periods

    def summary(self) -> pd.DataFrame:
        """Per-period counts and totals.

        Returns:
            DataFrame indexed by occurrence period with claim count, total
            size, total paid (nominal and inflated) and mean delays.
        """
        rows = []
        for i in range(self.n_periods):
            sizes = self.claim_size_list[i]
            n = len(sizes)
            rows.append(
                {
                    "occurrence_period": i + 1,
                    "n_claims": n,
                    "total_size": float(np.sum(sizes)),
                    "total_paid": float(sum(np.sum(p) for p in self.payment_size_list[i])),
                    "total_paid_inflated": float(
                        sum(np.sum(p) for p in self.payment_inflated_list[i])
                    ),
                    "mean_notification_delay": (
                        float(np.mean(self.notification_list[i])) if n else np.nan
                    ),
                    "mean_settlement_delay": (
                        float(np.mean(self.settlement_list[i])) if n else np.nan
                    ),
                    "mean_payment_count": (
                        float(np.mean(self.payment_count_list[i])) if n else np.nan
                    ),
                }
            )
        return pd.DataFrame(rows).set_index("occurrence_period")


@dataclass(frozen=True)
class Transaction:
    """One partial payment of one claim."""

    claim_id: int
    occurrence_period: int
    occurrence_time: float
    claim_size: float
    notification_delay: float
    settlement_delay: float
    payment_sequence_no: int
    payment_amount: float
    payment_amount_inflated: float
    payment_time_continuous: float
    payment_time_period: int


TRANSACTION_COLUMNS = [f.name for f in fields(Transaction)]


def iter_transactions(
    claims: Claims, adjust: bool = False, max_dev: Optional[int] = None
) -> Iterator[Transaction]:
    """Yield one record per (period, claim, payment).

    Claim ids run from 1 across periods in occurrence order; payment
    sequence numbers run from 1 within each claim.

    Args:
        claims: Completed simulation run.
        adjust: If True, any payment whose period falls beyond
            ``occurrence_period + max_dev - 1`` is moved to exactly that
            boundary: its time is clipped to the boundary and its period set
            to the last valid period. Payments are never dropped.
        max_dev: Development horizon in periods. Defaults to
            ``claims.dev_horizon``.

    Yields:
        Transaction records in period, claim, payment order.

    Raises:
        InvalidParameterError: If ``max_dev`` is not positive.
    """
    max_dev = claims.dev_horizon if max_dev is None else max_dev
    if max_dev < 1:
        raise InvalidParameterError(f"max_dev must be positive, got {max_dev}")

    claim_id = 0
    n_clipped = 0
    for i in range(claims.n_periods):
        period = i + 1
        last_valid = period + max_dev - 1
        for j in range(len(claims.claim_size_list[i])):
            claim_id += 1
            times = claims.payment_time_list[i][j]
            periods = claims.payment_period_list[i][j]
            for k in range(len(times)):
                time = float(times[k])
                payment_period = int(periods[k])
                if adjust and payment_period > last_valid:
                    time = min(time, float(last_valid))
                    payment_period = last_valid
                    n_clipped += 1
                yield Transaction(
                    claim_id=claim_id,
                    occurrence_period=period,
                    occurrence_time=float(claims.occurrence_list[i][j]),
                    claim_size=float(claims.claim_size_list[i][j]),
                    notification_delay=float(claims.notification_list[i][j]),
                    settlement_delay=float(claims.settlement_list[i][j]),
                    payment_sequence_no=k + 1,
                    payment_amount=float(claims.payment_size_list[i][j][k]),
                    payment_amount_inflated=float(claims.payment_inflated_list[i][j][k]),
                    payment_time_continuous=time,
                    payment_time_period=payment_period,
                )
    if adjust and n_clipped:
        logger.info("Moved %d payments to the development horizon (max_dev=%d)", n_clipped, max_dev)


def generate_transaction_dataset(
    claims: Claims, adjust: bool = False, max_dev: Optional[int] = None
) -> pd.DataFrame:
    """Flatten a run into a transaction-level table.

    Args:
        claims: Completed simulation run. Not modified.
        adjust: Clip out-of-horizon payments to the horizon (see
            :func:`iter_transactions`). The default is the true, unadjusted
            view.
        max_dev: Development horizon in periods.

    Returns:
        DataFrame with one row per partial payment and the columns in
        ``TRANSACTION_COLUMNS``.
    """
    records = [astuple(t) for t in iter_transactions(claims, adjust=adjust, max_dev=max_dev)]
    df = pd.DataFrame.from_records(records, columns=TRANSACTION_COLUMNS)
    return df.astype(
        {
            "claim_id": int,
            "occurrence_period": int,
            "payment_sequence_no": int,
            "payment_time_period": int,
        }
    )
