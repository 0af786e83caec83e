"""Development triangles from simulated payments.

This module bins transaction-level payments into occurrence period by
development period matrices, the standard input of reserving methods.
Development period ``d`` of occurrence period ``i`` collects payments made
in calendar period ``i + d - 1``.

Key Features:
    - Incremental or cumulative (row-wise running sum) output
    - Aggregation of ``L`` consecutive periods into one (e.g. quarters
      into years), applied on a calendar basis in both dimensions
    - Optional masking of cells beyond the valuation diagonal
    - Nominal or inflated payment amounts

Examples:
    Annual cumulative triangle from quarterly simulation::

        transactions = generate_transaction_dataset(claims, adjust=True)
        triangle = build_triangle(
            transactions, n_periods=40, aggregate_level=4, incremental=False
        )

    Straight from a run::

        square = claim_output(claims, value="payment_amount_inflated")
"""

import logging
from typing import Optional
import warnings

import numpy as np
import pandas as pd

from ._warnings import DataQualityWarning
from .claims import Claims, generate_transaction_dataset
from .exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

TRIANGLE_VALUES = ("payment_amount", "payment_amount_inflated")


def _aggregate_period(period: np.ndarray, aggregate_level: int) -> np.ndarray:
    """1-based aggregated period containing each 1-based period."""
    return (period - 1) // aggregate_level + 1


def build_triangle(
    transactions: pd.DataFrame,
    n_periods: int,
    value: str = "payment_amount",
    aggregate_level: int = 1,
    incremental: bool = True,
    future: bool = True,
    max_dev: Optional[int] = None,
) -> pd.DataFrame:
    """Bin payments into an occurrence by development matrix.

    Development is measured on aggregated calendar periods: a payment in
    fine period ``p`` for a claim from fine period ``o`` lands in
    development column ``(p - 1) // L - (o - 1) // L + 1`` for aggregation
    level ``L``. A claim late in an aggregated occurrence period can reach
    one more aggregated period than the horizon spans, so the matrix has
    ``ceil((max_dev - 1) / L) + 1`` columns, e.g. ``n_periods / L + 1``
    columns when ``max_dev`` equals ``n_periods`` and ``L > 1``.

    Args:
        transactions: Transaction table with ``occurrence_period``,
            ``payment_time_period`` and the ``value`` column.
        n_periods: Number of occurrence periods simulated.
        value: Amount column to sum, ``"payment_amount"`` or
            ``"payment_amount_inflated"``.
        aggregate_level: Number of consecutive periods combined into one.
            Must divide ``n_periods``.
        incremental: If False, return the cumulative (running sum) matrix.
        future: If False, cells after the valuation date (calendar period
            beyond ``n_periods``) are set to NaN.
        max_dev: Development horizon in periods; defaults to ``n_periods``.
            Payments beyond it widen the matrix with a warning.

    Returns:
        DataFrame indexed by aggregated occurrence period with one column
        per aggregated development period (both 1-based), up to the last
        aggregated period a payment within ``max_dev`` can reach.

    Raises:
        InvalidParameterError: If the aggregation level does not divide the
            number of periods, the value column is unknown, or a payment
            precedes its occurrence period.
    """
    if n_periods < 1:
        raise InvalidParameterError(f"Number of periods must be positive, got {n_periods}")
    if aggregate_level < 1 or n_periods % aggregate_level != 0:
        raise InvalidParameterError(
            f"Aggregation level {aggregate_level} does not evenly divide {n_periods} periods"
        )
    if value not in TRIANGLE_VALUES:
        raise InvalidParameterError(f"value must be one of {TRIANGLE_VALUES}, got '{value}'")
    max_dev = n_periods if max_dev is None else max_dev
    if max_dev < 1:
        raise InvalidParameterError(f"max_dev must be positive, got {max_dev}")

    occurrence = transactions["occurrence_period"].to_numpy(dtype=int)
    payment = transactions["payment_time_period"].to_numpy(dtype=int)
    amounts = transactions[value].to_numpy(dtype=float)

    if len(occurrence) and (occurrence.min() < 1 or occurrence.max() > n_periods):
        raise InvalidParameterError(
            f"Occurrence periods must lie in [1, {n_periods}], "
            f"got [{occurrence.min()}, {occurrence.max()}]"
        )

    n_rows = n_periods // aggregate_level
    # a horizon of max_dev periods can reach one extra aggregated calendar period
    n_cols = -(-(max_dev - 1) // aggregate_level) + 1
    occ_agg = _aggregate_period(occurrence, aggregate_level)
    dev = _aggregate_period(payment, aggregate_level) - occ_agg + 1
    if len(dev) and dev.min() < 1:
        raise InvalidParameterError("Found a payment made before its occurrence period")

    if len(dev) and dev.max() > n_cols:
        warnings.warn(
            f"{int(np.sum(dev > n_cols))} payments fall beyond the development horizon "
            f"of {n_cols} periods; widening the triangle to {dev.max()} columns. "
            "Use adjusted transactions to keep the horizon.",
            DataQualityWarning,
            stacklevel=2,
        )
        n_cols = int(dev.max())

    matrix = np.zeros((n_rows, n_cols))
    np.add.at(matrix, (occ_agg - 1, dev - 1), amounts)

    if not incremental:
        matrix = np.cumsum(matrix, axis=1)

    if not future:
        rows = np.arange(1, n_rows + 1)[:, None]
        cols = np.arange(1, n_cols + 1)[None, :]
        matrix[rows + cols - 1 > n_rows] = np.nan

    return pd.DataFrame(
        matrix,
        index=pd.RangeIndex(1, n_rows + 1, name="occurrence_period"),
        columns=pd.RangeIndex(1, n_cols + 1, name="development_period"),
    )


def claim_output(
    claims: Claims,
    value: str = "payment_amount",
    aggregate_level: int = 1,
    incremental: bool = True,
    future: bool = True,
    adjust: bool = False,
    max_dev: Optional[int] = None,
) -> pd.DataFrame:
    """Build a development matrix directly from a simulation run.

    Args:
        claims: Completed simulation run.
        value: Amount column to sum.
        aggregate_level: Number of consecutive periods combined into one.
        incremental: If False, return the cumulative matrix.
        future: If False, mask cells after the valuation date.
        adjust: If True, payments beyond the horizon are moved onto it
            before binning (see
            :func:`~synthetic_claims.claims.generate_transaction_dataset`).
        max_dev: Development horizon; defaults to ``claims.dev_horizon``.

    Returns:
        DataFrame as returned by :func:`build_triangle`.
    """
    max_dev = claims.dev_horizon if max_dev is None else max_dev
    transactions = generate_transaction_dataset(claims, adjust=adjust, max_dev=max_dev)
    logger.debug(
        "Building %s triangle from %d payments",
        "incremental" if incremental else "cumulative",
        len(transactions),
    )
    return build_triangle(
        transactions,
        n_periods=claims.n_periods,
        value=value,
        aggregate_level=aggregate_level,
        incremental=incremental,
        future=future,
        max_dev=max_dev,
    )
