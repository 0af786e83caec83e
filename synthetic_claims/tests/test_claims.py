"""Tests for the Claims aggregate and the transaction flattener."""

from dataclasses import FrozenInstanceError, replace

import numpy as np
import pandas as pd
import pytest

from synthetic_claims.claims import (
    TRANSACTION_COLUMNS,
    Claims,
    generate_transaction_dataset,
    iter_transactions,
)
from synthetic_claims.exceptions import InvalidParameterError, ShapeMismatchError


class TestClaims:
    """Test the Claims aggregate."""

    def test_properties(self, toy_claims):
        """Counts and horizon are derived from the collections and config."""
        assert toy_claims.n_periods == 3
        assert toy_claims.n_claims == 3
        assert toy_claims.dev_horizon == 3

    def test_immutable(self, toy_claims):
        """Fields cannot be reassigned."""
        with pytest.raises(FrozenInstanceError):
            toy_claims.config = None

    def test_dev_horizon_without_config(self, toy_claims):
        """Without a config the horizon is the number of periods."""
        assert replace(toy_claims, config=None).dev_horizon == 3

    def test_claim_count_mismatch(self, toy_claims):
        """Per-claim collections must match the frequency vector."""
        sizes = [np.array([1000.0]), np.array([]), np.array([2000.0])]
        with pytest.raises(ShapeMismatchError, match=r"claim_size_list .* \(period 1\)"):
            replace(toy_claims, claim_size_list=sizes)

    def test_period_count_mismatch(self, toy_claims):
        """Every collection must cover every period."""
        with pytest.raises(ShapeMismatchError, match="covers 2 periods, expected 3"):
            replace(toy_claims, notification_list=toy_claims.notification_list[:2])

    def test_payment_length_mismatch(self, toy_claims):
        """Per-payment arrays must match the payment counts."""
        delays = [
            [np.array([1.0]), np.array([2.0])],
            [],
            [np.array([1.0, 3.0])],
        ]
        with pytest.raises(ShapeMismatchError, match=r"period 1, claim 2"):
            replace(toy_claims, payment_delay_list=delays)

    def test_zero_payment_count(self, toy_claims):
        """Every claim has at least one payment."""
        counts = [np.array([0, 2]), np.array([], dtype=int), np.array([2])]
        with pytest.raises(ShapeMismatchError, match="at least one payment"):
            replace(toy_claims, payment_count_list=counts)

    def test_summary(self, toy_claims):
        """Summary totals by occurrence period."""
        summary = toy_claims.summary()
        assert list(summary.index) == [1, 2, 3]
        assert summary["n_claims"].tolist() == [2, 0, 1]
        assert summary["total_paid"].tolist() == [6000.0, 0.0, 2000.0]
        assert summary["total_paid_inflated"].tolist() == pytest.approx([6600.0, 0.0, 2200.0])
        assert np.isnan(summary.loc[2, "mean_notification_delay"])
        assert summary.loc[1, "mean_payment_count"] == 1.5


class TestTransactions:
    """Test flattening to one record per payment."""

    def test_record_layout(self, toy_claims):
        """One row per payment with running claim ids and sequence numbers."""
        df = generate_transaction_dataset(toy_claims)
        assert list(df.columns) == TRANSACTION_COLUMNS
        assert len(df) == 5
        assert df["claim_id"].tolist() == [1, 2, 2, 3, 3]
        assert df["payment_sequence_no"].tolist() == [1, 1, 2, 1, 2]
        assert df["occurrence_period"].tolist() == [1, 1, 1, 3, 3]
        assert df["payment_time_period"].tolist() == [2, 3, 4, 4, 7]

    def test_amounts_sum_to_claim_size(self, toy_claims):
        """Payments of each claim add up to its size."""
        df = generate_transaction_dataset(toy_claims)
        by_claim = df.groupby("claim_id").agg(
            paid=("payment_amount", "sum"), size=("claim_size", "first")
        )
        np.testing.assert_allclose(by_claim["paid"], by_claim["size"])

    def test_claim_attributes_repeated(self, toy_claims):
        """Claim-level fields are repeated on each of its payments."""
        df = generate_transaction_dataset(toy_claims)
        claim_2 = df[df["claim_id"] == 2]
        assert claim_2["notification_delay"].tolist() == [1.0, 1.0]
        assert claim_2["settlement_delay"].tolist() == [2.0, 2.0]
        assert claim_2["occurrence_time"].tolist() == [0.7, 0.7]

    def test_unadjusted_keeps_late_payments(self, toy_claims):
        """Without adjustment payments keep their true period."""
        df = generate_transaction_dataset(toy_claims, adjust=False)
        assert df["payment_time_period"].max() == 7

    def test_adjust_clips_to_horizon(self, toy_claims):
        """Adjustment moves late payments onto the last development period."""
        df = generate_transaction_dataset(toy_claims, adjust=True)
        assert df["payment_time_period"].tolist() == [2, 3, 3, 4, 5]
        np.testing.assert_allclose(df["payment_time_continuous"], [1.7, 2.2, 3.0, 3.8, 5.0])
        np.testing.assert_allclose(df["payment_amount"], [1000.0, 2000.0, 3000.0, 500.0, 1500.0])

    def test_adjust_leaves_claims_untouched(self, toy_claims):
        """Flattening never modifies the aggregate."""
        generate_transaction_dataset(toy_claims, adjust=True)
        np.testing.assert_array_equal(toy_claims.payment_period_list[2][0], [4, 7])
        np.testing.assert_allclose(toy_claims.payment_time_list[0][1], [2.2, 3.7])

    def test_explicit_horizon(self, toy_claims):
        """A wider horizon leaves more payments in place."""
        df = generate_transaction_dataset(toy_claims, adjust=True, max_dev=4)
        assert df["payment_time_period"].tolist() == [2, 3, 4, 4, 6]

    def test_invalid_horizon(self, toy_claims):
        """The horizon must be positive."""
        with pytest.raises(InvalidParameterError, match="max_dev must be positive"):
            list(iter_transactions(toy_claims, max_dev=0))

    def test_iterator_yields_records(self, toy_claims):
        """The iterator yields typed records in period, claim, payment order."""
        records = list(iter_transactions(toy_claims))
        assert records[0].claim_id == 1
        assert records[-1].payment_amount_inflated == 1650.0
        assert isinstance(records[0].payment_time_period, int)

    def test_empty_run(self):
        """A run without claims flattens to an empty table with all columns."""
        empty = Claims(
            frequency_vector=np.array([0]),
            occurrence_list=[np.array([])],
            claim_size_list=[np.array([])],
            notification_list=[np.array([])],
            settlement_list=[np.array([])],
            payment_count_list=[np.array([], dtype=int)],
            payment_size_list=[[]],
            payment_delay_list=[[]],
            payment_time_list=[[]],
            payment_period_list=[[]],
            payment_inflated_list=[[]],
        )
        df = generate_transaction_dataset(empty)
        assert isinstance(df, pd.DataFrame)
        assert df.empty
        assert list(df.columns) == TRANSACTION_COLUMNS
