"""Unit tests for the filter engine."""

import pytest
import pandas as pd
import numpy as np
from pydantic import ValidationError as PydanticValidationError

from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.filtering import (
    FilterCriteria,
    filter_counts,
    row_statistics,
    variance_threshold
)


@pytest.fixture
def two_gene_counts():
    """GeneA: high variance, 8 non-zero samples. GeneB: low variance, 3 non-zero."""
    frame = pd.DataFrame(
        [[10, 12, 14, 16, 10, 12, 14, 16],
         [0, 0, 0, 0, 0, 1, 2, 3]],
        index=['GeneA', 'GeneB'],
        columns=[f"S{i}" for i in range(8)]
    )
    return TabularDataset.from_frame(frame)


@pytest.fixture
def random_counts():
    """Counts matrix with a sprinkling of zeros."""
    rng = np.random.default_rng(0)
    values = rng.poisson(20, (200, 12)) * (rng.random((200, 12)) > 0.3)
    return TabularDataset.from_frame(pd.DataFrame(
        values,
        index=[f"Gene_{i}" for i in range(200)],
        columns=[f"Sample_{i}" for i in range(12)]
    ))


class TestRowStatistics:
    """Tests for per-row variance and non-zero counts."""

    def test_variance_and_nonzero(self, two_gene_counts):
        """Test sample variance and strictly-positive counts."""
        stats = row_statistics(two_gene_counts.numeric())

        assert stats.loc['GeneA', 'nonzero'] == 8
        assert stats.loc['GeneB', 'nonzero'] == 3
        assert stats.loc['GeneA', 'variance'] == pytest.approx(40 / 7)
        assert stats.loc['GeneB', 'variance'] == pytest.approx(9.5 / 7)

    def test_single_observation_has_no_variance(self):
        """Test that a row with one numeric value has undefined variance."""
        frame = pd.DataFrame({'S1': [5.0, 1.0], 'S2': [np.nan, 2.0]}, index=['G1', 'G2'])
        stats = row_statistics(frame)

        assert np.isnan(stats.loc['G1', 'variance'])
        assert stats.loc['G2', 'variance'] == pytest.approx(0.5)

    def test_threshold_is_linear_percentile(self):
        """Test threshold matches the linear-interpolation percentile."""
        variances = pd.Series([1.0, 2.0, 3.0, 4.0, np.nan])

        assert variance_threshold(variances, 50) == pytest.approx(2.5)
        assert variance_threshold(variances, 25) == pytest.approx(1.75)
        assert variance_threshold(variances, 100) == pytest.approx(4.0)

    def test_threshold_without_defined_variance(self):
        """Test threshold is NaN when no row has a variance."""
        assert np.isnan(variance_threshold(pd.Series([np.nan, np.nan]), 50))


class TestFilterCounts:
    """Tests for filter_counts."""

    def test_only_high_variance_expressed_gene_kept(self, two_gene_counts):
        """Test percentile=50, minNonZero=5 keeps only GeneA."""
        result = filter_counts(two_gene_counts, FilterCriteria(variance_percentile=50, min_nonzero=5))

        assert list(result.matrix.frame.index) == ['GeneA']
        assert result.n_genes_total == 2

    def test_zero_thresholds_keep_all_defined_rows(self):
        """Test (0, 0) keeps every row with a defined variance."""
        frame = pd.DataFrame({
            'S1': [1.0, 0.0, 5.0],
            'S2': [2.0, 0.0, np.nan],
            'S3': [3.0, 0.0, np.nan]
        }, index=['G1', 'G2', 'G3'])
        result = filter_counts(
            TabularDataset.from_frame(frame),
            FilterCriteria(variance_percentile=0, min_nonzero=0)
        )

        assert list(result.matrix.frame.index) == ['G1', 'G2']

    def test_percentile_100_keeps_max_variance_ties(self):
        """Test percentile=100 keeps only the rows tied for maximum variance."""
        frame = pd.DataFrame({
            'S1': [0, 0, 0, 5],
            'S2': [10, 10, 1, 5],
        }, index=['G1', 'G2', 'G3', 'G4'])
        result = filter_counts(
            TabularDataset.from_frame(frame),
            FilterCriteria(variance_percentile=100, min_nonzero=0)
        )

        assert list(result.matrix.frame.index) == ['G1', 'G2']

    def test_deterministic(self, random_counts):
        """Test repeated calls give the same rows in the same order."""
        criteria = FilterCriteria(variance_percentile=40, min_nonzero=6)
        first = filter_counts(random_counts, criteria)
        second = filter_counts(random_counts, criteria)

        assert list(first.matrix.frame.index) == list(second.matrix.frame.index)
        pd.testing.assert_frame_equal(first.matrix.frame, second.matrix.frame)

    def test_row_order_preserved(self, random_counts):
        """Test retained rows keep their input order."""
        result = filter_counts(random_counts, FilterCriteria(variance_percentile=30, min_nonzero=4))
        kept = list(result.matrix.frame.index)
        positions = [random_counts.row_ids.index(g) for g in kept]

        assert positions == sorted(positions)

    def test_monotonic_in_percentile(self, random_counts):
        """Test raising the variance percentile never adds rows."""
        sizes = [
            filter_counts(random_counts, FilterCriteria(variance_percentile=p, min_nonzero=0)).n_genes
            for p in range(0, 101, 10)
        ]

        assert sizes == sorted(sizes, reverse=True)

    def test_monotonic_in_min_nonzero(self, random_counts):
        """Test raising the non-zero minimum never adds rows."""
        sizes = [
            filter_counts(random_counts, FilterCriteria(variance_percentile=20, min_nonzero=n)).n_genes
            for n in range(0, 14)
        ]

        assert sizes == sorted(sizes, reverse=True)

    def test_empty_result_is_valid(self, random_counts):
        """Test a filter that removes everything returns an empty matrix."""
        result = filter_counts(random_counts, FilterCriteria(variance_percentile=0, min_nonzero=100))

        assert result.is_empty
        assert result.n_samples == 12

    def test_non_numeric_columns_dropped(self, two_gene_counts):
        """Test categorical columns are excluded before filtering."""
        frame = two_gene_counts.frame.copy()
        frame['symbol'] = ['A', 'B']
        result = filter_counts(
            TabularDataset.from_frame(frame),
            FilterCriteria(variance_percentile=0, min_nonzero=0)
        )

        assert 'symbol' not in result.matrix.frame.columns
        assert result.n_samples == 8


class TestFilterCriteria:
    """Tests for FilterCriteria bounds."""

    def test_out_of_range(self):
        """Test percentile and non-zero bounds are enforced."""
        with pytest.raises(PydanticValidationError):
            FilterCriteria(variance_percentile=101, min_nonzero=0)
        with pytest.raises(PydanticValidationError):
            FilterCriteria(variance_percentile=50, min_nonzero=-1)

    def test_immutable(self):
        """Test criteria cannot be changed once created."""
        criteria = FilterCriteria(variance_percentile=50, min_nonzero=5)

        with pytest.raises(PydanticValidationError):
            criteria.min_nonzero = 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
