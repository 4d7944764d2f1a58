"""Unit tests for differential expression results."""

import pytest
import pandas as pd
import numpy as np

from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.de_results import (
    classify_significance,
    is_significant,
    load_de_results,
    neg_log10_pvalues
)
from rnaseq_explorer.exceptions import ValidationError


@pytest.fixture
def de_table():
    return TabularDataset.from_frame(pd.DataFrame({
        'baseMean': [500.0, 20.0, 80.0, 10.0],
        'log2FoldChange': [2.1, -0.3, -1.8, 0.1],
        'pvalue': [0.001, 0.4, 0.0004, 0.9],
        'padj': [0.02, 0.6, 0.05, np.nan]
    }, index=pd.Index(['HTT', 'GAPDH', 'PENK', 'ACTB'], name='gene')))


class TestSignificance:
    """Tests for padj-based significance calls."""

    def test_significant_row(self, de_table):
        """Test log2FC 2.1, p 0.001, padj 0.02 is significant at padj < 0.05."""
        classified = classify_significance(de_table, padj_threshold=0.05)

        assert bool(classified.frame.loc['HTT', 'significant'])

    def test_threshold_is_strict(self, de_table):
        """Test padj equal to the threshold is not significant."""
        classified = classify_significance(de_table, padj_threshold=0.05)

        assert not classified.frame.loc['PENK', 'significant']

    def test_missing_padj_not_significant(self):
        """Test genes without padj are not significant."""
        flags = is_significant(pd.Series([0.01, np.nan]))

        assert flags.tolist() == [True, False]

    def test_original_untouched(self, de_table):
        """Test classification works on a copy."""
        classify_significance(de_table)

        assert 'significant' not in de_table.frame.columns

    def test_missing_columns(self, de_table):
        """Test a table without padj cannot be classified."""
        no_padj = de_table.with_frame(de_table.frame.drop(columns=['padj']))

        with pytest.raises(ValidationError):
            classify_significance(no_padj)


class TestLoadDEResults:
    """Tests for load_de_results."""

    def test_valid_table(self, de_table):
        """Test a complete table loads with warnings for missing padj."""
        dataset, validation = load_de_results(de_table)

        assert dataset is de_table
        assert validation.valid
        assert any('padj' in w.message for w in validation.warnings)

    def test_missing_required_column(self, de_table):
        """Test a table without log2FoldChange is rejected."""
        broken = de_table.with_frame(de_table.frame.drop(columns=['log2FoldChange']))

        with pytest.raises(ValidationError, match='log2FoldChange'):
            load_de_results(broken)


class TestNegLog10:
    """Tests for volcano y coordinates."""

    def test_values(self):
        """Test -log10 of ordinary p-values."""
        scores = neg_log10_pvalues(pd.Series([0.1, 0.001]))

        assert scores.tolist() == pytest.approx([1.0, 3.0])

    def test_zero_pvalue_capped(self):
        """Test a zero p-value is placed just above the largest finite score."""
        scores = neg_log10_pvalues(pd.Series([0.0, 0.01]))

        assert np.isfinite(scores).all()
        assert scores[0] == pytest.approx(2.2)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
