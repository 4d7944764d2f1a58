"""Unit tests for the gene expression lookup."""

import pytest
import pandas as pd
import numpy as np

from rnaseq_explorer.cleaning import clean_counts_matrix, clean_sample_info
from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.exceptions import GeneNotFoundError, IdentifierNotFoundError
from rnaseq_explorer.expression import gene_expression_profile


@pytest.fixture
def counts():
    return clean_counts_matrix(TabularDataset.from_frame(pd.DataFrame(
        {
            'S1': [10.0, 1.0],
            'S2': [12.0, 2.0],
            'S3': [30.0, 3.0],
            'S4': [34.0, 4.0],
        },
        index=['HTT', 'GAPDH']
    )))


@pytest.fixture
def sample_info():
    return clean_sample_info(TabularDataset.from_frame(pd.DataFrame(
        {'Diagnosis': ['Control', 'Control', 'HD', 'HD'], 'Age': [40, 50, 60, 70]},
        index=pd.Index(['s1', ' S2', 'S3', 'S4'], name='SampleID')
    )))


@pytest.fixture
def gene_keyed_info():
    return clean_sample_info(TabularDataset.from_frame(pd.DataFrame(
        {'Pathway': ['huntingtin', 'glycolysis']},
        index=pd.Index(['Htt', 'GAPDH'], name='SampleID')
    )))


class TestSampleJoin:
    """Tests for joining counts columns against sample identifiers."""

    def test_groups_per_sample(self, counts, sample_info):
        """Test each sample is placed in its own group."""
        profile = gene_expression_profile(counts, sample_info, 'HTT', 'Diagnosis')

        assert profile.groups == {'Control': [10.0, 12.0], 'HD': [30.0, 34.0]}
        assert list(profile.data['Sample']) == ['s1', 's2', 's3', 's4']
        assert profile.gene_label == 'HTT'

    def test_gene_lookup_is_normalized(self, counts, sample_info):
        """Test the selected gene is matched ignoring case and whitespace."""
        profile = gene_expression_profile(counts, sample_info, '  htt ', 'Diagnosis')

        assert profile.gene == 'htt'

    def test_unmatched_samples_left_out(self, counts):
        """Test samples missing from the metadata are dropped."""
        partial = clean_sample_info(TabularDataset.from_frame(pd.DataFrame(
            {'Diagnosis': ['HD']}, index=['S3']
        )))
        profile = gene_expression_profile(counts, partial, 'HTT', 'Diagnosis')

        assert profile.groups == {'HD': [30.0]}

    def test_missing_group_value(self, counts):
        """Test samples without a group value are shown as NA."""
        incomplete = clean_sample_info(TabularDataset.from_frame(pd.DataFrame(
            {'Diagnosis': ['Control', None, 'HD', np.nan]},
            index=['S1', 'S2', 'S3', 'S4']
        )))
        profile = gene_expression_profile(counts, incomplete, 'HTT', 'Diagnosis')

        assert profile.groups == {'Control': [10.0], 'HD': [30.0], 'NA': [12.0, 34.0]}

    def test_no_matching_samples(self, counts, gene_keyed_info):
        """Test metadata without any counts sample raises IdentifierNotFoundError."""
        with pytest.raises(IdentifierNotFoundError):
            gene_expression_profile(counts, gene_keyed_info, 'HTT', 'Pathway')


class TestGeneJoin:
    """Tests for the gene-keyed metadata mode."""

    def test_group_broadcast(self, counts, gene_keyed_info):
        """Test the gene's metadata row labels every sample."""
        profile = gene_expression_profile(
            counts, gene_keyed_info, 'HTT', 'Pathway', join_mode='gene'
        )

        assert profile.groups == {'huntingtin': [10.0, 12.0, 30.0, 34.0]}

    def test_gene_missing_from_metadata(self, counts, sample_info):
        """Test a gene absent from the metadata raises IdentifierNotFoundError."""
        with pytest.raises(IdentifierNotFoundError) as excinfo:
            gene_expression_profile(counts, sample_info, 'HTT', 'Diagnosis', join_mode='gene')

        assert not isinstance(excinfo.value, GeneNotFoundError)


class TestLookupErrors:
    """Tests for lookup failures."""

    def test_gene_not_found(self, counts, sample_info):
        """Test an unknown gene raises GeneNotFoundError."""
        with pytest.raises(GeneNotFoundError) as excinfo:
            gene_expression_profile(counts, sample_info, 'BRCA1', 'Diagnosis')

        assert excinfo.value.gene == 'BRCA1'
        assert isinstance(excinfo.value, IdentifierNotFoundError)

    def test_unknown_grouping_variable(self, counts, sample_info):
        """Test an unknown grouping variable raises IdentifierNotFoundError."""
        with pytest.raises(IdentifierNotFoundError):
            gene_expression_profile(counts, sample_info, 'HTT', 'Sex')

    def test_unknown_join_mode(self, counts, sample_info):
        """Test join modes other than sample/gene are rejected."""
        with pytest.raises(ValueError):
            gene_expression_profile(counts, sample_info, 'HTT', 'Diagnosis', join_mode='both')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
