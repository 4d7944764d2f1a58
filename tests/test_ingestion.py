"""Unit tests for file ingestion."""

import base64

import pytest
import pandas as pd
import numpy as np

from rnaseq_explorer.datasets import ColumnKind
from rnaseq_explorer.exceptions import (
    UnsupportedFormatError,
    UploadTooLargeError,
    ValidationError
)
from rnaseq_explorer.ingestion import (
    delimiter_for,
    parse_upload,
    read_table,
    write_table
)


def encode_upload(text, mime="text/csv"):
    """Encode text the way dcc.Upload hands it to a callback."""
    return f"data:{mime};base64," + base64.b64encode(text.encode('utf-8')).decode('ascii')


@pytest.fixture
def counts_frame():
    """Create a small counts matrix."""
    rng = np.random.default_rng(42)
    frame = pd.DataFrame(
        rng.poisson(100, (20, 4)),
        index=pd.Index([f"Gene_{i}" for i in range(20)], name="gene"),
        columns=[f"Sample_{i}" for i in range(4)]
    )
    return frame


class TestReadTable:
    """Tests for read_table."""

    def test_read_csv(self, tmp_path, counts_frame):
        """Test reading a comma-delimited .csv file."""
        filepath = tmp_path / "counts.csv"
        counts_frame.to_csv(filepath)

        dataset = read_table(filepath)

        assert dataset.shape == counts_frame.shape
        assert dataset.columns == list(counts_frame.columns)
        assert dataset.row_ids == list(counts_frame.index)
        assert dataset.name == "counts.csv"

    def test_read_txt(self, tmp_path, counts_frame):
        """Test reading a tab-delimited .txt file."""
        filepath = tmp_path / "counts.txt"
        counts_frame.to_csv(filepath, sep='\t')

        dataset = read_table(filepath)

        assert dataset.shape == counts_frame.shape

    def test_extension_case_insensitive(self, tmp_path, counts_frame):
        """Test .CSV is treated like .csv."""
        filepath = tmp_path / "COUNTS.CSV"
        counts_frame.to_csv(filepath)

        assert read_table(filepath).shape == counts_frame.shape

    @pytest.mark.parametrize("extension", [".tsv", ".xlsx", ".json", ""])
    def test_unsupported_extension(self, extension):
        """Test any extension other than .csv/.txt is rejected."""
        with pytest.raises(UnsupportedFormatError):
            delimiter_for(extension)

    def test_unsupported_file(self, tmp_path, counts_frame):
        """Test reading a .tsv path fails with UnsupportedFormatError."""
        filepath = tmp_path / "counts.tsv"
        counts_frame.to_csv(filepath, sep='\t')

        with pytest.raises(UnsupportedFormatError):
            read_table(filepath)

    def test_column_kinds(self, tmp_path):
        """Test numeric and categorical columns are tagged at load time."""
        filepath = tmp_path / "samples.csv"
        pd.DataFrame({
            'age': [40, 55],
            'pmi': [10.5, 12.0],
            'diagnosis': ['HD', 'Control']
        }, index=pd.Index(['S1', 'S2'], name='SampleID')).to_csv(filepath)

        dataset = read_table(filepath)

        assert dataset.column_kinds == {
            'age': ColumnKind.NUMERIC,
            'pmi': ColumnKind.NUMERIC,
            'diagnosis': ColumnKind.CATEGORICAL
        }
        assert dataset.numeric_columns == ['age', 'pmi']

    def test_empty_file(self, tmp_path):
        """Test an empty file fails with ValidationError."""
        filepath = tmp_path / "empty.csv"
        filepath.write_text("")

        with pytest.raises(ValidationError):
            read_table(filepath)

    def test_round_trip(self, tmp_path, counts_frame):
        """Test writing then reading a counts matrix gives the same data."""
        for name in ("counts.csv", "counts.txt"):
            path = write_table(counts_frame, tmp_path / name)
            dataset = read_table(path)

            pd.testing.assert_frame_equal(dataset.frame, counts_frame)


class TestParseUpload:
    """Tests for browser uploads."""

    def test_csv_upload(self, counts_frame):
        """Test a base64 .csv upload is parsed."""
        dataset = parse_upload(encode_upload(counts_frame.to_csv()), "counts.csv")

        assert dataset.shape == counts_frame.shape
        assert dataset.name == "counts.csv"

    def test_txt_upload(self, counts_frame):
        """Test a base64 tab-delimited upload is parsed."""
        contents = encode_upload(counts_frame.to_csv(sep='\t'), mime="text/plain")

        assert parse_upload(contents, "counts.txt").shape == counts_frame.shape

    def test_unsupported_checked_first(self):
        """Test the extension is rejected before the payload is decoded."""
        with pytest.raises(UnsupportedFormatError):
            parse_upload("not a data uri", "counts.xlsx")

    def test_too_large(self, counts_frame):
        """Test uploads over the ceiling are refused."""
        with pytest.raises(UploadTooLargeError):
            parse_upload(encode_upload(counts_frame.to_csv()), "counts.csv", max_bytes=10)

    def test_malformed(self):
        """Test an upload without a payload separator is rejected."""
        with pytest.raises(ValidationError):
            parse_upload("garbage", "counts.csv")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
