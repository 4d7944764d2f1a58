"""Variance and non-zero filtering of counts matrices."""

import logging

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from rnaseq_explorer.datasets import TabularDataset


logger = logging.getLogger(__name__)


class FilterCriteria(BaseModel):
    """Thresholds chosen with the filter sliders."""
    model_config = ConfigDict(frozen=True)

    variance_percentile: float = Field(default=50, ge=0, le=100)
    min_nonzero: int = Field(default=10, ge=0, le=100)


class FilterResult(BaseModel):
    """Filtered counts matrix together with the statistics that produced it."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    matrix: TabularDataset
    criteria: FilterCriteria
    variances: pd.Series
    nonzero_counts: pd.Series
    variance_threshold: float
    n_genes_total: int

    @property
    def n_genes(self) -> int:
        return self.matrix.frame.shape[0]

    @property
    def n_samples(self) -> int:
        return self.matrix.frame.shape[1]

    @property
    def is_empty(self) -> bool:
        return self.n_genes == 0


def row_statistics(numeric: pd.DataFrame) -> pd.DataFrame:
    """
    Per-row sample variance and number of strictly positive values.

    Variance is NaN for rows with fewer than two numeric observations.
    """
    return pd.DataFrame({
        'variance': numeric.var(axis=1, ddof=1, skipna=True),
        'nonzero': (numeric > 0).sum(axis=1).astype(int),
    }, index=numeric.index)


def variance_threshold(variances: pd.Series, percentile: float) -> float:
    """Linear-interpolation percentile of the defined variances."""
    defined = variances.dropna().to_numpy(dtype=float)
    if defined.size == 0:
        return float('nan')
    return float(np.percentile(defined, percentile, method='linear'))


def filter_counts(counts: TabularDataset, criteria: FilterCriteria) -> FilterResult:
    """
    Keep genes whose variance reaches the percentile threshold and that are
    expressed in enough samples.

    Row order is preserved. An empty result is valid.

    Args:
        counts: Counts matrix, genes as rows and samples as columns
        criteria: Variance percentile and minimum non-zero sample count

    Returns:
        FilterResult holding the retained rows
    """
    numeric = counts.numeric()
    stats = row_statistics(numeric)
    threshold = variance_threshold(stats['variance'], criteria.variance_percentile)

    # NaN variance compares False, so rows without a defined variance drop out
    keep = (stats['variance'] >= threshold) & (stats['nonzero'] >= criteria.min_nonzero)
    filtered = numeric.loc[keep.to_numpy()]

    logger.info(
        "Filter (variance >= %.4g [p%g], nonzero >= %d): kept %d of %d genes",
        threshold, criteria.variance_percentile, criteria.min_nonzero,
        filtered.shape[0], numeric.shape[0]
    )

    return FilterResult(
        matrix=counts.with_frame(filtered),
        criteria=criteria,
        variances=stats['variance'],
        nonzero_counts=stats['nonzero'],
        variance_threshold=threshold,
        n_genes_total=numeric.shape[0]
    )
