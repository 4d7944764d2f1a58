"""Descriptive summaries, PCA and heatmap matrices."""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field
from scipy.cluster.hierarchy import dendrogram, linkage
from sklearn.decomposition import PCA

from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.exceptions import InsufficientDataError
from rnaseq_explorer.filtering import FilterResult


logger = logging.getLogger(__name__)


class NumericSummary(BaseModel):
    count: int
    missing: int
    min: Optional[float] = None
    q1: Optional[float] = None
    median: Optional[float] = None
    mean: Optional[float] = None
    q3: Optional[float] = None
    max: Optional[float] = None


class CategoricalSummary(BaseModel):
    count: int
    missing: int
    levels: Dict[str, int] = Field(default_factory=dict)


class SampleInfoSummary(BaseModel):
    """Summary of every column of a sample information table."""
    n_rows: int
    n_columns: int
    numeric: Dict[str, NumericSummary] = Field(default_factory=dict)
    categorical: Dict[str, CategoricalSummary] = Field(default_factory=dict)


class CountsSummary(BaseModel):
    n_samples: int
    n_genes: int
    n_genes_total: Optional[int] = None
    variance_threshold: Optional[float] = None


class PCAResult(BaseModel):
    """First two principal components per sample."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    coordinates: pd.DataFrame
    explained_variance_ratio: List[float]


class HeatmapData(BaseModel):
    """Row-standardized expression values in display order."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    values: pd.DataFrame
    row_labels: List[str]
    clustered: bool = False


def _optional_float(value) -> Optional[float]:
    return None if pd.isna(value) else float(value)


def summarize_sample_info(sample_info: TabularDataset) -> SampleInfoSummary:
    """Quartiles for numeric columns and level counts for categorical ones."""
    frame = sample_info.frame
    summary = SampleInfoSummary(n_rows=frame.shape[0], n_columns=frame.shape[1])

    for column in sample_info.numeric_columns:
        values = frame[column]
        present = values.dropna()
        if present.empty:
            summary.numeric[column] = NumericSummary(count=0, missing=int(values.isna().sum()))
            continue
        q1, median, q3 = present.quantile([0.25, 0.5, 0.75])
        summary.numeric[column] = NumericSummary(
            count=int(present.size),
            missing=int(values.isna().sum()),
            min=_optional_float(present.min()),
            q1=_optional_float(q1),
            median=_optional_float(median),
            mean=_optional_float(present.mean()),
            q3=_optional_float(q3),
            max=_optional_float(present.max())
        )

    for column in sample_info.categorical_columns:
        values = frame[column]
        levels = values.dropna().astype(str).value_counts()
        summary.categorical[column] = CategoricalSummary(
            count=int(values.notna().sum()),
            missing=int(values.isna().sum()),
            levels={str(k): int(v) for k, v in levels.items()}
        )

    return summary


def summarize_counts(counts: TabularDataset, result: Optional[FilterResult] = None) -> CountsSummary:
    """Number of samples and genes, after filtering when a result is given."""
    if result is None:
        n_genes, n_samples = counts.numeric().shape
        return CountsSummary(n_samples=n_samples, n_genes=n_genes)

    threshold = result.variance_threshold
    return CountsSummary(
        n_samples=result.n_samples,
        n_genes=result.n_genes,
        n_genes_total=result.n_genes_total,
        variance_threshold=None if np.isnan(threshold) else threshold
    )


def compute_pca(matrix: TabularDataset, n_components: int = 2) -> PCAResult:
    """
    Project samples onto their first principal components.

    The matrix has genes as rows and samples as columns; it is transposed
    so that samples are the observations. Values are centered but not
    scaled.

    Raises:
        InsufficientDataError: fewer than 2 samples or fewer than 2 genes
    """
    data = matrix.numeric().T
    n_samples, n_genes = data.shape
    if n_samples < 2:
        raise InsufficientDataError(f"PCA needs at least 2 samples, got {n_samples}")
    if n_genes < 2:
        raise InsufficientDataError(f"PCA needs at least 2 genes, got {n_genes}")
    if data.isna().any().any():
        data = data.fillna(0)

    pca = PCA(n_components=n_components)
    coords = pca.fit_transform(data.to_numpy(dtype=float))

    coordinates = pd.DataFrame(
        coords[:, :n_components],
        index=data.index,
        columns=[f'PC{i + 1}' for i in range(n_components)]
    )
    ratios = [float(r) for r in np.nan_to_num(pca.explained_variance_ratio_)]
    logger.info("PCA on %d samples x %d genes, explained variance %s", n_samples, n_genes, ratios)

    return PCAResult(coordinates=coordinates, explained_variance_ratio=ratios)


def standardize_rows(frame: pd.DataFrame) -> pd.DataFrame:
    """Z-score each row; rows without spread become all zeros."""
    mean = frame.mean(axis=1)
    std = frame.std(axis=1, ddof=1)
    scaled = frame.sub(mean, axis=0).div(std.replace(0, np.nan), axis=0)
    return scaled.fillna(0.0)


def _leaf_order(values: np.ndarray) -> List[int]:
    tree = linkage(values, method='complete', metric='euclidean')
    return dendrogram(tree, no_plot=True)['leaves']


def build_heatmap_data(
    matrix: TabularDataset,
    top_n: int = 50,
    cluster: bool = True
) -> HeatmapData:
    """
    Standardized expression of the leading ``top_n`` rows of a matrix.

    Raises:
        InsufficientDataError: the matrix has no rows or no samples
    """
    numeric = matrix.numeric()
    if numeric.shape[0] < 1 or numeric.shape[1] < 1:
        raise InsufficientDataError("No genes left to draw a heatmap")

    data = standardize_rows(numeric.head(top_n).astype(float))

    clustered = False
    if cluster:
        gene_order = list(range(data.shape[0]))
        sample_order = list(range(data.shape[1]))
        if data.shape[0] > 1:
            gene_order = _leaf_order(data.to_numpy())
        if data.shape[1] > 1:
            sample_order = _leaf_order(data.T.to_numpy())
        data = data.iloc[gene_order, sample_order]
        clustered = True

    row_labels = [matrix.display_label(str(i)) for i in data.index]
    return HeatmapData(values=data, row_labels=row_labels, clustered=clustered)
