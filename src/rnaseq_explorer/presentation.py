"""
Renderer-agnostic views of the datasets.

Each function turns a dataset or a derived result into plain lists of
numbers and labels (histogram bins, bar counts, scatter points, table
rows). The Plotly figures in ``visualizations`` and the Dash tables in
``app`` are built from these.
"""

import math
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from rnaseq_explorer.datasets import ColumnKind, TabularDataset
from rnaseq_explorer.de_results import is_significant, neg_log10_pvalues
from rnaseq_explorer.exceptions import IdentifierNotFoundError
from rnaseq_explorer.expression import GeneExpressionProfile
from rnaseq_explorer.projection import CountsSummary, PCAResult, SampleInfoSummary


HISTOGRAM_BINS = 20
# Levels listed per categorical column before the rest are pooled
SUMMARY_LEVELS = 6


class HistogramData(BaseModel):
    kind: str = "histogram"
    variable: str
    edges: List[float]
    counts: List[int]


class BarData(BaseModel):
    kind: str = "bar"
    variable: str
    categories: List[str]
    counts: List[int]


class Point(BaseModel):
    x: float
    y: float
    label: str
    group: Optional[str] = None


class ScatterData(BaseModel):
    x_label: str
    y_label: str
    points: List[Point] = Field(default_factory=list)


class VolcanoData(ScatterData):
    padj_threshold: float


class BoxplotData(BaseModel):
    title: str
    x_label: str
    groups: Dict[str, List[float]]


class TableData(BaseModel):
    columns: List[str]
    rows: List[Dict[str, Any]]
    total_rows: int


def histogram(values: pd.Series, variable: str, bins: int = HISTOGRAM_BINS) -> HistogramData:
    present = pd.to_numeric(values, errors='coerce').dropna().to_numpy(dtype=float)
    present = present[np.isfinite(present)]
    if present.size == 0:
        return HistogramData(variable=variable, edges=[], counts=[])
    counts, edges = np.histogram(present, bins=bins)
    return HistogramData(
        variable=variable,
        edges=[float(e) for e in edges],
        counts=[int(c) for c in counts]
    )


def bar_counts(values: pd.Series, variable: str) -> BarData:
    counts = values.dropna().astype(str).value_counts(sort=False).sort_index()
    return BarData(
        variable=variable,
        categories=[str(c) for c in counts.index],
        counts=[int(c) for c in counts]
    )


def variable_distribution(dataset: TabularDataset, variable: str) -> Union[HistogramData, BarData]:
    """Histogram for a numeric column, bar counts for a categorical one."""
    if variable not in dataset.frame.columns:
        raise IdentifierNotFoundError(f"Column '{variable}' not found")
    values = dataset.frame[variable]
    if dataset.column_kinds.get(variable) == ColumnKind.NUMERIC:
        return histogram(values, variable)
    return bar_counts(values, variable)


def plottable_columns(dataset: TabularDataset, hidden: Optional[List[str]] = None) -> List[str]:
    """Columns offered in the variable selector."""
    hidden = set(hidden or [])
    return [
        c for c in dataset.columns
        if c not in hidden and not c.startswith('Unnamed:')
    ]


def _cell(value):
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        return None if math.isnan(value) else float(value)
    if isinstance(value, (np.bool_,)):
        return bool(value)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return value


def table_rows(dataset: TabularDataset, max_rows: Optional[int] = None, index_label: Optional[str] = None) -> TableData:
    """Rows of a dataset as dictionaries, identifier first."""
    frame = dataset.frame
    total = len(frame)
    if max_rows is not None:
        frame = frame.head(max_rows)

    id_col = index_label or frame.index.name or 'id'
    # Row identifiers never shadow a data column of the same name
    while id_col in dataset.columns:
        id_col = f"{id_col} (row)"
    columns = [id_col] + dataset.columns
    rows = []
    for row_id, values in zip(frame.index, frame.itertuples(index=False, name=None)):
        row = {id_col: dataset.display_label(str(row_id))}
        for column, value in zip(frame.columns, values):
            row[str(column)] = _cell(value)
        rows.append(row)
    return TableData(columns=columns, rows=rows, total_rows=total)


def pca_points(result: PCAResult) -> ScatterData:
    ratios = result.explained_variance_ratio
    coords = result.coordinates
    return ScatterData(
        x_label=f"PC1 ({ratios[0] * 100:.1f}%)",
        y_label=f"PC2 ({ratios[1] * 100:.1f}%)" if len(ratios) > 1 else "PC2",
        points=[
            Point(x=float(row['PC1']), y=float(row['PC2']), label=str(sample))
            for sample, row in coords.iterrows()
        ]
    )


def volcano_points(results: TabularDataset, padj_threshold: float = 0.05) -> VolcanoData:
    """log2 fold change against -log10(pvalue), grouped by padj significance."""
    frame = results.frame.dropna(subset=['log2FoldChange', 'pvalue'])
    scores = neg_log10_pvalues(frame['pvalue'])
    significant = is_significant(frame['padj'], padj_threshold)

    points = [
        Point(
            x=float(lfc),
            y=float(score),
            label=results.display_label(str(gene)),
            group="significant" if sig else "not significant"
        )
        for gene, lfc, score, sig in zip(frame.index, frame['log2FoldChange'], scores, significant)
    ]
    return VolcanoData(
        x_label="log2 Fold Change",
        y_label="-log10(p-value)",
        points=points,
        padj_threshold=padj_threshold
    )


def boxplot_data(profile: GeneExpressionProfile) -> BoxplotData:
    return BoxplotData(
        title=f"Expression of Gene: {profile.gene_label}",
        x_label=profile.grouping_variable,
        groups=profile.groups
    )


def _stat(value: Optional[float]) -> str:
    return "NA" if value is None else f"{value:.4g}"


def format_sample_summary(summary: SampleInfoSummary) -> str:
    """Plain-text column summary for the Sample Information tab."""
    lines = [f"Rows: {summary.n_rows}   Columns: {summary.n_columns}", ""]
    for column, stats in summary.numeric.items():
        lines.append(f"{column} (numeric)")
        if stats.count == 0:
            lines.append(f"  no values, {stats.missing} missing")
            continue
        lines.append(
            f"  Min. {_stat(stats.min)}  1st Qu. {_stat(stats.q1)}  Median {_stat(stats.median)}  "
            f"Mean {_stat(stats.mean)}  3rd Qu. {_stat(stats.q3)}  Max. {_stat(stats.max)}"
        )
        if stats.missing:
            lines.append(f"  NA's: {stats.missing}")
    for column, stats in summary.categorical.items():
        lines.append(f"{column} (categorical, {len(stats.levels)} levels)")
        for level, count in list(stats.levels.items())[:SUMMARY_LEVELS]:
            lines.append(f"  {level}: {count}")
        if len(stats.levels) > SUMMARY_LEVELS:
            lines.append(f"  (Other): {sum(list(stats.levels.values())[SUMMARY_LEVELS:])}")
        if stats.missing:
            lines.append(f"  NA's: {stats.missing}")
    return "\n".join(lines)


def format_counts_summary(summary: CountsSummary) -> str:
    lines = [f"Samples: {summary.n_samples}", f"Genes: {summary.n_genes}"]
    if summary.n_genes_total is not None:
        lines.append(f"Genes before filtering: {summary.n_genes_total}")
    if summary.variance_threshold is not None:
        lines.append(f"Variance threshold: {summary.variance_threshold:.4g}")
    return "\n".join(lines)
