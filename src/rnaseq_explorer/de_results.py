"""Significance calls and volcano coordinates for uploaded DE results."""

import logging
from typing import Tuple

import numpy as np
import pandas as pd

from rnaseq_explorer.datasets import ColumnKind, TabularDataset
from rnaseq_explorer.exceptions import ValidationError
from rnaseq_explorer.validation import (
    DE_REQUIRED_COLUMNS,
    ValidationResult,
    validate_de_results
)


logger = logging.getLogger(__name__)


def load_de_results(results: TabularDataset) -> Tuple[TabularDataset, ValidationResult]:
    """
    Check that a table carries the DE result columns.

    Warnings (missing or out-of-range p-values) are logged and returned.

    Raises:
        ValidationError: a required column is absent or not numeric
    """
    validation = validate_de_results(results)
    if not validation.valid:
        raise ValidationError('; '.join(validation.errors))
    for warning in validation.warnings:
        logger.warning("%s: %s", results.name or 'DE results', warning.message)
    return results, validation


def is_significant(padj: pd.Series, padj_threshold: float = 0.05) -> pd.Series:
    """``padj < padj_threshold``; genes without an adjusted p-value are not significant."""
    return (padj < padj_threshold).fillna(False).astype(bool)


def classify_significance(results: TabularDataset, padj_threshold: float = 0.05) -> TabularDataset:
    """Copy of the table with a boolean ``significant`` column."""
    missing = [c for c in DE_REQUIRED_COLUMNS if c not in results.frame.columns]
    if missing:
        raise ValidationError(f"DE results are missing required columns: {', '.join(missing)}")

    frame = results.frame.copy()
    frame['significant'] = is_significant(frame['padj'], padj_threshold)
    classified = results.with_frame(frame)
    classified.column_kinds['significant'] = ColumnKind.CATEGORICAL

    logger.info(
        "%d of %d genes significant at padj < %g",
        int(frame['significant'].sum()), len(frame), padj_threshold
    )
    return classified


def neg_log10_pvalues(pvalues: pd.Series) -> pd.Series:
    """
    -log10(p). Zero p-values would be infinite; they are placed just above
    the largest finite value so they stay on the plot.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        scores = -np.log10(pvalues.astype(float))
    finite = scores.replace([np.inf, -np.inf], np.nan)
    max_score = finite.max()
    if pd.isna(max_score):
        max_score = 1.0
    return scores.replace(np.inf, max_score * 1.1 if max_score > 0 else 1.0)
