"""Identifier normalization for the gene expression lookup."""

import logging
from typing import Dict, Optional

import pandas as pd

from rnaseq_explorer.datasets import ColumnKind, TabularDataset
from rnaseq_explorer.exceptions import IdentifierNotFoundError


logger = logging.getLogger(__name__)

# Number of cleaned identifiers echoed to the log
PREVIEW_SIZE = 6


def normalize_identifier(value) -> str:
    """Canonical comparable form of an identifier: trimmed and lowercased."""
    return str(value).strip().lower()


def normalize_index(index: pd.Index) -> pd.Index:
    return pd.Index([normalize_identifier(v) for v in index], name=index.name)


def _deduplicate(frame: pd.DataFrame, what: str, source: str) -> pd.DataFrame:
    duplicated = frame.index.duplicated(keep='first')
    if duplicated.any():
        logger.warning(
            "%s: %d %s collide after normalization, keeping first occurrence: %s",
            source or '<dataset>', int(duplicated.sum()), what,
            ', '.join(sorted(set(frame.index[duplicated]))[:PREVIEW_SIZE])
        )
        frame = frame[~duplicated]
    return frame


def clean_counts_matrix(counts: TabularDataset) -> TabularDataset:
    """
    Normalize the gene and sample identifiers of a counts matrix.

    Values are untouched; the original gene identifiers are kept in
    ``display_labels`` so they can still be shown to the user.
    """
    frame = counts.frame.copy()
    original = list(frame.index.astype(str))
    frame.index = normalize_index(frame.index)

    labels: Dict[str, str] = {}
    for key, label in zip(frame.index, original):
        labels.setdefault(key, label)

    frame = _deduplicate(frame, 'gene identifiers', counts.name)

    # Sample names are normalized too so they can be matched against metadata
    sample_ids = pd.Index([normalize_identifier(c) for c in frame.columns])
    keep = ~sample_ids.duplicated(keep='first')
    if not keep.all():
        logger.warning(
            "%s: %d sample names collide after normalization, keeping first occurrence",
            counts.name or '<dataset>', int((~keep).sum())
        )
    kinds = {
        new: counts.column_kinds.get(old, ColumnKind.CATEGORICAL)
        for old, new, kept in zip(frame.columns, sample_ids, keep) if kept
    }
    frame = frame.iloc[:, keep].copy()
    frame.columns = sample_ids[keep]

    logger.info("Cleaned counts matrix row names: %s", list(frame.index[:PREVIEW_SIZE]))

    return TabularDataset(
        frame=frame,
        column_kinds=kinds,
        name=counts.name,
        display_labels={key: labels[key] for key in frame.index}
    )


def clean_sample_info(
    sample_info: TabularDataset,
    id_column: Optional[str] = None
) -> TabularDataset:
    """
    Key sample information by the normalized form of its identifier column.

    Args:
        sample_info: Raw sample information
        id_column: Column holding the identifiers. None, or the name of the
            index, uses the row identifiers read from the first column.

    Returns:
        TabularDataset indexed by normalized identifier. The identifier
        column itself keeps its original values.
    """
    frame = sample_info.frame.copy()

    if id_column is None or id_column == frame.index.name:
        original = list(frame.index.astype(str))
    elif id_column in frame.columns:
        original = list(frame[id_column].astype(str))
    else:
        raise IdentifierNotFoundError(
            f"Identifier column '{id_column}' not found in sample information"
        )

    frame.index = pd.Index([normalize_identifier(v) for v in original], name=frame.index.name)
    labels: Dict[str, str] = {}
    for key, label in zip(frame.index, original):
        labels.setdefault(key, label)

    frame = _deduplicate(frame, 'sample identifiers', sample_info.name)

    logger.info(
        "Cleaned sample information %s: %s",
        id_column or 'identifiers', list(frame.index[:PREVIEW_SIZE])
    )

    return TabularDataset(
        frame=frame,
        column_kinds=dict(sample_info.column_kinds),
        name=sample_info.name,
        display_labels={key: labels[key] for key in frame.index}
    )
