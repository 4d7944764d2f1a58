"""Data validation for counts matrices, sample information and DE results."""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field

from rnaseq_explorer.datasets import TabularDataset


DE_REQUIRED_COLUMNS = ('log2FoldChange', 'pvalue', 'padj')


class ValidationWarning(BaseModel):
    """Warning message from validation."""
    message: str
    severity: str = Field(default="warning")  # warning, info


class ValidationResult(BaseModel):
    """Result of data validation."""
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    summary: Dict[str, Any] = Field(default_factory=dict)


class CountMatrixSchema(BaseModel):
    """Shape of an uploaded counts matrix."""
    n_genes: int
    n_samples: int
    sample_ids: List[str]
    ignored_columns: List[str]
    has_negative: bool
    has_missing: bool


def validate_count_matrix(counts: TabularDataset) -> Tuple[ValidationResult, Optional[CountMatrixSchema]]:
    """
    Validate a counts matrix.

    Non-numeric columns (e.g. a gene symbol column) are reported and
    ignored rather than rejected.

    Args:
        counts: Counts matrix, genes as rows

    Returns:
        Tuple of (ValidationResult, CountMatrixSchema)
    """
    errors = []
    warnings = []

    if counts.frame.empty:
        errors.append("Count matrix is empty")
        return ValidationResult(valid=False, errors=errors), None

    numeric = counts.numeric()
    ignored = counts.categorical_columns
    n_genes, n_samples = numeric.shape

    if n_samples == 0:
        errors.append("Count matrix has no numeric sample columns")
        return ValidationResult(valid=False, errors=errors), None

    if ignored:
        warnings.append(ValidationWarning(
            message=f"Ignoring non-numeric columns: {', '.join(ignored)}",
            severity="info"
        ))

    if n_samples < 2:
        warnings.append(ValidationWarning(
            message="Only one sample column: variance filtering and PCA need at least 2 samples",
            severity="warning"
        ))

    has_negative = bool((numeric < 0).any().any())
    if has_negative:
        errors.append("Count matrix contains negative values")

    has_missing = bool(numeric.isna().any().any())
    if has_missing:
        n_missing = int(numeric.isna().sum().sum())
        warnings.append(ValidationWarning(
            message=f"Count matrix contains {n_missing} missing values; "
                    "they are skipped when computing row variance",
            severity="warning"
        ))

    if counts.frame.index.duplicated().any():
        n_duplicates = int(counts.frame.index.duplicated().sum())
        errors.append(f"Count matrix contains {n_duplicates} duplicate gene IDs")

    schema = CountMatrixSchema(
        n_genes=n_genes,
        n_samples=n_samples,
        sample_ids=list(numeric.columns),
        ignored_columns=ignored,
        has_negative=has_negative,
        has_missing=has_missing
    )

    summary = {
        "n_genes": n_genes,
        "n_samples": n_samples,
        "total_counts": float(np.nansum(numeric.to_numpy(dtype=float)))
    }

    result = ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
        summary=summary
    )

    return result, schema


def validate_sample_info(
    sample_info: TabularDataset,
    id_column: Optional[str] = None
) -> ValidationResult:
    """
    Validate sample information.

    Args:
        sample_info: Sample information table
        id_column: Identifier column required by the gene expression view

    Returns:
        ValidationResult
    """
    errors = []
    warnings = []
    frame = sample_info.frame

    if len(frame.index) == 0:
        errors.append("Sample information is empty")
        return ValidationResult(valid=False, errors=errors)

    if id_column is not None and id_column != frame.index.name and id_column not in frame.columns:
        errors.append(f"Identifier column '{id_column}' not found in sample information")

    if frame.index.duplicated().any():
        n_duplicates = int(frame.index.duplicated().sum())
        warnings.append(ValidationWarning(
            message=f"Sample information contains {n_duplicates} duplicate row identifiers",
            severity="warning"
        ))

    if len(frame.columns) == 0:
        warnings.append(ValidationWarning(
            message="Sample information has no columns besides the identifier",
            severity="info"
        ))

    summary = {
        "n_rows": len(frame),
        "n_columns": len(frame.columns),
        "columns": list(frame.columns)
    }

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
        summary=summary
    )


def validate_de_results(results: TabularDataset) -> ValidationResult:
    """
    Validate a differential expression results table.

    ``log2FoldChange``, ``pvalue`` and ``padj`` must be present and numeric.
    Missing values (DESeq2 reports NA for filtered genes) and p-values
    outside (0, 1] are warnings.
    """
    errors = []
    warnings = []
    frame = results.frame

    missing = [c for c in DE_REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        errors.append(f"DE results are missing required columns: {', '.join(missing)}")
        return ValidationResult(valid=False, errors=errors)

    for column in DE_REQUIRED_COLUMNS:
        if column not in results.numeric_columns:
            errors.append(f"Column '{column}' must be numeric")
    if errors:
        return ValidationResult(valid=False, errors=errors)

    for column in ('pvalue', 'padj'):
        values = frame[column]
        n_missing = int(values.isna().sum())
        if n_missing:
            warnings.append(ValidationWarning(
                message=f"{n_missing} genes have no {column}",
                severity="info"
            ))
        out_of_range = int(((values <= 0) | (values > 1)).sum())
        if out_of_range:
            warnings.append(ValidationWarning(
                message=f"{out_of_range} values of {column} are outside (0, 1]",
                severity="warning"
            ))

    summary = {
        "n_genes": len(frame),
        "columns": list(frame.columns)
    }

    return ValidationResult(
        valid=True,
        errors=errors,
        warnings=warnings,
        summary=summary
    )
