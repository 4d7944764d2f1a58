"""Expression of a single gene split by a sample information variable."""

import logging
from typing import Dict, List, Literal

import pandas as pd
from pydantic import BaseModel, ConfigDict

from rnaseq_explorer.cleaning import normalize_identifier
from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.exceptions import GeneNotFoundError, IdentifierNotFoundError


logger = logging.getLogger(__name__)

JoinMode = Literal["sample", "gene"]

# Group shown for samples without a value for the grouping variable
MISSING_GROUP = "NA"


class GeneExpressionProfile(BaseModel):
    """Per-sample expression of one gene with the group each sample falls in."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    gene: str
    gene_label: str
    grouping_variable: str
    # columns: Sample, Expression, Group
    data: pd.DataFrame

    @property
    def groups(self) -> Dict[str, List[float]]:
        grouped = {}
        for group, values in self.data.groupby('Group', sort=True)['Expression']:
            grouped[str(group)] = [float(v) for v in values]
        return grouped


def group_label(value) -> str:
    return MISSING_GROUP if pd.isna(value) else str(value)


def gene_expression_profile(
    counts: TabularDataset,
    sample_info: TabularDataset,
    gene: str,
    grouping_variable: str,
    join_mode: JoinMode = "sample"
) -> GeneExpressionProfile:
    """
    Collect the expression values of ``gene`` grouped by ``grouping_variable``.

    Both datasets are expected to have gone through cleaning so that their
    identifiers are normalized.

    With ``join_mode="sample"`` each counts column is matched against the
    sample information identifiers and takes its own group. With
    ``join_mode="gene"`` the gene is looked up among the sample information
    identifiers and that single row's group is applied to every sample.

    Raises:
        GeneNotFoundError: gene absent from the counts matrix
        IdentifierNotFoundError: grouping variable unknown, no sample
            matched (sample mode) or gene absent from metadata (gene mode)
    """
    key = normalize_identifier(gene)
    if key not in counts.frame.index:
        raise GeneNotFoundError(gene)

    if grouping_variable not in sample_info.frame.columns:
        raise IdentifierNotFoundError(
            f"Grouping variable '{grouping_variable}' not found in sample information"
        )

    expression = counts.numeric().loc[key]
    samples = [str(s) for s in expression.index]

    if join_mode == "sample":
        matched = [s for s in samples if s in sample_info.frame.index]
        if not matched:
            raise IdentifierNotFoundError(
                "None of the counts matrix samples were found in the sample information identifiers"
            )
        unmatched = len(samples) - len(matched)
        if unmatched:
            logger.warning("%d samples have no sample information and are left out", unmatched)
        groups = sample_info.frame.loc[matched, grouping_variable]
        data = pd.DataFrame({
            'Sample': matched,
            'Expression': expression.loc[matched].to_numpy(dtype=float),
            'Group': [group_label(v) for v in groups],
        })
    elif join_mode == "gene":
        if key not in sample_info.frame.index:
            raise IdentifierNotFoundError(
                f"Gene '{gene}' not found in sample information identifiers"
            )
        group = sample_info.frame.loc[key, grouping_variable]
        data = pd.DataFrame({
            'Sample': samples,
            'Expression': expression.to_numpy(dtype=float),
            'Group': [group_label(group)] * len(samples),
        })
    else:
        raise ValueError(f"Unknown join mode: {join_mode}")

    logger.info(
        "Gene %s: %d samples in %d groups of '%s'",
        key, len(data), data['Group'].nunique(), grouping_variable
    )

    return GeneExpressionProfile(
        gene=key,
        gene_label=counts.display_label(key),
        grouping_variable=grouping_variable,
        data=data
    )
