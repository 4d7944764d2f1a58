"""Generate example datasets for trying out the RNA-Seq explorer."""

from pathlib import Path

import numpy as np
import pandas as pd
from scipy import stats

from rnaseq_explorer.ingestion import write_table


def benjamini_hochberg(pvalues: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg adjusted p-values; untested genes stay NaN."""
    padj = np.full_like(pvalues, np.nan, dtype=float)
    present = ~np.isnan(pvalues)
    if present.any():
        padj[present] = stats.false_discovery_control(pvalues[present], method='bh')
    return padj


def generate_example_data(
    n_genes: int = 1000,
    n_control: int = 6,
    n_disease: int = 6,
    n_de_genes: int = 100,
    fold_change_range: tuple = (2, 5),
    output_dir: str = "examples",
    seed: int = 42
):
    """
    Generate a synthetic counts matrix, sample information and DE results.

    Args:
        n_genes: Total number of genes
        n_control: Number of control samples
        n_disease: Number of disease samples
        n_de_genes: Number of differentially expressed genes
        fold_change_range: (min, max) fold change for DE genes
        output_dir: Directory to save files
        seed: Random seed for reproducibility
    """
    rng = np.random.default_rng(seed)

    n_samples = n_control + n_disease

    gene_names = [f"Gene_{i:05d}" for i in range(n_genes)]
    sample_names = (
        [f"C_{i + 1}" for i in range(n_control)] +
        [f"HD_{i + 1}" for i in range(n_disease)]
    )

    # Base expression levels (log-normal distribution)
    base_expression = rng.lognormal(mean=4, sigma=2, size=n_genes)

    de_indices = rng.choice(n_genes, n_de_genes, replace=False)
    n_up = n_de_genes // 2
    fold_changes = np.ones(n_genes)
    fold_changes[de_indices[:n_up]] = rng.uniform(*fold_change_range, n_up)
    fold_changes[de_indices[n_up:]] = 1 / rng.uniform(*fold_change_range, n_de_genes - n_up)

    counts = np.zeros((n_genes, n_samples))
    for j in range(n_samples):
        expression = base_expression * (fold_changes if j >= n_control else 1)
        dispersion = rng.uniform(0.05, 0.2, n_genes)
        counts[:, j] = rng.negative_binomial(n=1 / dispersion, p=1 / (1 + expression * dispersion))

    # Simple library-size normalization, as in a normalized counts matrix
    size_factors = counts.sum(axis=0) / np.median(counts.sum(axis=0))
    normalized = np.round(counts / size_factors, 2)

    counts_df = pd.DataFrame(normalized, index=pd.Index(gene_names, name="gene"), columns=sample_names)

    sample_info = pd.DataFrame({
        'Diagnosis': ['Control'] * n_control + ['HD'] * n_disease,
        'Age': rng.integers(40, 85, n_samples),
        'PMI': np.round(rng.uniform(5, 30, n_samples), 1),
        'RIN': np.round(rng.uniform(6, 9.5, n_samples), 1),
        'Batch': [f"B{(i % 2) + 1}" for i in range(n_samples)]
    }, index=pd.Index(sample_names, name="SampleID"))

    # DE statistics: Welch t-test on log2 counts
    log_counts = np.log2(normalized + 1)
    control, disease = log_counts[:, :n_control], log_counts[:, n_control:]
    with np.errstate(invalid='ignore'):
        _, pvalues = stats.ttest_ind(disease, control, axis=1, equal_var=False)
    base_mean = normalized.mean(axis=1)
    de_results = pd.DataFrame({
        'baseMean': np.round(base_mean, 3),
        'log2FoldChange': disease.mean(axis=1) - control.mean(axis=1),
        'pvalue': pvalues,
        'padj': benjamini_hochberg(pvalues)
    }, index=pd.Index(gene_names, name="gene"))

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    write_table(counts_df, output_path / "normalized_counts.csv")
    write_table(counts_df, output_path / "normalized_counts.txt")
    write_table(sample_info, output_path / "sample_info.csv")
    write_table(sample_info, output_path / "sample_info.txt")
    write_table(de_results, output_path / "de_results.csv")

    print("✓ Generated example data:")
    print(f"  - Genes: {n_genes} ({n_de_genes} differentially expressed)")
    print(f"  - Samples: {n_samples} ({n_control} control, {n_disease} disease)")
    print(f"  - Files saved to: {output_path.absolute()}")

    return counts_df, sample_info, de_results


def generate_minimal_dataset(output_dir: str = "examples/minimal"):
    """Generate a minimal dataset for quick testing."""
    return generate_example_data(
        n_genes=100,
        n_control=3,
        n_disease=3,
        n_de_genes=10,
        fold_change_range=(3, 5),
        output_dir=output_dir,
        seed=42
    )


if __name__ == "__main__":
    print("Generating standard example dataset...")
    generate_example_data()

    print("\nGenerating minimal dataset...")
    generate_minimal_dataset()
