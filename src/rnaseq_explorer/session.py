"""Per-session state: uploaded datasets and the values derived from them."""

import logging
import threading
import time
import uuid
from typing import Optional, Tuple

from cachetools import TTLCache

from rnaseq_explorer.cleaning import clean_counts_matrix, clean_sample_info
from rnaseq_explorer.config import Config, get_config
from rnaseq_explorer.datasets import TabularDataset
from rnaseq_explorer.de_results import classify_significance, load_de_results
from rnaseq_explorer.exceptions import MissingRequiredInputError, ValidationError
from rnaseq_explorer.expression import GeneExpressionProfile, gene_expression_profile
from rnaseq_explorer.filtering import FilterCriteria, FilterResult, filter_counts
from rnaseq_explorer.ingestion import parse_upload
from rnaseq_explorer.validation import (
    ValidationResult,
    validate_count_matrix,
    validate_sample_info
)


logger = logging.getLogger(__name__)


class SessionContext:
    """
    Datasets uploaded in one browser session and the results derived from them.

    Every upload replaces the dataset it targets and drops whatever was
    derived from the previous one. Derived values are recomputed on demand.
    """

    def __init__(self, config: Optional[Config] = None, session_id: Optional[str] = None):
        self.config = config or get_config()
        self.session_id = session_id or uuid.uuid4().hex

        self.sample_info: Optional[TabularDataset] = None
        self.counts: Optional[TabularDataset] = None
        self.filter_result: Optional[FilterResult] = None
        self.de_results: Optional[TabularDataset] = None
        self.gene_counts: Optional[TabularDataset] = None
        self.gene_sample_info: Optional[TabularDataset] = None
        self.gene_profile: Optional[GeneExpressionProfile] = None

    def _parse(self, contents: Optional[str], filename: Optional[str]) -> TabularDataset:
        if contents is None:
            raise MissingRequiredInputError("No file uploaded")
        return parse_upload(contents, filename, max_bytes=self.config.upload.max_upload_bytes)

    @staticmethod
    def require(dataset, what: str):
        if dataset is None:
            raise MissingRequiredInputError(f"Upload {what} first")
        return dataset

    # Sample Information tab

    def load_sample_info(self, contents: str, filename: str) -> Tuple[TabularDataset, ValidationResult]:
        self.sample_info = None
        dataset = self._parse(contents, filename)
        result = validate_sample_info(dataset)
        if result.valid:
            self.sample_info = dataset
        return dataset, result

    # Counts Matrix tab

    def load_counts(self, contents: str, filename: str) -> Tuple[TabularDataset, ValidationResult]:
        self.counts = None
        self.filter_result = None
        dataset = self._parse(contents, filename)
        result, _ = validate_count_matrix(dataset)
        if result.valid:
            self.counts = dataset
        return dataset, result

    def apply_filters(self, criteria: FilterCriteria) -> FilterResult:
        counts = self.require(self.counts, "a counts matrix")
        self.filter_result = filter_counts(counts, criteria)
        return self.filter_result

    # Differential Expression tab

    def load_de_results(self, contents: str, filename: str) -> Tuple[TabularDataset, ValidationResult]:
        self.de_results = None
        dataset, result = load_de_results(self._parse(contents, filename))
        self.de_results = classify_significance(
            dataset,
            padj_threshold=self.config.de.padj_threshold
        )
        return self.de_results, result

    # Gene Expression tab

    def load_gene_counts(self, contents: str, filename: str) -> TabularDataset:
        self.gene_counts = None
        self.gene_profile = None
        dataset = self._parse(contents, filename)
        result, _ = validate_count_matrix(dataset)
        if not result.valid:
            raise ValidationError('; '.join(result.errors))
        self.gene_counts = clean_counts_matrix(dataset)
        return self.gene_counts

    def load_gene_sample_info(self, contents: str, filename: str) -> TabularDataset:
        self.gene_sample_info = None
        self.gene_profile = None
        dataset = self._parse(contents, filename)
        id_column = self.config.identifiers.sample_id_column
        result = validate_sample_info(dataset, id_column=id_column)
        if not result.valid:
            raise ValidationError('; '.join(result.errors))
        self.gene_sample_info = clean_sample_info(dataset, id_column=id_column)
        return self.gene_sample_info

    def plot_gene(self, gene: Optional[str], grouping_variable: Optional[str]) -> GeneExpressionProfile:
        """
        Look up a gene for the boxplot.

        The previous profile is kept when the lookup fails.
        """
        counts = self.require(self.gene_counts, "a counts matrix")
        sample_info = self.require(self.gene_sample_info, "sample information")
        if not gene or not grouping_variable:
            raise MissingRequiredInputError("Select a gene and a grouping variable")

        profile = gene_expression_profile(
            counts,
            sample_info,
            gene,
            grouping_variable,
            join_mode=self.config.identifiers.join_mode
        )
        self.gene_profile = profile
        return profile


class SessionRegistry:
    """
    Maps session ids to their contexts.

    At most ``sessions.max_sessions`` contexts are kept; the least recently
    used one is dropped first, and any context idle for longer than
    ``sessions.ttl_seconds`` expires.
    """

    def __init__(self, config: Optional[Config] = None, timer=time.monotonic):
        self._config = config
        settings = (config or get_config()).sessions
        self._sessions = TTLCache(
            maxsize=settings.max_sessions,
            ttl=settings.ttl_seconds,
            timer=timer
        )
        self._lock = threading.Lock()

    def get(self, session_id: Optional[str]) -> SessionContext:
        if not session_id:
            raise MissingRequiredInputError("No session")
        with self._lock:
            context = self._sessions.get(session_id)
            if context is None:
                context = SessionContext(config=self._config, session_id=session_id)
                logger.info("Created session %s", session_id)
            # Re-inserting restarts the idle timer
            self._sessions[session_id] = context
            return context

    def drop(self, session_id: str):
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self):
        with self._lock:
            self._sessions.expire()
            return len(self._sessions)
