"""RNA-Seq Explorer - Interactive dashboard for RNA-Seq expression datasets."""

__version__ = "0.1.0"

from .config import get_config, Config
from .ingestion import read_table, parse_upload
from .cleaning import clean_counts_matrix, clean_sample_info
from .filtering import FilterCriteria, filter_counts
from .projection import compute_pca, build_heatmap_data
from .session import SessionContext

__all__ = [
    'get_config',
    'Config',
    'read_table',
    'parse_upload',
    'clean_counts_matrix',
    'clean_sample_info',
    'FilterCriteria',
    'filter_counts',
    'compute_pca',
    'build_heatmap_data',
    'SessionContext'
]
