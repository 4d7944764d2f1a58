"""Configuration management for the RNA-Seq explorer."""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


DEFAULT_CONFIG_PATH = Path.home() / ".rnaseq_explorer" / "config.yaml"


class FilterDefaults(BaseModel):
    """Initial values for the counts-matrix filter controls."""

    variance_percentile: float = Field(default=50, ge=0, le=100)
    min_nonzero: int = Field(default=10, ge=0, le=100)
    heatmap_rows: int = Field(default=50, ge=1)
    cluster_heatmap: bool = True


class DEDefaults(BaseModel):
    """Differential expression display settings."""

    padj_threshold: float = Field(default=0.05, gt=0.0, le=1.0)


class UploadConfig(BaseModel):
    """Upload surface settings."""

    max_upload_mb: float = Field(default=50.0, gt=0)
    allowed_extensions: List[str] = [".csv", ".txt"]

    @field_validator("allowed_extensions")
    @classmethod
    def _lowercase_extensions(cls, value: List[str]) -> List[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value]

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 ** 2)


class IdentifierConfig(BaseModel):
    """How sample information rows are matched against the counts matrix."""

    # Column of the sample information file holding the join key.
    # None means the first column (the row identifier) is used.
    sample_id_column: Optional[str] = None
    # "sample": metadata rows describe samples (counts columns).
    # "gene": metadata rows are looked up by gene identifier.
    join_mode: Literal["sample", "gene"] = "sample"
    hidden_columns: List[str] = ["symbol"]


class SessionConfig(BaseModel):
    """Lifetime of per-browser session state."""

    max_sessions: int = Field(default=100, ge=1)
    # Idle seconds before a session and its uploads are dropped
    ttl_seconds: float = Field(default=3600, gt=0)


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(env_prefix="RNASEQ_", env_nested_delimiter="__")

    filters: FilterDefaults = Field(default_factory=FilterDefaults)
    de: DEDefaults = Field(default_factory=DEDefaults)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    identifiers: IdentifierConfig = Field(default_factory=IdentifierConfig)
    sessions: SessionConfig = Field(default_factory=SessionConfig)

    # App settings
    app_title: str = "RNA-Seq Explorer"
    app_version: str = "0.1.0"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8050
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path):
        """Save configuration to YAML file."""
        data = self.model_dump()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        if DEFAULT_CONFIG_PATH.exists():
            _config = Config.from_yaml(DEFAULT_CONFIG_PATH)
        else:
            _config = Config()
    return _config


def set_config(config: Optional[Config]):
    """Set the global configuration instance (None resets to defaults)."""
    global _config
    _config = config


# Example config.yaml template
CONFIG_TEMPLATE = """
# RNA-Seq Explorer configuration
# Environment variables override these values, e.g. RNASEQ_FILTERS__MIN_NONZERO=3

filters:
  variance_percentile: 50    # Minimum variance percentile (0-100)
  min_nonzero: 10            # Minimum number of samples with counts > 0
  heatmap_rows: 50           # Leading filtered genes shown in the heatmap
  cluster_heatmap: true      # Reorder heatmap rows/columns by clustering

de:
  padj_threshold: 0.05       # Adjusted p-value cutoff for the volcano plot

upload:
  max_upload_mb: 50
  allowed_extensions: [".csv", ".txt"]

identifiers:
  sample_id_column: null     # Join key column (null = first column), e.g. SampleID
  join_mode: sample          # "sample" or "gene"
  hidden_columns: [symbol]   # Metadata columns not offered for plotting

sessions:
  max_sessions: 100          # Browser sessions kept in memory
  ttl_seconds: 3600          # Idle time before a session is dropped

app_title: RNA-Seq Explorer
debug: false
host: 127.0.0.1
port: 8050
log_level: INFO
"""
