"""Tabular containers shared by ingestion, cleaning and filtering."""

from enum import Enum
from typing import Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field


class ColumnKind(str, Enum):
    """How a column is summarized and plotted."""
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


def infer_column_kinds(frame: pd.DataFrame) -> Dict[str, ColumnKind]:
    """Tag every column as numeric or categorical from its dtype."""
    kinds = {}
    for column in frame.columns:
        dtype = frame[column].dtype
        if pd.api.types.is_numeric_dtype(dtype) and not pd.api.types.is_bool_dtype(dtype):
            kinds[str(column)] = ColumnKind.NUMERIC
        else:
            kinds[str(column)] = ColumnKind.CATEGORICAL
    return kinds


class TabularDataset(BaseModel):
    """
    A table keyed by its row identifier.

    The frame index holds the row identifiers; ``column_kinds`` is resolved
    once when the table is loaded and carried along with every derived
    dataset. After cleaning, ``display_labels`` maps each normalized
    identifier back to the identifier as it appeared in the file.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    frame: pd.DataFrame
    column_kinds: Dict[str, ColumnKind] = Field(default_factory=dict)
    name: str = ""
    display_labels: Optional[Dict[str, str]] = None

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, name: str = "") -> "TabularDataset":
        frame = frame.copy()
        frame.columns = frame.columns.astype(str)
        return cls(frame=frame, column_kinds=infer_column_kinds(frame), name=name)

    @property
    def row_ids(self) -> List[str]:
        return [str(i) for i in self.frame.index]

    @property
    def columns(self) -> List[str]:
        return [str(c) for c in self.frame.columns]

    @property
    def numeric_columns(self) -> List[str]:
        return [c for c in self.columns if self.column_kinds.get(c) == ColumnKind.NUMERIC]

    @property
    def categorical_columns(self) -> List[str]:
        return [c for c in self.columns if self.column_kinds.get(c) == ColumnKind.CATEGORICAL]

    @property
    def shape(self):
        return self.frame.shape

    def numeric(self) -> pd.DataFrame:
        """Frame restricted to numeric columns."""
        return self.frame[self.numeric_columns]

    def display_label(self, row_id: str) -> str:
        if self.display_labels is None:
            return row_id
        return self.display_labels.get(row_id, row_id)

    def with_frame(self, frame: pd.DataFrame) -> "TabularDataset":
        """Derived dataset sharing this one's column kinds and labels."""
        kinds = {c: k for c, k in self.column_kinds.items() if c in frame.columns}
        labels = None
        if self.display_labels is not None:
            labels = {str(i): self.display_labels.get(str(i), str(i)) for i in frame.index}
        return TabularDataset(frame=frame, column_kinds=kinds, name=self.name, display_labels=labels)
