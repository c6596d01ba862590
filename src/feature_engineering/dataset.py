"""
Training Dataset Module

The value handed to model training, plus the small matrix helpers every
preprocessing step shares (shape validation, missing-cell detection).
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from .exceptions import EmptyInputError, ShapeMismatchError

logger = logging.getLogger(__name__)


def is_missing(value: Any) -> bool:
    """True for None and float NaN cells."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def as_rows(matrix) -> List[List[Any]]:
    """
    Convert a matrix-like input into a list of row lists.

    Accepts a list of sequences, a numpy array or a pandas DataFrame. The
    input is never modified; the returned rows are fresh lists.

    Raises:
        ShapeMismatchError: if rows have unequal lengths
    """
    if isinstance(matrix, pd.DataFrame):
        rows = matrix.astype(object).where(matrix.notna(), None).values.tolist()
    elif isinstance(matrix, np.ndarray):
        if matrix.ndim != 2:
            raise ShapeMismatchError(f"Expected a 2-dimensional array, got {matrix.ndim} dimensions")
        rows = matrix.tolist()
    else:
        rows = [list(row) for row in matrix]

    if rows:
        width = len(rows[0])
        for index, row in enumerate(rows):
            if len(row) != width:
                raise ShapeMismatchError(
                    f"Row {index} has {len(row)} columns, expected {width}"
                )
    return rows


def require_non_empty(rows: List[List[Any]], operation: str):
    """Raise EmptyInputError when there are no rows or no columns."""
    if not rows or not rows[0]:
        raise EmptyInputError(f"Empty data provided for {operation}")


def column_count(rows: List[List[Any]]) -> int:
    return len(rows[0]) if rows else 0


@dataclass
class TrainingDataset:
    """Feature rows, one target per row and the names describing both."""
    features: List[List[float]]
    target: List[float]
    feature_names: List[str]
    target_name: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if len(self.features) != len(self.target):
            raise ShapeMismatchError(
                f"{len(self.features)} feature rows but {len(self.target)} target values"
            )
        width = len(self.feature_names)
        for index, row in enumerate(self.features):
            if len(row) != width:
                raise ShapeMismatchError(
                    f"Feature row {index} has {len(row)} values, expected {width} ({self.target_name})"
                )

    @property
    def sample_count(self) -> int:
        return len(self.features)

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0

    @classmethod
    def empty(cls, feature_names: Sequence[str], target_name: str) -> 'TrainingDataset':
        return cls(features=[], target=[], feature_names=list(feature_names), target_name=target_name)

    def to_frame(self) -> pd.DataFrame:
        """Features as a DataFrame with the target as the last column."""
        df = pd.DataFrame(self.features, columns=self.feature_names)
        df[self.target_name] = self.target
        return df

    def summary(self) -> Dict[str, Any]:
        """JSON-serializable description of the dataset."""
        return {
            'target_name': self.target_name,
            'feature_names': list(self.feature_names),
            'feature_count': len(self.feature_names),
            'sample_count': self.sample_count,
            'metadata': dict(self.metadata),
        }
