"""
Outlier Detection Module

IQR-rule outlier detection over the numeric cells of matrix columns.
"""

import math
import logging
from numbers import Number
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from ..dataset import as_rows, column_count

logger = logging.getLogger(__name__)


def is_numeric_cell(value: Any) -> bool:
    """Real numbers only: booleans and NaN do not count."""
    if isinstance(value, bool) or not isinstance(value, Number):
        return False
    try:
        return not math.isnan(value)
    except TypeError:
        return False


def calculate_quartile(values: Sequence[float], quartile: float) -> float:
    """Linear-interpolated quantile over the sorted values."""
    return float(np.percentile(np.asarray(values, dtype=float), quartile * 100, method='linear'))


def iqr_bounds(values: Sequence[float], multiplier: float = 1.5) -> Tuple[float, float]:
    """
    Acceptable range [Q1 - k*IQR, Q3 + k*IQR].

    Args:
        values: Numeric values (non-empty)
        multiplier: IQR multiplier k

    Returns:
        Tuple of (lower bound, upper bound)
    """
    q1 = calculate_quartile(values, 0.25)
    q3 = calculate_quartile(values, 0.75)
    iqr = q3 - q1
    return q1 - multiplier * iqr, q3 + multiplier * iqr


class OutlierDetector:
    """IQR outlier detector applied column by column."""

    def __init__(self, multiplier: float = 1.5):
        """
        Initialize outlier detector.

        Args:
            multiplier: IQR multiplier for the acceptable range
        """
        self.multiplier = multiplier

    def detect_column_outliers(self, values: Sequence[Any]) -> List[float]:
        """Return the numeric values lying outside the IQR bounds."""
        numeric = [float(v) for v in values if is_numeric_cell(v)]
        if not numeric:
            return []
        lower, upper = iqr_bounds(numeric, self.multiplier)
        return [v for v in numeric if v < lower or v > upper]

    def detect_outliers(self, matrix) -> Dict[int, int]:
        """
        Count outliers per column.

        Columns are keyed by index, so columns sharing a name are counted
        separately.

        Args:
            matrix: Rectangular matrix; non-numeric cells are ignored

        Returns:
            Ordered mapping of column index to outlier count, for every column
            holding at least one numeric value
        """
        rows = as_rows(matrix)
        counts = {}
        for col in range(column_count(rows)):
            column_values = [row[col] for row in rows]
            if not any(is_numeric_cell(v) for v in column_values):
                continue
            counts[col] = len(self.detect_column_outliers(column_values))

        total = sum(counts.values())
        if total:
            logger.info(f"Detected {total} outlier values across {sum(1 for c in counts.values() if c)} columns")
        return counts


def column_name(feature_names: Sequence[str], index: int) -> str:
    """Display name of a column, falling back to feature_<index>."""
    if feature_names is not None and index < len(feature_names) and feature_names[index]:
        return str(feature_names[index])
    return f"feature_{index}"
