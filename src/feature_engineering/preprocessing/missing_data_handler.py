"""
Missing Data Handler Module

Drops or imputes missing cells (None/NaN) in feature matrices using
per-column mean, median or mode fill values.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List

import pandas as pd

from ..dataset import as_rows, column_count, is_missing
from ..exceptions import ShapeMismatchError, UnsupportedStrategyError

logger = logging.getLogger(__name__)

MISSING_STRATEGIES = ('mean', 'median', 'mode', 'drop')


def calculate_mode(values: List[Any]) -> Any:
    """Most frequent value; ties go to the value encountered first."""
    counts = Counter(values)
    mode = values[0]
    max_count = 0
    for value, count in counts.items():
        if count > max_count:
            max_count = count
            mode = value
    return mode


def _fill_value(values: List[Any], strategy: str) -> Any:
    if not values:
        return 0
    if strategy == 'mode':
        return calculate_mode(values)

    series = pd.Series(values)
    numeric = pd.to_numeric(series, errors='coerce')
    if numeric.isna().any():
        raise ShapeMismatchError(f"{strategy} imputation requires numeric cells, got {series[numeric.isna()].iloc[0]!r}")
    return float(numeric.mean()) if strategy == 'mean' else float(numeric.median())


class MissingDataHandler:
    """
    Missing value handler for feature matrices.

    Numeric columns use the configured strategy; columns flagged as
    categorical are always filled with their mode.
    """

    def __init__(self, strategy: str = 'mean', categorical_indices: Iterable[int] = ()):
        """
        Initialize missing data handler.

        Args:
            strategy: 'mean', 'median', 'mode' or 'drop'
            categorical_indices: Columns imputed with their mode regardless of strategy
        """
        if strategy not in MISSING_STRATEGIES:
            raise UnsupportedStrategyError('missing value strategy', strategy, MISSING_STRATEGIES)
        self.strategy = strategy
        self.categorical_indices = set(categorical_indices)
        self.fill_values_: Dict[int, Any] = {}
        self.dropped_rows_: List[int] = []

    def analyze_missing_patterns(self, matrix) -> Dict:
        """
        Count missing cells per column.

        Returns:
            Dictionary with total and per-column missing counts
        """
        rows = as_rows(matrix)
        width = column_count(rows)
        by_column = {}
        for col in range(width):
            count = sum(1 for row in rows if is_missing(row[col]))
            if count:
                by_column[col] = count
        total = sum(by_column.values())
        total_cells = len(rows) * width
        return {
            'total_missing': total,
            'missing_percentage': (total / total_cells) * 100 if total_cells else 0.0,
            'columns_with_missing': by_column,
            'rows_with_missing': sum(1 for row in rows if any(is_missing(v) for v in row)),
        }

    def handle_missing_data(self, matrix) -> List[List[Any]]:
        """
        Apply the configured strategy.

        Args:
            matrix: Rectangular matrix whose cells may be None/NaN

        Returns:
            New matrix without missing cells
        """
        rows = as_rows(matrix)
        self.fill_values_ = {}
        self.dropped_rows_ = []

        if self.strategy == 'drop':
            kept = []
            for index, row in enumerate(rows):
                if any(is_missing(value) for value in row):
                    self.dropped_rows_.append(index)
                else:
                    kept.append(row)
            if self.dropped_rows_:
                logger.info(f"Dropped {len(self.dropped_rows_)} rows containing missing values")
            return kept

        width = column_count(rows)
        for col in range(width):
            present = [row[col] for row in rows if not is_missing(row[col])]
            strategy = 'mode' if col in self.categorical_indices else self.strategy
            self.fill_values_[col] = _fill_value(present, strategy)

        filled = [
            [self.fill_values_[col] if is_missing(value) else value for col, value in enumerate(row)]
            for row in rows
        ]

        imputed = sum(1 for row in rows for value in row if is_missing(value))
        logger.info(f"Imputed {imputed} missing values using {self.strategy} strategy")
        return filled

    def get_imputation_summary(self) -> Dict:
        return {
            'strategy': self.strategy,
            'fill_values': dict(self.fill_values_),
            'dropped_rows': list(self.dropped_rows_),
        }


def handle_missing_values(matrix, strategy: str = 'mean',
                          categorical_indices: Iterable[int] = ()) -> List[List[Any]]:
    """
    Drop rows with missing cells, or fill missing cells per column.

    Args:
        matrix: Rectangular matrix whose cells may be None/NaN
        strategy: 'mean', 'median', 'mode' or 'drop'
        categorical_indices: Columns filled with their mode whatever the strategy

    Returns:
        New matrix; the input is not modified
    """
    return MissingDataHandler(strategy, categorical_indices).handle_missing_data(matrix)
