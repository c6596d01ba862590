"""
Data Normalizer Module

Per-column min-max and z-score scaling of feature matrices. Returns the
scaling parameters alongside the scaled data so the same transform can be
reproduced on other matrices with the same columns.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from sklearn.base import BaseEstimator
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from ..dataset import as_rows, require_non_empty
from ..exceptions import ShapeMismatchError, UnsupportedStrategyError

logger = logging.getLogger(__name__)

NORMALIZATION_METHODS = ('minmax', 'zscore')


def _create_scaler(method: str) -> BaseEstimator:
    """
    Create a scaler for the given method.

    Both scikit-learn scalers map constant columns to 0: MinMaxScaler uses a
    unit scale for zero ranges and StandardScaler a unit scale for zero
    (population) standard deviations.
    """
    if method == 'minmax':
        return MinMaxScaler(feature_range=(0, 1))
    elif method == 'zscore':
        return StandardScaler(with_mean=True, with_std=True)
    raise UnsupportedStrategyError('normalization method', method, NORMALIZATION_METHODS)


def _scaling_params(scaler: BaseEstimator, method: str) -> Dict[int, Dict[str, float]]:
    params = {}
    if method == 'minmax':
        for col, (col_min, col_max, col_range) in enumerate(
                zip(scaler.data_min_, scaler.data_max_, scaler.data_range_)):
            params[col] = {'min': float(col_min), 'max': float(col_max), 'range': float(col_range)}
    else:
        for col, (col_mean, col_var) in enumerate(zip(scaler.mean_, scaler.var_)):
            params[col] = {'mean': float(col_mean), 'std': float(np.sqrt(col_var))}
    return params


def normalize(matrix, method: str = 'minmax') -> Tuple[List[List[float]], Dict[int, Dict[str, float]]]:
    """
    Scale every column of a numeric matrix.

    Args:
        matrix: Rectangular, non-empty numeric matrix (rows of numbers)
        method: 'minmax' for (x-min)/(max-min) or 'zscore' for (x-mean)/std

    Returns:
        Tuple of (normalized rows, scaling parameters keyed by column index)

    Raises:
        EmptyInputError: if the matrix has no rows or no columns
        ShapeMismatchError: if rows have unequal lengths or cells are not numeric
        UnsupportedStrategyError: for an unknown method
    """
    if method not in NORMALIZATION_METHODS:
        raise UnsupportedStrategyError('normalization method', method, NORMALIZATION_METHODS)

    rows = as_rows(matrix)
    require_non_empty(rows, 'normalization')

    try:
        X = np.asarray(rows, dtype=float)
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(f"Normalization requires numeric cells: {e}") from e

    scaler = _create_scaler(method)
    transformed = scaler.fit_transform(X)
    params = _scaling_params(scaler, method)

    # x - mean can leave rounding residue on a constant column; pin it to exactly 0
    constant = [int(col) for col in np.flatnonzero(np.ptp(X, axis=0) == 0)]
    if constant:
        transformed[:, constant] = 0.0
        for col in constant:
            params[col]['range' if method == 'minmax' else 'std'] = 0.0
        logger.debug(f"Constant columns mapped to 0 during {method} scaling: {constant}")
    logger.info(f"Normalized {X.shape[0]} rows x {X.shape[1]} columns using {method}")

    return transformed.tolist(), params


class DataNormalizer:
    """
    Stateful wrapper around normalize() that keeps the parameters of the last
    fit for reporting.
    """

    def __init__(self, method: str = 'minmax'):
        """
        Args:
            method: Normalization method ('minmax' or 'zscore')
        """
        if method not in NORMALIZATION_METHODS:
            raise UnsupportedStrategyError('normalization method', method, NORMALIZATION_METHODS)
        self.method = method
        self.scaling_params_: Dict[int, Dict[str, float]] = {}
        self.fitted_ = False

    def fit_transform(self, matrix) -> List[List[float]]:
        normalized, self.scaling_params_ = normalize(matrix, self.method)
        self.fitted_ = True
        return normalized

    def get_feature_info(self) -> Dict[str, Any]:
        """Get information about the fitted scaling."""
        if not self.fitted_:
            return {"status": "not_fitted"}
        return {
            "fitted": True,
            "method": self.method,
            "column_count": len(self.scaling_params_),
            "constant_columns": [
                col for col, p in self.scaling_params_.items()
                if p.get('range', p.get('std')) == 0
            ],
        }
