"""
Feature Expansion & Selection Module

Polynomial feature generation (squares, pairwise interactions, cubes) and
variance-threshold feature selection.
"""

import logging
from itertools import combinations
from typing import List, Sequence, Tuple

import numpy as np

from ..dataset import as_rows, column_count
from ..exceptions import ShapeMismatchError, UnsupportedStrategyError

logger = logging.getLogger(__name__)

POLYNOMIAL_DEGREES = (1, 2, 3)


def _as_float_array(rows: List[List[float]], operation: str) -> np.ndarray:
    try:
        return np.asarray(rows, dtype=float).reshape(len(rows), column_count(rows))
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(f"{operation} requires numeric cells: {e}") from e


def polynomial_features(matrix, degree: int = 2) -> List[List[float]]:
    """
    Expand a matrix with polynomial terms of its original columns.

    Column layout for p original columns:
        degree 1: originals (unchanged)
        degree 2: originals, squares, products of each pair (i, j) with i < j
        degree 3: the degree 2 layout followed by cubes of the originals

    Args:
        matrix: Rectangular numeric matrix
        degree: 1, 2 or 3

    Returns:
        Expanded rows
    """
    if degree not in POLYNOMIAL_DEGREES:
        raise UnsupportedStrategyError('polynomial degree', degree, POLYNOMIAL_DEGREES)

    rows = as_rows(matrix)
    if degree == 1 or not rows:
        return rows

    X = _as_float_array(rows, 'Polynomial expansion')
    p = X.shape[1]

    blocks = [X, X ** 2]
    pairs = list(combinations(range(p), 2))
    if pairs:
        blocks.append(np.column_stack([X[:, i] * X[:, j] for i, j in pairs]))
    if degree >= 3:
        blocks.append(X ** 3)

    expanded = np.hstack(blocks)
    logger.info(f"Polynomial degree {degree}: {p} -> {expanded.shape[1]} columns")
    return expanded.tolist()


def polynomial_feature_names(feature_names: Sequence[str], degree: int = 2) -> List[str]:
    """Names matching the column layout of polynomial_features."""
    if degree not in POLYNOMIAL_DEGREES:
        raise UnsupportedStrategyError('polynomial degree', degree, POLYNOMIAL_DEGREES)
    names = list(feature_names)
    if degree == 1:
        return names
    expanded = names + [f"{name}^2" for name in names]
    expanded += [f"{names[i]}*{names[j]}" for i, j in combinations(range(len(names)), 2)]
    if degree >= 3:
        expanded += [f"{name}^3" for name in names]
    return expanded


def column_variances(matrix) -> List[float]:
    """Population variance of every column."""
    rows = as_rows(matrix)
    if not rows:
        return []
    X = _as_float_array(rows, 'Variance computation')
    return np.var(X, axis=0).tolist()


def select_by_variance(matrix, threshold: float = 0.01) -> Tuple[List[List[float]], List[int]]:
    """
    Keep columns whose population variance is at least the threshold.

    A threshold of 0 keeps every column, constant ones included.

    Args:
        matrix: Rectangular numeric matrix
        threshold: Minimum variance to retain a column

    Returns:
        Tuple of (reduced rows, retained original column indices)
    """
    rows = as_rows(matrix)
    if not rows:
        return [], []

    variances = column_variances(rows)
    selected_indices = [index for index, variance in enumerate(variances) if variance >= threshold]
    selected = [[row[index] for index in selected_indices] for row in rows]

    dropped = len(variances) - len(selected_indices)
    logger.info(f"Variance selection (threshold={threshold}): kept {len(selected_indices)}, dropped {dropped}")
    return selected, selected_indices
