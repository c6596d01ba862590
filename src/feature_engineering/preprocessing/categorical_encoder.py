"""
Categorical Encoder Module

One-hot and label encoding of categorical matrix columns. Columns are held in
an ordered arena with stable identities, so expanding one column never shifts
the identity of any other column.
"""

import logging
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from ..dataset import as_rows, column_count, require_non_empty
from ..exceptions import ShapeMismatchError, UnsupportedStrategyError

logger = logging.getLogger(__name__)

ENCODING_METHODS = ('onehot', 'label')


class Column:
    """One named column of cell values."""

    __slots__ = ('source_index', 'name', 'values')

    def __init__(self, source_index: int, name: str, values: List[Any]):
        self.source_index = source_index
        self.name = name
        self.values = values

    def __repr__(self):
        return f"Column({self.source_index}, {self.name!r})"


class ColumnArena:
    """Ordered collection of columns addressed by identity rather than position."""

    def __init__(self, columns: List[Column], row_count: int):
        self.columns = columns
        self.row_count = row_count

    @classmethod
    def from_rows(cls, rows: List[List[Any]], names: Sequence[str] = None) -> 'ColumnArena':
        width = column_count(rows)
        names = list(names) if names is not None else [f"feature_{i}" for i in range(width)]
        columns = [
            Column(i, names[i], [row[i] for row in rows])
            for i in range(width)
        ]
        return cls(columns, len(rows))

    def by_source(self, source_index: int) -> Column:
        for column in self.columns:
            if column.source_index == source_index:
                return column
        raise KeyError(source_index)

    def replace(self, column: Column, replacements: List[Column]):
        """Swap a column for zero or more columns at the same position."""
        position = self.columns.index(column)
        self.columns[position:position + 1] = replacements

    @property
    def names(self) -> List[str]:
        return [column.name for column in self.columns]

    def to_rows(self) -> List[List[Any]]:
        return [
            [column.values[r] for column in self.columns]
            for r in range(self.row_count)
        ]


def unique_in_order(values: Iterable[Any]) -> List[Any]:
    """Distinct values in first-appearance order."""
    return list(dict.fromkeys(values))


def _one_hot(arena: ColumnArena, column: Column) -> Dict[str, Any]:
    categories = unique_in_order(column.values)
    expanded = [
        Column(column.source_index, f"{column.name}={category}",
               [1 if value == category else 0 for value in column.values])
        for category in categories
    ]
    arena.replace(column, expanded)
    return {'type': 'onehot', 'values': categories}


def _label(column: Column) -> Dict[str, Any]:
    label_map = {value: index for index, value in enumerate(unique_in_order(column.values))}
    column.values = [label_map[value] for value in column.values]
    return {'type': 'label', 'map': label_map}


def encode_categorical(matrix, categorical_indices: Iterable[int],
                       method: str = 'onehot',
                       feature_names: Sequence[str] = None) -> Tuple[List[List[Any]], Dict[int, Dict[str, Any]]]:
    """
    Encode categorical columns as numbers.

    Args:
        matrix: Rectangular, non-empty matrix
        categorical_indices: Original indices of the categorical columns
        method: 'onehot' (one binary column per distinct value) or
            'label' (integer ids in first-appearance order)
        feature_names: Optional column names, used for the encoded column names

    Returns:
        Tuple of (encoded rows, encoding maps keyed by original column index)
    """
    encoded, encoding_maps, _ = encode_categorical_with_names(matrix, categorical_indices, method, feature_names)
    return encoded, encoding_maps


def encode_categorical_with_names(matrix, categorical_indices: Iterable[int],
                                  method: str = 'onehot',
                                  feature_names: Sequence[str] = None):
    """
    Same as encode_categorical, additionally returning the encoded column names.

    Returns:
        Tuple of (encoded rows, encoding maps, column names)
    """
    if method not in ENCODING_METHODS:
        raise UnsupportedStrategyError('encoding method', method, ENCODING_METHODS)

    rows = as_rows(matrix)
    require_non_empty(rows, 'categorical encoding')
    width = column_count(rows)

    if feature_names is not None and len(feature_names) != width:
        raise ShapeMismatchError(f"{len(feature_names)} feature names for {width} columns")

    indices = sorted(set(categorical_indices), reverse=True)
    for index in indices:
        if not 0 <= index < width:
            raise ShapeMismatchError(f"Categorical column index {index} out of range for {width} columns")

    arena = ColumnArena.from_rows(rows, feature_names)
    encoding_maps = {}
    for index in indices:
        column = arena.by_source(index)
        if method == 'onehot':
            encoding_maps[index] = _one_hot(arena, column)
        else:
            encoding_maps[index] = _label(column)
        logger.debug(f"Encoded column {index} ({column.name}) with {method}")

    logger.info(f"Encoded {len(indices)} categorical columns using {method}: "
                f"{width} -> {len(arena.columns)} columns")
    return arena.to_rows(), dict(sorted(encoding_maps.items())), arena.names


def expanded_feature_names(feature_names: Sequence[str], encoding_maps: Dict[int, Dict[str, Any]]) -> List[str]:
    """Column names after encoding, e.g. 'region=north' for one-hot columns."""
    names = []
    for index, name in enumerate(feature_names):
        encoding = encoding_maps.get(index)
        if encoding is not None and encoding['type'] == 'onehot':
            names.extend(f"{name}={value}" for value in encoding['values'])
        else:
            names.append(name)
    return names
