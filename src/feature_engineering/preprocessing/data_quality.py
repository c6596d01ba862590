"""
Data Quality Module

Scores a matrix snapshot on completeness, uniqueness and pluggable quality
dimensions, and itemizes the issues found (missing values, duplicate rows,
outliers). Assessment never mutates the data.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..dataset import as_rows, column_count, is_missing
from .outlier_detection import OutlierDetector, column_name

logger = logging.getLogger(__name__)

MISSING_VALUES = 'MISSING_VALUES'
DUPLICATE_ROWS = 'DUPLICATE_ROWS'
OUTLIERS = 'OUTLIERS'

HIGH = 'HIGH'
MEDIUM = 'MEDIUM'
LOW = 'LOW'


@dataclass
class Issue:
    """One itemized data quality problem."""
    type: str
    description: str
    severity: str
    count: int


@dataclass
class QualityReport:
    """Quality scores in [0, 1] plus the issues behind them."""
    completeness: float
    accuracy: float
    consistency: float
    timeliness: float
    validity: float
    uniqueness: float
    overall: float
    issues: List[Issue] = field(default_factory=list)

    def issues_of_type(self, issue_type: str) -> List[Issue]:
        return [issue for issue in self.issues if issue.type == issue_type]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QualityDimension:
    """
    A named quality score computed from a matrix snapshot.

    Subclasses override score(); the default dimensions are constants until
    real accuracy/consistency/timeliness/validity checks exist.
    """

    name = 'dimension'

    def score(self, rows: List[List[Any]], feature_names: Sequence[str]) -> float:
        raise NotImplementedError


class ConstantDimension(QualityDimension):
    """Fixed score, independent of the data."""

    def __init__(self, name: str, value: float):
        self.name = name
        self.value = value

    def score(self, rows, feature_names) -> float:
        return self.value

    def __repr__(self):
        return f"ConstantDimension({self.name!r}, {self.value})"


def default_dimensions() -> Dict[str, QualityDimension]:
    return {
        'accuracy': ConstantDimension('accuracy', 0.9),
        'consistency': ConstantDimension('consistency', 0.95),
        'timeliness': ConstantDimension('timeliness', 0.9),
        'validity': ConstantDimension('validity', 0.9),
    }


def _is_missing_cell(value: Any) -> bool:
    return is_missing(value) or value == ''


def _cell_key(value: Any) -> Any:
    # NaN never equals itself, so normalize missing cells before comparing rows
    if is_missing(value):
        return None
    try:
        hash(value)
    except TypeError:
        return (type(value).__name__, repr(value))
    return value


def _row_key(row: List[Any]) -> tuple:
    return tuple(_cell_key(value) for value in row)


class DataQualityAssessor:
    """Composite data quality scoring for feature matrices."""

    def __init__(self, dimensions: Dict[str, QualityDimension] = None, outlier_multiplier: float = 1.5):
        """
        Initialize the assessor.

        Args:
            dimensions: Overrides for the accuracy, consistency, timeliness and
                validity dimensions; missing entries keep their defaults
            outlier_multiplier: IQR multiplier for outlier detection
        """
        self.dimensions = {**default_dimensions(), **(dimensions or {})}
        self.outlier_detector = OutlierDetector(outlier_multiplier)

    def assess(self, matrix, feature_names: Sequence[str] = None) -> QualityReport:
        """
        Assess a matrix snapshot.

        Args:
            matrix: Rectangular matrix; cells may be numbers, strings or None
            feature_names: Column names used in outlier issue descriptions

        Returns:
            QualityReport with scores and itemized issues
        """
        rows = as_rows(matrix)
        row_count = len(rows)
        total_cells = row_count * column_count(rows)

        missing_count = sum(1 for row in rows for value in row if _is_missing_cell(value))

        seen = set()
        duplicate_count = 0
        for row in rows:
            key = _row_key(row)
            if key in seen:
                duplicate_count += 1
            else:
                seen.add(key)

        outlier_counts = self.outlier_detector.detect_outliers(rows)

        completeness = (total_cells - missing_count) / total_cells if total_cells else 1.0
        uniqueness = (row_count - duplicate_count) / row_count if row_count else 1.0

        issues = []
        if missing_count > 0:
            issues.append(Issue(
                type=MISSING_VALUES,
                description=f"{missing_count} missing values detected",
                severity=HIGH if missing_count > total_cells * 0.1 else MEDIUM,
                count=missing_count,
            ))

        if duplicate_count > 0:
            issues.append(Issue(
                type=DUPLICATE_ROWS,
                description=f"{duplicate_count} duplicate rows detected",
                severity=HIGH if duplicate_count > row_count * 0.05 else MEDIUM,
                count=duplicate_count,
            ))

        for col, count in outlier_counts.items():
            if count > 0:
                issues.append(Issue(
                    type=OUTLIERS,
                    description=f"{count} outliers detected in {column_name(feature_names, col)}",
                    severity=HIGH if count > row_count * 0.1 else LOW,
                    count=count,
                ))

        names = list(feature_names) if feature_names is not None else []
        scores = {name: float(dim.score(rows, names)) for name, dim in self.dimensions.items()}

        overall = (completeness + scores['accuracy'] + scores['consistency']
                   + scores['timeliness'] + scores['validity'] + uniqueness) / 6

        report = QualityReport(
            completeness=completeness,
            accuracy=scores['accuracy'],
            consistency=scores['consistency'],
            timeliness=scores['timeliness'],
            validity=scores['validity'],
            uniqueness=uniqueness,
            overall=overall,
            issues=issues,
        )

        logger.info(f"Data quality: overall={overall:.3f}, completeness={completeness:.3f}, "
                    f"uniqueness={uniqueness:.3f}, issues={len(issues)}")
        return report


def assess_quality(matrix, feature_names: Sequence[str] = None,
                   dimensions: Optional[Dict[str, QualityDimension]] = None) -> QualityReport:
    """Assess a matrix snapshot with the default (or given) quality dimensions."""
    return DataQualityAssessor(dimensions).assess(matrix, feature_names)
