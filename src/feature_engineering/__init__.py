"""
Feature Engineering Package

Extraction of training datasets from business records (invoices,
transactions, projects, customers) and the preprocessing pipeline that turns
them into numeric training matrices.
"""

from .exceptions import (
    EmptyInputError,
    FeatureEngineeringError,
    ShapeMismatchError,
    UnsupportedStrategyError,
)
from .dataset import TrainingDataset
from .extraction import FeatureExtractor
from .preprocessing import (
    DataQualityAssessor,
    FeatureProcessor,
    QualityReport,
    assess_quality,
    encode_categorical,
    handle_missing_values,
    normalize,
    polynomial_features,
    process_business_data,
    select_by_variance,
)

__version__ = "1.0.0"
__all__ = [
    "EmptyInputError",
    "FeatureEngineeringError",
    "ShapeMismatchError",
    "UnsupportedStrategyError",
    "TrainingDataset",
    "FeatureExtractor",
    "DataQualityAssessor",
    "FeatureProcessor",
    "QualityReport",
    "assess_quality",
    "encode_categorical",
    "handle_missing_values",
    "normalize",
    "polynomial_features",
    "process_business_data",
    "select_by_variance",
]
