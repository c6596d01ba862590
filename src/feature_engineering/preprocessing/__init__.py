"""
Preprocessing Module

Preprocessing components for business feature matrices.
Includes missing value handling, categorical encoding, normalization,
polynomial expansion, variance selection and data quality assessment.
"""

from .missing_data_handler import MissingDataHandler, handle_missing_values
from .categorical_encoder import encode_categorical, expanded_feature_names
from .data_normalizer import DataNormalizer, normalize
from .feature_selection import polynomial_features, polynomial_feature_names, select_by_variance
from .outlier_detection import OutlierDetector
from .data_quality import (
    ConstantDimension,
    DataQualityAssessor,
    Issue,
    QualityDimension,
    QualityReport,
    assess_quality,
)
from .data_processor import FeatureProcessor, process_business_data

__version__ = "1.0.0"
__all__ = [
    "MissingDataHandler",
    "handle_missing_values",
    "encode_categorical",
    "expanded_feature_names",
    "DataNormalizer",
    "normalize",
    "polynomial_features",
    "polynomial_feature_names",
    "select_by_variance",
    "OutlierDetector",
    "ConstantDimension",
    "DataQualityAssessor",
    "Issue",
    "QualityDimension",
    "QualityReport",
    "assess_quality",
    "FeatureProcessor",
    "process_business_data",
]
