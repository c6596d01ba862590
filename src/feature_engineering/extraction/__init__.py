"""
Extraction Module

Aggregation of business records into per-period (or per-entity) training rows.
"""

from .feature_extractor import FeatureExtractor

__all__ = ["FeatureExtractor"]
