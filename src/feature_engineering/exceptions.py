"""
Feature Engineering Exceptions

Local, synchronous failures raised by the extraction and preprocessing steps.
"""


class FeatureEngineeringError(Exception):
    """Base class for all feature engineering errors."""


class EmptyInputError(FeatureEngineeringError, ValueError):
    """Raised when a transform that needs a non-empty matrix receives none."""


class ShapeMismatchError(FeatureEngineeringError, ValueError):
    """Raised when matrix rows have unequal lengths or an index is out of range."""


class UnsupportedStrategyError(FeatureEngineeringError, ValueError):
    """Raised for an unknown normalization, imputation or encoding method."""

    def __init__(self, kind: str, name, supported):
        self.kind = kind
        self.name = name
        self.supported = list(supported)
        super().__init__(
            f"Unsupported {kind} '{name}'. Expected one of: {', '.join(map(str, self.supported))}"
        )
