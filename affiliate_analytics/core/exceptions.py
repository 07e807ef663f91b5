"""
Exception hierarchy for the analytics pipeline.

Most stages degrade to an explicit "not enough data" result instead of raising.
The exceptions here cover the few places where a caller must decide what to do:
the standalone ROI predictor and invalid configuration.
"""


class AnalysisError(Exception):
    """Base class for analytics pipeline errors."""


class InsufficientDataError(AnalysisError):
    """Raised when a series is too short or too sparse to model."""


class ConfigurationError(AnalysisError):
    """Raised when settings or caller-supplied constraints are unusable."""
