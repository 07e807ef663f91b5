"""
Core infrastructure package for the Affiliate Analytics service.

Provides:
- Configuration management via pydantic-settings
- The pipeline's exception hierarchy
- FastAPI dependency injection utilities

Re-exports allow simplified imports like:

    from affiliate_analytics.core import get_settings, SettingsDep

Components Re-exported:
    Settings: Pydantic settings class with all analysis thresholds
    get_settings: Function returning the cached Settings singleton
    get_settings_dependency: FastAPI dependency returning Settings
    SettingsDep: Type alias for Settings dependency injection
    AnalysisError: Base class for pipeline errors
    InsufficientDataError: Raised when a series cannot be modelled
    ConfigurationError: Raised for unusable settings or constraints
"""

# =============================================================================
# Re-exports from affiliate_analytics.core.config
# =============================================================================
from affiliate_analytics.core.config import Settings, get_settings

# =============================================================================
# Re-exports from affiliate_analytics.core.exceptions
# =============================================================================
from affiliate_analytics.core.exceptions import (
    AnalysisError,
    ConfigurationError,
    InsufficientDataError,
)

# =============================================================================
# Re-exports from affiliate_analytics.core.dependencies
# =============================================================================
from affiliate_analytics.core.dependencies import (
    get_settings_dependency,
    SettingsDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Errors (from exceptions.py)
    'AnalysisError',
    'ConfigurationError',
    'InsufficientDataError',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'SettingsDep',
]
