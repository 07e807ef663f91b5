"""
FastAPI dependency injection for the Affiliate Analytics API.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- SettingsDep: Type alias for injecting Settings into endpoints

Usage Examples:
    @router.post("/trends")
    async def detect_trends(
        daily: List[DailyMetrics],
        settings: SettingsDep,
    ) -> TrendAnalysis:
        return analyze_trends(daily, settings=settings)
"""

from typing import Annotated

from fastapi import Depends

from affiliate_analytics.core.config import Settings, get_settings


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() so tests can swap settings
    through FastAPI's override mechanism:

        app.dependency_overrides[get_settings_dependency] = lambda: custom_settings

    Returns:
        Settings: The cached Settings instance.
    """
    return get_settings()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
