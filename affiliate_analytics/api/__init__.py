"""
API package initialization.

This package contains the FastAPI router modules of the analytics service:
- analysis: aggregation, full analysis runs, trends, alerts, budget
  optimization, predictions and insights
"""

from fastapi import APIRouter

from affiliate_analytics.api.analysis import router as analysis_router

# Create main API router
api_router = APIRouter()

# The analysis router carries its own /analysis prefix
api_router.include_router(analysis_router)

__all__ = [
    "api_router",
    "analysis_router",
]
