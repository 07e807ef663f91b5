"""
Affiliate Analytics Package.

FastAPI service and library that reconciles Shopee and Lazada affiliate order
exports with Facebook Ads spend, and turns the merged data into trends,
alerts, recommendations, budget reallocations and ROI forecasts.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, exceptions and dependencies
    - models: Pydantic schemas and enums
    - services: Pipeline stages
"""

__version__ = "1.0.0"
