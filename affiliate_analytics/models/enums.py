"""
Enumeration definitions for the Affiliate Analytics service.

All enums inherit from both `str` and `Enum` so Pydantic models serialize them as
plain strings in API responses.
"""

from enum import Enum


class SourcePlatform(str, Enum):
    """
    Origin platform of a record.

    Shopee and Lazada supply affiliate order exports; Facebook supplies ad spend.
    """
    SHOPEE = "Shopee"
    LAZADA = "Lazada"
    FACEBOOK = "Facebook"


class DataSource(str, Enum):
    """
    Provenance of a record.

    - file_import: Row came from an uploaded export (the default when untagged)
    - facebook_api: Row was fetched from the live ads API
    - merged: Row is the resolved value of observations from both
    """
    FILE_IMPORT = "file_import"
    FACEBOOK_API = "facebook_api"
    MERGED = "merged"


class TrendDirection(str, Enum):
    """Direction of a metric over time."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class Significance(str, Enum):
    """Statistical weight given to a trend or insight."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(str, Enum):
    """Risk classification for sub-ids, platforms, predictions and budgets."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertType(str, Enum):
    """
    Category of an alert.

    - opportunity: Positive change worth acting on
    - warning: Negative change that needs attention
    - critical: Negative change past the escalation threshold
    """
    OPPORTUNITY = "opportunity"
    WARNING = "warning"
    CRITICAL = "critical"


class Severity(str, Enum):
    """Severity shared by alerts and reconciliation conflicts."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    """Recommendation priority."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationType(str, Enum):
    """Independent recommendation families; several may co-occur."""
    BUDGET = "budget"
    PLATFORM = "platform"
    SUBID = "subid"
    CREATIVE = "creative"
    TIMING = "timing"


class ActionItemType(str, Enum):
    """Concrete step attached to a recommendation."""
    INCREASE_BUDGET = "increase_budget"
    DECREASE_BUDGET = "decrease_budget"
    PAUSE_CAMPAIGN = "pause_campaign"
    OPTIMIZE_CREATIVE = "optimize_creative"
    CHANGE_TARGETING = "change_targeting"
    BUDGET_ADJUSTMENT = "budget_adjustment"


class ConflictType(str, Enum):
    """
    Contradiction found while reconciling sources.

    - spend_mismatch: An ad reported by both file import and API with different spend
    - commission_mismatch: An order reported by two sources with different commission
    """
    SPEND_MISMATCH = "spend_mismatch"
    COMMISSION_MISMATCH = "commission_mismatch"


class PredictionType(str, Enum):
    """Metric being forecast."""
    ROI = "roi"
    REVENUE = "revenue"
    ORDERS = "orders"


class InsightType(str, Enum):
    """Kind of finding surfaced to the dashboard."""
    TREND = "trend"
    PATTERN = "pattern"
    ANOMALY = "anomaly"
    BENCHMARK = "benchmark"


class PatternType(str, Enum):
    """Recurring structure detected in the daily series."""
    SEASONAL = "seasonal"
    WEEKLY = "weekly"
    DAILY = "daily"
    TREND = "trend"


class PerformerType(str, Enum):
    """Entity kind of a top performer entry."""
    SUBID = "subid"
    PLATFORM = "platform"
    TIMEPERIOD = "timeperiod"


class AnalysisStatus(str, Enum):
    """Lifecycle state of an analysis run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
