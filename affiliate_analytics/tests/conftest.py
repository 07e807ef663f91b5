"""
Pytest Configuration and Shared Fixtures for Affiliate Analytics Tests.

This module provides fixtures shared by the service and API tests:
- Settings built from defaults only, so tests do not depend on the environment
- Raw Shopee / Lazada / Facebook rows in their export column names
- A synthetic daily series builder for trend, alert and prediction tests
- An aggregated AIAnalysisData snapshot pinned to a fixed reference day
- A FastAPI TestClient for the endpoint tests

Sample Snapshot (14 days, 2024-06-01 to 2024-06-14):
- Sub-id fba: 1 Shopee order/day at 80 THB commission, 50 THB spend/day (ROI 60%)
- Sub-id fbb: 1 Shopee order/day at 15 THB commission, 40 THB spend/day (ROI -62.5%)
- Sub-id fbc: 1 Lazada line/day at 30 THB payout, 20 THB spend/day (ROI 50%)
"""

from datetime import date, timedelta
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from affiliate_analytics.core.config import Settings
from affiliate_analytics.main import app
from affiliate_analytics.models import AIAnalysisData, DailyMetrics
from affiliate_analytics.services.aggregator import aggregate_data_for_ai


SAMPLE_START = date(2024, 6, 1)
SAMPLE_DAYS = 14
SAMPLE_AS_OF = date(2024, 6, 15)


# ============================================================
# PYTEST CONFIGURATION
# ============================================================


def pytest_configure(config):
    """Register custom markers used across the suite."""
    config.addinivalue_line("markers", "slow: marks tests as slow running")
    config.addinivalue_line("markers", "integration: marks tests that run the full pipeline")
    config.addinivalue_line("markers", "api: marks tests that go through the FastAPI app")


# ============================================================
# SETTINGS
# ============================================================


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any .env file in the working directory."""
    return Settings(_env_file=None)


@pytest.fixture
def as_of() -> date:
    """Reference day one day after the sample snapshot ends."""
    return SAMPLE_AS_OF


# ============================================================
# RAW ROWS
# ============================================================


def _shopee_rows() -> List[Dict[str, Any]]:
    rows = []
    for i in range(SAMPLE_DAYS):
        day = SAMPLE_START + timedelta(days=i)
        stamp = day.strftime('%d/%m/%Y') + ' 10:00:00'
        rows.append({
            'รหัสการสั่งซื้อ': f'SP{i:02d}A',
            'คอมมิชชั่นสินค้าโดยรวม(฿)': '฿80.00',
            'มูลค่าซื้อ(฿)': '1,200.00',
            'เวลาที่สั่งซื้อ': stamp,
            'สถานะการสั่งซื้อ': 'สำเร็จแล้ว',
            'Sub_id1': 'fba',
        })
        rows.append({
            'รหัสการสั่งซื้อ': f'SP{i:02d}B',
            'คอมมิชชั่นสินค้าโดยรวม(฿)': '15',
            'มูลค่าซื้อ(฿)': '300',
            'เวลาที่สั่งซื้อ': stamp,
            'สถานะการสั่งซื้อ': 'สำเร็จแล้ว',
            'Sub_id1': 'fbb',
        })
    return rows


def _lazada_rows() -> List[Dict[str, Any]]:
    rows = []
    for i in range(SAMPLE_DAYS):
        day = SAMPLE_START + timedelta(days=i)
        rows.append({
            'Check Out ID': f'LZ{i:02d}',
            'Sku Order ID': f'LZ{i:02d}-1',
            'Payout': '30.00',
            'Order Amount': '600.00',
            'Conversion Time': f'{day.isoformat()} 12:00:00',
            'Status': 'Fulfilled',
            'Validity': 'valid',
            'Aff Sub ID': 'fbc',
        })
    return rows


def _facebook_rows() -> List[Dict[str, Any]]:
    campaigns = [
        ('Summer sub_id fba', '50.00', '40'),
        ('Promo sub_id fbb', '40.00', '25'),
        ('Lazada sub_id fbc', '20.00', '15'),
    ]
    rows = []
    for i in range(SAMPLE_DAYS):
        day = SAMPLE_START + timedelta(days=i)
        for name, spend, clicks in campaigns:
            rows.append({
                'Campaign name': name,
                'Amount spent (THB)': spend,
                'Link clicks': clicks,
                'Impressions': '1000',
                'Reach': '800',
                'Date': day.isoformat(),
            })
    return rows


@pytest.fixture
def shopee_rows() -> List[Dict[str, Any]]:
    return _shopee_rows()


@pytest.fixture
def lazada_rows() -> List[Dict[str, Any]]:
    return _lazada_rows()


@pytest.fixture
def facebook_rows() -> List[Dict[str, Any]]:
    return _facebook_rows()


@pytest.fixture
def raw_payload() -> Dict[str, List[Dict[str, Any]]]:
    """Request body for the aggregation-based endpoints."""
    return {
        'shopeeOrders': _shopee_rows(),
        'lazadaOrders': _lazada_rows(),
        'facebookAds': _facebook_rows(),
    }


@pytest.fixture
def sample_ai_data(settings: Settings, as_of: date) -> AIAnalysisData:
    """Aggregated snapshot of the sample rows."""
    result = aggregate_data_for_ai(
        _shopee_rows(), _lazada_rows(), _facebook_rows(),
        settings=settings, as_of=as_of,
    )
    return result.aiData


# ============================================================
# DAILY SERIES
# ============================================================


def build_daily_series(
    roi: Optional[Sequence[float]] = None,
    revenue: Optional[Sequence[float]] = None,
    ad_spend: Optional[Sequence[float]] = None,
    orders: Optional[Sequence[int]] = None,
    start: date = SAMPLE_START,
) -> List[DailyMetrics]:
    """
    Build consecutive DailyMetrics from per-metric value lists.

    Missing metrics default to 0. ROI is taken as given rather than derived
    from revenue and spend, so each metric can be shaped independently.
    """
    lengths = [len(v) for v in (roi, revenue, ad_spend, orders) if v is not None]
    n = max(lengths) if lengths else 0
    series = []
    for i in range(n):
        rev = float(revenue[i]) if revenue is not None else 0.0
        spend = float(ad_spend[i]) if ad_spend is not None else 0.0
        series.append(DailyMetrics(
            date=(start + timedelta(days=i)).isoformat(),
            totalComSP=rev,
            totalCom=rev,
            adSpend=spend,
            profit=rev - spend,
            roi=float(roi[i]) if roi is not None else 0.0,
            ordersSP=int(orders[i]) if orders is not None else 0,
        ))
    return series


@pytest.fixture
def daily_series() -> Callable[..., List[DailyMetrics]]:
    """Factory fixture wrapping build_daily_series."""
    return build_daily_series


# ============================================================
# API CLIENT
# ============================================================


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """TestClient over the application; lifespan runs on enter."""
    with TestClient(app) as test_client:
        yield test_client
