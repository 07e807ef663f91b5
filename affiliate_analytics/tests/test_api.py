"""
Test suite for the HTTP API.

The tests verify:
1. Health and info endpoints respond
2. Each analysis endpoint accepts its documented body and returns its model
3. Input problems map to 400 and short prediction history to 422
"""

import pytest

from affiliate_analytics.core.config import get_settings

pytestmark = pytest.mark.api


def daily_payload(series):
    return [d.model_dump(mode='json') for d in series]


# =============================================================================
# HEALTH AND INFO
# =============================================================================


class TestInfoEndpoints:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get('/').json()
        assert body['name'] == get_settings().app_name
        assert body['docs'] == '/docs'


# =============================================================================
# RAW ROW ENDPOINTS
# =============================================================================


class TestAggregationEndpoints:
    """Tests for /analysis/aggregate, /analysis/run, /analysis/insights."""

    def test_aggregate(self, client, raw_payload):
        response = client.post('/analysis/aggregate', json=raw_payload)

        assert response.status_code == 200
        body = response.json()
        assert body['errors'] == []
        assert body['aiData']['subIds'] == ['fba', 'fbb', 'fbc']
        assert body['aggregationStats']['totalRecordsProcessed'] == 84

    def test_aggregate_requires_rows(self, client):
        response = client.post('/analysis/aggregate', json={})
        assert response.status_code == 400

    def test_run(self, client, raw_payload):
        response = client.post('/analysis/run', json=raw_payload)

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'completed'
        assert body['metadata']['dataPointsAnalyzed'] == 84
        assert len(body['predictions']) == 6

    def test_insights(self, client, raw_payload):
        response = client.post('/analysis/insights', json=raw_payload)

        assert response.status_code == 200
        assert response.json()['hasSufficientData'] is True


class TestBudgetEndpoint:

    def test_budget(self, client, raw_payload):
        response = client.post('/analysis/budget', json=raw_payload)

        assert response.status_code == 200
        recommended = response.json()['optimization']['recommendedAllocation']
        assert sum(a['recommendedBudget'] for a in recommended) == pytest.approx(1540.0, abs=0.01)

    def test_inconsistent_constraints(self, client, raw_payload):
        payload = dict(raw_payload, constraints={'minBudgetPerSubId': 500, 'maxBudgetPerSubId': 100})
        response = client.post('/analysis/budget', json=payload)
        assert response.status_code == 400

    def test_no_sub_ids(self, client):
        payload = {'shopeeOrders': [{'รหัสการสั่งซื้อ': 'SP1', 'คอมมิชชั่นสินค้าโดยรวม(฿)': '10'}]}
        response = client.post('/analysis/budget', json=payload)
        assert response.status_code == 400


# =============================================================================
# SERIES ENDPOINTS
# =============================================================================


class TestSeriesEndpoints:
    """Tests for /analysis/trends, /analysis/alerts and /analysis/predictions."""

    def test_trends(self, client, daily_series):
        series = daily_series(roi=[10 + 2 * i for i in range(10)])
        response = client.post('/analysis/trends', json=daily_payload(series))

        assert response.status_code == 200
        trends = response.json()['trends']
        assert [t['metric'] for t in trends] == ['ROI', 'Revenue', 'Orders', 'Profit', 'Ad Spend']
        assert trends[0]['trend'] == 'improving'

    def test_trends_require_days(self, client):
        assert client.post('/analysis/trends', json=[]).status_code == 400

    def test_alerts(self, client, daily_series):
        series = daily_series(roi=[20, 20, 20, 20, 80, 80, 80])
        response = client.post('/analysis/alerts', json={
            'dailyMetrics': daily_payload(series),
            'totalRecords': 500,
            'subIdCount': 5,
        })

        assert response.status_code == 200
        roi = [a for a in response.json() if a['affectedMetric'] == 'ROI']
        assert [a['type'] for a in roi] == ['opportunity']

    def test_predictions(self, client, daily_series):
        series = daily_series(roi=[10 + 2 * i for i in range(14)])
        response = client.post('/analysis/predictions', json=daily_payload(series))

        assert response.status_code == 200
        first = response.json()['predictions'][0]
        assert first['id'] == 'prediction-roi-7d-2024-06-14'
        assert first['predictedValue'] == pytest.approx(44.17)

    def test_short_history_is_422(self, client, daily_series):
        response = client.post('/analysis/predictions', json=daily_payload(daily_series(roi=[1, 2, 3])))

        assert response.status_code == 422
        assert 'Insufficient data for prediction' in response.json()['detail']

    def test_extra_fields_ignored(self, client, daily_series):
        payload = daily_payload(daily_series(roi=[10 + 2 * i for i in range(10)]))
        for day in payload:
            day['conversionRate'] = 1.5
        assert client.post('/analysis/trends', json=payload).status_code == 200
