"""
Test suite for the metrics aggregator.

The tests verify:
1. Shopee orders are counted once per order id and cancelled orders are excluded
2. Lazada orders and units are counted at their two granularities
3. ROI is (commission - spend) / spend * 100, and 0 without spend
4. Undated records count in the totals but not in the daily series
5. Sub-id and platform rollups attribute orders and spend
"""

from datetime import date

import pytest

from affiliate_analytics.models import AdSpendRecord, OrderRecord, SourcePlatform
from affiliate_analytics.services.metrics import (
    MIXED_PLATFORM,
    ad_matches_sub_id,
    calculate_daily_metrics,
    calculate_metrics,
    calculate_roi,
    derived_ratios,
    platform_rollup,
    sub_id_rollup,
)
from affiliate_analytics.services.normalizer import (
    normalize_facebook_ads,
    normalize_lazada_orders,
    normalize_shopee_orders,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def shopee(order_id, commission, day=date(2024, 6, 1), status='สำเร็จแล้ว', sub_ids=None):
    return OrderRecord(
        sourcePlatform=SourcePlatform.SHOPEE,
        orderId=order_id,
        commission=commission,
        orderDate=day,
        status=status,
        subIds=sub_ids or [],
    )


def lazada(order_id, sku_id, commission, day=date(2024, 6, 1), status='Fulfilled', validity='valid', sub_ids=None):
    return OrderRecord(
        sourcePlatform=SourcePlatform.LAZADA,
        orderId=order_id,
        skuOrderId=sku_id,
        commission=commission,
        orderDate=day,
        status=status,
        validity=validity,
        subIds=sub_ids or [],
    )


def ad(campaign, spend, day=date(2024, 6, 1), clicks=0.0, sub_id=None):
    return AdSpendRecord(campaignName=campaign, spend=spend, date=day, clicks=clicks, subId=sub_id)


# =============================================================================
# TOTALS
# =============================================================================


class TestCalculateRoi:

    @pytest.mark.parametrize("revenue,spend,expected", [
        (150.0, 100.0, 50.0),
        (50.0, 100.0, -50.0),
        (100.0, 0.0, 0.0),
        (0.0, 0.0, 0.0),
    ])
    def test_roi_formula(self, revenue, spend, expected):
        assert calculate_roi(revenue, spend) == pytest.approx(expected)


class TestCalculateMetrics:
    """Tests for calculate_metrics."""

    def test_shopee_counts_unique_non_cancelled_orders(self):
        orders = [
            shopee('SP1', 10.0),
            shopee('SP1', 5.0),
            shopee('SP2', 20.0),
            shopee('SP3', 99.0, status='ยกเลิก'),
        ]
        metrics = calculate_metrics(orders, [], [])

        assert metrics.totalOrdersSP == 2, "Lines of one order count once; cancelled orders not at all"
        assert metrics.totalComSP == pytest.approx(35.0)

    def test_lazada_orders_units_and_invalid_lines(self):
        lines = [
            lazada('C1', 'C1-1', 10.0),
            lazada('C1', 'C1-2', 5.0),
            lazada('C2', 'C2-1', 8.0),
            lazada('C3', 'C3-1', 50.0, validity='invalid'),
            lazada('C4', 'C4-1', 50.0, status='Pending'),
        ]
        metrics = calculate_metrics([], lines, [])

        assert metrics.totalOrdersLZD == 3, "Each SKU order line is a Lazada order"
        assert metrics.unitsLZD == 3
        assert metrics.validOrdersLZD == 3
        assert metrics.invalidOrdersLZD == 2
        assert metrics.totalComLZD == pytest.approx(23.0)

    def test_roi_profit_and_cost_per_order(self):
        metrics = calculate_metrics(
            [shopee('SP1', 100.0), shopee('SP2', 50.0)],
            [lazada('C1', 'C1-1', 50.0)],
            [ad('Summer', 100.0, clicks=40), ad('Promo', 60.0, clicks=10)],
        )

        assert metrics.totalCom == pytest.approx(200.0)
        assert metrics.totalAdsSpent == pytest.approx(160.0)
        assert metrics.profit == pytest.approx(40.0)
        assert metrics.roi == pytest.approx(25.0)
        assert metrics.cpoSP == pytest.approx(80.0)
        assert metrics.totalLinkClicks == pytest.approx(50.0)

    def test_no_spend_gives_zero_roi(self):
        metrics = calculate_metrics([shopee('SP1', 100.0)], [], [])
        assert metrics.roi == 0.0
        assert metrics.cpoSP == 0.0

    def test_derived_ratios(self):
        metrics = calculate_metrics(
            [shopee('SP1', 100.0), shopee('SP2', 50.0)],
            [],
            [ad('Summer', 60.0, clicks=20)],
        )
        ratios = derived_ratios(metrics)

        assert ratios['costPerOrder'] == pytest.approx(30.0)
        assert ratios['revenuePerOrder'] == pytest.approx(75.0)
        assert ratios['conversionRate'] == pytest.approx(10.0)


# =============================================================================
# DAILY SERIES
# =============================================================================


class TestCalculateDailyMetrics:
    """Tests for calculate_daily_metrics."""

    def test_one_entry_per_day_sorted(self):
        daily = calculate_daily_metrics(
            [shopee('SP2', 20.0, day=date(2024, 6, 2)), shopee('SP1', 10.0, day=date(2024, 6, 1))],
            [lazada('C1', 'C1-1', 5.0, day=date(2024, 6, 2))],
            [ad('Summer', 10.0, day=date(2024, 6, 1)), ad('Summer', 20.0, day=date(2024, 6, 2))],
        )

        assert [d.date for d in daily] == ['2024-06-01', '2024-06-02']
        second = daily[1]
        assert second.totalComSP == pytest.approx(20.0)
        assert second.totalComLZD == pytest.approx(5.0)
        assert second.totalCom == pytest.approx(25.0)
        assert second.adSpend == pytest.approx(20.0)
        assert second.profit == pytest.approx(5.0)
        assert second.roi == pytest.approx(25.0)
        assert second.ordersSP == 1
        assert second.ordersLZD == 1

    def test_undated_records_excluded_from_series_but_counted_in_totals(self):
        orders = [shopee('SP1', 10.0), shopee('SP2', 30.0, day=None)]
        metrics = calculate_metrics(orders, [], [])
        daily = calculate_daily_metrics(orders, [], [])

        assert metrics.totalOrdersSP == 2
        assert metrics.totalComSP == pytest.approx(40.0)
        assert len(daily) == 1
        assert daily[0].ordersSP == 1, "The undated order must not appear in any day"
        assert sum(d.totalComSP for d in daily) == pytest.approx(10.0)

    def test_empty_input(self):
        assert calculate_daily_metrics([], [], []) == []


# =============================================================================
# ROLLUPS
# =============================================================================


class TestSubIdRollup:
    """Tests for sub_id_rollup and ad attribution."""

    def test_attribution_by_name(self):
        assert ad_matches_sub_id(ad('Summer sub_id FBA', 10.0), 'fba')
        assert ad_matches_sub_id(ad('Anything', 10.0, sub_id='fba'), 'FBA')
        assert not ad_matches_sub_id(ad('Summer', 10.0), 'fba')
        assert not ad_matches_sub_id(ad('Summer', 10.0), '')

    def test_rollup_sorted_by_revenue(self):
        rollup = sub_id_rollup(
            [shopee('SP1', 10.0, sub_ids=['small']), shopee('SP2', 90.0, sub_ids=['big'])],
            [],
            [ad('big campaign', 30.0)],
        )

        assert [s.subId for s in rollup] == ['big', 'small']
        big = rollup[0]
        assert big.orders == 1
        assert big.adSpend == pytest.approx(30.0)
        assert big.roi == pytest.approx(200.0)
        assert big.dailyRoi == [pytest.approx(200.0)]
        assert rollup[1].adSpend == 0.0

    def test_sub_id_on_both_platforms_is_mixed(self):
        rollup = sub_id_rollup(
            [shopee('SP1', 10.0, sub_ids=['x1'])],
            [lazada('C1', 'C1-1', 10.0, sub_ids=['x1'])],
            [],
        )
        assert rollup[0].platform == MIXED_PLATFORM
        assert rollup[0].orders == 2


class TestPlatformRollup:
    """Tests for platform_rollup."""

    def test_spend_is_not_double_counted(self):
        platforms = platform_rollup(
            [shopee('SP1', 60.0, sub_ids=['alpha1'])],
            [lazada('C1', 'C1-1', 40.0, sub_ids=['beta2'])],
            [ad('sub_id alpha1', 30.0), ad('sub_id beta2', 10.0), ad('unmatched', 20.0)],
        )
        by_name = {p.platform: p for p in platforms}

        assert set(by_name) == {'Shopee', 'Lazada'}
        assert sum(p.adSpend for p in platforms) == pytest.approx(60.0), (
            "Platform spend should add up to total spend"
        )
        assert by_name['Shopee'].revenue == pytest.approx(60.0)
        assert by_name['Lazada'].orders == 1

    def test_only_platforms_with_records(self):
        platforms = platform_rollup([shopee('SP1', 10.0)], [], [])
        assert [p.platform for p in platforms] == ['Shopee']


# =============================================================================
# END TO END FROM RAW ROWS
# =============================================================================


class TestFromRawRows:

    def test_sample_snapshot_totals(self, shopee_rows, lazada_rows, facebook_rows):
        shopee_orders = normalize_shopee_orders(shopee_rows)
        lazada_orders = normalize_lazada_orders(lazada_rows)
        ads = normalize_facebook_ads(facebook_rows)

        metrics = calculate_metrics(shopee_orders, lazada_orders, ads)
        daily = calculate_daily_metrics(shopee_orders, lazada_orders, ads)

        assert metrics.totalOrdersSP == 28
        assert metrics.totalOrdersLZD == 14
        assert metrics.totalCom == pytest.approx(1750.0)
        assert metrics.totalAdsSpent == pytest.approx(1540.0)
        assert len(daily) == 14
        assert all(d.roi == pytest.approx(125.0 / 110.0 * 100 - 100) for d in daily)
