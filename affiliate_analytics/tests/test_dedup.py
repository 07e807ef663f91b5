"""
Test suite for deduplication and cross-source reconciliation.

The tests verify:
1. Rows sharing an identity and source are summed into one record
2. Deduplication is idempotent
3. Identities seen by several sources resolve to one record tagged 'merged'
4. The most recent source wins, with a deterministic tie-break
5. Value disagreements beyond the tolerance raise exactly one conflict
"""

from datetime import date, datetime

import pytest

from affiliate_analytics.models import (
    AdSpendRecord,
    ConflictType,
    DataSource,
    OrderRecord,
    Severity,
    SourcePlatform,
)
from affiliate_analytics.services.conflicts import classify_severity, detect_conflicts, pick_most_recent
from affiliate_analytics.services.dedup import (
    deduplicate_ads,
    deduplicate_orders,
    identity_key,
    reconcile_sources,
)
from affiliate_analytics.services.metrics import calculate_metrics


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def shopee_order(order_id: str, commission: float, source: DataSource = DataSource.FILE_IMPORT, **fields) -> OrderRecord:
    return OrderRecord(
        sourcePlatform=SourcePlatform.SHOPEE,
        orderId=order_id,
        commission=commission,
        orderDate=date(2024, 6, 1),
        dataSource=source,
        **fields,
    )


def lazada_line(order_id: str, sku_id: str, commission: float) -> OrderRecord:
    return OrderRecord(
        sourcePlatform=SourcePlatform.LAZADA,
        orderId=order_id,
        skuOrderId=sku_id,
        commission=commission,
        status='Fulfilled',
        validity='valid',
        orderDate=date(2024, 6, 1),
    )


def ad_row(spend: float, source: DataSource = DataSource.FILE_IMPORT, **fields) -> AdSpendRecord:
    return AdSpendRecord(
        campaignName='Summer sub_id fba',
        adId='AD1',
        spend=spend,
        date=date(2024, 6, 1),
        dataSource=source,
        **fields,
    )


# =============================================================================
# SAME-SOURCE DEDUPLICATION
# =============================================================================


class TestDeduplicateOrders:
    """Tests for deduplicate_orders."""

    def test_same_source_rows_are_summed(self):
        records = [
            shopee_order('SP1', 10.0, subIds=['a']),
            shopee_order('SP1', 5.0, subIds=['b']),
            shopee_order('SP2', 7.0),
        ]
        deduped = deduplicate_orders(records)

        assert len(deduped) == 2
        merged = deduped[0]
        assert merged.orderId == 'SP1'
        assert merged.commission == pytest.approx(15.0)
        assert merged.lineCount == 2
        assert merged.subIds == ['a', 'b']

    def test_lazada_identity_is_the_sku_line(self):
        """Two SKU lines of one checkout stay separate."""
        records = [lazada_line('C1', 'C1-1', 10.0), lazada_line('C1', 'C1-2', 20.0)]
        assert len(deduplicate_orders(records)) == 2

    def test_different_sources_are_not_merged_here(self):
        records = [
            shopee_order('SP1', 10.0, DataSource.FILE_IMPORT),
            shopee_order('SP1', 12.0, DataSource.FACEBOOK_API),
        ]
        assert len(deduplicate_orders(records)) == 2, (
            "Cross-source duplicates are left for reconciliation"
        )

    def test_idempotent(self):
        records = [
            shopee_order('SP1', 10.0),
            shopee_order('SP1', 5.0),
            shopee_order('SP2', 7.0),
        ]
        once = deduplicate_orders(records)
        twice = deduplicate_orders(once)

        assert [(r.orderId, r.commission, r.lineCount) for r in twice] == [
            (r.orderId, r.commission, r.lineCount) for r in once
        ], "Deduplicating an already deduplicated list should change nothing"


    def test_cancelled_line_is_not_merged_into_completed_line(self):
        records = [
            shopee_order('A1', 10.0, status='ยกเลิก'),
            shopee_order('A1', 25.0, status='สำเร็จแล้ว'),
        ]
        deduped = deduplicate_orders(records)

        assert [(r.status, r.commission) for r in deduped] == [('ยกเลิก', 10.0), ('สำเร็จแล้ว', 25.0)]
        assert deduplicate_orders(deduped) == deduped

    def test_partly_cancelled_order_keeps_its_commission(self, settings):
        records = [
            shopee_order('A1', 10.0, status='ยกเลิก'),
            shopee_order('A1', 25.0, status='สำเร็จแล้ว'),
        ]
        reconciled = reconcile_sources(records, [], [], settings)
        metrics = calculate_metrics(reconciled.shopeeOrders, [], [])

        assert metrics.totalComSP == pytest.approx(25.0), "The completed line must survive deduplication"
        assert metrics.totalOrdersSP == 1

    def test_lazada_lines_with_mixed_validity(self):
        valid = lazada_line('C1', 'C1-1', 20.0)
        invalid = valid.model_copy(update={'commission': 5.0, 'validity': 'invalid'})
        deduped = deduplicate_orders([valid, invalid])

        assert len(deduped) == 2
        assert calculate_metrics([], deduped, []).totalComLZD == pytest.approx(20.0)


class TestDeduplicateAds:
    """Tests for deduplicate_ads."""

    def test_same_ad_same_day_is_summed(self):
        deduped = deduplicate_ads([ad_row(30.0, clicks=10), ad_row(20.0, clicks=5)])

        assert len(deduped) == 1
        assert deduped[0].spend == pytest.approx(50.0)
        assert deduped[0].clicks == pytest.approx(15.0)

    def test_same_ad_other_day_is_kept(self):
        rows = [ad_row(30.0), ad_row(20.0).model_copy(update={'date': date(2024, 6, 2)})]
        assert len(deduplicate_ads(rows)) == 2

    def test_idempotent(self):
        once = deduplicate_ads([ad_row(30.0), ad_row(20.0)])
        twice = deduplicate_ads(once)
        assert [a.spend for a in twice] == [a.spend for a in once]


# =============================================================================
# CROSS-SOURCE RECONCILIATION
# =============================================================================


class TestConflictHelpers:

    def test_timestamp_beats_recency_rank(self):
        older_api = shopee_order('SP1', 10.0, DataSource.FACEBOOK_API, sourceTimestamp=datetime(2024, 6, 1))
        newer_file = shopee_order('SP1', 12.0, DataSource.FILE_IMPORT, sourceTimestamp=datetime(2024, 6, 2))
        assert pick_most_recent([older_api, newer_file]) is newer_file

    def test_api_beats_file_without_timestamps(self):
        file_row = shopee_order('SP1', 10.0, DataSource.FILE_IMPORT)
        api_row = shopee_order('SP1', 12.0, DataSource.FACEBOOK_API)
        assert pick_most_recent([file_row, api_row]) is api_row
        assert pick_most_recent([api_row, file_row]) is api_row, "Winner must not depend on input order"

    @pytest.mark.parametrize("values,expected", [
        ([100.0, 120.0], Severity.MEDIUM),
        ([100.0, 300.0], Severity.HIGH),
        ([100.0, 105.0], Severity.LOW),
    ])
    def test_severity_from_relative_spread(self, values, expected):
        assert classify_severity(values) == expected


class TestIdentityAndDetection:

    def test_lazada_identity_uses_sku_line(self):
        assert identity_key(lazada_line('LZ1', 'SKU9', 5.0)) == ('Lazada', 'SKU9')

    def test_ad_identity_ignores_source(self):
        file_row = ad_row(100.0, DataSource.FILE_IMPORT)
        api_row = ad_row(120.0, DataSource.FACEBOOK_API)
        assert identity_key(file_row) == identity_key(api_row) == ('ad', 'AD1', '2024-06-01')

    def test_one_conflict_per_mismatching_group(self):
        groups = [
            [ad_row(100.0, DataSource.FILE_IMPORT), ad_row(120.0, DataSource.FACEBOOK_API)],
            [shopee_order('SP1', 10.0, DataSource.FILE_IMPORT), shopee_order('SP1', 10.0, DataSource.FACEBOOK_API)],
        ]
        conflicts = detect_conflicts(groups, tolerance=0.01)
        assert [c.type for c in conflicts] == [ConflictType.SPEND_MISMATCH]

    def test_single_source_group_is_skipped(self):
        group = [shopee_order('SP1', 10.0), shopee_order('SP1', 30.0)]
        assert detect_conflicts([group]) == [], "Same-source rows are duplicates, not conflicts"


class TestReconcileSources:
    """Tests for reconcile_sources."""

    def test_spend_conflict_resolves_to_api_value(self, settings):
        ads = [ad_row(100.0, DataSource.FILE_IMPORT), ad_row(120.0, DataSource.FACEBOOK_API)]
        result = reconcile_sources([], [], ads, settings)

        assert len(result.facebookAds) == 1
        resolved = result.facebookAds[0]
        assert resolved.spend == pytest.approx(120.0)
        assert resolved.dataSource == DataSource.MERGED

        conflicts = result.conflictReport.conflicts
        assert len(conflicts) == 1, "One identity with two values should give one conflict"
        conflict = conflicts[0]
        assert conflict.type == ConflictType.SPEND_MISMATCH
        assert conflict.resolvedValue == pytest.approx(120.0)
        assert conflict.winningSource == DataSource.FACEBOOK_API
        assert conflict.severity == Severity.MEDIUM
        assert result.conflictReport.recommendations, "A conflict should come with advice"

    def test_commission_conflict(self, settings):
        orders = [
            shopee_order('SP1', 40.0, DataSource.FILE_IMPORT, sourceTimestamp=datetime(2024, 6, 3)),
            shopee_order('SP1', 10.0, DataSource.FACEBOOK_API, sourceTimestamp=datetime(2024, 6, 1)),
        ]
        result = reconcile_sources(orders, [], [], settings)

        assert [o.commission for o in result.shopeeOrders] == [40.0]
        conflict = result.conflictReport.conflicts[0]
        assert conflict.type == ConflictType.COMMISSION_MISMATCH
        assert conflict.winningSource == DataSource.FILE_IMPORT
        assert conflict.severity == Severity.HIGH
        assert conflict.affectedEntities == ['Shopee:SP1']

    def test_agreement_within_tolerance_is_not_a_conflict(self, settings):
        ads = [ad_row(100.0, DataSource.FILE_IMPORT), ad_row(100.005, DataSource.FACEBOOK_API)]
        result = reconcile_sources([], [], ads, settings)

        assert len(result.facebookAds) == 1
        assert result.conflictReport.conflicts == []

    def test_statistics_per_source(self, settings):
        orders = [shopee_order('SP1', 10.0), shopee_order('SP1', 10.0), shopee_order('SP2', 5.0)]
        result = reconcile_sources(orders, [], [ad_row(1.0)], settings)

        assert set(result.statistics) == {'shopee', 'lazada', 'facebook'}
        shopee_stats = result.statistics['shopee']
        assert shopee_stats.totalInput == 3
        assert shopee_stats.totalOutput == 2
        assert shopee_stats.duplicatesFound == 1
        assert shopee_stats.crossSourceGroups == 0

    def test_reconciling_twice_is_stable(self, settings):
        ads = [ad_row(100.0, DataSource.FILE_IMPORT), ad_row(120.0, DataSource.FACEBOOK_API)]
        first = reconcile_sources([], [], ads, settings)
        second = reconcile_sources([], [], first.facebookAds, settings)

        assert [a.spend for a in second.facebookAds] == [a.spend for a in first.facebookAds]
        assert second.conflictReport.conflicts == []
