"""
Field Normalizer

Maps raw rows from the three sources onto canonical OrderRecord and
AdSpendRecord models. Each source's heterogeneous (and partly Thai) column
names are resolved once here through explicit field-mapping tables, so later
stages never look up raw keys.

Parsing Rules:
- Numbers: currency symbols and thousands separators are stripped; anything
  unparseable becomes 0. Never raises.
- Dates: DD/MM/YYYY and YYYY-MM-DD (optionally with a time) are validated
  explicitly before a generic pandas fallback; unparseable input becomes None.
- Sub-ids: every known sub-id column is collected into an ordered set. Ad rows
  without an explicit sub-id have one inferred from their campaign naming.

Provenance:
    Rows may carry `_dataSource` ('file_import' / 'facebook_api') and
    `_sourceTimestamp`. Untagged rows are file imports.

Usage:
    from affiliate_analytics.services.normalizer import normalize_shopee_orders

    orders = normalize_shopee_orders(raw_rows)
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from affiliate_analytics.models import (
    AdSpendRecord,
    DataSource,
    OrderRecord,
    SourcePlatform,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Field Mapping Tables
# =============================================================================

SHOPEE_FIELDS: Dict[str, List[str]] = {
    'orderId': ['รหัสการสั่งซื้อ', 'Order ID'],
    'commission': ['คอมมิชชั่นสินค้าโดยรวม(฿)', 'Commission'],
    'orderValue': ['มูลค่าซื้อ(฿)', 'ยอดขายสินค้าโดยรวม(฿)', 'Order Value'],
    'productPrice': ['ราคาสินค้า(฿)'],
    'productName': ['ชื่อสินค้า', 'Product Name'],
    'orderDate': ['เวลาที่สั่งซื้อ', 'วันที่สั่งซื้อ', 'Order Time', 'Order Date', 'Date'],
    'status': ['สถานะการสั่งซื้อ', 'สถานะ', 'Status'],
}

SHOPEE_SUB_ID_FIELDS: List[str] = [
    'Sub_id1', 'Sub_id2', 'Sub_id3', 'Sub_id4', 'Sub_id5', 'sub_id', 'Sub ID',
]

SHOPEE_CANCELLED_STATUSES = frozenset({'ยกเลิก', 'cancelled'})

LAZADA_FIELDS: Dict[str, List[str]] = {
    'orderId': ['Check Out ID', 'Order Number'],
    'skuOrderId': ['Sku Order ID'],
    'commission': ['Payout'],
    'orderValue': ['Order Amount'],
    'productName': ['Product Name', 'SKU Name'],
    'orderDate': ['Conversion Time', 'Order Time', 'Date'],
    'status': ['Status', 'Order Status'],
    'validity': ['Validity'],
}

LAZADA_SUB_ID_FIELDS: List[str] = [
    'Aff Sub ID', 'Sub ID 1', 'Sub ID 2', 'Sub ID 3', 'Sub ID 4', 'Sub ID',
]

LAZADA_COUNTED_STATUSES = frozenset({'Fulfilled', 'Delivered'})

FACEBOOK_FIELDS: Dict[str, List[str]] = {
    'campaignName': ['Campaign name', 'campaign_name'],
    'adSetName': ['Ad set name', 'adset_name'],
    'adName': ['Ad name', 'ad_name'],
    'adId': ['Ad ID', 'ad_id'],
    'spend': ['Amount spent (THB)', 'Amount spent', 'spend'],
    'impressions': ['Impressions', 'impressions'],
    'clicks': ['Link clicks', 'clicks'],
    'reach': ['Reach', 'reach'],
    'cpc': ['CPC (cost per link click)', 'cpc'],
    'date': ['Date', 'Day', 'Reporting starts', 'date'],
    'subId': ['Sub ID', 'sub_id'],
}

# Tried in order against the lowercased campaign/ad-set/ad names
SUB_ID_NAME_PATTERNS: List[re.Pattern] = [
    re.compile(r'sub[_\s]*id[_\s]*[:\-]?\s*(\w+)'),
    re.compile(r'campaign[_\s]*(\w+)'),
    re.compile(r'(\w+)[_\s]*campaign'),
    re.compile(r'id[_\s]*[:\-]?\s*(\w+)'),
    re.compile(r'(\w+)$'),
]

_NON_NUMERIC = re.compile(r'[^0-9.\-]')
_DMY = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$')
_YMD = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$')

MIN_VALID_YEAR = 2000


# =============================================================================
# Scalar Parsers
# =============================================================================


def parse_number(value: Any) -> float:
    """
    Parse a possibly formatted number, returning 0.0 on any failure.

    Examples:
        >>> parse_number("฿1,234.50")
        1234.5
        >>> parse_number(None)
        0.0
        >>> parse_number("n/a")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    cleaned = _NON_NUMERIC.sub('', str(value))
    if not cleaned:
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _valid_parts(year: int, month: int, day: int) -> Optional[date]:
    if not (1 <= day <= 31 and 1 <= month <= 12 and year >= MIN_VALID_YEAR):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # e.g. 31/02/2024 passes the range check but is not a real day
        return None


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from the formats seen in affiliate exports.

    Order of attempts:
        1. DD/MM/YYYY[ HH:mm[:ss]]
        2. YYYY-MM-DD[ HH:mm[:ss]]
        3. pandas.to_datetime with coercion, accepted only for year >= 2000

    Returns:
        The date, or None when nothing matches. Never raises.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date() if value.year >= MIN_VALID_YEAR else None
    if isinstance(value, date):
        return value if value.year >= MIN_VALID_YEAR else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _DMY.match(text)
    if match:
        day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
        return _valid_parts(year, month, day)

    match = _YMD.match(text)
    if match:
        year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
        return _valid_parts(year, month, day)

    try:
        parsed = pd.to_datetime(text, errors='coerce')
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.year < MIN_VALID_YEAR:
        return None
    return parsed.date()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a provenance timestamp to a naive UTC datetime, or None."""
    if value is None or value == '':
        return None
    try:
        parsed = pd.to_datetime(value, errors='coerce', utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.tz_convert(None).to_pydatetime()


def clean_text(value: Any) -> Optional[str]:
    """Strip a cell to text; empty, NaN and None cells become None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def first_value(row: Dict[str, Any], keys: Sequence[str]) -> Any:
    """Return the first non-empty value among candidate keys, else None."""
    for key in keys:
        value = row.get(key)
        if clean_text(value) is not None:
            return value
    return None


def collect_sub_ids(row: Dict[str, Any], keys: Sequence[str]) -> List[str]:
    """Ordered set of non-empty sub-id values in column order."""
    seen: List[str] = []
    for key in keys:
        text = clean_text(row.get(key))
        if text is not None and text not in seen:
            seen.append(text)
    return seen


def parse_data_source(value: Any) -> DataSource:
    text = clean_text(value)
    if text is None:
        return DataSource.FILE_IMPORT
    try:
        return DataSource(text)
    except ValueError:
        logger.debug(f"Unknown _dataSource '{text}', treating as file import")
        return DataSource.FILE_IMPORT


# =============================================================================
# Sub-id Inference
# =============================================================================


def _joined_names(*names: Optional[str]) -> str:
    return ' '.join(n for n in names if n).lower().strip()


def extract_sub_id_from_names(
    campaign_name: Optional[str],
    ad_set_name: Optional[str] = None,
    ad_name: Optional[str] = None,
) -> Optional[str]:
    """
    Infer a sub-id from free-text ad naming.

    Patterns are tried in order (explicit "sub id" prefix, "campaign_X",
    "X_campaign", generic "id", trailing token); the first capture longer
    than one character wins. The result is lowercased.

    Example:
        >>> extract_sub_id_from_names("Summer Sale sub_id: fb01")
        'fb01'
    """
    text = _joined_names(campaign_name, ad_set_name, ad_name)
    if not text:
        return None
    for pattern in SUB_ID_NAME_PATTERNS:
        match = pattern.search(text)
        if match and len(match.group(1)) > 1:
            return match.group(1)
    return None


# =============================================================================
# Record Status
# =============================================================================


def is_cancelled(record: OrderRecord) -> bool:
    """Shopee orders with a cancelled status are excluded from metrics."""
    status = (record.status or '').strip()
    return status in SHOPEE_CANCELLED_STATUSES or status.lower() == 'cancelled'


def is_countable(record: OrderRecord) -> bool:
    """
    Whether an order contributes to commission and order counts.

    Shopee: anything not cancelled.
    Lazada: status Fulfilled or Delivered and validity 'valid'.
    """
    if record.sourcePlatform == SourcePlatform.LAZADA:
        return record.status in LAZADA_COUNTED_STATUSES and record.validity == 'valid'
    return not is_cancelled(record)


# =============================================================================
# Source Normalizers
# =============================================================================


def _order_id(row: Dict[str, Any], keys: Sequence[str], platform: SourcePlatform, index: int) -> str:
    order_id = clean_text(first_value(row, keys))
    if order_id is None:
        # Rows without an id stay distinct from each other
        order_id = f'{platform.value.lower()}-row-{index}'
        logger.debug(f"{platform.value} row {index} has no order id; using {order_id}")
    return order_id


def normalize_shopee_orders(rows: Iterable[Dict[str, Any]]) -> List[OrderRecord]:
    """Map raw Shopee affiliate rows to OrderRecords."""
    records: List[OrderRecord] = []
    for index, row in enumerate(rows):
        records.append(OrderRecord(
            sourcePlatform=SourcePlatform.SHOPEE,
            orderId=_order_id(row, SHOPEE_FIELDS['orderId'], SourcePlatform.SHOPEE, index),
            commission=parse_number(first_value(row, SHOPEE_FIELDS['commission'])),
            orderValue=parse_number(first_value(row, SHOPEE_FIELDS['orderValue'])),
            productPrice=parse_number(first_value(row, SHOPEE_FIELDS['productPrice'])),
            orderDate=parse_date(first_value(row, SHOPEE_FIELDS['orderDate'])),
            status=clean_text(first_value(row, SHOPEE_FIELDS['status'])),
            subIds=collect_sub_ids(row, SHOPEE_SUB_ID_FIELDS),
            productName=clean_text(first_value(row, SHOPEE_FIELDS['productName'])),
            dataSource=parse_data_source(row.get('_dataSource')),
            sourceTimestamp=parse_timestamp(row.get('_sourceTimestamp')),
        ))
    logger.debug(f"Normalized {len(records)} Shopee rows")
    return records


def normalize_lazada_orders(rows: Iterable[Dict[str, Any]]) -> List[OrderRecord]:
    """Map raw Lazada affiliate rows to OrderRecords (one per SKU line)."""
    records: List[OrderRecord] = []
    for index, row in enumerate(rows):
        records.append(OrderRecord(
            sourcePlatform=SourcePlatform.LAZADA,
            orderId=_order_id(row, LAZADA_FIELDS['orderId'], SourcePlatform.LAZADA, index),
            skuOrderId=clean_text(first_value(row, LAZADA_FIELDS['skuOrderId'])),
            commission=parse_number(first_value(row, LAZADA_FIELDS['commission'])),
            orderValue=parse_number(first_value(row, LAZADA_FIELDS['orderValue'])),
            orderDate=parse_date(first_value(row, LAZADA_FIELDS['orderDate'])),
            status=clean_text(first_value(row, LAZADA_FIELDS['status'])),
            validity=clean_text(first_value(row, LAZADA_FIELDS['validity'])),
            subIds=collect_sub_ids(row, LAZADA_SUB_ID_FIELDS),
            productName=clean_text(first_value(row, LAZADA_FIELDS['productName'])),
            dataSource=parse_data_source(row.get('_dataSource')),
            sourceTimestamp=parse_timestamp(row.get('_sourceTimestamp')),
        ))
    logger.debug(f"Normalized {len(records)} Lazada rows")
    return records


def normalize_facebook_ads(rows: Iterable[Dict[str, Any]]) -> List[AdSpendRecord]:
    """Map raw Facebook Ads rows to AdSpendRecords, inferring sub-ids from names."""
    records: List[AdSpendRecord] = []
    inferred = 0
    for row in rows:
        campaign = clean_text(first_value(row, FACEBOOK_FIELDS['campaignName'])) or ''
        ad_set = clean_text(first_value(row, FACEBOOK_FIELDS['adSetName']))
        ad_name = clean_text(first_value(row, FACEBOOK_FIELDS['adName']))

        sub_id = clean_text(first_value(row, FACEBOOK_FIELDS['subId']))
        if sub_id is None:
            sub_id = extract_sub_id_from_names(campaign, ad_set, ad_name)
            if sub_id is not None:
                inferred += 1

        records.append(AdSpendRecord(
            campaignName=campaign,
            adSetName=ad_set,
            adName=ad_name,
            adId=clean_text(first_value(row, FACEBOOK_FIELDS['adId'])),
            spend=parse_number(first_value(row, FACEBOOK_FIELDS['spend'])),
            impressions=parse_number(first_value(row, FACEBOOK_FIELDS['impressions'])),
            clicks=parse_number(first_value(row, FACEBOOK_FIELDS['clicks'])),
            reach=parse_number(first_value(row, FACEBOOK_FIELDS['reach'])),
            cpc=parse_number(first_value(row, FACEBOOK_FIELDS['cpc'])),
            date=parse_date(first_value(row, FACEBOOK_FIELDS['date'])),
            subId=sub_id,
            dataSource=parse_data_source(row.get('_dataSource')),
            sourceTimestamp=parse_timestamp(row.get('_sourceTimestamp')),
        ))
    logger.debug(f"Normalized {len(records)} Facebook rows ({inferred} sub-ids inferred from names)")
    return records
