"""
Inventory derived state: stock status per item and aggregate metrics.

Nothing here is stored; every value is recomputed from the InventoryItem
records on each call.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

OUT_OF_STOCK = 'out_of_stock'
LOW_STOCK = 'low_stock'
EXPIRED = 'expired'
EXPIRING_SOON = 'expiring_soon'
IN_STOCK = 'in_stock'

STOCK_STATUSES = (IN_STOCK, LOW_STOCK, OUT_OF_STOCK, EXPIRING_SOON, EXPIRED)

EXPIRY_WARNING_DAYS = 30


def parse_date(value: Any) -> Optional[date]:
    """``YYYY-MM-DD`` (or an ISO timestamp) to ``date``; ``None`` when blank or bad."""
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _number(value: Any, default: float = 0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def stock_status(item: Dict[str, Any], today: Optional[date] = None) -> str:
    today = today or date.today()
    current = _number(item.get('current_stock'))
    minimum = _number(item.get('minimum_stock'))
    if current <= 0:
        return OUT_OF_STOCK
    if current <= minimum:
        return LOW_STOCK
    expiry = parse_date(item.get('expiry_date'))
    if expiry is not None:
        if expiry < today:
            return EXPIRED
        if expiry <= today + timedelta(days=EXPIRY_WARNING_DAYS):
            return EXPIRING_SOON
    return IN_STOCK


def annotate(items: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    return [dict(item, stock_status=stock_status(item, today)) for item in items]


def filter_items(
    items: Iterable[Dict[str, Any]],
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Annotated items narrowed by category, derived status and free text."""
    needle = (search or '').strip().lower()
    result = []
    for item in annotate(items, today):
        if category and category != 'all' and item.get('category') != category:
            continue
        if status and status != 'all' and item['stock_status'] != status:
            continue
        if needle and not any(
            needle in str(item.get(f) or '').lower()
            for f in ('name', 'description', 'supplier', 'lot_number')
        ):
            continue
        result.append(item)
    return result


def inventory_metrics(items: Iterable[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    annotated = annotate(items, today)
    counts = {s: 0 for s in STOCK_STATUSES}
    categories: Dict[str, Dict[str, Any]] = defaultdict(lambda: {'count': 0, 'value': 0.0})
    total_value = 0.0
    utilisation = []

    for item in annotated:
        counts[item['stock_status']] += 1
        value = _number(item.get('current_stock')) * _number(item.get('cost_per_unit'))
        total_value += value
        bucket = categories[item.get('category') or 'uncategorized']
        bucket['count'] += 1
        bucket['value'] = round(bucket['value'] + value, 2)
        maximum = _number(item.get('maximum_stock'))
        if maximum > 0:
            utilisation.append(_number(item.get('current_stock')) / maximum * 100)

    return {
        'total_items': len(annotated),
        'in_stock': counts[IN_STOCK],
        'low_stock': counts[LOW_STOCK],
        'out_of_stock': counts[OUT_OF_STOCK],
        'expiring_soon': counts[EXPIRING_SOON],
        'expired': counts[EXPIRED],
        'total_value': round(total_value, 2),
        'category_breakdown': dict(categories),
        'avg_stock_utilization': round(sum(utilisation) / len(utilisation), 1) if utilisation else 0.0,
    }


def reorder_list(items: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Items that need ordering, with the quantity that brings them back to maximum."""
    out = []
    for item in annotate(items, today):
        if item['stock_status'] not in (OUT_OF_STOCK, LOW_STOCK):
            continue
        current = _number(item.get('current_stock'))
        target = _number(item.get('maximum_stock')) or _number(item.get('minimum_stock')) * 2
        out.append({
            'id': item.get('id'),
            'name': item.get('name'),
            'stock_status': item['stock_status'],
            'current_stock': item.get('current_stock'),
            'reorder_quantity': int(max(target - current, 0)),
            'supplier': item.get('supplier'),
        })
    return out
