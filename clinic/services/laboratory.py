"""
Laboratory derived state: equipment maintenance status, QC evaluation and
the quality/compliance dashboards.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .inventory import parse_date

MAINTENANCE_DUE_SOON_DAYS = 7
TREND_WINDOW_DAYS = 7


def percent(part: float, whole: float) -> int:
    """Whole-number percentage, rounding halves up."""
    if not whole:
        return 0
    return int(part * 100 / whole + 0.5)


def _number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------
def maintenance_status(equipment: Dict[str, Any], today: Optional[date] = None) -> str:
    today = today or date.today()
    due = parse_date(equipment.get('next_maintenance'))
    if due is None:
        return 'unknown'
    if due < today:
        return 'overdue'
    if (due - today).days <= MAINTENANCE_DUE_SOON_DAYS:
        return 'due_soon'
    return 'scheduled'


def equipment_metrics(
    equipment: Iterable[Dict[str, Any]],
    maintenance: Iterable[Dict[str, Any]] = (),
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    equipment = list(equipment)
    maintenance = list(maintenance)
    total = len(equipment)
    operational = sum(1 for e in equipment if e.get('status') == 'operational')

    ages = []
    for e in equipment:
        bought = parse_date(e.get('purchase_date'))
        if bought is not None:
            ages.append(int((today - bought).days / 365.25))
    rates = [_number(e.get('utilization_rate')) or 0 for e in equipment]

    return {
        'total_equipment': total,
        'operational': operational,
        'maintenance_due': sum(1 for e in equipment if maintenance_status(e, today) == 'overdue'),
        'maintenance_due_soon': sum(1 for e in equipment if maintenance_status(e, today) == 'due_soon'),
        'under_maintenance': sum(1 for e in equipment if e.get('status') == 'maintenance'),
        'out_of_order': sum(1 for e in equipment if e.get('status') == 'out_of_order'),
        'calibration_due': sum(1 for e in equipment if e.get('status') == 'calibration'),
        'total_maintenance_cost': sum(
            _number(m.get('cost')) or 0 for m in maintenance if m.get('status') == 'completed'
        ),
        'pending_maintenance_cost': sum(
            _number(m.get('cost')) or 0 for m in maintenance if m.get('status') in ('scheduled', 'in_progress')
        ),
        'avg_utilization': int(sum(rates) / total + 0.5) if total else 0,
        'avg_age_years': int(sum(ages) / len(ages) + 0.5) if ages else 0,
        'operational_rate': percent(operational, total),
    }


def annotate_equipment(equipment: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    return [dict(e, maintenance_status=maintenance_status(e, today)) for e in equipment]


# ---------------------------------------------------------------------
# Quality control
# ---------------------------------------------------------------------
def evaluate_qc(test: Dict[str, Any]) -> str:
    """``passed`` when the actual value sits inside the acceptable range.

    Tests without a usable actual value or range stay ``pending``.
    """
    actual = _number(test.get('actual_value'))
    low = _number(test.get('acceptable_range_min'))
    high = _number(test.get('acceptable_range_max'))
    if actual is None or low is None or high is None:
        return 'pending'
    return 'passed' if low <= actual <= high else 'failed'


def qc_deviation(test: Dict[str, Any]) -> Optional[float]:
    actual = _number(test.get('actual_value'))
    target = _number(test.get('target_value'))
    if actual is None or target is None:
        return None
    return round(actual - target, 4)


def _pass_rate(tests: List[Dict[str, Any]]) -> int:
    return percent(sum(1 for t in tests if t.get('status') == 'passed'), len(tests))


def qc_metrics(tests: Iterable[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    tests = list(tests)
    week_ago = today - timedelta(days=TREND_WINDOW_DAYS)
    two_weeks_ago = today - timedelta(days=TREND_WINDOW_DAYS * 2)

    recent, previous = [], []
    for t in tests:
        performed = parse_date(t.get('performed_date'))
        if performed is None:
            continue
        if performed >= week_ago:
            recent.append(t)
        elif performed >= two_weeks_ago:
            previous.append(t)

    recent_rate = _pass_rate(recent)
    previous_rate = _pass_rate(previous)
    if recent_rate > previous_rate:
        trend = 'up'
    elif recent_rate < previous_rate:
        trend = 'down'
    else:
        trend = 'stable'

    return {
        'total_tests': len(tests),
        'passed': sum(1 for t in tests if t.get('status') == 'passed'),
        'failed': sum(1 for t in tests if t.get('status') == 'failed'),
        'pending': sum(1 for t in tests if t.get('status') == 'pending'),
        'in_progress': sum(1 for t in tests if t.get('status') == 'in_progress'),
        'pass_rate': _pass_rate(tests),
        'recent_pass_rate': recent_rate,
        'previous_pass_rate': previous_rate,
        'trend_direction': trend,
    }


def compliance_metrics(records: Iterable[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    records = list(records)
    total = len(records)
    compliant = sum(1 for r in records if r.get('status') == 'compliant')
    overdue = [
        r for r in records
        if (parse_date(r.get('next_review')) or date.max) < today
    ]
    return {
        'total_areas': total,
        'compliant': compliant,
        'non_compliant': sum(1 for r in records if r.get('status') == 'non_compliant'),
        'warning': sum(1 for r in records if r.get('status') == 'warning'),
        'pending_review': sum(1 for r in records if r.get('status') == 'pending_review'),
        'reviews_overdue': len(overdue),
        'compliance_rate': percent(compliant, total),
    }
