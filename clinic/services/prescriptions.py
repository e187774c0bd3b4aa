"""
Prescription monitoring: adherence, clinical alerts, expiry and refill
reminders.

Adherence is derived from the ``doses_taken`` the pharmacy or the patient
reported.  A prescription without a report is counted as fully adherent.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .inventory import parse_date

DEFAULT_DURATION_DAYS = 30
LOW_ADHERENCE = 80
VERY_LOW_ADHERENCE = 60
MISSED_DOSES_LIMIT = 3
EXPIRY_WINDOW_DAYS = 7
REFILL_WINDOW_DAYS = 3


def _int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def is_active(rx: Dict[str, Any]) -> bool:
    return rx.get('status') == 'active'


def duration_days(rx: Dict[str, Any]) -> int:
    return _int(rx.get('duration_days')) or DEFAULT_DURATION_DAYS


def course_dates(rx: Dict[str, Any]):
    """(start, end) of the course; end falls back to start + duration."""
    start = parse_date(rx.get('start_date'))
    if start is None:
        return None, None
    end = parse_date(rx.get('end_date')) or start + timedelta(days=duration_days(rx))
    return start, end


def doses_per_day(rx: Dict[str, Any]) -> int:
    if (rx.get('frequency_unit') or 'daily') != 'daily':
        return 1
    return max(_int(rx.get('frequency'), 1) or 1, 1)


def adherence(rx: Dict[str, Any], today: Optional[date] = None) -> Optional[Dict[str, Any]]:
    """Adherence figures for one prescription, ``None`` without a start date."""
    today = today or date.today()
    start, end = course_dates(rx)
    if start is None:
        return None
    total_days = max((end - start).days, 0)
    days_passed = max(min((today - start).days, total_days), 0)
    expected = days_passed * doses_per_day(rx)

    taken = _int(rx.get('doses_taken'))
    if taken is None or expected == 0:
        fraction = 1.0
    else:
        fraction = min(taken / expected, 1.0)

    return {
        'prescription_id': rx.get('id'),
        'patient_id': rx.get('patient_id'),
        'medication_name': rx.get('medication_name'),
        'adherence_rate': int(fraction * 100 + 0.5),
        'missed_doses': int(days_passed * (1 - fraction)),
        'days_passed': days_passed,
        'total_days': total_days,
        'expected_doses': expected,
        'doses_taken': taken,
        'reported': taken is not None,
    }


def _alert(rx, type_, severity, message, action):
    return {
        'type': type_,
        'severity': severity,
        'prescription_id': rx.get('id'),
        'patient_id': rx.get('patient_id'),
        'medication_name': rx.get('medication_name'),
        'message': message,
        'action': action,
    }


def generate_alerts(prescriptions: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    alerts = []
    for rx in prescriptions:
        if not is_active(rx):
            continue
        name = rx.get('medication_name')
        figures = adherence(rx, today)
        if figures and figures['adherence_rate'] < LOW_ADHERENCE:
            alerts.append(_alert(
                rx, 'warning',
                'high' if figures['adherence_rate'] < VERY_LOW_ADHERENCE else 'medium',
                f"Low adherence: {figures['adherence_rate']}% for {name}",
                'Contact patient to discuss medication adherence',
            ))
        if figures and figures['missed_doses'] > MISSED_DOSES_LIMIT:
            alerts.append(_alert(
                rx, 'critical', 'high',
                f"{figures['missed_doses']} missed doses for {name}",
                'Urgent follow-up required',
            ))
        if rx.get('side_effects_to_watch'):
            alerts.append(_alert(
                rx, 'info', 'low',
                f"Monitor for: {rx['side_effects_to_watch']}",
                'Regular patient check-ins recommended',
            ))
        if rx.get('lab_monitoring'):
            alerts.append(_alert(
                rx, 'info', 'medium',
                f"Lab monitoring required: {rx['lab_monitoring']}",
                'Schedule lab work',
            ))
    return alerts


def expiry_urgency(days_left: int) -> str:
    if days_left < 0:
        return 'expired'
    if days_left <= 1:
        return 'critical'
    if days_left <= 3:
        return 'urgent'
    return 'soon'


def expiration_alerts(prescriptions: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Active prescriptions whose end date is at most a week away (or past).

    Expired ones come first, then by days remaining.
    """
    today = today or date.today()
    out = []
    for rx in prescriptions:
        end = parse_date(rx.get('end_date'))
        if not is_active(rx) or end is None:
            continue
        days_left = (end - today).days
        if days_left > EXPIRY_WINDOW_DAYS:
            continue
        out.append({
            'prescription_id': rx.get('id'),
            'patient_id': rx.get('patient_id'),
            'medication_name': rx.get('medication_name'),
            'end_date': end.isoformat(),
            'days_until_expiry': days_left,
            'urgency': expiry_urgency(days_left),
            'is_expired': days_left < 0,
        })
    out.sort(key=lambda a: (not a['is_expired'], a['days_until_expiry']))
    return out


def refill_alerts(prescriptions: Iterable[Dict[str, Any]], today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    out = []
    for rx in prescriptions:
        start = parse_date(rx.get('start_date'))
        if not is_active(rx) or start is None or (_int(rx.get('refills'), 0) or 0) <= 0:
            continue
        refill_on = start + timedelta(days=duration_days(rx))
        days_left = (refill_on - today).days
        if 0 <= days_left <= REFILL_WINDOW_DAYS:
            out.append({
                'prescription_id': rx.get('id'),
                'patient_id': rx.get('patient_id'),
                'medication_name': rx.get('medication_name'),
                'refill_date': refill_on.isoformat(),
                'refills_remaining': _int(rx.get('refills'), 0),
                'urgency': 'urgent' if days_left == 0 else 'soon',
            })
    return out


def monitoring_report(
    prescriptions: Iterable[Dict[str, Any]],
    today: Optional[date] = None,
    patient_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Everything the monitoring screen shows, for all patients or one."""
    today = today or date.today()
    prescriptions = [
        rx for rx in prescriptions
        if patient_id is None or str(rx.get('patient_id')) == str(patient_id)
    ]
    active = [rx for rx in prescriptions if is_active(rx)]
    figures = [f for f in (adherence(rx, today) for rx in active) if f is not None]
    alerts = generate_alerts(active, today)
    return {
        'summary': {
            'active_prescriptions': len(active),
            'average_adherence': (
                int(sum(f['adherence_rate'] for f in figures) / len(figures) + 0.5) if figures else 0
            ),
            'critical_alerts': sum(1 for a in alerts if a['severity'] == 'high'),
            'warning_alerts': sum(1 for a in alerts if a['severity'] == 'medium'),
        },
        'adherence': figures,
        'alerts': alerts,
        'expiration_alerts': expiration_alerts(active, today),
        'refill_alerts': refill_alerts(active, today),
    }
