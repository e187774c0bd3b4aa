"""
Headline figures for the dashboard, computed from the entity collections.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from . import inventory, laboratory, prescriptions
from .inventory import parse_date


def _alert(kind: str, severity: str, message: str, count: int) -> Dict[str, Any]:
    return {'type': kind, 'severity': severity, 'message': message, 'count': count}


def build_alerts(items, equipment, qc_tests, compliance, rx_alerts, today) -> List[Dict[str, Any]]:
    alerts = []
    statuses = [inventory.stock_status(i, today) for i in items]
    out = statuses.count(inventory.OUT_OF_STOCK)
    low = statuses.count(inventory.LOW_STOCK)
    expired = statuses.count(inventory.EXPIRED)
    overdue = sum(1 for e in equipment if laboratory.maintenance_status(e, today) == 'overdue')
    failed = sum(1 for t in qc_tests if t.get('status') == 'failed')
    non_compliant = sum(1 for r in compliance if r.get('status') == 'non_compliant')
    critical_rx = sum(1 for a in rx_alerts if a['severity'] == 'high')

    if out:
        alerts.append(_alert('inventory', 'high', f'{out} item(s) out of stock', out))
    if low:
        alerts.append(_alert('inventory', 'medium', f'{low} item(s) below minimum stock', low))
    if expired:
        alerts.append(_alert('inventory', 'high', f'{expired} item(s) past expiry date', expired))
    if overdue:
        alerts.append(_alert('equipment', 'high', f'{overdue} equipment item(s) overdue for maintenance', overdue))
    if failed:
        alerts.append(_alert('quality', 'medium', f'{failed} QC test(s) failed', failed))
    if non_compliant:
        alerts.append(_alert('compliance', 'high', f'{non_compliant} area(s) non-compliant', non_compliant))
    if critical_rx:
        alerts.append(_alert('prescriptions', 'high', f'{critical_rx} high-severity prescription alert(s)', critical_rx))
    return alerts


def dashboard_summary(client, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    patients = client.manager('Patient').list()
    appointments = client.manager('Appointment').list()
    lab_orders = client.manager('LabOrder').list()
    rx = client.manager('Prescription').list()
    items = client.manager('InventoryItem').list()
    equipment = client.manager('Equipment').list()
    qc_tests = client.manager('QCTest').list()
    compliance = client.manager('ComplianceRecord').list()

    scheduled = [
        (parse_date(a.get('appointment_date')), a) for a in appointments
        if a.get('status') == 'scheduled'
    ]
    statuses = [inventory.stock_status(i, today) for i in items]
    active_rx = [p for p in rx if prescriptions.is_active(p)]

    return {
        'active_patients': sum(1 for p in patients if p.get('status', 'active') == 'active'),
        'total_patients': len(patients),
        'appointments_today': sum(1 for d, _ in scheduled if d == today),
        'upcoming_appointments': sum(1 for d, _ in scheduled if d is not None and d > today),
        'pending_lab_orders': sum(1 for o in lab_orders if o.get('status') == 'pending'),
        'active_prescriptions': len(active_rx),
        'low_stock_items': statuses.count(inventory.LOW_STOCK),
        'out_of_stock_items': statuses.count(inventory.OUT_OF_STOCK),
        'equipment_maintenance_overdue': sum(
            1 for e in equipment if laboratory.maintenance_status(e, today) == 'overdue'
        ),
        'alerts': build_alerts(
            items, equipment, qc_tests, compliance,
            prescriptions.generate_alerts(active_rx, today), today,
        ),
    }
