"""
Laboratory dashboards: equipment maintenance, quality control and
compliance, plus QC evaluation against the acceptable range.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..permissions import IsLabRole
from ..responses import ok
from ..services.laboratory import (
    annotate_equipment,
    compliance_metrics,
    equipment_metrics,
    evaluate_qc,
    qc_deviation,
    qc_metrics,
)
from .entities import record_change


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def equipment_metrics_view(request):
    client = get_mock_client()
    equipment = client.manager('Equipment').list()
    return ok({
        'metrics': equipment_metrics(equipment, client.manager('MaintenanceRecord').list()),
        'equipment': annotate_equipment(equipment),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def quality_metrics_view(request):
    client = get_mock_client()
    return ok({
        'qc': qc_metrics(client.manager('QCTest').list()),
        'compliance': compliance_metrics(client.manager('ComplianceRecord').list()),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsLabRole])
def evaluate_qc_test(request, pk):
    """Set a QC test's status from its actual value and acceptable range."""
    manager = get_mock_client().manager('QCTest')
    test = manager.get(pk)
    if test is None:
        raise NotFound('QC test not found')
    result = evaluate_qc(test)
    record = manager.update(pk, {'status': result})
    if record is None:
        raise NotFound('QC test not found')
    record_change(request, 'QCTest', 'evaluate', pk, detail={'status': result})
    return ok(dict(record, deviation=qc_deviation(record)), message=f'QC test {result}')
