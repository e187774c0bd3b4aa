"""
Prescription monitoring and interaction screening.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..permissions import IsClinicalRole
from ..responses import ok
from ..serializers.prescriptions import InteractionCheckSerializer, MonitoringQuerySerializer
from ..services.interactions import check_interactions, highest_severity
from ..services.prescriptions import is_active, monitoring_report


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def monitoring(request):
    q = MonitoringQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient_id = q.validated_data.get('patient_id') or None
    rx = get_mock_client().manager('Prescription').list()
    return ok(monitoring_report(rx, patient_id=patient_id))


def _patient_regimen(client, patient_id):
    patient = client.manager('Patient').get(patient_id)
    if patient is None:
        raise NotFound('Patient not found')
    meds = list(patient.get('medications') or [])
    meds += [
        rx.get('medication_name') for rx in client.manager('Prescription').filter(patient_id=patient_id)
        if is_active(rx) and rx.get('medication_name')
    ]
    return patient, list(dict.fromkeys(meds))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def interactions(request):
    """Screen a new medication against the patient's regimen and allergies.

    Explicit ``current_medications``/``allergies`` take precedence over the
    patient's record.
    """
    s = InteractionCheckSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    current, allergies = [], []
    if vd.get('patient_id'):
        patient, current = _patient_regimen(get_mock_client(), vd['patient_id'])
        allergies = list(patient.get('allergies') or [])
    if 'current_medications' in vd:
        current = vd['current_medications']
    if 'allergies' in vd:
        allergies = vd['allergies']

    warnings = check_interactions(vd['medication_name'], current, allergies)
    return ok({
        'medication_name': vd['medication_name'],
        'current_medications': current,
        'allergies': allergies,
        'warnings': warnings,
        'has_warnings': bool(warnings),
        'highest_severity': highest_severity(warnings),
    })
