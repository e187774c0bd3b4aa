"""
Document rendering and generation from templates.
"""
from __future__ import annotations

from datetime import date

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..permissions import IsClinicalRole, IsDoctorRole
from ..responses import ok
from ..serializers.documents import GenerateSerializer, RenderSerializer
from ..services.documents import generate_document, render_template
from .entities import record_change


def _get(client, entity, pk, label):
    record = client.manager(entity).get(pk)
    if record is None:
        raise NotFound(f'{label} not found')
    return record


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalRole])
def render_document(request):
    """Preview a template without storing anything."""
    s = RenderSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    client = get_mock_client()

    if vd.get('template_id'):
        template = _get(client, 'DocumentTemplate', vd['template_id'], 'Document template')
        content = template.get('template_content') or ''
        variables = template.get('variables') or []
    else:
        content = vd['template_content']
        variables = vd.get('template_variables') or []
    patient = _get(client, 'Patient', vd['patient_id'], 'Patient') if vd.get('patient_id') else None

    rendered = render_template(
        content,
        patient=patient,
        issued_by=vd.get('issued_by') or request.user.get_full_name() or None,
        issue_date=vd.get('issue_date') or date.today().isoformat(),
        valid_from=vd.get('valid_from'),
        valid_until=vd.get('valid_until'),
        variables=variables,
        values=vd.get('variables'),
    )
    return ok({'content': rendered})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def generate_medical_document(request):
    s = GenerateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    client = get_mock_client()
    template = _get(client, 'DocumentTemplate', vd['template_id'], 'Document template')
    patient = _get(client, 'Patient', vd['patient_id'], 'Patient')

    record = generate_document(
        client,
        template,
        patient,
        issued_by=vd.get('issued_by') or request.user.get_full_name() or None,
        issue_date=vd.get('issue_date') or date.today().isoformat(),
        valid_from=vd.get('valid_from'),
        valid_until=vd.get('valid_until'),
        values=vd.get('variables'),
        document_title=vd.get('document_title'),
        notes=vd.get('notes', ''),
    )
    record_change(request, 'MedicalDocument', 'create', record['id'],
                  detail={'document_number': record['document_number']})
    return ok(record, status=201, message='Medical document generated successfully')
